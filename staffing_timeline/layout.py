from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .allocation import overallocated_days, validate_assignment
from .geometry import BarRect, bar_rect
from .lanes import LanePacking, lane_top, pack_row
from .models import (
    DEFAULT_LAYOUT,
    ID,
    Assignment,
    LayoutConfig,
    MissingReferenceError,
    Person,
    Project,
    TimelineFilters,
)
from .sticky import StickyInfo, full_width_label, sticky_position
from .viewport import Viewport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacedBar:
    assignment: Assignment
    project: Project
    rect: BarRect
    lane_index: int
    sticky: StickyInfo


@dataclass(frozen=True)
class RowLayout:
    person: Person
    top_px: float
    height_px: float
    packing: LanePacking
    bars: Tuple[PlacedBar, ...]

    @property
    def overflow_count(self) -> int:
        return self.packing.overflow_count


def _filter_window(filters: TimelineFilters, viewport: Viewport) -> Tuple[date, date]:
    start = filters.date_from or viewport.window_start
    end = filters.date_to or viewport.window_end
    return start, max(start, end)


def filter_assignments(
    assignments: Iterable[Assignment],
    projects: Dict[ID, Project],
    filters: TimelineFilters,
    viewport: Viewport,
) -> List[Assignment]:
    start, end = _filter_window(filters, viewport)
    kept: List[Assignment] = []
    for assignment in assignments:
        if filters.has_date_range() and not assignment.overlaps(start, end):
            continue
        if filters.project_status:
            project = projects.get(assignment.project_id)
            if project is None or project.status != filters.project_status:
                continue
        kept.append(assignment)
    return kept


def layout_row(
    person: Person,
    assignments: Sequence[Assignment],
    projects: Dict[ID, Project],
    viewport: Viewport,
    row_top_px: float = 0.0,
    *,
    config: LayoutConfig = DEFAULT_LAYOUT,
    dragging_id: Optional[ID] = None,
) -> RowLayout:
    """Pack and place one person's bars; every project must resolve."""
    for assignment in assignments:
        validate_assignment(assignment)
        if assignment.project_id not in projects:
            raise MissingReferenceError("project", assignment.project_id, assignment.id)
    packing = pack_row(assignments, viewport.visible_days(config), config)
    by_id = {a.id: a for a in assignments}
    bars: List[PlacedBar] = []
    for assignment_id in packing.order:
        if packing.is_hidden(assignment_id):
            continue
        assignment = by_id[assignment_id]
        lane = packing.lanes[assignment_id]
        rect = bar_rect(
            assignment,
            viewport,
            row_top_px + lane_top(lane, config),
            config.bar_height_px,
            config.min_bar_width_px,
        )
        if assignment_id == dragging_id:
            sticky = full_width_label(rect)
        else:
            sticky = sticky_position(rect, viewport.scroll_left_px, viewport.sidebar_width_px, config)
        bars.append(PlacedBar(assignment, projects[assignment.project_id], rect, lane, sticky))
    return RowLayout(
        person=person,
        top_px=row_top_px,
        height_px=packing.row_height_px,
        packing=packing,
        bars=tuple(bars),
    )


def layout_timeline(
    people: Sequence[Person],
    assignments: Sequence[Assignment],
    projects: Iterable[Project],
    viewport: Viewport,
    *,
    filters: Optional[TimelineFilters] = None,
    config: LayoutConfig = DEFAULT_LAYOUT,
    dragging_id: Optional[ID] = None,
    skip_missing: bool = True,
) -> List[RowLayout]:
    """Lay out every (filtered) person as a row, stacked top to bottom."""
    filters = filters or TimelineFilters()
    project_map = {project.id: project for project in projects}
    known_people = {person.id for person in people}
    by_person: Dict[ID, List[Assignment]] = defaultdict(list)
    for assignment in assignments:
        if assignment.person_id not in known_people:
            if not skip_missing:
                raise MissingReferenceError("person", assignment.person_id, assignment.id)
            logger.warning("skipping assignment %s: unknown person %s", assignment.id, assignment.person_id)
            continue
        if assignment.project_id not in project_map:
            if not skip_missing:
                raise MissingReferenceError("project", assignment.project_id, assignment.id)
            logger.warning("skipping assignment %s: unknown project %s", assignment.id, assignment.project_id)
            continue
        by_person[assignment.person_id].append(assignment)

    window_start, window_end = _filter_window(filters, viewport)
    rows: List[RowLayout] = []
    top = 0.0
    for person in people:
        if not filters.accepts_person(person):
            continue
        own = by_person.get(person.id, [])
        if filters.overallocated_only and not overallocated_days(own, person.id, window_start, window_end):
            continue
        row = layout_row(
            person,
            filter_assignments(own, project_map, filters, viewport),
            project_map,
            viewport,
            top,
            config=config,
            dragging_id=dragging_id,
        )
        rows.append(row)
        top += row.height_px
    return rows
