from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from .calendar_days import DayRange
from .models import DEFAULT_LAYOUT, ID, Assignment, LayoutConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LanePacking:
    """Result of packing one person's row for a given visible slice."""

    lanes: Dict[ID, int]
    order: Tuple[ID, ...]
    max_concurrency: int
    visible_lane_count: int
    hidden_ids: Tuple[ID, ...]
    row_height_px: float

    @property
    def overflow_count(self) -> int:
        return len(self.hidden_ids)

    def is_hidden(self, assignment_id: ID) -> bool:
        return assignment_id in self.hidden_ids


def sort_for_packing(assignments: Sequence[Assignment]) -> List[Assignment]:
    # sorted() is stable, so equal start days keep their input order
    return sorted(assignments, key=lambda a: a.start_day)


def assign_lanes(assignments: Sequence[Assignment]) -> Dict[ID, int]:
    """Greedy interval colouring: each bar takes the lowest lane free on its start day."""
    lane_ends: List[Optional[date]] = []
    lanes: Dict[ID, int] = {}
    for assignment in sort_for_packing(assignments):
        chosen = None
        for idx, end in enumerate(lane_ends):
            if end is None or end < assignment.start_day:
                chosen = idx
                break
        if chosen is None:
            chosen = len(lane_ends)
            lane_ends.append(None)
        lane_ends[chosen] = assignment.end_day
        lanes[assignment.id] = chosen
    return lanes


def max_concurrency(assignments: Sequence[Assignment], days: DayRange) -> int:
    """Largest number of assignments active on any single day of ``days``."""
    if not assignments:
        return 0
    first_day = days.start
    counts = [0] * len(days)
    for assignment in assignments:
        if not assignment.overlaps(days.start, days.end):
            continue
        lo = max(0, (assignment.start_day - first_day).days)
        hi = min(len(days) - 1, (assignment.end_day - first_day).days)
        for idx in range(lo, hi + 1):
            counts[idx] += 1
    return max(counts) if counts else 0


def row_height(visible_lane_count: int, config: LayoutConfig = DEFAULT_LAYOUT) -> float:
    if visible_lane_count <= 0:
        return config.min_row_height_px
    stacked = (
        config.base_padding_px * 2
        + visible_lane_count * config.bar_height_px
        + (visible_lane_count - 1) * config.bar_spacing_px
    )
    return max(config.min_row_height_px, stacked)


def lane_top(lane_index: int, config: LayoutConfig = DEFAULT_LAYOUT) -> float:
    return config.base_padding_px + lane_index * (config.bar_height_px + config.bar_spacing_px)


def pack_row(
    assignments: Sequence[Assignment],
    visible_days: DayRange,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> LanePacking:
    """Pack the bars that touch ``visible_days`` into lanes.

    Only bars intersecting the slice take part, so the lane count equals the
    worst concurrency seen on a visible day. Lanes at or beyond
    ``max_visible_lanes`` are hidden and reported through ``hidden_ids``.
    """
    visible = [a for a in assignments if a.overlaps(visible_days.start, visible_days.end)]
    lanes = assign_lanes(visible)
    concurrency = max_concurrency(visible, visible_days)
    lane_count = min(concurrency, config.max_visible_lanes)
    ordered = sort_for_packing(visible)
    hidden = tuple(a.id for a in ordered if lanes[a.id] >= config.max_visible_lanes)
    if hidden:
        logger.debug("row packing hid %d assignment(s) beyond %d lanes", len(hidden), config.max_visible_lanes)
    return LanePacking(
        lanes=lanes,
        order=tuple(a.id for a in ordered),
        max_concurrency=concurrency,
        visible_lane_count=lane_count,
        hidden_ids=hidden,
        row_height_px=row_height(lane_count, config),
    )
