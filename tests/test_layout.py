from __future__ import annotations

import logging
from datetime import date

import pytest

from staffing_timeline.layout import layout_row, layout_timeline
from staffing_timeline.models import MissingReferenceError, TimelineFilters
from staffing_timeline.viewport import Viewport


@pytest.fixture
def january(make_assignment):
    return [
        make_assignment("2024-01-02", "2024-01-10", 0.75, assignment_id="ana-atlas"),
        make_assignment("2024-01-05", "2024-01-08", 0.5, project_id="proj-b", assignment_id="ana-beacon"),
        make_assignment("2024-01-03", "2024-01-04", 0.5, person_id="p2", assignment_id="bo-atlas"),
    ]


def test_rows_stack_in_input_order(people, projects, january, q1_viewport: Viewport) -> None:
    rows = layout_timeline(people, january, projects, q1_viewport)

    assert [row.person.id for row in rows] == ["p1", "p2", "p3"]
    assert [row.top_px for row in rows] == [0.0, 84.0, 148.0]
    assert [row.height_px for row in rows] == [84.0, 64.0, 64.0]
    assert rows[2].bars == ()


def test_bars_carry_geometry_lane_and_project(people, projects, january, q1_viewport: Viewport) -> None:
    rows = layout_timeline(people, january, projects, q1_viewport)
    bars = {bar.assignment.id: bar for bar in rows[0].bars}

    atlas = bars["ana-atlas"]
    assert atlas.lane_index == 0
    assert atlas.project.name == "Atlas"
    assert (atlas.rect.left_px, atlas.rect.width_px) == (40, 360)
    assert atlas.rect.top_px == 8

    beacon = bars["ana-beacon"]
    assert beacon.lane_index == 1
    assert beacon.rect.top_px == 8 + 36
    assert (beacon.rect.left_px, beacon.rect.width_px) == (160, 160)

    bo = rows[1].bars[0]
    assert bo.rect.top_px == 84 + 8


def test_sticky_labels_follow_scroll_except_while_dragging(people, projects, january, q1_viewport: Viewport) -> None:
    scrolled = q1_viewport.with_scroll(100)

    rows = layout_timeline(people, january, projects, scrolled)
    atlas = next(bar for bar in rows[0].bars if bar.assignment.id == "ana-atlas")
    assert atlas.sticky.is_sticky
    assert atlas.sticky.label_left_px == 116 - 40 + 8

    dragging = layout_timeline(people, january, projects, scrolled, dragging_id="ana-atlas")
    atlas = next(bar for bar in dragging[0].bars if bar.assignment.id == "ana-atlas")
    assert not atlas.sticky.is_sticky
    assert atlas.sticky.label_max_width_px == atlas.rect.width_px


def test_unknown_project_is_skipped_with_warning(people, projects, january, make_assignment, q1_viewport, caplog) -> None:
    orphan = make_assignment("2024-01-02", "2024-01-03", project_id="ghost", assignment_id="orphan")

    with caplog.at_level(logging.WARNING, logger="staffing_timeline.layout"):
        rows = layout_timeline(people, january + [orphan], projects, q1_viewport)

    assert "orphan" not in {bar.assignment.id for row in rows for bar in row.bars}
    assert "unknown project ghost" in caplog.text


def test_unknown_reference_raises_when_not_skipping(people, projects, january, make_assignment, q1_viewport) -> None:
    orphan = make_assignment("2024-01-02", "2024-01-03", person_id="nobody")

    with pytest.raises(MissingReferenceError) as excinfo:
        layout_timeline(people, january + [orphan], projects, q1_viewport, skip_missing=False)
    assert excinfo.value.kind == "person"


def test_layout_row_requires_resolvable_projects(people, make_assignment, q1_viewport) -> None:
    with pytest.raises(MissingReferenceError):
        layout_row(people[0], [make_assignment("2024-01-02", "2024-01-03")], {}, q1_viewport)


def test_row_height_follows_visible_slice(people, projects, make_assignment, q1_viewport: Viewport) -> None:
    items = [
        make_assignment("2024-01-02", "2024-01-04", assignment_id="x"),
        make_assignment("2024-01-03", "2024-01-05", assignment_id="y"),
        make_assignment("2024-03-01", "2024-03-20", assignment_id="z"),
    ]

    near_start = layout_timeline(people[:1], items, projects, q1_viewport)[0]
    near_end = layout_timeline(people[:1], items, projects, q1_viewport.with_scroll(2600))[0]

    assert near_start.packing.max_concurrency == 2
    assert near_start.height_px == 84
    assert near_end.packing.max_concurrency == 1
    assert near_end.height_px == 64
    assert [bar.assignment.id for bar in near_end.bars] == ["z"]


@pytest.mark.parametrize(
    "filters, expected",
    [
        (TimelineFilters(person_type="External"), ["p2"]),
        (TimelineFilters(search="ANA"), ["p1"]),
        (TimelineFilters(person_status="Paused"), ["p3"]),
        (TimelineFilters(person_profile="UX Designer"), ["p2"]),
        (TimelineFilters(overallocated_only=True), ["p1"]),
    ],
)
def test_person_filters(people, projects, january, make_assignment, q1_viewport, filters, expected) -> None:
    extra = make_assignment("2024-01-06", "2024-01-07", 0.5, project_id="proj-c")

    rows = layout_timeline(people, january + [extra], projects, q1_viewport, filters=filters)

    assert [row.person.id for row in rows] == expected


def test_overallocated_only_respects_date_range(people, projects, january, make_assignment, q1_viewport) -> None:
    extra = make_assignment("2024-01-06", "2024-01-07", 0.5, project_id="proj-c")
    filters = TimelineFilters(overallocated_only=True, date_from=date(2024, 1, 20), date_to=date(2024, 1, 31))

    assert layout_timeline(people, january + [extra], projects, q1_viewport, filters=filters) == []


def test_assignment_filters(people, projects, january, q1_viewport) -> None:
    on_hold = layout_timeline(people, january, projects, q1_viewport, filters=TimelineFilters(project_status="On Hold"))
    assert [bar.assignment.id for bar in on_hold[0].bars] == ["ana-beacon"]
    assert on_hold[1].bars == ()

    late = layout_timeline(people, january, projects, q1_viewport, filters=TimelineFilters(date_from=date(2024, 1, 9)))
    assert [bar.assignment.id for bar in late[0].bars] == ["ana-atlas"]
    assert late[1].bars == ()
