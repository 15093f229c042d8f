from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Optional

import pytest

from staffing_timeline.calendar_days import parse_day
from staffing_timeline.models import Assignment, Person, Project
from staffing_timeline.viewport import Viewport

AssignmentFactory = Callable[..., Assignment]


@pytest.fixture
def make_assignment() -> AssignmentFactory:
    counter = {"next": 0}

    def factory(
        start: str,
        end: str,
        allocation: float = 0.5,
        *,
        person_id: str = "p1",
        project_id: str = "proj-a",
        assignment_id: Optional[str] = None,
    ) -> Assignment:
        counter["next"] += 1
        return Assignment(
            id=assignment_id or f"a{counter['next']}",
            person_id=person_id,
            project_id=project_id,
            start_day=parse_day(start),
            end_day=parse_day(end),
            allocation=allocation,
        )

    return factory


@pytest.fixture
def people() -> list[Person]:
    return [
        Person(id="p1", name="Ana Ruiz", profile="Backend Developer"),
        Person(id="p2", name="Bo Chen", profile="UX Designer", type="External"),
        Person(id="p3", name="Cam Diaz", profile="QA", status="Paused"),
    ]


@pytest.fixture
def projects() -> list[Project]:
    return [
        Project(id="proj-a", name="Atlas"),
        Project(id="proj-b", name="Beacon", status="On Hold"),
        Project(id="proj-c", name="Comet", fte=1.0),
    ]


@pytest.fixture
def q1_viewport() -> Viewport:
    return Viewport(window_start=date(2024, 1, 1), window_end=date(2024, 3, 31), day_width_px=40)
