from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


ID = str

OVERALLOCATION_TOLERANCE = 1.05
EPSILON = 1e-6


class EngineError(ValueError):
    """Base class for deterministic, input-derived engine failures."""


class InvalidRangeError(EngineError):
    def __init__(self, start: date, end: date, subject: str = "range") -> None:
        super().__init__(f"invalid {subject}: start {start.isoformat()} is after end {end.isoformat()}")
        self.start = start
        self.end = end
        self.subject = subject


class InvalidAllocationError(EngineError):
    def __init__(self, value: object, subject: str = "allocation") -> None:
        super().__init__(f"invalid {subject}: {value!r} must be a finite number greater than 0")
        self.value = value
        self.subject = subject


class MissingReferenceError(EngineError):
    def __init__(self, kind: str, ref_id: ID, assignment_id: Optional[ID] = None) -> None:
        owner = f" referenced by assignment {assignment_id}" if assignment_id else ""
        super().__init__(f"{kind} {ref_id!r}{owner} cannot be resolved")
        self.kind = kind
        self.ref_id = ref_id
        self.assignment_id = assignment_id


@dataclass(frozen=True)
class Person:
    """Roster entry; aggregation only needs the id."""

    id: ID
    name: str = ""
    profile: str = ""
    status: str = "Active"
    type: str = "Internal"

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def is_active(self) -> bool:
        return self.status == "Active"


@dataclass(frozen=True)
class Project:
    id: ID
    name: str
    status: str = "In Progress"
    client_id: Optional[ID] = None
    fte: Optional[float] = None


@dataclass(frozen=True)
class Assignment:
    """A person working on a project over an inclusive day range."""

    id: ID
    person_id: ID
    project_id: ID
    start_day: date
    end_day: date
    allocation: float
    is_billable: bool = True

    def covers(self, day: date) -> bool:
        return self.start_day <= day <= self.end_day

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_day <= end and self.end_day >= start

    @property
    def day_count(self) -> int:
        return (self.end_day - self.start_day).days + 1


@dataclass(frozen=True)
class CandidateAssignment:
    """A not-yet-persisted assignment (create) or the edited values (update)."""

    person_id: ID
    start_day: date
    end_day: date
    allocation: float


@dataclass(frozen=True)
class DayAllocationReport:
    day: date
    total_allocation: float


@dataclass(frozen=True)
class TimelineFilters:
    """Every recognised filter dimension; ``None`` means "no constraint"."""

    person_profile: Optional[str] = None
    person_status: Optional[str] = None
    person_type: Optional[str] = None
    project_status: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    overallocated_only: bool = False
    search: Optional[str] = None

    def has_date_range(self) -> bool:
        return self.date_from is not None or self.date_to is not None

    def accepts_person(self, person: Person) -> bool:
        if self.person_profile and person.profile != self.person_profile:
            return False
        if self.person_status and person.status != self.person_status:
            return False
        if self.person_type and person.type != self.person_type:
            return False
        if self.search and self.search.strip().lower() not in person.display_name.lower():
            return False
        return True


@dataclass(frozen=True)
class LayoutConfig:
    day_width_px: float = 40.0
    sidebar_width_px: float = 256.0
    viewport_width_px: float = 800.0
    min_bar_width_px: float = 80.0
    bar_height_px: float = 32.0
    bar_spacing_px: float = 4.0
    base_padding_px: float = 8.0
    min_row_height_px: float = 64.0
    max_visible_lanes: int = 4
    visibility_margin_px: float = 150.0
    sticky_lookahead_px: float = 240.0
    sticky_offset_px: float = 8.0
    min_label_width_px: float = 60.0
    expand_months: int = 3
    edge_threshold_px: float = 400.0


DEFAULT_LAYOUT = LayoutConfig()


@dataclass(frozen=True)
class EngineConfig:
    window_start: date
    window_end: date
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    logging_level: str = "INFO"
