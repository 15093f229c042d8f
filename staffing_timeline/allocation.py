from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .calendar_days import days_between, format_day
from .models import (
    EPSILON,
    ID,
    OVERALLOCATION_TOLERANCE,
    Assignment,
    CandidateAssignment,
    DayAllocationReport,
    InvalidAllocationError,
    InvalidRangeError,
    Person,
)

logger = logging.getLogger(__name__)

ALLOCATION_VALUES = (0.25, 0.5, 0.75, 1.0)
UNDERUTILIZED_BELOW = 0.5
DAYS_PER_MONTH = 30.44


def to_percentage(fraction: float) -> int:
    return int(math.floor(fraction * 100 + 0.5))


def from_percentage(percent: float) -> float:
    return percent / 100


def is_standard_allocation(value: float) -> bool:
    return any(abs(value - allowed) <= EPSILON for allowed in ALLOCATION_VALUES)


def validate_range(start: date, end: date, subject: str = "range") -> None:
    if start > end:
        raise InvalidRangeError(start, end, subject)


def validate_allocation(value: object, subject: str = "allocation") -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidAllocationError(value, subject)
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        raise InvalidAllocationError(value, subject)
    return number


def validate_assignment(assignment: Assignment) -> None:
    validate_range(assignment.start_day, assignment.end_day, f"assignment {assignment.id}")
    validate_allocation(assignment.allocation, f"allocation of assignment {assignment.id}")


def total_allocation(
    assignments: Iterable[Assignment], day: date, exclude_id: Optional[ID] = None
) -> float:
    """Sum the allocation of every assignment covering ``day`` (both ends inclusive)."""
    total = 0.0
    for assignment in assignments:
        if exclude_id is not None and assignment.id == exclude_id:
            continue
        if assignment.start_day <= day <= assignment.end_day:
            total += assignment.allocation
    return total


def is_overallocated(total: float) -> bool:
    return total > OVERALLOCATION_TOLERANCE + EPSILON


def check_overallocation(
    existing: Sequence[Assignment],
    candidate: CandidateAssignment,
    exclude_id: Optional[ID] = None,
) -> List[DayAllocationReport]:
    """Days in the candidate's range where existing + candidate breaches tolerance.

    Being overallocated is an ordinary outcome and comes back as data; only a
    reversed range or a non-positive allocation raises.
    """
    validate_range(candidate.start_day, candidate.end_day, "candidate range")
    allocation = validate_allocation(candidate.allocation, "candidate allocation")
    own = [a for a in existing if a.person_id == candidate.person_id and a.id != exclude_id]
    for assignment in own:
        validate_assignment(assignment)
    relevant = [a for a in own if a.overlaps(candidate.start_day, candidate.end_day)]
    report: List[DayAllocationReport] = []
    for day in days_between(candidate.start_day, candidate.end_day):
        projected = total_allocation(relevant, day) + allocation
        if is_overallocated(projected):
            report.append(DayAllocationReport(day=day, total_allocation=projected))
    logger.debug(
        "overallocation check for %s %s..%s at %.2f: %d day(s) over tolerance",
        candidate.person_id,
        format_day(candidate.start_day),
        format_day(candidate.end_day),
        allocation,
        len(report),
    )
    return report


@dataclass(frozen=True)
class OverallocationSummary:
    is_overallocated: bool
    day_count: int
    max_allocation: float
    message: str


def summarize_overallocation(
    report: Sequence[DayAllocationReport], candidate_allocation: float
) -> OverallocationSummary:
    if not report:
        return OverallocationSummary(False, 0, candidate_allocation, "")
    max_allocation = max(item.total_allocation for item in report)
    pct = to_percentage(max_allocation)
    if len(report) == 1:
        message = f"Overallocated at {pct}% on {format_day(report[0].day)}"
    else:
        message = f"Overallocated up to {pct}% on {len(report)} days"
    return OverallocationSummary(True, len(report), max_allocation, message)


def daily_allocation_frame(
    assignments: Iterable[Assignment], start: date, end: date
) -> pd.DataFrame:
    """Per-day totals for every person between ``start`` and ``end``.

    Membership is resolved once per assignment rather than once per day, so a
    caller scanning a whole window reads totals straight from the frame.
    """
    validate_range(start, end, "window")
    index = pd.date_range(start=start, end=end, freq="D")
    totals: Dict[ID, List[float]] = {}
    length = len(index)
    for assignment in assignments:
        if not assignment.overlaps(start, end):
            continue
        first = max(0, (assignment.start_day - start).days)
        last = min(length - 1, (assignment.end_day - start).days)
        column = totals.setdefault(assignment.person_id, [0.0] * length)
        for idx in range(first, last + 1):
            column[idx] += assignment.allocation
    frame = pd.DataFrame(totals, index=index)
    frame.index.name = "day"
    return frame


def overallocated_days(
    assignments: Iterable[Assignment], person_id: ID, start: date, end: date
) -> List[date]:
    frame = daily_allocation_frame((a for a in assignments if a.person_id == person_id), start, end)
    if person_id not in frame.columns:
        return []
    column = frame[person_id]
    flagged = column[column > OVERALLOCATION_TOLERANCE + EPSILON]
    return [ts.date() for ts in flagged.index]


def utilization_status(total_fte: float) -> str:
    if is_overallocated(total_fte):
        return "overallocated"
    if total_fte < UNDERUTILIZED_BELOW:
        return "underutilized"
    return "optimal"


_UTILIZATION_COLUMNS = [
    "person_id",
    "name",
    "total_fte",
    "utilization_pct",
    "bench_fte",
    "assignments_count",
    "status",
]


def utilization_snapshot(
    people: Iterable[Person], assignments: Sequence[Assignment], on_day: date
) -> pd.DataFrame:
    rows = []
    for person in people:
        if not person.is_active():
            continue
        current = [a for a in assignments if a.person_id == person.id and a.covers(on_day)]
        total_fte = sum(a.allocation for a in current)
        rows.append(
            {
                "person_id": person.id,
                "name": person.display_name,
                "total_fte": total_fte,
                "utilization_pct": to_percentage(total_fte),
                "bench_fte": max(0.0, 1.0 - total_fte),
                "assignments_count": len(current),
                "status": utilization_status(total_fte),
            }
        )
    df = pd.DataFrame(rows, columns=_UTILIZATION_COLUMNS)
    if not df.empty:
        df = df.sort_values("total_fte", ascending=False, kind="mergesort").reset_index(drop=True)
    return df


def project_assigned_fte_months(assignments: Iterable[Assignment]) -> float:
    return sum(a.allocation * a.day_count / DAYS_PER_MONTH for a in assignments)


def is_project_overallocated(assigned_fte: float, required_fte: Optional[float]) -> bool:
    return required_fte is not None and required_fte > 0 and assigned_fte > required_fte
