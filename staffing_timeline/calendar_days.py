"""Timezone-naive calendar day helpers.

``YYYY-MM-DD`` strings at the storage boundary are converted here and nowhere
else. Days are plain :class:`datetime.date` values, so there is no time of day
and no UTC offset that could shift a day near midnight.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from typing import Iterator, Union, overload

from dateutil.relativedelta import relativedelta

from .models import InvalidRangeError

CalendarDay = date

DAY_FMT = "%Y-%m-%d"


def parse_day(value: str) -> CalendarDay:
    """Build a day from the numeric parts of ``YYYY-MM-DD``."""
    if not isinstance(value, str):
        raise ValueError(f"expected a YYYY-MM-DD string, got {value!r}")
    parts = value.strip().split("-")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValueError(f"invalid day '{value}': expected YYYY-MM-DD")
    year, month, day = (int(part) for part in parts)
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise ValueError(f"invalid day '{value}': {exc}") from exc


def format_day(day: CalendarDay) -> str:
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def compare_day(a: CalendarDay, b: CalendarDay) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def same_day(a: CalendarDay, b: CalendarDay) -> bool:
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


def add_days(day: CalendarDay, count: int) -> CalendarDay:
    return day + timedelta(days=count)


def add_months(day: CalendarDay, count: int) -> CalendarDay:
    return day + relativedelta(months=count)


def start_of_month(day: CalendarDay) -> CalendarDay:
    return day + relativedelta(day=1)


def end_of_month(day: CalendarDay) -> CalendarDay:
    # relativedelta caps day=31 at the month's last day
    return day + relativedelta(day=31)


def day_offset(start: CalendarDay, day: CalendarDay) -> int:
    """Number of whole days from ``start`` to ``day`` (negative if before)."""
    return (day - start).days


class DayRange(Sequence):
    """Inclusive, ascending run of days; lazy and restartable."""

    __slots__ = ("_start", "_length")

    def __init__(self, start: CalendarDay, end: CalendarDay) -> None:
        if start > end:
            raise InvalidRangeError(start, end)
        self._start = start
        self._length = (end - start).days + 1

    @property
    def start(self) -> CalendarDay:
        return self._start

    @property
    def end(self) -> CalendarDay:
        return self._start + timedelta(days=self._length - 1)

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[CalendarDay]:
        for offset in range(self._length):
            yield self._start + timedelta(days=offset)

    @overload
    def __getitem__(self, index: int) -> CalendarDay: ...

    @overload
    def __getitem__(self, index: slice) -> "DayRange": ...

    def __getitem__(self, index: Union[int, slice]) -> Union[CalendarDay, "DayRange"]:
        if isinstance(index, slice):
            offsets = range(self._length)[index]
            if offsets.step != 1:
                raise ValueError("DayRange slices must be contiguous")
            if not offsets:
                raise IndexError("empty DayRange slice")
            return DayRange(self._start + timedelta(days=offsets[0]), self._start + timedelta(days=offsets[-1]))
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError("day index out of range")
        return self._start + timedelta(days=index)

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self._start <= day <= self.end

    def index(self, day: CalendarDay, *args: object) -> int:
        if day not in self:
            raise ValueError(f"{format_day(day)} is not in range")
        return (day - self._start).days

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DayRange):
            return NotImplemented
        return self._start == other._start and self._length == other._length

    def __hash__(self) -> int:
        return hash((self._start, self._length))

    def __repr__(self) -> str:
        return f"DayRange({format_day(self.start)}..{format_day(self.end)})"


def days_between(start: CalendarDay, end: CalendarDay) -> DayRange:
    """Every day from ``start`` to ``end`` inclusive; ``InvalidRangeError`` if reversed."""
    return DayRange(start, end)
