from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional, Tuple

from .calendar_days import add_days
from .models import Assignment
from .viewport import Viewport

DragMode = Literal["move", "resize_start", "resize_end"]
_MODES = ("move", "resize_start", "resize_end")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def snap(delta_px: float, day_width_px: float) -> float:
    """Quantise a horizontal drag delta to whole day widths."""
    if day_width_px <= 0:
        raise ValueError("day_width_px must be positive")
    return _round_half_up(delta_px / day_width_px) * day_width_px


def snapped_days(delta_px: float, day_width_px: float) -> int:
    if day_width_px <= 0:
        raise ValueError("day_width_px must be positive")
    return _round_half_up(delta_px / day_width_px)


@dataclass(frozen=True)
class DragPreview:
    delta_px: float
    day_delta: int
    start_day: date
    end_day: date


class DragSession:
    """One pointer's move/resize of a single bar.

    Sticky labels for the dragged bar are suppressed while the session is
    active; release or cancel returns to the idle state.
    """

    def __init__(
        self, assignment: Assignment, mode: DragMode, origin_x_px: float, day_width_px: float
    ) -> None:
        if mode not in _MODES:
            raise ValueError(f"unknown drag mode '{mode}'")
        if day_width_px <= 0:
            raise ValueError("day_width_px must be positive")
        self.assignment = assignment
        self.mode = mode
        self.origin_x_px = origin_x_px
        self.day_width_px = day_width_px
        self._active = True
        self._preview = DragPreview(0.0, 0, assignment.start_day, assignment.end_day)

    @property
    def active(self) -> bool:
        return self._active

    @property
    def assignment_id(self) -> str:
        return self.assignment.id

    @property
    def preview(self) -> DragPreview:
        return self._preview

    def _require_active(self) -> None:
        if not self._active:
            raise RuntimeError("drag session has already ended")

    def update(self, pointer_x_px: float) -> DragPreview:
        self._require_active()
        delta = pointer_x_px - self.origin_x_px
        days = snapped_days(delta, self.day_width_px)
        start, end = self.assignment.start_day, self.assignment.end_day
        if self.mode == "move":
            start, end = add_days(start, days), add_days(end, days)
        elif self.mode == "resize_start":
            start = min(add_days(start, days), end)
            days = (start - self.assignment.start_day).days
        else:
            end = max(add_days(end, days), start)
            days = (end - self.assignment.end_day).days
        self._preview = DragPreview(days * self.day_width_px, days, start, end)
        return self._preview

    def release(self) -> Optional[Tuple[date, date]]:
        """End the session; the new range, or ``None`` when nothing moved."""
        self._require_active()
        self._active = False
        preview = self._preview
        if (preview.start_day, preview.end_day) == (self.assignment.start_day, self.assignment.end_day):
            return None
        return preview.start_day, preview.end_day

    def cancel(self) -> None:
        self._require_active()
        self._active = False
        self._preview = DragPreview(0.0, 0, self.assignment.start_day, self.assignment.end_day)


class DaySelection:
    """Draw-to-create: select an inclusive run of day cells with the pointer."""

    def __init__(self, viewport: Viewport) -> None:
        self.viewport = viewport
        self._anchor: Optional[int] = None
        self._current: Optional[int] = None

    @property
    def selecting(self) -> bool:
        return self._anchor is not None

    def _clamp(self, index: int) -> int:
        return max(0, min(index, self.viewport.day_count - 1))

    def press(self, day_index: int) -> None:
        self._anchor = self._current = self._clamp(day_index)

    def press_at(self, x_px: float) -> None:
        self.press(int(math.floor(x_px / self.viewport.day_width_px)))

    def drag_to(self, day_index: int) -> Tuple[date, date]:
        if self._anchor is None:
            raise RuntimeError("no selection in progress")
        self._current = self._clamp(day_index)
        return self.selected_range()

    def drag_to_x(self, x_px: float) -> Tuple[date, date]:
        return self.drag_to(int(math.floor(x_px / self.viewport.day_width_px)))

    def selected_range(self) -> Tuple[date, date]:
        if self._anchor is None or self._current is None:
            raise RuntimeError("no selection in progress")
        lo, hi = min(self._anchor, self._current), max(self._anchor, self._current)
        return self.viewport.day_at(lo), self.viewport.day_at(hi)

    def release(self) -> Tuple[date, date]:
        selected = self.selected_range()
        self._anchor = self._current = None
        return selected

    def cancel(self) -> None:
        self._anchor = self._current = None
