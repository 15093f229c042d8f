from __future__ import annotations

from dataclasses import dataclass

from .calendar_days import day_offset
from .models import DEFAULT_LAYOUT, Assignment, InvalidRangeError
from .viewport import Viewport


@dataclass(frozen=True)
class BarRect:
    left_px: float
    width_px: float
    top_px: float
    height_px: float

    @property
    def right_px(self) -> float:
        return self.left_px + self.width_px


def bar_rect(
    assignment: Assignment,
    viewport: Viewport,
    row_top_px: float,
    row_height_px: float,
    min_width_px: float = DEFAULT_LAYOUT.min_bar_width_px,
) -> BarRect:
    """Place the visible part of ``assignment`` inside the materialised window.

    ``row_top_px`` and ``row_height_px`` come from lane packing; this only
    derives the horizontal extent.
    """
    if assignment.start_day > assignment.end_day:
        raise InvalidRangeError(assignment.start_day, assignment.end_day, f"assignment {assignment.id}")
    clamped_start = max(assignment.start_day, viewport.window_start)
    clamped_end = min(assignment.end_day, viewport.window_end)
    left_px = day_offset(viewport.window_start, clamped_start) * viewport.day_width_px
    if clamped_start > clamped_end:
        # entirely outside the window; keep a zero-width rect at the nearest edge
        return BarRect(left_px=left_px, width_px=0.0, top_px=row_top_px, height_px=row_height_px)
    duration = day_offset(clamped_start, clamped_end) + 1
    width_px = max(duration * viewport.day_width_px, min_width_px)
    return BarRect(left_px=left_px, width_px=width_px, top_px=row_top_px, height_px=row_height_px)
