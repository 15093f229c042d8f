"""Materialised day window plus scroll state.

The window only grows. Scroll ticks produce copies via
:meth:`Viewport.with_scroll`; each expansion is followed by exactly one
scroll re-anchoring step.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, List, Literal, Optional, Tuple

from .calendar_days import (
    DayRange,
    add_months,
    day_offset,
    days_between,
    end_of_month,
    format_day,
    start_of_month,
)
from .models import DEFAULT_LAYOUT, InvalidRangeError, LayoutConfig

logger = logging.getLogger(__name__)

Direction = Literal["start", "end"]


@dataclass(frozen=True)
class Viewport:
    window_start: date
    window_end: date
    day_width_px: float = DEFAULT_LAYOUT.day_width_px
    scroll_left_px: float = 0.0
    sidebar_width_px: float = DEFAULT_LAYOUT.sidebar_width_px
    viewport_width_px: float = DEFAULT_LAYOUT.viewport_width_px

    def __post_init__(self) -> None:
        if self.window_start > self.window_end:
            raise InvalidRangeError(self.window_start, self.window_end, "viewport window")
        if self.day_width_px <= 0:
            raise ValueError("day_width_px must be positive")

    @classmethod
    def from_config(
        cls, window_start: date, window_end: date, config: LayoutConfig = DEFAULT_LAYOUT
    ) -> "Viewport":
        return cls(
            window_start=window_start,
            window_end=window_end,
            day_width_px=config.day_width_px,
            sidebar_width_px=config.sidebar_width_px,
            viewport_width_px=config.viewport_width_px,
        )

    @property
    def days(self) -> DayRange:
        return days_between(self.window_start, self.window_end)

    @property
    def day_count(self) -> int:
        return day_offset(self.window_start, self.window_end) + 1

    @property
    def track_width_px(self) -> float:
        return self.day_count * self.day_width_px

    def with_scroll(self, scroll_left_px: float) -> "Viewport":
        return replace(self, scroll_left_px=max(0.0, float(scroll_left_px)))

    def expand(self, direction: Direction, months: int) -> "Viewport":
        if months <= 0:
            raise ValueError("expansion must add at least one month")
        if direction == "start":
            expanded = replace(self, window_start=start_of_month(add_months(self.window_start, -months)))
        elif direction == "end":
            expanded = replace(self, window_end=end_of_month(add_months(self.window_end, months)))
        else:
            raise ValueError(f"unknown expansion direction '{direction}'")
        logger.debug(
            "viewport expanded at %s: %s..%s", direction, format_day(expanded.window_start), format_day(expanded.window_end)
        )
        return expanded

    def reanchor_after(self, previous: "Viewport") -> "Viewport":
        """Shift scroll right by the width of days prepended since ``previous``."""
        added = day_offset(self.window_start, previous.window_start)
        if added <= 0:
            return self
        return replace(self, scroll_left_px=previous.scroll_left_px + added * self.day_width_px)

    def day_index(self, day: date) -> int:
        return day_offset(self.window_start, day)

    def day_at(self, index: int) -> date:
        return self.days[index]

    def visible_day_range(self, config: LayoutConfig = DEFAULT_LAYOUT) -> Tuple[int, int]:
        """Inclusive indices of the days on screen, widened by the visibility margin."""
        margin = config.visibility_margin_px
        left = self.scroll_left_px - self.sidebar_width_px - margin
        right = self.scroll_left_px + self.viewport_width_px - self.sidebar_width_px + margin
        first = max(0, int(math.floor(left / self.day_width_px)))
        last = min(self.day_count - 1, int(math.ceil(right / self.day_width_px)))
        if first > last:
            first = last = min(first, self.day_count - 1)
        return first, last

    def visible_days(self, config: LayoutConfig = DEFAULT_LAYOUT) -> DayRange:
        first, last = self.visible_day_range(config)
        return self.days[first : last + 1]

    def edge_to_expand(self, config: LayoutConfig = DEFAULT_LAYOUT) -> Optional[Direction]:
        threshold = config.edge_threshold_px
        if self.scroll_left_px <= threshold:
            return "start"
        if self.scroll_left_px + self.viewport_width_px >= self.track_width_px - threshold:
            return "end"
        return None


def today_marker_px(viewport: Viewport, today: date) -> Optional[float]:
    if not viewport.window_start <= today <= viewport.window_end:
        return None
    return viewport.day_index(today) * viewport.day_width_px + viewport.day_width_px / 2


Listener = Callable[[Viewport], None]


class ViewportChannel:
    """Explicit viewport-changed signal with per-frame coalescing of scroll ticks."""

    def __init__(self, viewport: Viewport, config: LayoutConfig = DEFAULT_LAYOUT) -> None:
        self._viewport = viewport
        self._config = config
        self._listeners: List[Listener] = []
        self._pending_scroll: Optional[float] = None

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def scroll_to(self, scroll_left_px: float) -> None:
        self._pending_scroll = scroll_left_px

    def flush_frame(self) -> bool:
        """Apply the latest pending scroll and notify once; ``False`` if nothing changed."""
        if self._pending_scroll is None:
            return False
        updated = self._viewport.with_scroll(self._pending_scroll)
        self._pending_scroll = None
        if updated == self._viewport:
            return False
        self._viewport = updated
        self._notify()
        return True

    def expand(self, direction: Direction, months: Optional[int] = None) -> Viewport:
        if self._pending_scroll is not None:
            self._viewport = self._viewport.with_scroll(self._pending_scroll)
            self._pending_scroll = None
        previous = self._viewport
        expanded = previous.expand(direction, months or self._config.expand_months)
        self._viewport = expanded.reanchor_after(previous)
        self._notify()
        return self._viewport

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._viewport)
