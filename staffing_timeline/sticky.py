from __future__ import annotations

from dataclasses import dataclass

from .geometry import BarRect
from .models import DEFAULT_LAYOUT, LayoutConfig


@dataclass(frozen=True)
class StickyInfo:
    label_left_px: float
    label_max_width_px: float
    is_sticky: bool


def full_width_label(bar: BarRect) -> StickyInfo:
    return StickyInfo(label_left_px=0.0, label_max_width_px=bar.width_px, is_sticky=False)


def sticky_position(
    bar: BarRect,
    scroll_left_px: float,
    sidebar_width_px: float,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> StickyInfo:
    """Where a bar's label sits so it stays readable past the frozen sidebar.

    Pure function of its inputs; call it on every scroll tick.
    """
    viewport_left = scroll_left_px + sidebar_width_px - config.sticky_lookahead_px
    if not bar.left_px < viewport_left < bar.right_px:
        return full_width_label(bar)
    offset = config.sticky_offset_px
    label_left = viewport_left - bar.left_px + offset
    label_width = max(bar.right_px - (viewport_left + offset), config.min_label_width_px)
    # the label never runs past the bar's right edge; only its width gives way
    label_width = max(0.0, min(label_width, bar.width_px - label_left))
    return StickyInfo(label_left_px=label_left, label_max_width_px=label_width, is_sticky=True)
