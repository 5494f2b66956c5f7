"""
Single-row badges: a label box followed by a gradient counter box.

The visitor and contribution badges are the same layout with a different
label, icon and value, so both go through `render_badge`.
"""

from typing import Tuple

from statbadge.domain.models import BadgeOptions, ContributionData, Theme, VisitorData
from statbadge.presentation.icons import create_icon
from statbadge.presentation.svg import (
    create_drop_shadow,
    create_linear_gradient,
    create_rect,
    create_svg,
    create_text,
    format_number,
)

PADDING = 10
ICON_SIZE = 14
ICON_GAP = 6
LABEL_CHAR_WIDTH = 7
COUNTER_CHAR_WIDTH = 10
MIN_COUNTER_WIDTH = 40
CORNER_RADIUS = 5
SHINE_RATIO = 0.4


def badge_geometry(label: str, count_text: str, icon: bool) -> Tuple[int, int]:
    """Returns (label box width, counter box width)."""
    icon_margin = ICON_SIZE + ICON_GAP if icon else 0
    label_width = len(label) * LABEL_CHAR_WIDTH + PADDING * 2 + icon_margin
    count_width = max(len(count_text) * COUNTER_CHAR_WIDTH + PADDING * 2, MIN_COUNTER_WIDTH)
    return label_width, count_width


def render_badge(value: int, options: BadgeOptions) -> str:
    height = options.height
    theme = options.theme
    count_text = format_number(value)
    label_width, count_width = badge_geometry(options.label, count_text, options.icon)
    text_y = height / 2 + 5

    gradient = create_linear_gradient("countGradient", [
        ("0%", theme.accent_color),
        ("100%", theme.secondary_color),
    ])
    shadow = create_drop_shadow("shadow", dy=1, std_deviation=2, opacity=0.3)

    label_rect = create_rect(0, 0, label_width, height, theme.border_color, rx=CORNER_RADIUS)
    count_rect = create_rect(
        label_width, 0, count_width, height, "url(#countGradient)",
        rx=CORNER_RADIUS, extra='filter="url(#shadow)"',
    )
    shine = create_rect(
        label_width, 0, count_width, height * SHINE_RATIO, "white",
        rx=CORNER_RADIUS, extra='opacity="0.15"',
    )

    icon = (
        create_icon(options.icon_name, PADDING, height / 2 - ICON_SIZE / 2, ICON_SIZE, theme.text_color)
        if options.icon else ""
    )
    icon_margin = ICON_SIZE + ICON_GAP if options.icon else 0

    label_text = create_text(
        options.label, PADDING + icon_margin, text_y,
        font_size=11, font_weight="600", fill=theme.text_color,
    )
    count_value = create_text(
        count_text, label_width + count_width / 2, text_y,
        font_size=13, font_weight="700", fill="#ffffff", text_anchor="middle",
    )

    parts = [gradient, shadow, label_rect, count_rect, shine, icon, label_text, count_value]
    content = "\n".join(part for part in parts if part)
    return create_svg(label_width + count_width, height, content)


def render_visitor_badge(data: VisitorData, options: BadgeOptions) -> str:
    return render_badge(data.count, options)


def render_contribution_badge(data: ContributionData, options: BadgeOptions) -> str:
    return render_badge(data.total_days, options)


def default_visitor_badge_options(theme: Theme) -> BadgeOptions:
    return BadgeOptions(height=28, theme=theme, label="visitors", icon=True, icon_name="eye")


def default_contribution_badge_options(theme: Theme) -> BadgeOptions:
    return BadgeOptions(height=28, theme=theme, label="active days", icon=True, icon_name="flame")

