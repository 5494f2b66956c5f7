from statbadge.domain.models import Theme
from statbadge.presentation.svg import (
    create_drop_shadow,
    create_line,
    create_linear_gradient,
    create_rect,
    create_svg,
    create_text,
)

PADDING = 20
TITLE_HEIGHT = 40
BOTTOM_MARGIN = 20
CORNER_RADIUS = 10


def card_height(rows: int, row_height: int) -> int:
    """Card height depends only on how many rows are visible."""
    return TITLE_HEIGHT + rows * row_height + PADDING * 2 + BOTTOM_MARGIN


def row_top(index: int, row_height: int) -> int:
    return TITLE_HEIGHT + PADDING + index * row_height


def render_card(
    width: int,
    height: int,
    theme: Theme,
    title: str,
    body: str,
    gradient_id: str,
    header_extra: str = "",
) -> str:
    """Wraps card rows in the shared frame: background, title, divider."""
    shadow = create_drop_shadow("cardShadow", dy=2, std_deviation=3, opacity=0.2)
    gradient = create_linear_gradient(gradient_id, [
        ("0%", theme.accent_color),
        ("100%", theme.secondary_color),
    ])
    background = create_rect(0, 0, width, height, theme.background, rx=CORNER_RADIUS)
    title_text = create_text(
        title, PADDING, PADDING + 20,
        font_size=18, font_weight="bold", fill=theme.text_color,
    )
    divider = create_line(
        PADDING, TITLE_HEIGHT + PADDING, width - PADDING, TITLE_HEIGHT + PADDING,
        theme.border_color, opacity=0.3,
    )

    parts = [shadow, gradient, background, title_text, header_extra, divider, body]
    return create_svg(width, height, "\n".join(part for part in parts if part))
