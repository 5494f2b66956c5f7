"""
SVG building blocks shared by every badge and card template.

Every function returns a markup fragment as a string. Text content and
attribute values that can come from outside (usernames, labels, language
names) go through `escape_xml` before they are embedded.
"""

from typing import Iterable, Optional, Tuple, Union
from xml.sax.saxutils import escape

Number = Union[int, float]

FONT_FAMILY = "-apple-system, BlinkMacSystemFont, Segoe UI, Roboto, sans-serif"

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(text: object) -> str:
    """Escapes & < > " ' so the value is safe in both text nodes and attributes."""
    return escape(str(text), _XML_ENTITIES)


def fmt(value: Number) -> str:
    """Renders a coordinate: integral values without a decimal point, others rounded to 2 places."""
    if isinstance(value, float):
        value = round(value, 2)
        if value.is_integer():
            return str(int(value))
    return str(value)


def format_number(value: int) -> str:
    """999 -> '999', 1500 -> '1.5k', 2300000 -> '2.3M'."""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}k"
    return str(value)


def create_svg(width: Number, height: Number, content: str) -> str:
    return (
        f'<svg width="{fmt(width)}" height="{fmt(height)}" viewBox="0 0 {fmt(width)} {fmt(height)}" '
        f'fill="none" xmlns="http://www.w3.org/2000/svg">\n'
        f"{content}\n"
        f"</svg>"
    )


def create_rect(
    x: Number,
    y: Number,
    width: Number,
    height: Number,
    fill: str,
    rx: Number = 0,
    stroke: Optional[str] = None,
    extra: str = "",
) -> str:
    stroke_attr = f' stroke="{escape_xml(stroke)}" stroke-width="1"' if stroke else ""
    extra_attr = f" {extra}" if extra else ""
    return (
        f'  <rect x="{fmt(x)}" y="{fmt(y)}" width="{fmt(width)}" height="{fmt(height)}" '
        f'rx="{fmt(rx)}" fill="{escape_xml(fill)}"{stroke_attr}{extra_attr}/>'
    )


def create_text(
    text: object,
    x: Number,
    y: Number,
    font_size: int = 14,
    font_weight: str = "normal",
    fill: str = "#fff",
    font_family: str = FONT_FAMILY,
    text_anchor: str = "start",
) -> str:
    return (
        f'  <text x="{fmt(x)}" y="{fmt(y)}" font-size="{font_size}" font-weight="{escape_xml(font_weight)}" '
        f'fill="{escape_xml(fill)}" font-family="{escape_xml(font_family)}" '
        f'text-anchor="{escape_xml(text_anchor)}">{escape_xml(text)}</text>'
    )


def create_line(x1: Number, y1: Number, x2: Number, y2: Number, stroke: str, opacity: float = 1.0) -> str:
    return (
        f'  <line x1="{fmt(x1)}" y1="{fmt(y1)}" x2="{fmt(x2)}" y2="{fmt(y2)}" '
        f'stroke="{escape_xml(stroke)}" stroke-width="1" opacity="{fmt(opacity)}"/>'
    )


def create_group(content: str, transform: Optional[str] = None) -> str:
    transform_attr = f' transform="{escape_xml(transform)}"' if transform else ""
    return f"  <g{transform_attr}>\n{content}\n  </g>"


def create_linear_gradient(gradient_id: str, stops: Iterable[Tuple[str, str]]) -> str:
    """Horizontal gradient; `stops` is a sequence of (offset, color)."""
    stop_tags = "\n".join(
        f'    <stop offset="{escape_xml(offset)}" stop-color="{escape_xml(color)}"/>'
        for offset, color in stops
    )
    return (
        f"  <defs>\n"
        f'    <linearGradient id="{escape_xml(gradient_id)}" x1="0%" y1="0%" x2="100%" y2="0%">\n'
        f"{stop_tags}\n"
        f"    </linearGradient>\n"
        f"  </defs>"
    )


def create_drop_shadow(filter_id: str, dy: Number = 1, std_deviation: Number = 2, opacity: float = 0.3) -> str:
    return (
        f"  <defs>\n"
        f'    <filter id="{escape_xml(filter_id)}" x="-50%" y="-50%" width="200%" height="200%">\n'
        f'      <feDropShadow dx="0" dy="{fmt(dy)}" stdDeviation="{fmt(std_deviation)}" flood-opacity="{fmt(opacity)}"/>\n'
        f"    </filter>\n"
        f"  </defs>"
    )
