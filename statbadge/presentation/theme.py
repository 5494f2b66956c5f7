from typing import Dict, Optional

from statbadge.domain.models import Theme

# Dark palette with blue accents
DEFAULT_THEME = Theme(
    background="#0d1117",
    text_color="#c9d1d9",
    accent_color="#58a6ff",
    secondary_color="#1f6feb",
    border_color="#30363d",
    progress_bar_bg="#21262d",
    progress_bar_fill="#58a6ff",
)

LIGHT_THEME = Theme(
    background="#ffffff",
    text_color="#24292f",
    accent_color="#0969da",
    secondary_color="#0550ae",
    border_color="#d0d7de",
    progress_bar_bg="#eaeef2",
    progress_bar_fill="#0969da",
)

THEMES: Dict[str, Theme] = {
    "default": DEFAULT_THEME,
    "dark": DEFAULT_THEME,
    "light": LIGHT_THEME,
}


def get_theme(name: Optional[str] = "default") -> Theme:
    """Returns the named palette; names match exactly, anything else gets the default one."""
    return THEMES.get(name or "default", DEFAULT_THEME)
