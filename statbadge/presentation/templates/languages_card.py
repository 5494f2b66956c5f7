from typing import List

from statbadge.domain.models import Language, LanguagesCardOptions, LanguagesData, Theme
from statbadge.presentation.svg import create_rect, create_text
from statbadge.presentation.templates.card import PADDING, card_height, render_card, row_top

ROW_HEIGHTS = {"default": 36, "compact": 30}
BAR_OFFSETS = {"default": 24, "compact": 22}
BAR_HEIGHT = 6
BAR_RESERVED_WIDTH = 90


def visible_languages(data: LanguagesData, options: LanguagesCardOptions) -> List[Language]:
    """Languages left after case-insensitive hiding, truncated to `languages_count`."""
    hidden = {name.lower() for name in options.hide_languages}
    shown = [lang for lang in data.languages if lang.name.lower() not in hidden]
    return shown[:max(0, options.languages_count)]


def bar_fill_width(percentage: float, bar_max_width: float) -> float:
    return max(0.0, min(1.0, percentage / 100)) * bar_max_width


def render_languages_card(data: LanguagesData, options: LanguagesCardOptions) -> str:
    """
    Top-languages card with one proportional bar per language.

    Percentages are relative to every language the owner uses, so hiding or
    truncating rows does not rescale the remaining bars.
    """
    width = options.width
    theme = options.theme
    row_height = ROW_HEIGHTS[options.layout]
    languages = visible_languages(data, options)
    height = card_height(len(languages), row_height)

    bar_x = PADDING + 10
    bar_max_width = width - PADDING * 2 - BAR_RESERVED_WIDTH

    body = []
    for index, lang in enumerate(languages):
        y = row_top(index, row_height)
        label_y = y + 18
        bar_y = y + BAR_OFFSETS[options.layout]

        name = create_text(lang.name, PADDING, label_y, font_size=14, fill=theme.text_color)
        percentage = create_text(
            f"{lang.percentage:.1f}%", width - PADDING, label_y,
            font_size=14, font_weight="bold", fill=theme.accent_color, text_anchor="end",
        )
        bar_bg = create_rect(bar_x, bar_y, bar_max_width, BAR_HEIGHT, theme.progress_bar_bg, rx=3)
        bar_fill = create_rect(
            bar_x, bar_y, bar_fill_width(lang.percentage, bar_max_width), BAR_HEIGHT,
            lang.color or theme.secondary_color, rx=3,
        )
        body.append(f"  <g>{name}{percentage}{bar_bg}{bar_fill}</g>")

    if not languages:
        empty = create_text(
            "No language data available", PADDING, row_top(0, row_height) + 30,
            font_size=14, fill=theme.text_color,
        )
        body.append(f"  <g>{empty}</g>")

    return render_card(
        width,
        height,
        theme,
        f"{options.username}'s Top Languages",
        "\n".join(body),
        gradient_id="languagesGradient",
    )


def default_languages_card_options(theme: Theme, username: str) -> LanguagesCardOptions:
    return LanguagesCardOptions(
        width=500,
        theme=theme,
        username=username,
        layout="default",
        hide_languages=(),
        languages_count=5,
    )
