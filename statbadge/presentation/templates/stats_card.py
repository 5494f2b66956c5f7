from typing import List, NamedTuple

from statbadge.domain.models import GitHubStats, StatsCardOptions, Theme
from statbadge.presentation.icons import create_icon
from statbadge.presentation.svg import create_text, fmt, format_number
from statbadge.presentation.templates.card import PADDING, card_height, render_card, row_top

ROW_HEIGHT = 30
ICON_SIZE = 16
RANK_BADGE_SIZE = 60


class StatRow(NamedTuple):
    key: str
    label: str
    value: int
    icon: str


def _normalize_key(key: str) -> str:
    # "totalPRs", "total_prs" and "TOTAL-PRS" all name the same row
    return key.replace("_", "").replace("-", "").lower()


def visible_stat_rows(stats: GitHubStats, hide_stats) -> List[StatRow]:
    hidden = {_normalize_key(key) for key in hide_stats}
    rows = [
        StatRow("total_commits", "Total Commits", stats.total_commits, "git-commit"),
        StatRow("total_prs", "Pull Requests", stats.total_prs, "git-pull-request"),
        StatRow("total_issues", "Total Issues", stats.total_issues, "circle-dot"),
        StatRow("total_stars", "Total Stars", stats.total_stars, "star"),
        StatRow("contributed_to", "Contributed To", stats.contributed_to, "git-branch"),
    ]
    return [row for row in rows if _normalize_key(row.key) not in hidden]


def _rank_badge(rank: str, width: int, theme: Theme) -> str:
    center_x = width - RANK_BADGE_SIZE - PADDING + RANK_BADGE_SIZE / 2
    center_y = PADDING + RANK_BADGE_SIZE / 2
    circle = (
        f'    <circle cx="{fmt(center_x)}" cy="{fmt(center_y)}" r="{fmt(RANK_BADGE_SIZE / 2 - 2)}" '
        f'fill="{theme.accent_color}" opacity="0.2" stroke="{theme.accent_color}" stroke-width="2"/>'
    )
    label = create_text(
        rank, center_x, center_y + 7,
        font_size=24, font_weight="bold", fill=theme.accent_color, text_anchor="middle",
    )
    return f"  <g>\n{circle}\n  {label}\n  </g>"


def render_stats_card(stats: GitHubStats, options: StatsCardOptions) -> str:
    """
    Stats card: title, rank circle, and one row per visible stat with icon, label and value.
    """
    width = options.width
    theme = options.theme
    rows = visible_stat_rows(stats, options.hide_stats)
    height = card_height(len(rows), ROW_HEIGHT)

    body = []
    for index, row in enumerate(rows):
        y = row_top(index, ROW_HEIGHT)
        icon_x = PADDING + 5
        label_x = icon_x + ICON_SIZE + 10 if options.show_icons else icon_x

        icon = (
            create_icon(row.icon, icon_x, y + 5, ICON_SIZE, theme.secondary_color)
            if options.show_icons else ""
        )
        label = create_text(row.label, label_x, y + 18, font_size=14, fill=theme.text_color)
        value = create_text(
            format_number(row.value), width - PADDING, y + 18,
            font_size=14, font_weight="bold", fill=theme.accent_color, text_anchor="end",
        )
        body.append(f"  <g>{icon}{label}{value}</g>")

    return render_card(
        width,
        height,
        theme,
        f"{options.username}'s GitHub Stats",
        "\n".join(body),
        gradient_id="statsGradient",
        header_extra=_rank_badge(stats.rank, width, theme),
    )


def default_stats_card_options(theme: Theme, username: str) -> StatsCardOptions:
    return StatsCardOptions(width=500, theme=theme, username=username, show_icons=True, hide_stats=())
