import unittest
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

from statbadge.domain.models import (
    BadgeOptions,
    ContributionData,
    GitHubStats,
    Language,
    LanguagesCardOptions,
    LanguagesData,
    VisitorData,
)
from statbadge.presentation.templates.badge import (
    badge_geometry,
    default_contribution_badge_options,
    default_visitor_badge_options,
    render_badge,
    render_contribution_badge,
    render_visitor_badge,
)
from statbadge.presentation.templates.card import card_height
from statbadge.presentation.templates.languages_card import (
    bar_fill_width,
    default_languages_card_options,
    render_languages_card,
    visible_languages,
)
from statbadge.presentation.templates.stats_card import (
    ROW_HEIGHT,
    default_stats_card_options,
    render_stats_card,
)
from statbadge.presentation.theme import THEMES, get_theme

SVG_NS = "{http://www.w3.org/2000/svg}"
NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

STATS = GitHubStats(
    total_commits=1234,
    total_prs=56,
    total_issues=7,
    total_stars=2_300_000,
    contributed_to=8,
    rank="S",
)

LANGUAGES = LanguagesData(
    languages=[
        Language(name="Python", percentage=60.0, color="#3572A5", size=600),
        Language(name="Go", percentage=30.0, color="#00ADD8", size=300),
        Language(name="Shell", percentage=10.0, color=None, size=100),
    ],
    total_size=1000,
)


def _texts(svg: str):
    root = ET.fromstring(svg)
    return [el.text for el in root.iter(f"{SVG_NS}text")]


class TestBadge(unittest.TestCase):
    def test_geometry(self) -> None:
        # label: 8 chars * 7 + 2 * 10 padding + 14 icon + 6 gap
        self.assertEqual(badge_geometry("visitors", "42", icon=True), (96, 40))
        self.assertEqual(badge_geometry("visitors", "42", icon=False), (76, 40))
        # counter: 5 chars * 10 + 2 * 10 padding
        self.assertEqual(badge_geometry("x", "12.3k", icon=False)[1], 70)

    def test_total_width_is_sum_of_boxes(self) -> None:
        options = default_visitor_badge_options(get_theme("dark"))
        root = ET.fromstring(render_visitor_badge(VisitorData(count=1500, last_updated=NOW), options))

        label_width, count_width = badge_geometry("visitors", "1.5k", icon=True)
        self.assertEqual(root.get("width"), str(label_width + count_width))
        self.assertEqual(root.get("height"), "28")

    def test_badge_has_gradient_shadow_and_shine(self) -> None:
        svg = render_contribution_badge(
            ContributionData(total_days=120, last_updated=NOW),
            default_contribution_badge_options(get_theme("light")),
        )

        self.assertIn('fill="url(#countGradient)"', svg)
        self.assertIn('filter="url(#shadow)"', svg)
        self.assertIn('opacity="0.15"', svg)
        self.assertEqual(_texts(svg), ["active days", "120"])

    def test_icon_toggle(self) -> None:
        theme = get_theme("dark")
        with_icon = render_badge(1, BadgeOptions(theme=theme, label="l", icon=True, icon_name="eye"))
        without_icon = render_badge(1, BadgeOptions(theme=theme, label="l", icon=False))

        self.assertIn("scale(", with_icon)
        self.assertNotIn("scale(", without_icon)

    def test_hostile_label_is_escaped(self) -> None:
        options = BadgeOptions(theme=get_theme("dark"), label="<script>alert('x')</script>")
        svg = render_badge(3, options)

        self.assertNotIn("<script>", svg)
        self.assertEqual(_texts(svg)[0], "<script>alert('x')</script>")


class TestStatsCard(unittest.TestCase):
    def test_height_follows_visible_rows(self) -> None:
        theme = get_theme("dark")
        full = default_stats_card_options(theme, "octocat")
        hidden = full.model_copy(update={"hide_stats": ("total_stars", "contributedTo")})

        full_root = ET.fromstring(render_stats_card(STATS, full))
        hidden_root = ET.fromstring(render_stats_card(STATS, hidden))

        self.assertEqual(full_root.get("height"), str(card_height(5, ROW_HEIGHT)))
        self.assertEqual(hidden_root.get("height"), str(card_height(3, ROW_HEIGHT)))
        self.assertEqual(full_root.get("width"), hidden_root.get("width"))

    def test_card_height_formula(self) -> None:
        self.assertEqual(card_height(5, 30), 40 + 5 * 30 + 2 * 20 + 20)
        self.assertEqual(card_height(0, 36), 100)

    def test_values_are_formatted(self) -> None:
        svg = render_stats_card(STATS, default_stats_card_options(get_theme("dark"), "octocat"))

        texts = _texts(svg)
        self.assertIn("octocat's GitHub Stats", texts)
        self.assertIn("S", texts)
        self.assertIn("1.2k", texts)
        self.assertIn("2.3M", texts)

    def test_show_icons_false_renders_no_icons(self) -> None:
        options = default_stats_card_options(get_theme("dark"), "octocat").model_copy(
            update={"show_icons": False},
        )

        self.assertNotIn("scale(", render_stats_card(STATS, options))

    def test_username_is_escaped(self) -> None:
        svg = render_stats_card(STATS, default_stats_card_options(get_theme("dark"), "<b>&"))

        self.assertIn("&lt;b&gt;&amp;&apos;s GitHub Stats", svg)
        ET.fromstring(svg)


class TestLanguagesCard(unittest.TestCase):
    def test_hide_and_truncate(self) -> None:
        options = default_languages_card_options(get_theme("dark"), "octocat").model_copy(
            update={"hide_languages": ("python",), "languages_count": 1},
        )

        self.assertEqual([lang.name for lang in visible_languages(LANGUAGES, options)], ["Go"])

    def test_height_uses_layout_row_height(self) -> None:
        theme = get_theme("dark")
        default = LanguagesCardOptions(theme=theme, username="octocat")
        compact = default.model_copy(update={"layout": "compact"})

        self.assertEqual(ET.fromstring(render_languages_card(LANGUAGES, default)).get("height"), str(card_height(3, 36)))
        self.assertEqual(ET.fromstring(render_languages_card(LANGUAGES, compact)).get("height"), str(card_height(3, 30)))

    def test_percentages_are_not_rescaled_after_hiding(self) -> None:
        options = LanguagesCardOptions(theme=get_theme("dark"), username="octocat", hide_languages=("Python",))

        texts = _texts(render_languages_card(LANGUAGES, options))

        self.assertIn("30.0%", texts)
        self.assertIn("10.0%", texts)

    def test_bar_fill_is_clamped(self) -> None:
        self.assertEqual(bar_fill_width(50.0, 300), 150.0)
        self.assertEqual(bar_fill_width(150.0, 300), 300.0)
        self.assertEqual(bar_fill_width(-5.0, 300), 0.0)

    def test_missing_color_falls_back_to_theme(self) -> None:
        theme = get_theme("dark")
        svg = render_languages_card(LANGUAGES, LanguagesCardOptions(theme=theme, username="octocat"))

        self.assertIn(f'fill="{theme.secondary_color}"', svg)

    def test_empty_languages(self) -> None:
        svg = render_languages_card(LanguagesData(), default_languages_card_options(get_theme("dark"), "octocat"))

        root = ET.fromstring(svg)
        self.assertEqual(root.get("height"), str(card_height(0, 36)))
        self.assertIn("No language data available", _texts(svg))

    def test_every_theme_renders_well_formed_xml(self) -> None:
        for name in THEMES:
            theme = get_theme(name)
            with self.subTest(theme=name):
                ET.fromstring(render_languages_card(LANGUAGES, default_languages_card_options(theme, "o'neil")))
                ET.fromstring(render_stats_card(STATS, default_stats_card_options(theme, "o'neil")))
                ET.fromstring(render_visitor_badge(VisitorData(count=7, last_updated=NOW),
                                                   default_visitor_badge_options(theme)))
