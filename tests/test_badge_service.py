import os
import tempfile
import unittest
import xml.etree.ElementTree as ET

from statbadge.application.badge_service import BadgeService, OUTPUT_FILES, STORAGE_KEYS
from statbadge.config import BadgeConfig
from statbadge.domain.exceptions import ConfigurationError, StorageException, TransportError
from statbadge.domain.models import (
    ContributionCalendar,
    ContributionDay,
    ContributionWeek,
    LanguageEdge,
    LanguagesPage,
    RepositoryLanguages,
    ServiceType,
    StatsCounts,
)
from statbadge.infrastructure.acl import GitHubTranslator


class _FakeGitHubClient:
    def __init__(self, fail_on=()) -> None:
        self.fail_on = set(fail_on)
        self.calls = []

    async def fetch_contribution_calendar(self, session, username):
        self.calls.append("calendar")
        if "calendar" in self.fail_on:
            raise TransportError("calendar unavailable")
        return ContributionCalendar(weeks=[ContributionWeek(days=[
            ContributionDay(date="2024-01-01", count=2),
            ContributionDay(date="2024-01-02", count=0),
            ContributionDay(date="2024-01-03", count=1),
        ])])

    async def fetch_stats_counts(self, session, username):
        self.calls.append("stats")
        if "stats" in self.fail_on:
            raise TransportError("stats unavailable")
        return StatsCounts(
            commits=900, pull_requests=10, open_issues=1, closed_issues=2,
            repository_stars=[20, 10], contributed_to=3,
        )

    async def fetch_languages_page(self, session, username, cursor=None, page_size=50):
        self.calls.append(f"languages:{cursor}")
        if cursor is not None and "languages" in self.fail_on:
            raise TransportError("page 2 unavailable")
        if cursor is None:
            return LanguagesPage(
                repositories=[RepositoryLanguages(name="a", languages=[LanguageEdge(name="Python", size=75)])],
                end_cursor="c1",
                has_next_page=True,
            )
        return LanguagesPage(
            repositories=[RepositoryLanguages(name="b", languages=[LanguageEdge(name="Go", size=25)])],
            end_cursor=None,
            has_next_page=False,
        )


class _MemoryStorage:
    def __init__(self, initial=None, fail_reads=False) -> None:
        self.values = dict(initial or {})
        self.fail_reads = fail_reads

    async def read(self, key):
        if self.fail_reads:
            raise StorageException("disk on fire")
        return self.values.get(key)

    async def write(self, key, value) -> None:
        self.values[key] = value

    async def exists(self, key) -> bool:
        return key in self.values


class TestBadgeService(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = os.path.join(self._tmp.name, "out")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _config(self, service, **kwargs) -> BadgeConfig:
        return BadgeConfig(username="octocat", token="t", output_dir=self.output_dir, service=service, **kwargs)

    def _svg(self, service):
        return ET.parse(os.path.join(self.output_dir, OUTPUT_FILES[service])).getroot()

    async def test_all_builds_every_badge(self) -> None:
        storage = _MemoryStorage()
        service = BadgeService(_FakeGitHubClient(), storage, self._config(ServiceType.ALL))

        result = await service.run()

        self.assertTrue(result.ok)
        self.assertEqual(set(result.generated), set(OUTPUT_FILES))
        for badge in OUTPUT_FILES:
            self._svg(badge)

        self.assertEqual(storage.values["contribution-data"]["totalDays"], 2)
        self.assertEqual(storage.values["contribution-data"]["currentStreak"], 1)
        self.assertEqual(storage.values["stats-data"]["totalIssues"], 3)
        self.assertEqual(storage.values["stats-data"]["totalStars"], 30)
        self.assertEqual(storage.values["stats-data"]["rank"], "S")
        self.assertEqual(storage.values["languages-data"]["totalSize"], 100)
        self.assertEqual(
            [(lang["name"], lang["percentage"]) for lang in storage.values["languages-data"]["languages"]],
            [("Python", 75.0), ("Go", 25.0)],
        )
        self.assertEqual(storage.values["visitor-data"]["count"], 1)
        self.assertEqual(result.outputs["total_days"], "2")

    async def test_visitor_counter_increments_stored_value(self) -> None:
        storage = _MemoryStorage({"visitor-data": {"count": 41, "lastUpdated": "2024-01-02T03:04:05Z"}})
        service = BadgeService(_FakeGitHubClient(), storage, self._config(ServiceType.VISITOR))

        await service.run()
        await service.run()

        self.assertEqual(storage.values["visitor-data"]["count"], 43)
        texts = [el.text for el in self._svg(ServiceType.VISITOR).iter("{http://www.w3.org/2000/svg}text")]
        self.assertEqual(texts[-1], "43")

    async def test_failed_pagination_writes_nothing_for_that_badge(self) -> None:
        storage = _MemoryStorage()
        client = _FakeGitHubClient(fail_on={"languages"})
        service = BadgeService(client, storage, self._config(ServiceType.ALL))

        result = await service.run()

        self.assertFalse(result.ok)
        self.assertIn(ServiceType.LANGUAGES, result.failed)
        self.assertNotIn(STORAGE_KEYS[ServiceType.LANGUAGES], storage.values)
        self.assertFalse(os.path.exists(os.path.join(self.output_dir, OUTPUT_FILES[ServiceType.LANGUAGES])))
        # independent badges still ran
        self.assertIn(ServiceType.STATS, result.generated)
        self.assertIn(ServiceType.VISITOR, result.generated)

    async def test_storage_read_failure_is_not_treated_as_first_visit(self) -> None:
        storage = _MemoryStorage(fail_reads=True)
        service = BadgeService(_FakeGitHubClient(), storage, self._config(ServiceType.VISITOR))

        result = await service.run()

        self.assertIn(ServiceType.VISITOR, result.failed)
        self.assertNotIn("visitor-data", storage.values)

    async def test_corrupt_visitor_record_is_a_storage_error(self) -> None:
        storage = _MemoryStorage({"visitor-data": {"count": "many"}})
        service = BadgeService(_FakeGitHubClient(), storage, self._config(ServiceType.VISITOR))

        result = await service.run()

        self.assertIn(ServiceType.VISITOR, result.failed)

    async def test_missing_token_fails_before_any_fetch(self) -> None:
        client = _FakeGitHubClient()
        config = BadgeConfig(username="octocat", output_dir=self.output_dir, service=ServiceType.STATS)
        service = BadgeService(client, _MemoryStorage(), config)

        with self.assertRaises(ConfigurationError):
            await service.run()

        self.assertEqual(client.calls, [])
        self.assertFalse(os.path.exists(self.output_dir))

    async def test_hidden_stats_shrink_the_card(self) -> None:
        full = BadgeService(_FakeGitHubClient(), _MemoryStorage(), self._config(ServiceType.STATS))
        await full.run()
        full_height = int(self._svg(ServiceType.STATS).get("height"))

        hidden = BadgeService(
            _FakeGitHubClient(), _MemoryStorage(),
            self._config(ServiceType.STATS, hide_stats=("total_stars",)),
        )
        await hidden.run()

        self.assertEqual(full_height - int(self._svg(ServiceType.STATS).get("height")), 30)

    async def test_malformed_stats_payload_fails_only_the_stats_card(self) -> None:
        class _MalformedStatsClient(_FakeGitHubClient):
            async def fetch_stats_counts(self, session, username):
                self.calls.append("stats")
                return GitHubTranslator.to_stats_counts({"user": {"repositories": ["not-an-object"]}})

        storage = _MemoryStorage()
        service = BadgeService(_MalformedStatsClient(), storage, self._config(ServiceType.ALL))

        result = await service.run()

        self.assertEqual(set(result.failed), {ServiceType.STATS})
        self.assertIn(ServiceType.LANGUAGES, result.generated)
        self.assertIn(ServiceType.VISITOR, result.generated)
        self.assertNotIn(STORAGE_KEYS[ServiceType.STATS], storage.values)

    async def test_visitor_count_does_not_advance_when_badge_cannot_be_written(self) -> None:
        with open(self.output_dir, "w", encoding="utf-8") as f:
            f.write("not a directory")
        previous = {"count": 41, "lastUpdated": "2024-01-02T03:04:05Z"}
        storage = _MemoryStorage({"visitor-data": dict(previous)})
        service = BadgeService(_FakeGitHubClient(), storage, self._config(ServiceType.VISITOR))

        result = await service.run()

        self.assertIn(ServiceType.VISITOR, result.failed)
        self.assertEqual(storage.values["visitor-data"], previous)
