import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import aiohttp
from pydantic import BaseModel, Field, ValidationError

from statbadge.application.aggregator import (
    DEFAULT_RANK_POLICY,
    LanguageAggregator,
    RankPolicy,
    build_stats,
    calculate_active_days,
    calculate_current_streak,
)
from statbadge.application.counter import increment_visitor_count
from statbadge.config import BadgeConfig
from statbadge.domain.exceptions import StorageException, TransportError
from statbadge.domain.models import ContributionData, LanguagesCardOptions, ServiceType, Theme, VisitorData
from statbadge.infrastructure.github_client import GitHubGraphQLClient
from statbadge.infrastructure.kv_store import KeyValueStorage
from statbadge.presentation.templates.badge import (
    default_contribution_badge_options,
    default_visitor_badge_options,
    render_contribution_badge,
    render_visitor_badge,
)
from statbadge.presentation.templates.languages_card import render_languages_card
from statbadge.presentation.templates.stats_card import default_stats_card_options, render_stats_card
from statbadge.presentation.theme import get_theme

logger = logging.getLogger(__name__)

# Output file per badge type
OUTPUT_FILES = {
    ServiceType.CONTRIBUTION: "contribution-badge.svg",
    ServiceType.STATS: "stats-card.svg",
    ServiceType.LANGUAGES: "languages-card.svg",
    ServiceType.VISITOR: "visitor-badge.svg",
}

# Storage key per badge type
STORAGE_KEYS = {
    ServiceType.CONTRIBUTION: "contribution-data",
    ServiceType.STATS: "stats-data",
    ServiceType.LANGUAGES: "languages-data",
    ServiceType.VISITOR: "visitor-data",
}


class BadgeRunResult(BaseModel):
    """Outcome of one invocation: files written, badges that failed, and action outputs."""
    generated: Dict[ServiceType, str] = Field(default_factory=dict)
    failed: Dict[ServiceType, str] = Field(default_factory=dict)
    outputs: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class BadgeService:
    """
    Service responsible for orchestrating badge generation:
    feed -> aggregation -> rendering -> storage and SVG files.

    Each selected badge runs independently. A badge is fully computed and
    rendered before anything is stored or written, so a failed fetch never
    leaves a partial record or SVG behind.
    """

    def __init__(
            self,
            github_client: GitHubGraphQLClient,
            storage: KeyValueStorage,
            config: BadgeConfig,
            rank_policy: RankPolicy = DEFAULT_RANK_POLICY,
            language_aggregator: Optional[LanguageAggregator] = None,
    ):
        self.github_client = github_client
        self.storage = storage
        self.config = config
        self.rank_policy = rank_policy
        self.language_aggregator = language_aggregator or LanguageAggregator(github_client)
        self._generators = {
            ServiceType.CONTRIBUTION: self.generate_contribution_badge,
            ServiceType.STATS: self.generate_stats_card,
            ServiceType.LANGUAGES: self.generate_languages_card,
            ServiceType.VISITOR: self.generate_visitor_badge,
        }

    async def run(self) -> BadgeRunResult:
        """
        Builds every selected badge.

        Raises:
            ConfigurationError: before any I/O, if a required setting is missing.
        """
        self.config.validate_required()
        services = self.config.selected_services()
        theme = get_theme(self.config.theme)
        result = BadgeRunResult()

        logger.info(
            f"Generating {', '.join(s.value for s in services)} for '{self.config.username}' "
            f"(theme: {self.config.theme}, output: {self.config.output_dir})."
        )

        async with aiohttp.ClientSession() as session:
            for service in services:
                try:
                    path = await self._generators[service](session, theme, result.outputs)
                except (TransportError, StorageException) as e:
                    logger.error(f"Failed to generate {service.value}: {e}")
                    result.failed[service] = str(e)
                    continue
                result.generated[service] = path
                result.outputs[f"{service.value}_path"] = path

        logger.info(f"Done. Generated {len(result.generated)}, failed {len(result.failed)}.")
        return result

    async def generate_contribution_badge(
        self, session: aiohttp.ClientSession, theme: Theme, outputs: Dict[str, str],
    ) -> str:
        logger.info("Fetching contribution calendar...")
        calendar = await self.github_client.fetch_contribution_calendar(session, self.config.username)

        data = ContributionData(
            total_days=calculate_active_days(calendar),
            current_streak=calculate_current_streak(calendar),
            last_updated=datetime.now(timezone.utc),
        )
        logger.info(f"Active contribution days: {data.total_days} (current streak: {data.current_streak}).")

        svg = render_contribution_badge(data, default_contribution_badge_options(theme))
        await self.storage.write(STORAGE_KEYS[ServiceType.CONTRIBUTION], data.to_storage())
        outputs["total_days"] = str(data.total_days)
        return await self._write_svg(ServiceType.CONTRIBUTION, svg)

    async def generate_stats_card(
        self, session: aiohttp.ClientSession, theme: Theme, outputs: Dict[str, str],
    ) -> str:
        logger.info("Fetching GitHub stats...")
        counts = await self.github_client.fetch_stats_counts(session, self.config.username)
        stats = build_stats(counts, self.rank_policy)

        logger.info(
            f"Commits: {stats.total_commits}, PRs: {stats.total_prs}, Issues: {stats.total_issues}, "
            f"Stars: {stats.total_stars}, Rank: {stats.rank}."
        )

        options = default_stats_card_options(theme, self.config.username).model_copy(
            update={"hide_stats": self.config.hide_stats},
        )
        svg = render_stats_card(stats, options)
        await self.storage.write(STORAGE_KEYS[ServiceType.STATS], stats.to_storage())
        return await self._write_svg(ServiceType.STATS, svg)

    async def generate_languages_card(
        self, session: aiohttp.ClientSession, theme: Theme, outputs: Dict[str, str],
    ) -> str:
        logger.info("Aggregating repository languages...")
        data = await self.language_aggregator.aggregate(session, self.config.username)
        logger.info(f"Languages: {len(data.languages)}, total size: {data.total_size} bytes.")

        options = LanguagesCardOptions(
            theme=theme,
            username=self.config.username,
            layout=self.config.layout,
            hide_languages=self.config.hide_languages,
            languages_count=self.config.languages_count,
        )
        svg = render_languages_card(data, options)
        await self.storage.write(STORAGE_KEYS[ServiceType.LANGUAGES], data.to_storage())
        return await self._write_svg(ServiceType.LANGUAGES, svg)

    async def generate_visitor_badge(
        self, session: aiohttp.ClientSession, theme: Theme, outputs: Dict[str, str],
    ) -> str:
        key = STORAGE_KEYS[ServiceType.VISITOR]
        raw = await self.storage.read(key)
        try:
            previous = VisitorData.model_validate(raw) if raw is not None else None
        except ValidationError as e:
            raise StorageException(f"Stored value for '{key}' is not a visitor record: {e}") from e

        data = increment_visitor_count(previous)
        logger.info(f"Visitor count: {data.count}.")

        svg = render_visitor_badge(data, default_visitor_badge_options(theme))
        # The count only advances once its badge is on disk.
        path = await self._write_svg(ServiceType.VISITOR, svg)
        await self.storage.write(key, data.to_storage())
        outputs["visitor_count"] = str(data.count)
        return path

    async def _write_svg(self, service: ServiceType, svg: str) -> str:
        output_dir = Path(self.config.output_dir)
        path = output_dir / OUTPUT_FILES[service]
        try:
            await asyncio.to_thread(output_dir.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_text, svg, encoding="utf-8")
        except OSError as e:
            raise StorageException(f"Cannot write {path}: {e}") from e
        logger.info(f"Saved {service.value} to {path}.")
        return str(path)
