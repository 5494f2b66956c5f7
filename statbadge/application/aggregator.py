import logging
from typing import Dict, Iterable, List, Optional, Tuple

import aiohttp
from pydantic import BaseModel, ConfigDict

from statbadge.domain.models import (
    ContributionCalendar,
    GitHubStats,
    Language,
    LanguagesData,
    RepositoryLanguages,
    StatsCounts,
)
from statbadge.infrastructure.github_client import GitHubGraphQLClient

logger = logging.getLogger(__name__)

# Upper bound on repositories examined for the languages card, whatever the feed reports.
MAX_LANGUAGE_REPOSITORIES = 200


# ========== Calendar ==========

def calculate_active_days(calendar: ContributionCalendar) -> int:
    """Counts the days with at least one contribution."""
    return sum(
        1
        for week in calendar.weeks
        for day in week.days
        if day.count > 0
    )


def calculate_current_streak(calendar: ContributionCalendar) -> int:
    """
    Counts consecutive active days ending at the most recent calendar day.
    An idle last day does not break the streak: that day is still in progress.
    """
    counts = [day.count for week in calendar.weeks for day in week.days]
    if counts and counts[-1] == 0:
        counts.pop()

    streak = 0
    for count in reversed(counts):
        if count <= 0:
            break
        streak += 1
    return streak


# ========== Rank ==========

class RankPolicy(BaseModel):
    """
    Weights and tier thresholds for the stats rank.
    Thresholds are checked highest first; the first one the score reaches wins.
    """
    model_config = ConfigDict(frozen=True)

    commit_weight: int = 1
    pr_weight: int = 2
    issue_weight: int = 1
    star_weight: int = 3
    thresholds: Tuple[Tuple[str, int], ...] = (
        ("S", 1000),
        ("A+", 500),
        ("A", 250),
        ("B+", 100),
        ("B", 50),
    )
    fallback: str = "C"

    def score(self, commits: int, prs: int, issues: int, stars: int) -> int:
        return (
            self.commit_weight * commits
            + self.pr_weight * prs
            + self.star_weight * stars
            + self.issue_weight * issues
        )

    def rank(self, score: int) -> str:
        for tier, minimum in sorted(self.thresholds, key=lambda item: item[1], reverse=True):
            if score >= minimum:
                return tier
        return self.fallback


DEFAULT_RANK_POLICY = RankPolicy()


def calculate_rank(
    commits: int, prs: int, issues: int, stars: int,
    policy: RankPolicy = DEFAULT_RANK_POLICY,
) -> str:
    return policy.rank(policy.score(commits, prs, issues, stars))


def build_stats(counts: StatsCounts, policy: RankPolicy = DEFAULT_RANK_POLICY) -> GitHubStats:
    """Derives the stats aggregate (issue total, star total, rank) from raw totals."""
    total_issues = counts.open_issues + counts.closed_issues
    total_stars = sum(counts.repository_stars)
    return GitHubStats(
        total_commits=counts.commits,
        total_prs=counts.pull_requests,
        total_issues=total_issues,
        total_stars=total_stars,
        contributed_to=counts.contributed_to,
        rank=calculate_rank(counts.commits, counts.pull_requests, total_issues, total_stars, policy),
    )


# ========== Languages ==========

class LanguageAccumulator:
    """
    Merges per-repository language sizes.
    Sizes add up across repositories; the first color seen for a name is kept.
    """

    def __init__(self) -> None:
        self._sizes: Dict[str, int] = {}
        self._colors: Dict[str, Optional[str]] = {}
        self.total_size = 0
        self.repositories_processed = 0

    def add(self, repository: RepositoryLanguages) -> None:
        self.repositories_processed += 1
        if repository.is_archived:
            return
        for edge in repository.languages:
            if edge.size <= 0:
                continue
            if edge.name not in self._sizes:
                self._sizes[edge.name] = 0
                self._colors[edge.name] = edge.color
            self._sizes[edge.name] += edge.size
            self.total_size += edge.size

    def result(self) -> LanguagesData:
        # sorted() is stable, so equal sizes keep first-seen order
        ordered = sorted(self._sizes.items(), key=lambda item: item[1], reverse=True)
        languages: List[Language] = [
            Language(
                name=name,
                size=size,
                color=self._colors[name],
                percentage=(size / self.total_size * 100) if self.total_size > 0 else 0.0,
            )
            for name, size in ordered
        ]
        return LanguagesData(languages=languages, total_size=self.total_size)


def merge_languages(repositories: Iterable[RepositoryLanguages]) -> LanguagesData:
    accumulator = LanguageAccumulator()
    for repository in repositories:
        accumulator.add(repository)
    return accumulator.result()


class LanguageAggregator:
    """
    Walks the owner's repositories page by page and merges their language sizes.

    Stops when the feed reports no further page, when it returns no usable
    cursor, or once `max_repositories` repositories have been examined.
    Nothing is returned until every page has been merged, so a transport
    failure halfway through never yields a partial result.
    """

    def __init__(
            self,
            github_client: GitHubGraphQLClient,
            max_repositories: int = MAX_LANGUAGE_REPOSITORIES,
    ):
        self.github_client = github_client
        self.max_repositories = max_repositories

    async def aggregate(self, session: aiohttp.ClientSession, username: str) -> LanguagesData:
        accumulator = LanguageAccumulator()
        cursor = None
        pages = 0

        while accumulator.repositories_processed < self.max_repositories:
            page = await self.github_client.fetch_languages_page(session, username, cursor)
            pages += 1

            remaining = self.max_repositories - accumulator.repositories_processed
            for repository in page.repositories[:remaining]:
                accumulator.add(repository)

            logger.info(
                f"[languages] Page {pages}: {len(page.repositories)} repositories. "
                f"Processed {accumulator.repositories_processed}/{self.max_repositories}."
            )

            if not page.has_next_page or not page.end_cursor or not page.repositories:
                break
            cursor = page.end_cursor

        return accumulator.result()
