from typing import Any, Dict
from pydantic import ValidationError

from statbadge.domain.exceptions import TransportError
from statbadge.domain.models import (
    ContributionCalendar,
    ContributionDay,
    ContributionWeek,
    LanguageEdge,
    LanguagesPage,
    RepositoryLanguages,
    StatsCounts,
)

class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub GraphQL JSON responses into domain records.
    Any missing or mistyped field surfaces as a TransportError: a malformed page is the
    provider's fault and must abort the badge before anything is written.
    """

    @staticmethod
    def _user(data: Dict[str, Any]) -> Dict[str, Any]:
        user = (data or {}).get('user')
        if not user:
            raise TransportError("GraphQL response has no 'user' object.")
        return user

    @staticmethod
    def to_calendar(data: Dict[str, Any]) -> ContributionCalendar:
        """
        Transforms a `user.contributionsCollection.contributionCalendar` payload.

        Args:
            data (Dict[str, Any]): The `data` object of the GraphQL response.

        Returns:
            ContributionCalendar: Weeks of days, in provider order.
        """
        try:
            raw = GitHubTranslator._user(data)['contributionsCollection']['contributionCalendar']
            weeks = [
                ContributionWeek(days=[
                    ContributionDay(date=day['date'], count=day['contributionCount'])
                    for day in (week.get('contributionDays') or [])
                ])
                for week in (raw.get('weeks') or [])
            ]
            return ContributionCalendar(
                total_contributions=raw.get('totalContributions', 0),
                weeks=weeks,
            )
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            raise TransportError(f"Malformed contribution calendar: {e}") from e

    @staticmethod
    def to_stats_counts(data: Dict[str, Any]) -> StatsCounts:
        """Transforms the stats query payload into raw totals."""
        try:
            user = GitHubTranslator._user(data)
            repositories = (user.get('repositories') or {}).get('nodes') or []
            return StatsCounts(
                commits=user['contributionsCollection']['totalCommitContributions'],
                pull_requests=user['pullRequests']['totalCount'],
                open_issues=user['openIssues']['totalCount'],
                closed_issues=user['closedIssues']['totalCount'],
                repository_stars=[
                    (node.get('stargazers') or {}).get('totalCount', 0)
                    for node in repositories if node
                ],
                contributed_to=user['repositoriesContributedTo']['totalCount'],
            )
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            raise TransportError(f"Malformed stats payload: {e}") from e

    @staticmethod
    def to_languages_page(data: Dict[str, Any]) -> LanguagesPage:
        """Transforms one page of `user.repositories` with language edges."""
        try:
            raw = GitHubTranslator._user(data)['repositories']
            page_info = raw.get('pageInfo') or {}
            repositories = []
            for node in raw.get('nodes') or []:
                if not node:
                    continue
                edges = (node.get('languages') or {}).get('edges') or []
                repositories.append(RepositoryLanguages(
                    name=node.get('name', ''),
                    is_archived=node.get('isArchived', False),
                    languages=[
                        LanguageEdge(
                            name=edge['node']['name'],
                            color=edge['node'].get('color'),
                            size=edge.get('size', 0),
                        )
                        for edge in edges if edge
                    ],
                ))
            return LanguagesPage(
                repositories=repositories,
                end_cursor=page_info.get('endCursor'),
                has_next_page=page_info.get('hasNextPage', False),
            )
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            raise TransportError(f"Malformed languages page: {e}") from e
