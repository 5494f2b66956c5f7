import aiohttp
import asyncio
import logging
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Any, Optional

from statbadge.domain.exceptions import RateLimitExceededException, TransportError
from statbadge.domain.models import ContributionCalendar, LanguagesPage, StatsCounts
from statbadge.infrastructure.acl import GitHubTranslator

logger = logging.getLogger(__name__)

RATE_LIMIT_FRAGMENT = """
  rateLimit {
    cost
    remaining
    resetAt
  }
"""

CALENDAR_QUERY = """
query ($username: String!) {
  user(login: $username) {
    contributionsCollection {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
%s}
""" % RATE_LIMIT_FRAGMENT

# Stars are summed over a single page of the owner's most-starred repositories;
# owners with more than STAR_REPOSITORY_LIMIT repositories get an undercount.
STATS_QUERY = """
query ($username: String!, $starLimit: Int!) {
  user(login: $username) {
    contributionsCollection {
      totalCommitContributions
    }
    pullRequests {
      totalCount
    }
    openIssues: issues(states: OPEN) {
      totalCount
    }
    closedIssues: issues(states: CLOSED) {
      totalCount
    }
    repositoriesContributedTo(first: 1, contributionTypes: [COMMIT, ISSUE, PULL_REQUEST, REPOSITORY]) {
      totalCount
    }
    repositories(first: $starLimit, ownerAffiliations: OWNER, orderBy: {field: STARGAZERS, direction: DESC}) {
      nodes {
        stargazers {
          totalCount
        }
      }
    }
  }
%s}
""" % RATE_LIMIT_FRAGMENT

LANGUAGES_QUERY = """
query ($username: String!, $cursor: String, $pageSize: Int!) {
  user(login: $username) {
    repositories(first: $pageSize, after: $cursor, ownerAffiliations: OWNER, isFork: false, orderBy: {field: UPDATED_AT, direction: DESC}) {
      pageInfo {
        endCursor
        hasNextPage
      }
      nodes {
        name
        isArchived
        languages(first: 10, orderBy: {field: SIZE, direction: DESC}) {
          edges {
            size
            node {
              name
              color
            }
          }
        }
      }
    }
  }
%s}
""" % RATE_LIMIT_FRAGMENT

STAR_REPOSITORY_LIMIT = 100
DEFAULT_PAGE_SIZE = 50
MIN_PAGE_SIZE = 5
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=60, connect=10)
MAX_RETRIES = 5
RATE_LIMIT_FLOOR = 10
DEFAULT_RETRY_AFTER = 60

class GitHubGraphQLClient:
    """
    Client for interacting with the GitHub GraphQL API.
    Handles authentication, query execution, retries and rate limit management.
    Returns one translated page per call; pagination is driven by the caller.
    """

    def __init__(self, token: str):
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "statbadge",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self.api_url = "https://api.github.com/graphql"

    async def execute(
        self,
        session: aiohttp.ClientSession,
        query: str,
        variables: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Runs a GraphQL query and returns its `data` object.

        If the variables carry a `pageSize`, it is halved on server errors and
        timeouts, since large pages are what makes GitHub time out.

        Raises:
            RateLimitExceededException: fewer than RATE_LIMIT_FLOOR points remain.
            TransportError: retries are exhausted.
        """
        variables = dict(variables)

        for attempt in range(MAX_RETRIES):
          payload = {"query": query, "variables": variables}
          try:
            async with session.post(self.api_url, json=payload, headers=self.headers, timeout=REQUEST_TIMEOUT) as response:
                # Handle secondary rate limit (abuse detection)
                if response.status == 403:
                  sleep_time = self._retry_after_seconds(response.headers.get('Retry-After'))
                  logger.warning(f"Secondary rate limit (403). Sleeping {sleep_time}s...")
                  await asyncio.sleep(sleep_time)
                  continue

                if response.status in {500, 502, 503, 504}:
                  self._shrink_page(variables)
                  sleep_time = (2 ** attempt) + random.uniform(0, 2)
                  logger.warning(
                      f"Server error ({response.status}). "
                      f"Retrying in {sleep_time:.1f}s (attempt {attempt + 1}/{MAX_RETRIES})..."
                  )
                  await asyncio.sleep(sleep_time)
                  continue

                response.raise_for_status()
                try:
                  data = await response.json()
                except ValueError:
                  data = None
                if not isinstance(data, dict):
                  sleep_time = (2 ** attempt) + random.uniform(0, 2)
                  logger.warning(f"Response body is not a JSON object. Retrying in {sleep_time:.1f}s...")
                  await asyncio.sleep(sleep_time)
                  continue

                # Handle GraphQL-level errors (can occur even with HTTP 200)
                if 'errors' in data:
                    error_msg = data['errors'][0].get('message', 'Unknown GraphQL error')
                    if 'data' not in data or data['data'] is None:
                        self._shrink_page(variables)
                        sleep_time = (2 ** attempt) + random.uniform(0, 2)
                        logger.warning(f"GraphQL error: {error_msg}. Retrying in {sleep_time:.1f}s...")
                        await asyncio.sleep(sleep_time)
                        continue
                    logger.warning(f"GraphQL partial error: {error_msg}")

                result = data.get('data') or {}
                rate_limit = result.get('rateLimit') or {}
                remaining = rate_limit.get('remaining', 100)

                if remaining < RATE_LIMIT_FLOOR:
                    raise RateLimitExceededException(reset_at=rate_limit.get('resetAt'))

                return result

          except (aiohttp.ClientError, asyncio.TimeoutError) as e:
              self._shrink_page(variables)
              sleep_time = (2 ** attempt) + random.uniform(0, 2)
              logger.warning(
                  f"Request failed (attempt {attempt + 1}/{MAX_RETRIES}): {e}. "
                  f"Retrying in {sleep_time:.1f}s..."
              )
              await asyncio.sleep(sleep_time)

        raise TransportError(f"Failed to fetch from GitHub after {MAX_RETRIES} attempts.")

    @staticmethod
    def _retry_after_seconds(value: Optional[str]) -> float:
        """Reads a Retry-After header given either as seconds or as an HTTP date."""
        if not value:
            return DEFAULT_RETRY_AFTER
        try:
            return max(int(value), 0)
        except ValueError:
            pass
        try:
            retry_at = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return DEFAULT_RETRY_AFTER
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        return max((retry_at - datetime.now(timezone.utc)).total_seconds(), 0)

    @staticmethod
    def _shrink_page(variables: Dict[str, Any]) -> None:
        if 'pageSize' in variables:
            variables['pageSize'] = max(variables['pageSize'] // 2, MIN_PAGE_SIZE)

    async def fetch_contribution_calendar(
        self, session: aiohttp.ClientSession, username: str,
    ) -> ContributionCalendar:
        """Fetches the contribution calendar for the last year."""
        data = await self.execute(session, CALENDAR_QUERY, {"username": username})
        return GitHubTranslator.to_calendar(data)

    async def fetch_stats_counts(
        self, session: aiohttp.ClientSession, username: str,
    ) -> StatsCounts:
        """Fetches commit/PR/issue totals and stars of the most-starred owned repositories."""
        data = await self.execute(
            session, STATS_QUERY, {"username": username, "starLimit": STAR_REPOSITORY_LIMIT},
        )
        return GitHubTranslator.to_stats_counts(data)

    async def fetch_languages_page(
        self,
        session: aiohttp.ClientSession,
        username: str,
        cursor: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> LanguagesPage:
        """
        Fetches a single page of owned repositories with their language sizes.

        Returns:
            LanguagesPage: repositories plus the cursor continuation signal.
        """
        data = await self.execute(
            session,
            LANGUAGES_QUERY,
            {"username": username, "cursor": cursor, "pageSize": page_size},
        )
        return GitHubTranslator.to_languages_page(data)
