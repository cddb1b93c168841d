"""Aggregate GitHub fetcher output into per-repository and account-wide stats."""

import asyncio
import logging
from itertools import chain
from typing import Any, Awaitable

from connectors import get_commits, get_languages, list_repositories
from connectors.errors import UpstreamError
from connectors.github_client import GitHubClient
from connectors.github_connector import fetch_repository, log_fetch_failure
from models import (
    AccountStats,
    Commit,
    LanguageBreakdown,
    LanguageShare,
    LookupFailure,
    Repository,
    RepositoryLookup,
    RepositoryStats,
)

logger = logging.getLogger("portfolio.stats")

TASK_TIMEOUT = 15  # seconds; backstop above the client's own request timeout
REPO_COMMITS = 5
TOP_LANGUAGES = 10
ACTIVITY_REPOS = 5
COMMITS_PER_ACTIVITY_REPO = 3
ACTIVITY_SIZE = 10

_FAILURE_KINDS = {
    "not_found": LookupFailure.NOT_FOUND,
    "rate_limited": LookupFailure.RATE_LIMITED,
    "network": LookupFailure.NETWORK,
}


async def join_all(tasks: list[tuple[Awaitable, Any]], timeout: float = TASK_TIMEOUT) -> list:
    """Run awaitables concurrently and wait for all of them.

    Each entry is ``(awaitable, default)``. A task that exceeds ``timeout``
    is cancelled and its default is used in its slot, so one hung call
    can't stall the join. Results keep the input order.
    """

    async def _bounded(aw: Awaitable, default):
        try:
            return await asyncio.wait_for(aw, timeout)
        except asyncio.TimeoutError:
            logger.warning("stats TASK_TIMEOUT timeout=%ss", timeout)
            return default

    return await asyncio.gather(*(_bounded(aw, default) for aw, default in tasks))


def primary_language(languages: LanguageBreakdown) -> str | None:
    """Language with the most bytes; ties go to the first key. None if no bytes."""
    if sum(languages.values()) == 0:
        return None
    return max(languages, key=languages.get)


def build_repository_stats(
    repo: Repository,
    languages: LanguageBreakdown | None = None,
    commits: list[Commit] | None = None,
) -> RepositoryStats:
    languages = languages or {}
    return RepositoryStats(
        stars=repo.stargazers_count,
        forks=repo.forks_count,
        issues=repo.open_issues_count,
        watchers=repo.watchers_count,
        size=repo.size,
        language=primary_language(languages),
        languages=languages,
        last_updated=repo.updated_at,
        created_at=repo.created_at,
        recent_commits=(commits or [])[:REPO_COMMITS],
    )


async def _repository_or_failure(client: GitHubClient, account: str, name: str):
    try:
        return await fetch_repository(client, account, name), None
    except UpstreamError as exc:
        log_fetch_failure(f"repo={account}/{name}", exc)
        return None, _FAILURE_KINDS.get(exc.kind, LookupFailure.UPSTREAM)


async def lookup_repository_stats(client: GitHubClient, account: str, name: str) -> RepositoryLookup:
    """Repository stats plus, when the base lookup failed, why it failed."""
    (repo, failure), languages, commits = await join_all([
        (_repository_or_failure(client, account, name), (None, LookupFailure.NETWORK)),
        (get_languages(client, account, name), {}),
        (get_commits(client, account, name, REPO_COMMITS), []),
    ])
    if repo is None:
        return RepositoryLookup(failure=failure)
    return RepositoryLookup(stats=build_repository_stats(repo, languages, commits))


async def get_repository_stats(client: GitHubClient, account: str, name: str) -> RepositoryStats | None:
    """Stats for one repository, or None if the repository itself can't be resolved."""
    lookup = await lookup_repository_stats(client, account, name)
    return lookup.stats


def rank_languages(breakdowns: list[LanguageBreakdown], top: int = TOP_LANGUAGES) -> list[LanguageShare]:
    """Merge per-repository breakdowns and rank languages by byte share."""
    totals: dict[str, int] = {}
    for breakdown in breakdowns:
        for language, count in breakdown.items():
            totals[language] = totals.get(language, 0) + count

    total_bytes = sum(totals.values())
    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:top]
    return [
        LanguageShare(
            language=language,
            count=count,
            percentage=(count / total_bytes) * 100 if total_bytes > 0 else 0.0,
        )
        for language, count in ranked
    ]


def merge_activity(feeds: list[list[Commit]], size: int = ACTIVITY_SIZE) -> list[Commit]:
    """Flatten per-repository commit lists, newest authored first."""
    commits = sorted(chain.from_iterable(feeds), key=lambda c: c.authored_at, reverse=True)
    return commits[:size]


async def get_account_stats(client: GitHubClient, account: str) -> AccountStats:
    """Account-wide totals, language shares and recent activity.

    A failed repository listing yields zero totals and an empty feed.
    """
    repos = await list_repositories(client, account)
    if not repos:
        return AccountStats()

    breakdowns, feeds = await asyncio.gather(
        join_all([(get_languages(client, account, r.name), {}) for r in repos]),
        join_all([
            (get_commits(client, account, r.name, COMMITS_PER_ACTIVITY_REPO), [])
            for r in repos[:ACTIVITY_REPOS]
        ]),
    )
    activity = merge_activity(feeds)

    logger.info("stats ACCOUNT account=%s repos=%d languages=%d activity=%d",
                account, len(repos), sum(len(b) for b in breakdowns), len(activity))

    return AccountStats(
        total_repositories=len(repos),
        total_stars=sum(r.stargazers_count for r in repos),
        total_forks=sum(r.forks_count for r in repos),
        total_commits=len(activity),
        most_used_languages=rank_languages(breakdowns),
        recent_activity=activity,
        repositories=repos,
    )
