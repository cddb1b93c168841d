"""GitHub fetchers for repositories, languages and commits.

Every fetcher folds upstream failures into an empty result: detail lookups
are enrichment, so a missing or slow repository never aborts an aggregate.
"""

import logging

from models import Commit, LanguageBreakdown, Repository

from .errors import NotFound, UpstreamError
from .github_client import GitHubClient

logger = logging.getLogger("portfolio.github")

PAGE_SIZE = 100  # provider ceiling; no further pagination

REPO_LIST_TTL = 3600  # 1 hour
REPO_DETAIL_TTL = 1800  # 30 minutes
COMMITS_TTL = 900  # 15 minutes


def log_fetch_failure(what: str, exc: UpstreamError):
    if isinstance(exc, NotFound):
        logger.debug("github NOT_FOUND %s", what)
    else:
        logger.warning("github FETCH_FAILED %s kind=%s error=%s", what, exc.kind, exc)


async def fetch_repository(client: GitHubClient, account: str, name: str) -> Repository:
    """Fetch one repository, letting ``UpstreamError`` propagate."""
    return await client.request(
        client.repo_endpoint(name, account=account),
        cache_ttl=REPO_DETAIL_TTL,
        schema=Repository,
    )


async def list_repositories(client: GitHubClient, account: str) -> list[Repository]:
    """Active repositories owned by ``account``, most recently updated first."""
    try:
        repos = await client.request(
            client.user_endpoint("/repos", account=account),
            params={"sort": "updated", "per_page": PAGE_SIZE},
            cache_ttl=REPO_LIST_TTL,
            schema=list[Repository],
        )
    except UpstreamError as exc:
        log_fetch_failure(f"repos account={account}", exc)
        return []

    active = [r for r in repos if not r.archived and not r.disabled]
    active.sort(key=lambda r: r.updated_at, reverse=True)
    return active


async def get_repository(client: GitHubClient, account: str, name: str) -> Repository | None:
    try:
        return await fetch_repository(client, account, name)
    except UpstreamError as exc:
        log_fetch_failure(f"repo={account}/{name}", exc)
        return None


async def get_languages(client: GitHubClient, account: str, name: str) -> LanguageBreakdown:
    try:
        return await client.request(
            client.repo_endpoint(name, "/languages", account=account),
            cache_ttl=REPO_DETAIL_TTL,
            schema=LanguageBreakdown,
        )
    except UpstreamError as exc:
        log_fetch_failure(f"languages repo={account}/{name}", exc)
        return {}


async def get_commits(client: GitHubClient, account: str, name: str, limit: int = 10) -> list[Commit]:
    """Most recent commits on the default branch, at most ``limit``."""
    if limit <= 0:
        return []
    try:
        commits = await client.request(
            client.repo_endpoint(name, "/commits", account=account),
            params={"per_page": min(limit, PAGE_SIZE)},
            cache_ttl=COMMITS_TTL,
            schema=list[Commit],
        )
    except UpstreamError as exc:
        log_fetch_failure(f"commits repo={account}/{name}", exc)
        return []
    return commits[:limit]
