"""Project catalog — curated showcase entries, enriched with live GitHub data.

The static list is always available with no network dependency. Live data
is attached on a best-effort basis and never removes or reorders entries.
"""

import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

from connectors import list_repositories
from connectors.github_client import GitHubClient
from github_stats import build_repository_stats, get_repository_stats, join_all
from models import ProjectEntry, ProjectFilters, Repository

logger = logging.getLogger("portfolio.projects")

STATIC_PROJECTS: list[ProjectEntry] = [
    ProjectEntry(
        id="portfolio-marcel",
        title="Portfolio Website",
        description=(
            "Modern, responsive portfolio website with smooth animations, "
            "dark mode support and live GitHub statistics."
        ),
        technologies=["Next.js", "TypeScript", "Tailwind CSS", "Framer Motion"],
        github_url="https://github.com/Cyrochrome/portofolio-marcel",
        live_url="https://portofolio-marcel.vercel.app",
        featured=True,
        priority=1,
    ),
    ProjectEntry(
        id="nuxt-gemini-chatbot",
        title="AI Chatbot with Nuxt",
        description=(
            "Interactive chatbot application built with Nuxt.js and integrated "
            "with Gemini AI."
        ),
        technologies=["Nuxt.js", "Vue.js", "Gemini AI", "JavaScript"],
        github_url="https://github.com/Cyrochrome/nuxt-gemini-chatbot",
        featured=True,
        priority=2,
    ),
    ProjectEntry(
        id="bimbel-alfa",
        title="Learning Management System",
        description=(
            "Educational platform with course management, student progress "
            "tracking and interactive learning modules."
        ),
        technologies=["TypeScript", "React", "Node.js", "PostgreSQL"],
        github_url="https://github.com/Cyrochrome/bimbel-alfa",
        featured=True,
        priority=3,
    ),
    ProjectEntry(
        id="dotfiles",
        title="Dotfiles",
        description="Shell, editor and terminal configuration.",
        technologies=["Shell", "Lua"],
        github_url="https://github.com/Cyrochrome/dotfiles",
        featured=False,
    ),
]

MAX_TOPIC_TECHNOLOGIES = 4
RECENT_LIMIT = 6

# Topics that say nothing about the technology used.
GENERIC_TOPICS = frozenset({
    "portfolio", "website", "project", "projects", "featured",
    "hacktoberfest", "github", "demo",
})


# ---------------------------------------------------------------------------
# Static catalog
# ---------------------------------------------------------------------------

def repo_name_from_url(url: str | None) -> str | None:
    """Repository name from a source link (second path segment)."""
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        return None
    name = parts[1]
    return name[:-4] if name.endswith(".git") else name


def sort_by_priority(entries: list[ProjectEntry]) -> list[ProjectEntry]:
    """Stable sort, lower priority first, entries without one last."""
    return sorted(entries, key=lambda e: (e.priority is None, e.priority or 0))


def featured_projects(entries: list[ProjectEntry]) -> list[ProjectEntry]:
    return sort_by_priority([e for e in entries if e.featured])


def get_project_by_id(project_id: str) -> ProjectEntry | None:
    for entry in STATIC_PROJECTS:
        if entry.id == project_id:
            return entry
    return None


async def _enhance_entry(
    client: GitHubClient, account: str, entry: ProjectEntry, repos_by_name: dict[str, Repository],
) -> ProjectEntry:
    name = repo_name_from_url(entry.github_url)
    repo = repos_by_name.get(name.lower()) if name else None
    if repo is None:
        return entry
    try:
        stats = await get_repository_stats(client, account, repo.name)
    except Exception:
        logger.exception("projects ENHANCE_FAILED id=%s repo=%s", entry.id, repo.name)
        return entry
    if stats is None:
        return entry
    return entry.model_copy(update={"github_data": stats})


async def enhance_projects(
    client: GitHubClient, account: str, entries: list[ProjectEntry],
) -> list[ProjectEntry]:
    """Attach live stats to every entry whose repository is in the live listing.

    Each entry is enhanced independently; one failing lookup leaves only that
    entry without stats.
    """
    repos = await list_repositories(client, account)
    if not repos:
        return list(entries)
    by_name = {r.name.lower(): r for r in repos}
    return await join_all([(_enhance_entry(client, account, e, by_name), e) for e in entries])


async def get_catalog(client: GitHubClient, account: str, featured_only: bool = True) -> list[ProjectEntry]:
    """Static catalog with live stats attached where possible.

    Falls back to the static list unmodified if enhancement fails outright
    or comes back empty.
    """
    static = featured_projects(STATIC_PROJECTS) if featured_only else sort_by_priority(STATIC_PROJECTS)
    try:
        enhanced = await enhance_projects(client, account, static)
    except Exception:
        logger.exception("projects CATALOG_FALLBACK account=%s", account)
        return static
    if not enhanced:
        logger.warning("projects CATALOG_EMPTY account=%s, using static list", account)
        return static
    return enhanced


async def get_project(client: GitHubClient, account: str, project_id: str) -> ProjectEntry | None:
    entry = get_project_by_id(project_id)
    if entry is None:
        return None
    try:
        enhanced = await enhance_projects(client, account, [entry])
    except Exception:
        logger.exception("projects ENHANCE_FAILED id=%s", project_id)
        return entry
    return enhanced[0] if enhanced else entry


# ---------------------------------------------------------------------------
# Live catalog built straight from repository records
# ---------------------------------------------------------------------------

def engagement_score(repo: Repository) -> int:
    return repo.stargazers_count * 10 + repo.forks_count * 5


def _technologies(repo: Repository) -> list[str]:
    techs = [repo.language] if repo.language else []
    seen = {t.lower() for t in techs}
    topics = []
    for topic in repo.topics:
        lowered = topic.lower()
        if lowered in GENERIC_TOPICS or lowered in seen:
            continue
        seen.add(lowered)
        topics.append(topic)
    return techs + topics[:MAX_TOPIC_TECHNOLOGIES]


def _title(name: str) -> str:
    return " ".join(word.capitalize() for word in name.replace("_", "-").split("-") if word)


def project_from_repository(repo: Repository, priority: int | None = None) -> ProjectEntry:
    # Listing records carry no language breakdown; use the provider's own guess.
    stats = build_repository_stats(repo).model_copy(update={"language": repo.language})
    topics = {t.lower() for t in repo.topics}
    return ProjectEntry(
        id=repo.name,
        title=_title(repo.name) or repo.name,
        description=repo.description or "",
        technologies=_technologies(repo),
        github_url=repo.html_url or None,
        live_url=repo.homepage or None,
        featured=repo.stargazers_count > 0 or "featured" in topics,
        priority=priority,
        engagement=engagement_score(repo),
        github_data=stats,
    )


def _matches_topic(repo: Repository, needle: str) -> bool:
    return any(needle in topic.lower() for topic in repo.topics)


def filter_repositories(
    repos: list[Repository], filters: ProjectFilters, now: datetime | None = None,
) -> list[Repository]:
    now = now or datetime.now(timezone.utc)
    required = [t.strip().lower() for t in filters.topics if t.strip()]
    excluded = [t.strip().lower() for t in filters.exclude_topics if t.strip()]
    max_age = timedelta(days=filters.max_age_days) if filters.max_age_days is not None else None

    kept = []
    for repo in repos:
        if repo.stargazers_count < filters.min_stars or repo.forks_count < filters.min_forks:
            continue
        if filters.exclude_forks and repo.fork:
            continue
        if filters.exclude_archived and repo.archived:
            continue
        if max_age is not None and now - repo.updated_at > max_age:
            continue
        if not all(_matches_topic(repo, t) for t in required):
            continue
        if any(_matches_topic(repo, t) for t in excluded):
            continue
        kept.append(repo)
    return kept


_SORT_KEYS = {
    "stars": lambda r: r.stargazers_count,
    "updated": lambda r: r.updated_at,
    "created": lambda r: r.created_at,
    "name": lambda r: r.name.lower(),
}


def sort_repositories(repos: list[Repository], sort_by: str = "stars", order: str = "desc") -> list[Repository]:
    return sorted(repos, key=_SORT_KEYS[sort_by], reverse=order == "desc")


def build_live_catalog(
    repos: list[Repository], filters: ProjectFilters, now: datetime | None = None,
) -> list[ProjectEntry]:
    """Filter, sort and convert repositories into catalog entries.

    ``priority`` is the 1-based engagement rank within the filtered set, so
    the most engaged repository gets the lowest (first-sorting) value.
    """
    selected = filter_repositories(repos, filters, now)
    by_engagement = sorted(selected, key=engagement_score, reverse=True)
    ranks = {r.id: rank for rank, r in enumerate(by_engagement, start=1)}

    ordered = sort_repositories(selected, filters.sort_by, filters.order)
    if filters.limit:
        ordered = ordered[:filters.limit]
    return [project_from_repository(r, ranks[r.id]) for r in ordered]


async def get_live_catalog(client: GitHubClient, account: str, filters: ProjectFilters) -> list[ProjectEntry]:
    """Live catalog; the static featured list when the listing is unavailable."""
    repos = await list_repositories(client, account)
    if not repos:
        logger.warning("projects LIVE_FALLBACK account=%s, using static list", account)
        return featured_projects(STATIC_PROJECTS)
    return build_live_catalog(repos, filters)


async def get_recent_projects(client: GitHubClient, account: str, limit: int = RECENT_LIMIT) -> list[ProjectEntry]:
    filters = ProjectFilters(sort_by="updated", order="desc", limit=limit)
    return await get_live_catalog(client, account, filters)
