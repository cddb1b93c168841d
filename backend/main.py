import logging
import os
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import projects
from cache import TTLCache
from connectors import GitHubClient
from connectors.github_client import DEFAULT_TIMEOUT, GH_API
from github_stats import get_account_stats, lookup_repository_stats
from models import LookupFailure, ProjectFilters

logger = logging.getLogger("portfolio")
logger.setLevel(logging.INFO)

GITHUB_ACCOUNT = os.environ.get("GITHUB_ACCOUNT", "Cyrochrome")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Attach to uvicorn's handler (available now that uvicorn is running)
    uvicorn_logger = logging.getLogger("uvicorn")
    for h in uvicorn_logger.handlers:
        logger.addHandler(h)

    token = os.environ.get("GITHUB_TOKEN")
    app.state.github = GitHubClient(
        account=GITHUB_ACCOUNT,
        token=token,
        cache=TTLCache(),
        base_url=os.environ.get("GITHUB_API_URL", GH_API),
        timeout=float(os.environ.get("GITHUB_TIMEOUT", DEFAULT_TIMEOUT)),
    )
    if not token:
        logger.warning("GITHUB_TOKEN not set; using unauthenticated GitHub API rate limits")
    logger.info("Portfolio API serving GitHub account=%s", GITHUB_ACCOUNT)
    yield
    await app.state.github.aclose()


# Disable docs in production
docs_url = "/docs" if os.environ.get("ENV") == "dev" else None
redoc_url = "/redoc" if os.environ.get("ENV") == "dev" else None

app = FastAPI(
    title="Portfolio API", version="1.0.0",
    docs_url=docs_url, redoc_url=redoc_url, lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

PROJECT_TYPES = ("featured", "recent", "all", "dynamic")
SORT_KEYS = ("stars", "updated", "created", "name")

REPO_NAME_RE = re.compile(r"^[A-Za-z0-9._-]{1,100}$")
OWNER_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,37}[a-zA-Z0-9])?$")


def get_github_client(request: Request) -> GitHubClient:
    return request.app.state.github


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump(items) -> list[dict]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


def _static_fallback() -> list[dict]:
    return _dump(projects.featured_projects(projects.STATIC_PROJECTS))


def _failure(status_code: int, error: str, message: str | None = None, fallback=None) -> JSONResponse:
    body = {"success": False, "error": error}
    if message:
        body["message"] = message
    if fallback is not None:
        body["fallback"] = fallback
    return JSONResponse(status_code=status_code, content=body)


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_repo_path(raw: str, default_owner: str) -> tuple[str, str] | None:
    """Split ``name`` or ``owner/name`` into (owner, name); None if malformed."""
    parts = raw.split("/")
    if len(parts) == 1:
        owner, name = default_owner, parts[0]
    elif len(parts) == 2:
        owner, name = parts
    else:
        return None
    if not OWNER_RE.match(owner) or not REPO_NAME_RE.match(name) or name in (".", ".."):
        return None
    return owner, name


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(str(err["loc"][-1]) for err in exc.errors())
    return _failure(400, "Invalid request parameters", message=f"Invalid value for: {fields}")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/projects")
async def list_projects(
    type: str = "featured",
    limit: int | None = Query(default=None, ge=1, le=100),
    min_stars: int = Query(default=0, ge=0, alias="minStars"),
    min_forks: int = Query(default=0, ge=0, alias="minForks"),
    max_age_days: int | None = Query(default=None, ge=0, alias="maxAgeDays"),
    topics: str = "",
    exclude_topics: str = Query(default="", alias="excludeTopics"),
    exclude_forks: bool = Query(default=False, alias="excludeForks"),
    include_archived: bool = Query(
        default=False, alias="includeArchived",
        description="No effect: the repository listing already drops archived repositories.",
    ),
    sort_by: str = Query(default="stars", alias="sortBy"),
    order: str = "desc",
    client: GitHubClient = Depends(get_github_client),
):
    if type not in PROJECT_TYPES:
        return _failure(400, "Invalid project type",
                        message=f"type must be one of: {', '.join(PROJECT_TYPES)}",
                        fallback=_static_fallback())
    if sort_by not in SORT_KEYS or order not in ("asc", "desc"):
        return _failure(400, "Invalid sort parameters",
                        message=f"sortBy must be one of: {', '.join(SORT_KEYS)}; order must be asc or desc",
                        fallback=_static_fallback())

    try:
        if type == "featured":
            entries = await projects.get_catalog(client, client.account, featured_only=True)
        elif type == "all":
            entries = await projects.get_catalog(client, client.account, featured_only=False)
        elif type == "recent":
            entries = await projects.get_recent_projects(client, client.account, limit or projects.RECENT_LIMIT)
        else:
            filters = ProjectFilters(
                min_stars=min_stars,
                min_forks=min_forks,
                max_age_days=max_age_days,
                topics=_split_csv(topics),
                exclude_topics=_split_csv(exclude_topics),
                exclude_forks=exclude_forks,
                exclude_archived=not include_archived,
                limit=limit,
                sort_by=sort_by,
                order=order,
            )
            entries = await projects.get_live_catalog(client, client.account, filters)
        if limit:
            entries = entries[:limit]
    except Exception as e:
        logger.exception("projects PIPELINE_ERROR type=%s", type)
        return _failure(500, "Failed to fetch projects data", message=str(e) or e.__class__.__name__,
                        fallback=_static_fallback())

    return {
        "success": True,
        "data": _dump(entries),
        "type": type,
        "count": len(entries),
        "timestamp": _timestamp(),
    }


@app.get("/api/projects/{project_id}")
async def get_project(project_id: str, client: GitHubClient = Depends(get_github_client)):
    try:
        entry = await projects.get_project(client, client.account, project_id)
    except Exception:
        logger.exception("projects PIPELINE_ERROR id=%s", project_id)
        return _failure(500, "Failed to fetch project data")

    if entry is None:
        return _failure(404, "Project not found")
    return {"success": True, "data": entry.model_dump(mode="json", by_alias=True)}


@app.get("/api/github/stats")
async def github_stats(client: GitHubClient = Depends(get_github_client)):
    try:
        stats = await get_account_stats(client, client.account)
    except Exception:
        logger.exception("github STATS_ERROR account=%s", client.account)
        return _failure(500, "Failed to fetch GitHub statistics")

    return {"success": True, "data": stats.model_dump(mode="json", by_alias=True)}


_LOOKUP_FAILURES = {
    LookupFailure.RATE_LIMITED: (429, "GitHub API rate limit exceeded"),
    LookupFailure.NETWORK: (503, "GitHub API unavailable"),
}


@app.get("/api/github/repos/{repo:path}")
async def github_repo(repo: str, client: GitHubClient = Depends(get_github_client)):
    if not repo.strip():
        return _failure(400, "Repository name is required")
    parsed = _parse_repo_path(repo, client.account)
    if parsed is None:
        return _failure(400, "Invalid repository name")
    owner, name = parsed

    try:
        lookup = await lookup_repository_stats(client, owner, name)
    except Exception:
        logger.exception("github REPO_ERROR repo=%s/%s", owner, name)
        return _failure(500, "Failed to fetch repository data")

    if lookup.stats is None:
        status_code, error = _LOOKUP_FAILURES.get(
            lookup.failure, (404, "Repository not found or inaccessible"),
        )
        return _failure(status_code, error)

    return {"success": True, "data": lookup.stats.model_dump(mode="json", by_alias=True)}
