"""Pydantic models for upstream GitHub payloads and API responses."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, NonNegativeInt
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


Timestamp = Annotated[datetime, AfterValidator(_as_utc)]

# Language name -> byte count. Empty means "unavailable", not zero usage.
LanguageBreakdown = dict[str, NonNegativeInt]


# ---------------------------------------------------------------------------
# Upstream shapes (GitHub field naming)
# ---------------------------------------------------------------------------

class GitHubModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Account(GitHubModel):
    login: str
    id: int | None = None
    avatar_url: str = ""
    html_url: str = ""
    type: str = "User"


class Repository(GitHubModel):
    id: int
    name: str
    full_name: str = ""
    owner: Account | None = None
    description: str | None = None
    html_url: str = ""
    homepage: str | None = None
    language: str | None = None
    stargazers_count: NonNegativeInt = 0
    watchers_count: NonNegativeInt = 0
    forks_count: NonNegativeInt = 0
    open_issues_count: NonNegativeInt = 0
    size: NonNegativeInt = 0
    default_branch: str = "main"
    topics: list[str] = Field(default_factory=list)
    created_at: Timestamp
    updated_at: Timestamp
    pushed_at: Timestamp | None = None
    archived: bool = False
    disabled: bool = False
    fork: bool = False


class GitIdentity(GitHubModel):
    name: str = ""
    email: str = ""
    date: Timestamp


class CommitDetail(GitHubModel):
    author: GitIdentity
    committer: GitIdentity | None = None
    message: str = ""


class ParentRef(GitHubModel):
    sha: str
    html_url: str = ""


class Commit(GitHubModel):
    sha: str
    commit: CommitDetail
    html_url: str = ""
    # Linked GitHub accounts; null when the git identity isn't verified.
    author: Account | None = None
    committer: Account | None = None
    parents: list[ParentRef] = Field(default_factory=list)

    @property
    def authored_at(self) -> datetime:
        return self.commit.author.date


# ---------------------------------------------------------------------------
# Derived views (camelCase on the wire)
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RepositoryStats(CamelModel):
    stars: int = 0
    forks: int = 0
    issues: int = 0
    watchers: int = 0
    size: int = 0
    language: str | None = None
    languages: LanguageBreakdown = Field(default_factory=dict)
    last_updated: Timestamp
    created_at: Timestamp
    recent_commits: list[Commit] = Field(default_factory=list)


class LanguageShare(CamelModel):
    language: str
    count: int
    percentage: float


class AccountStats(CamelModel):
    total_repositories: int = 0
    total_stars: int = 0
    total_forks: int = 0
    total_commits: int = 0
    most_used_languages: list[LanguageShare] = Field(default_factory=list)
    recent_activity: list[Commit] = Field(default_factory=list)
    repositories: list[Repository] = Field(default_factory=list)


class ProjectEntry(CamelModel):
    id: str
    title: str
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    github_url: str | None = None
    live_url: str | None = None
    featured: bool = False
    # Lower sorts first; None sorts after every entry that has one.
    priority: int | None = None
    engagement: int | None = None
    github_data: RepositoryStats | None = None


class LookupFailure(str, Enum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    UPSTREAM = "upstream"


class RepositoryLookup(BaseModel):
    stats: RepositoryStats | None = None
    failure: LookupFailure | None = None


SortKey = Literal["stars", "updated", "created", "name"]
SortOrder = Literal["asc", "desc"]


class ProjectFilters(BaseModel):
    """Knobs for building the live catalog from repository records."""

    min_stars: int = Field(default=0, ge=0)
    min_forks: int = Field(default=0, ge=0)
    max_age_days: int | None = Field(default=None, ge=0)
    topics: list[str] = Field(default_factory=list)
    exclude_topics: list[str] = Field(default_factory=list)
    exclude_forks: bool = False
    exclude_archived: bool = True
    limit: int | None = Field(default=None, ge=1, le=100)
    sort_by: SortKey = "stars"
    order: SortOrder = "desc"
