from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Callable

import httpx
import pytest

from cache import TTLCache
from connectors.github_client import GitHubClient

ACCOUNT = "octo"
BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

_ids = count(1)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def repo_payload(name: str, *, repo_id: int | None = None, stars: int = 0, forks: int = 0,
                 updated_days_ago: int = 0, created_days_ago: int = 365, **extra) -> dict:
    payload = {
        "id": repo_id if repo_id is not None else next(_ids),
        "name": name,
        "full_name": f"{ACCOUNT}/{name}",
        "owner": {"login": ACCOUNT, "id": 1},
        "description": f"{name} description",
        "html_url": f"https://github.com/{ACCOUNT}/{name}",
        "language": "Python",
        "stargazers_count": stars,
        "watchers_count": stars,
        "forks_count": forks,
        "open_issues_count": 0,
        "size": 100,
        "default_branch": "main",
        "topics": [],
        "created_at": iso(BASE_TIME - timedelta(days=created_days_ago)),
        "updated_at": iso(BASE_TIME - timedelta(days=updated_days_ago)),
        "pushed_at": iso(BASE_TIME - timedelta(days=updated_days_ago)),
        "archived": False,
        "disabled": False,
        "fork": False,
    }
    payload.update(extra)
    return payload


def commit_payload(sha: str, *, hours_ago: int = 0, message: str = "Update") -> dict:
    date = iso(BASE_TIME - timedelta(hours=hours_ago))
    return {
        "sha": sha,
        "commit": {
            "author": {"name": "Octo Cat", "email": "octo@example.com", "date": date},
            "committer": {"name": "Octo Cat", "email": "octo@example.com", "date": date},
            "message": message,
        },
        "html_url": f"https://github.com/{ACCOUNT}/repo/commit/{sha}",
        "author": {"login": ACCOUNT, "id": 1},
        "committer": None,
        "parents": [{"sha": f"{sha}-parent"}],
    }


def routes_transport(routes: dict[str, Callable | httpx.Response], calls: list | None = None) -> httpx.MockTransport:
    """Route requests on URL path. Values are responses or ``request -> response`` callables.

    Unknown paths get a 404, like the real API.
    """

    async def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if callable(route):
            result = route(request)
            if hasattr(result, "__await__"):
                result = await result
            return result
        # Fresh copy so one canned response can answer repeated requests.
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)

    return httpx.MockTransport(handler)


@pytest.fixture
def make_client():
    def _make(transport: httpx.MockTransport, **kwargs) -> GitHubClient:
        kwargs.setdefault("cache", TTLCache())
        kwargs.setdefault("max_retries", 0)
        return GitHubClient(account=ACCOUNT, token="test", transport=transport, **kwargs)

    return _make
