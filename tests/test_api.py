import httpx
import pytest
import pytest_asyncio

import main
import projects
from models import ProjectEntry

from conftest import commit_payload, repo_payload, routes_transport


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest_asyncio.fixture
async def api(make_client):
    """Build an HTTP client for the app backed by a stubbed GitHub API."""
    opened = []

    async def _api(routes: dict) -> httpx.AsyncClient:
        github = make_client(routes_transport(routes))
        main.app.dependency_overrides[main.get_github_client] = lambda: github
        http = httpx.AsyncClient(transport=httpx.ASGITransport(app=main.app), base_url="http://test")
        opened.extend([github, http])
        return http

    yield _api
    main.app.dependency_overrides.clear()
    for client in opened:
        await client.aclose()


@pytest.mark.asyncio
async def test_health(api) -> None:
    http = await api({})

    resp = await http.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["x-content-type-options"] == "nosniff"


@pytest.mark.asyncio
async def test_dynamic_projects_sorted_by_stars(api) -> None:
    listing = [repo_payload("five", stars=5), repo_payload("zero", stars=0), repo_payload("ten", stars=10)]
    http = await api({"/users/octo/repos": httpx.Response(200, json=listing)})

    resp = await http.get("/api/projects", params={"type": "dynamic", "sortBy": "stars"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["type"] == "dynamic"
    assert body["count"] == 3
    assert "timestamp" in body
    assert [p["githubData"]["stars"] for p in body["data"]] == [10, 5, 0]
    assert [p["priority"] for p in body["data"]] == [1, 2, 3]


@pytest.mark.asyncio
async def test_dynamic_projects_query_filters(api) -> None:
    listing = [
        repo_payload("mine", stars=3),
        repo_payload("forked", stars=8, fork=True),
        repo_payload("tiny", stars=1),
    ]
    http = await api({"/users/octo/repos": httpx.Response(200, json=listing)})

    resp = await http.get("/api/projects", params={
        "type": "dynamic", "minStars": 2, "excludeForks": "true", "limit": 5,
    })

    assert [p["id"] for p in resp.json()["data"]] == ["mine"]


@pytest.mark.asyncio
async def test_recent_projects_sorted_by_update_time(api) -> None:
    listing = [repo_payload(f"r{i}", updated_days_ago=i) for i in (3, 1, 2)]
    http = await api({"/users/octo/repos": httpx.Response(200, json=listing)})

    resp = await http.get("/api/projects", params={"type": "recent", "limit": 2})

    body = resp.json()
    assert body["type"] == "recent"
    assert [p["id"] for p in body["data"]] == ["r1", "r2"]


@pytest.mark.asyncio
async def test_featured_projects_embed_live_stats(api, monkeypatch) -> None:
    static = [
        ProjectEntry(id="alpha", title="Alpha", featured=True, priority=1,
                     github_url="https://github.com/octo/Alpha"),
        ProjectEntry(id="beta", title="Beta", featured=True, priority=2,
                     github_url="https://github.com/octo/beta"),
        ProjectEntry(id="gamma", title="Gamma", featured=True, priority=3),
    ]
    monkeypatch.setattr(projects, "STATIC_PROJECTS", static)
    http = await api({
        "/users/octo/repos": httpx.Response(200, json=[repo_payload("alpha", stars=20)]),
        "/repos/octo/alpha": httpx.Response(200, json=repo_payload("alpha", stars=20)),
        "/repos/octo/alpha/languages": httpx.Response(200, json={"Python": 90, "HTML": 10}),
        "/repos/octo/alpha/commits": httpx.Response(200, json=[commit_payload("c1")]),
    })

    resp = await http.get("/api/projects", params={"type": "featured"})

    body = resp.json()
    assert resp.status_code == 200
    assert body["count"] == 3
    alpha, beta, gamma = body["data"]
    assert alpha["githubData"]["stars"] == 20
    assert alpha["githubData"]["language"] == "Python"
    assert alpha["githubData"]["recentCommits"][0]["sha"] == "c1"
    assert beta == static[1].model_dump(mode="json", by_alias=True)
    assert gamma == static[2].model_dump(mode="json", by_alias=True)


@pytest.mark.asyncio
async def test_featured_projects_static_when_github_unreachable(api) -> None:
    http = await api({"/users/octo/repos": _refuse})

    resp = await http.get("/api/projects")

    body = resp.json()
    assert resp.status_code == 200
    assert body["type"] == "featured"
    assert [p["id"] for p in body["data"]] == [
        p.id for p in projects.featured_projects(projects.STATIC_PROJECTS)
    ]


@pytest.mark.asyncio
async def test_unknown_project_type_is_rejected_with_fallback(api) -> None:
    http = await api({})

    resp = await http.get("/api/projects", params={"type": "popular"})

    body = resp.json()
    assert resp.status_code == 400
    assert body["success"] is False
    assert body["error"] == "Invalid project type"
    assert len(body["fallback"]) == len(projects.featured_projects(projects.STATIC_PROJECTS))


@pytest.mark.asyncio
async def test_invalid_query_value_uses_failure_envelope(api) -> None:
    http = await api({})

    resp = await http.get("/api/projects", params={"limit": 0})

    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_projects_pipeline_error_returns_static_fallback(api, monkeypatch) -> None:
    async def boom(*args, **kwargs):
        raise RuntimeError("catalog exploded")

    monkeypatch.setattr(projects, "get_catalog", boom)
    http = await api({})

    resp = await http.get("/api/projects")

    body = resp.json()
    assert resp.status_code == 500
    assert body["success"] is False
    assert body["message"] == "catalog exploded"
    assert body["fallback"]


@pytest.mark.asyncio
async def test_single_project_by_id(api) -> None:
    http = await api({})

    found = await http.get("/api/projects/bimbel-alfa")
    missing = await http.get("/api/projects/nope")

    assert found.status_code == 200
    assert found.json()["data"]["id"] == "bimbel-alfa"
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "Project not found"}


@pytest.mark.asyncio
async def test_stats_zero_state_when_github_unreachable(api) -> None:
    http = await api({"/users/octo/repos": _refuse})

    resp = await http.get("/api/github/stats")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["totalRepositories"] == 0
    assert data["totalStars"] == 0
    assert data["mostUsedLanguages"] == []
    assert data["recentActivity"] == []


@pytest.mark.asyncio
async def test_stats_unexpected_error_returns_500(api, monkeypatch) -> None:
    async def boom(*args, **kwargs):
        raise RuntimeError("bug")

    monkeypatch.setattr(main, "get_account_stats", boom)
    http = await api({})

    resp = await http.get("/api/github/stats")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to fetch GitHub statistics"}


@pytest.mark.asyncio
async def test_repo_stats_success(api) -> None:
    http = await api({
        "/repos/octo/app": httpx.Response(200, json=repo_payload("app", stars=4)),
        "/repos/octo/app/languages": httpx.Response(200, json={"Go": 500, "TS": 1500}),
        "/repos/octo/app/commits": httpx.Response(200, json=[commit_payload("c1")]),
    })

    resp = await http.get("/api/github/repos/app")

    body = resp.json()
    assert resp.status_code == 200
    assert body["success"] is True
    assert body["data"]["stars"] == 4
    assert body["data"]["language"] == "TS"
    assert body["data"]["recentCommits"][0]["commit"]["message"] == "Update"


@pytest.mark.asyncio
async def test_repo_stats_accepts_owner_and_name(api) -> None:
    http = await api({"/repos/someone/lib": httpx.Response(200, json=repo_payload("lib"))})

    resp = await http.get("/api/github/repos/someone/lib")

    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_repo_stats_not_found(api) -> None:
    http = await api({})

    resp = await http.get("/api/github/repos/ghost")

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Repository not found or inaccessible"}


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/github/repos/", "/api/github/repos/a/b/c", "/api/github/repos/bad%20name"])
async def test_repo_stats_rejects_malformed_names(api, path) -> None:
    http = await api({})

    resp = await http.get(path)

    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_repo_stats_rate_limited(api) -> None:
    http = await api({"/repos/octo/app": httpx.Response(403, headers={"x-ratelimit-remaining": "0"}, json={})})

    resp = await http.get("/api/github/repos/app")

    assert resp.status_code == 429
    assert resp.json()["error"] == "GitHub API rate limit exceeded"


@pytest.mark.asyncio
async def test_repo_stats_network_failure(api) -> None:
    http = await api({"/repos/octo/app": _refuse})

    resp = await http.get("/api/github/repos/app")

    assert resp.status_code == 503
    assert resp.json()["success"] is False


def test_include_archived_is_documented_as_no_op() -> None:
    params = main.app.openapi()["paths"]["/api/projects"]["get"]["parameters"]
    include_archived = next(p for p in params if p["name"] == "includeArchived")

    assert "No effect" in include_archived["description"]
