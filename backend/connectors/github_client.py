"""HTTP client for the GitHub REST API.

Attaches the optional bearer token, maps transport and HTTP failures onto the
error taxonomy in ``connectors.errors``, validates payloads against pydantic
schemas and answers repeated calls from an injected TTL cache.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from cache import TTLCache

from .errors import ClientError, NetworkError, NotFound, RateLimited, ServerError, UpstreamError

logger = logging.getLogger("portfolio.github")

GH_API = "https://api.github.com"
DEFAULT_TIMEOUT = 10  # seconds
# Status reported for 2xx bodies that fail to decode or validate.
INVALID_PAYLOAD_STATUS = 422


def _normalize_params(params: dict | None) -> tuple:
    if not params:
        return ()
    return tuple(sorted((str(k), str(v)) for k, v in params.items() if v is not None))


def _rate_limit_reset(headers: httpx.Headers) -> datetime | None:
    raw = headers.get("x-ratelimit-reset")
    if not raw:
        return None
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _error_for_response(resp: httpx.Response, endpoint: str) -> UpstreamError:
    status = resp.status_code
    if status == 429 or (status == 403 and resp.headers.get("x-ratelimit-remaining") == "0"):
        return RateLimited(_rate_limit_reset(resp.headers))
    if status == 404:
        return NotFound(endpoint)
    if status >= 500:
        return ServerError(status)
    try:
        message = resp.json().get("message") or f"HTTP {status} error"
    except (ValueError, AttributeError):
        message = f"HTTP {status} error"
    return ClientError(status, message)


class GitHubClient:
    """Thin async wrapper around one GitHub account's view of the REST API."""

    def __init__(
        self,
        account: str,
        token: str | None = None,
        cache: TTLCache | None = None,
        base_url: str = GH_API,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = 1,
        backoff_seconds: float = 0.5,
    ):
        self.account = account
        self.cache = cache if cache is not None else TTLCache()
        self.max_retries = max(0, max_retries)
        self.backoff_seconds = backoff_seconds

        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self):
        await self._http.aclose()

    def user_endpoint(self, path: str = "", account: str | None = None) -> str:
        return f"/users/{account or self.account}{path}"

    def repo_endpoint(self, name: str, path: str = "", account: str | None = None) -> str:
        return f"/repos/{account or self.account}/{name}{path}"

    async def request(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        params: dict | None = None,
        body: dict | None = None,
        cache_ttl: float = 0,
        schema: Any = None,
    ):
        """Issue one API call and return decoded (and validated) JSON.

        GET responses are cached for ``cache_ttl`` seconds under
        ``(account, endpoint, normalized params)``. Raises an
        ``UpstreamError`` subclass on any failure.
        """
        cacheable = method == "GET" and cache_ttl > 0
        key = (self.account, endpoint, _normalize_params(params))
        if cacheable:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        resp = await self._send(method, endpoint, params, body)

        try:
            data = resp.json()
        except ValueError:
            raise ClientError(INVALID_PAYLOAD_STATUS, "Response body is not valid JSON")
        if schema is not None:
            try:
                data = TypeAdapter(schema).validate_python(data)
            except ValidationError as exc:
                logger.warning("github SCHEMA_MISMATCH endpoint=%s errors=%d", endpoint, exc.error_count())
                raise ClientError(INVALID_PAYLOAD_STATUS, f"Unexpected response shape from {endpoint}")

        if cacheable:
            self.cache.set(key, data, ttl=cache_ttl)
        return data

    async def _send(self, method: str, endpoint: str, params: dict | None, body: dict | None) -> httpx.Response:
        """Send, retrying server and network errors on GET up to ``max_retries``."""
        attempt = 0
        while True:
            try:
                resp = await self._http.request(method, endpoint, params=params, json=body)
            except httpx.RequestError as exc:
                error: UpstreamError = NetworkError(f"{type(exc).__name__} calling {endpoint}")
            else:
                if resp.is_success:
                    return resp
                error = _error_for_response(resp, endpoint)

            retryable = method == "GET" and isinstance(error, (ServerError, NetworkError))
            if not retryable or attempt >= self.max_retries:
                raise error
            attempt += 1
            logger.info("github RETRY endpoint=%s attempt=%d kind=%s", endpoint, attempt, error.kind)
            await asyncio.sleep(self.backoff_seconds * attempt)
