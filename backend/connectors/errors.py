"""Error taxonomy for upstream provider failures.

Only the GitHub client constructs these; everything above it converts them
into empty results.
"""

from datetime import datetime


class UpstreamError(Exception):
    """Base class for any failure talking to the upstream provider."""

    kind = "upstream"


class RateLimited(UpstreamError):
    kind = "rate_limited"

    def __init__(self, reset_at: datetime | None = None):
        self.reset_at = reset_at
        suffix = f" (resets at {reset_at.isoformat()})" if reset_at else ""
        super().__init__(f"GitHub API rate limit exceeded{suffix}")


class NotFound(UpstreamError):
    kind = "not_found"

    def __init__(self, endpoint: str = ""):
        self.endpoint = endpoint
        super().__init__(f"Resource not found: {endpoint}")


class ServerError(UpstreamError):
    kind = "server_error"

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"GitHub API server error (HTTP {status})")


class ClientError(UpstreamError):
    kind = "client_error"

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"HTTP {status}: {message}")


class NetworkError(UpstreamError):
    kind = "network"

    def __init__(self, message: str = "Network error - unable to connect to GitHub API"):
        super().__init__(message)
