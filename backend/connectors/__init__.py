"""Connectors for the upstream GitHub REST API."""

from .github_client import GitHubClient
from .github_connector import get_commits, get_languages, get_repository, list_repositories

__all__ = [
    "GitHubClient", "list_repositories", "get_repository",
    "get_languages", "get_commits",
]
