"""GitHub REST API access for the pollers."""

from actions_exporter.github.client import GitHubAPIError, GitHubClient, RateLimitError
from actions_exporter.github.models import ActionsBilling, Runner, RunnerGroup, RunnerLabel

__all__ = [
    "ActionsBilling",
    "GitHubAPIError",
    "GitHubClient",
    "RateLimitError",
    "Runner",
    "RunnerGroup",
    "RunnerLabel",
]
