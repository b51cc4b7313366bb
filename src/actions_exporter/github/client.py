"""GitHub REST API client for the exporter's pollers.

This module provides an async wrapper around the GitHub API for:
- Actions billing of an organization or a user
- Self-hosted runner groups and their runners
- Enterprise-level self-hosted runners
- The number of queued workflow runs of a repository

Includes rate limiting, retry logic and ``Link`` header pagination.
"""

import asyncio
import random
import time
from typing import Any, Dict, List, Optional

import httpx
import structlog

from actions_exporter import __version__
from actions_exporter.github.models import ActionsBilling, Runner, RunnerGroup

logger = structlog.get_logger(__name__)

PAGE_SIZE = 100


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GitHubClient:
    """Async GitHub API client with rate limiting and retry logic.

    Attributes:
        token: GitHub API token (PAT or GitHub App token).
        base_url: Base URL for GitHub API (default: https://api.github.com).
        max_retries: Maximum number of retry attempts for transient failures.
        base_delay: Base delay in seconds for exponential backoff.
        max_delay: Maximum delay in seconds between retries.
        timeout: Request timeout in seconds.

    Example:
        >>> client = GitHubClient(token="ghp_xxx")
        >>> async with client:
        ...     billing = await client.get_actions_billing_org("my-org")
    """

    # HTTP status codes that should trigger a retry
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            base_url: Base URL for GitHub API. Use this to support
                      GitHub Enterprise Server endpoints.
            max_retries: Maximum number of retry attempts.
            base_delay: Base delay in seconds for exponential backoff.
            max_delay: Maximum delay in seconds between retries.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, e.g. httpx.MockTransport.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": f"github-actions-exporter/{__version__}",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff with full jitter.

        Args:
            attempt: The current retry attempt (0-indexed).

        Returns:
            Delay in seconds before the next retry.
        """
        exponential_delay = self.base_delay * (2**attempt)
        capped_delay = min(exponential_delay, self.max_delay)
        return random.uniform(0, capped_delay)

    @staticmethod
    def _parse_int_header(headers: httpx.Headers, name: str) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    def _raise_rate_limited(self, response: httpx.Response) -> None:
        """Raise RateLimitError with the reset information of a response.

        Raises:
            RateLimitError: Always.
        """
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            reset_at=reset_at,
            retry_after=retry_after,
            limit=self._parse_int_header(response.headers, "x-ratelimit-limit"),
            used=self._parse_int_header(response.headers, "x-ratelimit-used"),
        )

        raise RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
            request_url=str(response.request.url),
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make an HTTP request with retry logic.

        Args:
            method: HTTP method.
            path: API path or an absolute URL (pagination links).
            params: Optional query parameters.

        Returns:
            The HTTP response from GitHub.

        Raises:
            GitHubAPIError: If the request fails after all retries.
            RateLimitError: If rate limit is exceeded.
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(method, path, params=params)
            except httpx.RequestError as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        "Request error, retrying",
                        error=str(e),
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        delay=delay,
                        path=path,
                    )
                    await asyncio.sleep(delay)
                continue

            if response.status_code == 403:
                remaining = self._parse_int_header(
                    response.headers, "x-ratelimit-remaining"
                )
                if remaining == 0:
                    self._raise_rate_limited(response)

            if response.status_code in self.RETRYABLE_STATUS_CODES:
                if attempt < self.max_retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        "Retryable error from GitHub API",
                        status_code=response.status_code,
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        delay=delay,
                        path=path,
                    )
                    await asyncio.sleep(delay)
                    continue
                if response.status_code == 429:
                    self._raise_rate_limited(response)

            if response.status_code >= 400:
                error_body = response.text
                logger.error(
                    "GitHub API error",
                    status_code=response.status_code,
                    path=path,
                    method=method,
                    response_body=error_body[:500],
                )
                raise GitHubAPIError(
                    message=f"GitHub API error: {response.status_code}",
                    status_code=response.status_code,
                    response_body=error_body,
                    request_url=str(response.url),
                )

            return response

        logger.error(
            "GitHub API request failed after all retries",
            path=path,
            method=method,
            max_retries=self.max_retries,
            last_error=str(last_exception),
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {last_exception}",
            request_url=f"{self.base_url}{path}",
        )

    async def _paginate(self, path: str, item_key: str) -> List[Dict[str, Any]]:
        """Collect every item of a list endpoint.

        Follows the ``Link: <...>; rel="next"`` header until the last page.

        Args:
            path: API path of the first page.
            item_key: Key of the item array in each page body.

        Returns:
            Items of every page, in order.
        """
        items: List[Dict[str, Any]] = []
        url: Optional[str] = path
        params: Optional[Dict[str, Any]] = {"per_page": PAGE_SIZE}

        while url is not None:
            response = await self._request("GET", url, params=params)
            items.extend(response.json().get(item_key, []))
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string
            params = None

        return items

    async def get_actions_billing_org(self, org: str) -> ActionsBilling:
        """Get the Actions billing summary of an organization."""
        response = await self._request(
            "GET", f"/orgs/{org}/settings/billing/actions"
        )
        return ActionsBilling.model_validate(response.json())

    async def get_actions_billing_user(self, user: str) -> ActionsBilling:
        """Get the Actions billing summary of a user."""
        response = await self._request(
            "GET", f"/users/{user}/settings/billing/actions"
        )
        return ActionsBilling.model_validate(response.json())

    async def list_organization_runner_groups(self, org: str) -> List[RunnerGroup]:
        """List every self-hosted runner group of an organization."""
        logger.debug("Listing runner groups", org=org)
        items = await self._paginate(
            f"/orgs/{org}/actions/runner-groups", "runner_groups"
        )
        return [RunnerGroup.model_validate(item) for item in items]

    async def list_group_runners(self, org: str, group_id: int) -> List[Runner]:
        """List the runners registered in an organization runner group."""
        items = await self._paginate(
            f"/orgs/{org}/actions/runner-groups/{group_id}/runners", "runners"
        )
        return [Runner.model_validate(item) for item in items]

    async def list_enterprise_runners(self, enterprise: str) -> List[Runner]:
        """List the runners registered at enterprise level.

        Requires a token with the ``manage_runners:enterprise`` scope.
        """
        items = await self._paginate(
            f"/enterprises/{enterprise}/actions/runners", "runners"
        )
        return [Runner.model_validate(item) for item in items]

    async def count_queued_workflow_runs(self, owner: str, repo: str) -> int:
        """Number of workflow runs of a repository waiting in the queue."""
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/actions/runs",
            params={"status": "queued", "per_page": 1},
        )
        return int(response.json().get("total_count", 0))
