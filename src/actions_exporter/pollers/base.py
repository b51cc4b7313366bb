"""Fixed-interval GitHub API polling."""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from actions_exporter.config import ExporterSettings
from actions_exporter.github import GitHubAPIError, GitHubClient

logger = structlog.get_logger(__name__)


class PollerConfigError(Exception):
    """Raised by start() when the poller lacks the configuration it needs."""


class PeriodicPoller(ABC):
    """Runs collect() every ``interval`` seconds on an asyncio task.

    The first collection happens one interval after start(). A failing
    collection is logged and the loop carries on with the next tick.

    Attributes:
        name: Short name used in logs.
        settings: Exporter settings.
        client: GitHub API client.
        interval: Seconds between collections.
    """

    name = "poller"

    def __init__(
        self,
        settings: ExporterSettings,
        client: GitHubClient,
        interval: float,
    ):
        self.settings = settings
        self.client = client
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def validate(self) -> None:
        """Check the configuration the poller depends on.

        Raises:
            PollerConfigError: A required setting is missing.
        """
        if not self.settings.github_org:
            raise PollerConfigError("github org not configured")
        if not self.settings.github_api_token:
            raise PollerConfigError("github token not configured")

    @abstractmethod
    async def collect(self) -> None:
        """Query GitHub once and publish the result."""

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Validate configuration and start polling.

        Raises:
            PollerConfigError: A required setting is missing.
        """
        self.validate()
        if self.running:
            return
        self._task = asyncio.create_task(self._poll_forever())
        logger.info("Started polling", poller=self.name, interval=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped polling", poller=self.name)

    async def collect_safely(self) -> None:
        """Run one collection, logging instead of raising on failure."""
        try:
            await self.collect()
        except GitHubAPIError as e:
            logger.error(
                "GitHub API call failed",
                poller=self.name,
                error=str(e),
                status_code=e.status_code,
            )
        except Exception:
            logger.exception("Collection failed", poller=self.name)

    async def _poll_forever(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.collect_safely()
