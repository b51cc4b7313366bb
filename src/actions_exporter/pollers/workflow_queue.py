"""Queued workflow runs poller."""

from typing import Tuple

from actions_exporter.config import ExporterSettings
from actions_exporter.github import GitHubClient
from actions_exporter.metrics import WorkflowQueueObserver
from actions_exporter.pollers.base import PeriodicPoller, PollerConfigError


class WorkflowQueuePoller(PeriodicPoller):
    """Publishes how many workflow runs of ``github_repo`` are queued.

    ``github_repo`` is either ``owner/name`` or a bare name owned by
    ``github_org``.
    """

    name = "workflow_queue"

    def __init__(
        self,
        settings: ExporterSettings,
        client: GitHubClient,
        observer: WorkflowQueueObserver,
    ):
        super().__init__(settings, client, settings.workflow_queue_poll_seconds)
        self.observer = observer

    def validate(self) -> None:
        if not self.settings.github_repo:
            raise PollerConfigError("github repo not configured")
        owner, name = self.repository()
        if not name:
            raise PollerConfigError("github repo not configured")
        if not owner:
            raise PollerConfigError("github org not configured")
        if not self.settings.github_api_token:
            raise PollerConfigError("github token not configured")

    def repository(self) -> Tuple[str, str]:
        owner, _, name = self.settings.github_repo.rpartition("/")
        return owner or self.settings.github_org, name

    async def collect(self) -> None:
        owner, repo = self.repository()
        size = await self.client.count_queued_workflow_runs(owner, repo)
        self.observer.set_queue_size(owner, repo, size)
