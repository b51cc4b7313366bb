"""Self-hosted runner pool poller."""

from typing import Dict, List

import structlog

from actions_exporter.config import ExporterSettings
from actions_exporter.github import GitHubAPIError, GitHubClient, Runner
from actions_exporter.metrics import RunnersObserver
from actions_exporter.pollers.base import PeriodicPoller

logger = structlog.get_logger(__name__)


class RunnersMetricsPoller(PeriodicPoller):
    """Counts registered runners per runner group, busy flag and status.

    Enterprise runners, when an enterprise is configured, are filed under
    a group named after the enterprise since the API does not tie them to
    their real runner group.
    """

    name = "runners"

    def __init__(
        self,
        settings: ExporterSettings,
        client: GitHubClient,
        observer: RunnersObserver,
    ):
        super().__init__(settings, client, settings.runners_poll_seconds)
        self.observer = observer

    async def collect(self) -> None:
        # Reset first so that label combinations absent from this snapshot
        # (or every combination, if the API fails) stop reporting old values
        self.observer.reset_registered_runners()

        org = self.settings.github_org
        enterprise = self.settings.github_enterprise
        all_runners: Dict[str, List[Runner]] = {}

        try:
            groups = await self.client.list_organization_runner_groups(org)
        except GitHubAPIError as e:
            logger.error("Unable to retrieve runner groups", org=org, error=str(e))
            return

        for group in groups:
            try:
                all_runners[group.name] = await self.client.list_group_runners(
                    org, group.id
                )
            except GitHubAPIError as e:
                logger.error(
                    "Unable to retrieve organisation runners",
                    org=org,
                    runner_group=group.name,
                    error=str(e),
                )
                return

        if enterprise:
            try:
                all_runners[enterprise] = await self.client.list_enterprise_runners(
                    enterprise
                )
            except GitHubAPIError as e:
                logger.error(
                    "Unable to retrieve enterprise runners",
                    enterprise=enterprise,
                    error=str(e),
                )
                return

        for runner_group, runners in all_runners.items():
            for runner in runners:
                self.observer.increase_registered_runners(
                    runner.busy, runner.status, runner_group
                )

        logger.debug(
            "Collected runner metrics",
            groups=len(all_runners),
            runners=sum(len(runners) for runners in all_runners.values()),
        )
