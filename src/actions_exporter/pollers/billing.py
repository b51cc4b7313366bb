"""Actions billing poller."""

import structlog

from actions_exporter.config import ExporterSettings
from actions_exporter.github import ActionsBilling, GitHubAPIError, GitHubClient
from actions_exporter.metrics import BillingObserver
from actions_exporter.pollers.base import PeriodicPoller, PollerConfigError

logger = structlog.get_logger(__name__)


class BillingMetricsPoller(PeriodicPoller):
    """Publishes the Actions billing summary of the configured org and user.

    Either account may be configured on its own; when both are, both are
    polled each cycle and a failure for one does not skip the other.
    """

    name = "billing"

    def __init__(
        self,
        settings: ExporterSettings,
        client: GitHubClient,
        observer: BillingObserver,
    ):
        super().__init__(settings, client, settings.billing_poll_seconds)
        self.observer = observer

    def validate(self) -> None:
        if not self.settings.github_org and not self.settings.github_user:
            raise PollerConfigError("github org or user not configured")
        if not self.settings.github_api_token:
            raise PollerConfigError("github token not configured")

    async def collect(self) -> None:
        org = self.settings.github_org
        user = self.settings.github_user

        if org:
            try:
                billing = await self.client.get_actions_billing_org(org)
            except GitHubAPIError as e:
                logger.error(
                    "Failed to retrieve the actions billing for an org",
                    org=org,
                    error=str(e),
                )
            else:
                self._publish(billing, org=org, user="")

        if user:
            try:
                billing = await self.client.get_actions_billing_user(user)
            except GitHubAPIError as e:
                logger.error(
                    "Failed to retrieve the actions billing for a user",
                    user=user,
                    error=str(e),
                )
            else:
                self._publish(billing, org="", user=user)

    def _publish(self, billing: ActionsBilling, org: str, user: str) -> None:
        self.observer.set_billing(
            org=org,
            user=user,
            total_minutes_used=billing.total_minutes_used,
            included_minutes=billing.included_minutes,
            total_paid_minutes_used=billing.total_paid_minutes_used,
            minutes_used_breakdown=billing.minutes_used_breakdown,
        )
