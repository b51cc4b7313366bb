"""Periodic GitHub API pollers."""

from actions_exporter.pollers.base import PeriodicPoller, PollerConfigError
from actions_exporter.pollers.billing import BillingMetricsPoller
from actions_exporter.pollers.runners import RunnersMetricsPoller
from actions_exporter.pollers.workflow_queue import WorkflowQueuePoller

__all__ = [
    "BillingMetricsPoller",
    "PeriodicPoller",
    "PollerConfigError",
    "RunnersMetricsPoller",
    "WorkflowQueuePoller",
]
