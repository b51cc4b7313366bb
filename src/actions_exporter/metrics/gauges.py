"""Prometheus gauges fed by the GitHub API pollers.

Metrics Defined:
- actions_total_minutes_used_minutes: Total Actions minutes used
- actions_included_minutes: Minutes included in the plan
- actions_total_paid_minutes: Paid Actions minutes
- actions_total_minutes_used_by_host_minutes: Minutes used per host type
- runners_registered_total: Self-hosted runners by group, busy flag and status
- workflow_queue_size: Workflow runs currently queued for a repository

Billing gauges carry both ``org`` and ``user`` labels; exactly one of them
is populated depending on which account was polled.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Gauge


class BillingObserver:
    """Gauges describing GitHub Actions billing for an org or user."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.total_minutes_used = Gauge(
            "actions_total_minutes_used_minutes",
            "Total minutes used for the GitHub Actions.",
            labelnames=["org", "user"],
            registry=self.registry,
        )
        self.included_minutes = Gauge(
            "actions_included_minutes",
            "Included Minutes for the GitHub Actions.",
            labelnames=["org", "user"],
            registry=self.registry,
        )
        self.total_paid_minutes = Gauge(
            "actions_total_paid_minutes",
            "Paid Minutes for the GitHub Actions.",
            labelnames=["org", "user"],
            registry=self.registry,
        )
        self.minutes_used_by_host = Gauge(
            "actions_total_minutes_used_by_host_minutes",
            "Total minutes used for a specific host type for the GitHub Actions.",
            labelnames=["org", "user", "host_type"],
            registry=self.registry,
        )

    def set_billing(
        self,
        org: str,
        user: str,
        total_minutes_used: float,
        included_minutes: float,
        total_paid_minutes_used: float,
        minutes_used_breakdown: Mapping[str, float],
    ) -> None:
        """Publish one billing snapshot.

        Args:
            org: Organization login, or "" for a user account.
            user: User login, or "" for an organization.
            total_minutes_used: Minutes consumed in the billing cycle.
            included_minutes: Minutes included in the plan.
            total_paid_minutes_used: Minutes billed beyond the plan.
            minutes_used_breakdown: Minutes per host type (UBUNTU, MACOS, ...).
        """
        self.total_minutes_used.labels(org=org, user=user).set(total_minutes_used)
        self.included_minutes.labels(org=org, user=user).set(included_minutes)
        self.total_paid_minutes.labels(org=org, user=user).set(
            total_paid_minutes_used
        )
        for host_type, minutes in minutes_used_breakdown.items():
            self.minutes_used_by_host.labels(
                org=org, user=user, host_type=host_type
            ).set(minutes)


class RunnersObserver(ABC):
    """Sink for the self-hosted runner pool snapshot."""

    @abstractmethod
    def reset_registered_runners(self) -> None:
        """Drop every previously published runner count."""

    @abstractmethod
    def increase_registered_runners(
        self, busy: bool, status: str, runner_group: str
    ) -> None:
        """Count one registered runner."""


class PrometheusRunnersObserver(RunnersObserver):
    """RunnersObserver backed by the ``runners_registered_total`` gauge."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY
        self.registered_runners = Gauge(
            "runners_registered_total",
            "Number of self-hosted runners registered, by group, busy flag and status.",
            labelnames=["runner_group", "busy", "status"],
            registry=self.registry,
        )

    def reset_registered_runners(self) -> None:
        # clear() removes label combinations, so a group with no busy
        # runners stops reporting its last busy count
        self.registered_runners.clear()

    def increase_registered_runners(
        self, busy: bool, status: str, runner_group: str
    ) -> None:
        self.registered_runners.labels(
            runner_group=runner_group,
            busy=str(busy).lower(),
            status=status,
        ).inc()


class WorkflowQueueObserver:
    """Gauge holding the number of queued workflow runs per repository."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY
        self.queue_size = Gauge(
            "workflow_queue_size",
            "Number of workflow runs waiting in the queue.",
            labelnames=["org", "repo"],
            registry=self.registry,
        )

    def set_queue_size(self, org: str, repo: str, size: int) -> None:
        self.queue_size.labels(org=org, repo=repo).set(size)
