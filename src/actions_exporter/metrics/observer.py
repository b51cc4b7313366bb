"""Prometheus metrics for workflow jobs and runs.

This module defines the metric sink the lifecycle handlers write to. The
handlers only know the WorkflowObserver interface; PrometheusObserver is
the production implementation and tests substitute a recording double.

Metrics Defined:
- workflow_job_duration_seconds: Histogram of the time a job spent in a
  state (``queued`` for queue time, ``in_progress`` for run time)
- workflow_job_runtime_seconds_total: Counter of cumulative job run time
- workflow_job_status_count_total: Counter of job events by status/conclusion
- workflow_execution_time_seconds: Histogram of workflow run durations
- workflow_status_count_total: Counter of run events by status/conclusion
"""

from abc import ABC, abstractmethod
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

from actions_exporter import __version__

# Exponential buckets starting at 1s with factor 1.4, 30 buckets
# (roughly 1 second to 5 days)
DURATION_BUCKETS = tuple(1.4**i for i in range(30))

JOB_STATE_QUEUED = "queued"
JOB_STATE_IN_PROGRESS = "in_progress"

JOB_LABELS = (
    "org",
    "repo",
    "branch",
    "status",
    "conclusion",
    "runner_group",
    "workflow_name",
    "job_name",
)


class WorkflowObserver(ABC):
    """Capability the lifecycle handlers emit their results through.

    Implementations own aggregation and exposition. Every label argument is
    a plain string; callers pass "" for dimensions missing from the event.
    """

    @abstractmethod
    def observe_workflow_job_duration(
        self,
        org: str,
        repo: str,
        runner_group: str,
        seconds: float,
        workflow_name: str = "",
        job_name: str = "",
        branch: str = "",
    ) -> None:
        """Record how long a completed job ran."""

    @abstractmethod
    def observe_workflow_job_queue_time(
        self,
        org: str,
        repo: str,
        runner_group: str,
        seconds: float,
        workflow_name: str = "",
        job_name: str = "",
        branch: str = "",
    ) -> None:
        """Record how long a job waited for a runner."""

    @abstractmethod
    def count_workflow_job_status(
        self,
        org: str,
        repo: str,
        status: str,
        conclusion: str,
        runner_group: str,
        workflow_name: str = "",
        job_name: str = "",
        branch: str = "",
    ) -> None:
        """Count one workflow job event."""

    @abstractmethod
    def count_workflow_job_duration(
        self,
        org: str,
        repo: str,
        status: str,
        conclusion: str,
        runner_group: str,
        seconds: float,
        workflow_name: str = "",
        job_name: str = "",
        branch: str = "",
    ) -> None:
        """Add a completed job's run time to the cumulative counter."""

    @abstractmethod
    def observe_workflow_run_duration(
        self,
        org: str,
        repo: str,
        workflow_name: str,
        seconds: float,
        branch: str = "",
        conclusion: str = "",
    ) -> None:
        """Record how long a completed workflow run took."""

    @abstractmethod
    def count_workflow_run_status(
        self,
        org: str,
        repo: str,
        status: str,
        conclusion: str,
        workflow_name: str,
        branch: str = "",
    ) -> None:
        """Count one workflow run event."""


class PrometheusObserver(WorkflowObserver):
    """WorkflowObserver backed by prometheus_client collectors.

    Attributes:
        registry: The Prometheus registry the collectors are registered in.

    Example:
        >>> observer = PrometheusObserver(registry=CollectorRegistry())
        >>> observer.count_workflow_job_status(
        ...     "org", "repo", "completed", "success", "default"
        ... )
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize workflow metrics.

        Args:
            registry: Optional Prometheus registry. If None, uses the
                      default REGISTRY. Pass a custom registry for testing.
        """
        self.registry = registry or REGISTRY

        self.build_info = Info(
            "github_actions_exporter_build",
            "Build information of the GitHub Actions exporter",
            registry=self.registry,
        )
        self.build_info.info({"version": __version__})

        self.workflow_job_duration_seconds = Histogram(
            "workflow_job_duration_seconds",
            "Time that a workflow job spent in a given state.",
            labelnames=[
                "org",
                "repo",
                "branch",
                "state",
                "runner_group",
                "workflow_name",
                "job_name",
            ],
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )

        self.workflow_job_runtime_seconds = Counter(
            "workflow_job_runtime_seconds",
            "The total duration of completed jobs.",
            labelnames=list(JOB_LABELS),
            registry=self.registry,
        )

        self.workflow_job_status_count = Counter(
            "workflow_job_status_count",
            "Count of workflow job events.",
            labelnames=list(JOB_LABELS),
            registry=self.registry,
        )

        self.workflow_execution_time_seconds = Histogram(
            "workflow_execution_time_seconds",
            "Time that a workflow took to run.",
            labelnames=["org", "repo", "branch", "workflow_name", "conclusion"],
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )

        self.workflow_status_count = Counter(
            "workflow_status_count",
            "Count of the occurrences of different workflow states.",
            labelnames=[
                "org",
                "repo",
                "branch",
                "status",
                "conclusion",
                "workflow_name",
            ],
            registry=self.registry,
        )

    def _observe_job_state(
        self,
        state: str,
        org: str,
        repo: str,
        runner_group: str,
        seconds: float,
        workflow_name: str,
        job_name: str,
        branch: str,
    ) -> None:
        self.workflow_job_duration_seconds.labels(
            org=org,
            repo=repo,
            branch=branch,
            state=state,
            runner_group=runner_group,
            workflow_name=workflow_name,
            job_name=job_name,
        ).observe(seconds)

    def observe_workflow_job_duration(
        self,
        org: str,
        repo: str,
        runner_group: str,
        seconds: float,
        workflow_name: str = "",
        job_name: str = "",
        branch: str = "",
    ) -> None:
        self._observe_job_state(
            JOB_STATE_IN_PROGRESS,
            org,
            repo,
            runner_group,
            seconds,
            workflow_name,
            job_name,
            branch,
        )

    def observe_workflow_job_queue_time(
        self,
        org: str,
        repo: str,
        runner_group: str,
        seconds: float,
        workflow_name: str = "",
        job_name: str = "",
        branch: str = "",
    ) -> None:
        self._observe_job_state(
            JOB_STATE_QUEUED,
            org,
            repo,
            runner_group,
            seconds,
            workflow_name,
            job_name,
            branch,
        )

    def count_workflow_job_status(
        self,
        org: str,
        repo: str,
        status: str,
        conclusion: str,
        runner_group: str,
        workflow_name: str = "",
        job_name: str = "",
        branch: str = "",
    ) -> None:
        self.workflow_job_status_count.labels(
            org=org,
            repo=repo,
            branch=branch,
            status=status,
            conclusion=conclusion,
            runner_group=runner_group,
            workflow_name=workflow_name,
            job_name=job_name,
        ).inc()

    def count_workflow_job_duration(
        self,
        org: str,
        repo: str,
        status: str,
        conclusion: str,
        runner_group: str,
        seconds: float,
        workflow_name: str = "",
        job_name: str = "",
        branch: str = "",
    ) -> None:
        self.workflow_job_runtime_seconds.labels(
            org=org,
            repo=repo,
            branch=branch,
            status=status,
            conclusion=conclusion,
            runner_group=runner_group,
            workflow_name=workflow_name,
            job_name=job_name,
        ).inc(seconds)

    def observe_workflow_run_duration(
        self,
        org: str,
        repo: str,
        workflow_name: str,
        seconds: float,
        branch: str = "",
        conclusion: str = "",
    ) -> None:
        self.workflow_execution_time_seconds.labels(
            org=org,
            repo=repo,
            branch=branch,
            workflow_name=workflow_name,
            conclusion=conclusion,
        ).observe(seconds)

    def count_workflow_run_status(
        self,
        org: str,
        repo: str,
        status: str,
        conclusion: str,
        workflow_name: str,
        branch: str = "",
    ) -> None:
        self.workflow_status_count.labels(
            org=org,
            repo=repo,
            branch=branch,
            status=status,
            conclusion=conclusion,
            workflow_name=workflow_name,
        ).inc()


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Render a registry in the Prometheus text exposition format.

    Args:
        registry: Optional Prometheus registry. If None, uses the
                  default REGISTRY.

    Returns:
        bytes: Prometheus metrics in text format.
    """
    return generate_latest(registry or REGISTRY)
