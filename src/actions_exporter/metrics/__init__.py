"""Prometheus metric sinks for the exporter."""

from actions_exporter.metrics.gauges import (
    BillingObserver,
    PrometheusRunnersObserver,
    RunnersObserver,
    WorkflowQueueObserver,
)
from actions_exporter.metrics.observer import (
    DURATION_BUCKETS,
    JOB_STATE_IN_PROGRESS,
    JOB_STATE_QUEUED,
    PrometheusObserver,
    WorkflowObserver,
    generate_metrics_output,
)

__all__ = [
    "BillingObserver",
    "DURATION_BUCKETS",
    "JOB_STATE_IN_PROGRESS",
    "JOB_STATE_QUEUED",
    "PrometheusObserver",
    "PrometheusRunnersObserver",
    "RunnersObserver",
    "WorkflowObserver",
    "WorkflowQueueObserver",
    "generate_metrics_output",
]
