"""Prometheus exporter for GitHub Actions workflow metrics.

This package turns GitHub webhook deliveries and periodic REST API polls
into Prometheus time series, providing:
- Webhook signature verification and event decoding
- Workflow job lifecycle reconstruction (queue time, job duration)
- Workflow run durations and status counts
- Billing minutes, self-hosted runner pool and queued workflow gauges
"""

__version__ = "1.0.0"
