"""GitHub webhook intake for the exporter.

This package verifies and decodes GitHub webhook deliveries:
- ping - sent when the webhook is registered
- workflow_job - job lifecycle transitions (queued, waiting, in_progress, completed)
- workflow_run - run lifecycle transitions
"""

from actions_exporter.webhook.handler import (
    EventDecodeError,
    UnsupportedEventError,
    WebhookEvent,
    WebhookHandler,
    create_webhook_handler,
)
from actions_exporter.webhook.models import (
    Deployment,
    PingEvent,
    Repository,
    WorkflowJob,
    WorkflowJobEvent,
    WorkflowRun,
    WorkflowRunEvent,
)
from actions_exporter.webhook.signature import (
    SignatureError,
    SignatureMismatchError,
    UnsupportedSignatureSchemeError,
    compute_signature,
    verify_signature,
)

__all__ = [
    "Deployment",
    "EventDecodeError",
    "PingEvent",
    "Repository",
    "SignatureError",
    "SignatureMismatchError",
    "UnsupportedEventError",
    "UnsupportedSignatureSchemeError",
    "WebhookEvent",
    "WebhookHandler",
    "WorkflowJob",
    "WorkflowJobEvent",
    "WorkflowRun",
    "WorkflowRunEvent",
    "compute_signature",
    "create_webhook_handler",
    "verify_signature",
]
