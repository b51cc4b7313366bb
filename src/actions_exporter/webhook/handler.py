"""GitHub webhook decoding for the exporter.

This module provides the WebhookHandler class that turns a delivery-type
discriminator (the ``X-GitHub-Event`` header) and the raw request body into
one of the typed event models. Unknown discriminators are a distinct
"unsupported" outcome rather than a decode failure.

GitHub Webhook Payload Structure (workflow_job event):
{
  "action": "in_progress",
  "workflow_job": {
    "id": 1214121,
    "run_id": 940,
    "status": "in_progress",
    "conclusion": null,
    "started_at": "2022-04-18T19:05:40Z",
    "runner_group_name": "default",
    "workflow_name": "CI",
    "name": "build",
    "head_branch": "main"
  },
  "deployment": {"updated_at": "2022-04-18T19:04:10Z"},
  "repository": {
    "name": "repo-name",
    "owner": {"login": "owner-name"}
  }
}
"""

import json
from typing import Any, Dict, Type, Union

import structlog
from pydantic import BaseModel, ValidationError

from actions_exporter.webhook.models import (
    PingEvent,
    WorkflowJobEvent,
    WorkflowRunEvent,
)

logger = structlog.get_logger(__name__)

WebhookEvent = Union[PingEvent, WorkflowJobEvent, WorkflowRunEvent]

EVENT_MODELS: Dict[str, Type[BaseModel]] = {
    "ping": PingEvent,
    "workflow_job": WorkflowJobEvent,
    "workflow_run": WorkflowRunEvent,
}


class UnsupportedEventError(Exception):
    """Raised for delivery types the exporter does not process.

    Attributes:
        event_type: The ``X-GitHub-Event`` value that was received.
    """

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"unsupported webhook event type: {event_type!r}")


class EventDecodeError(Exception):
    """Raised when a supported delivery cannot be decoded.

    Attributes:
        event_type: The ``X-GitHub-Event`` value that was received.
    """

    def __init__(self, event_type: str, message: str):
        self.event_type = event_type
        super().__init__(f"cannot decode {event_type} event: {message}")


class WebhookHandler:
    """Decoder for GitHub webhook deliveries.

    The handler is CPU-only and fast so it can run on the request path;
    anything slower happens in the dispatcher's background tasks.
    """

    def parse_event(self, event_type: str, body: bytes) -> WebhookEvent:
        """Decode a webhook body into a typed event.

        Args:
            event_type: The ``X-GitHub-Event`` header value.
            body: The raw request body.

        Returns:
            PingEvent, WorkflowJobEvent or WorkflowRunEvent.

        Raises:
            UnsupportedEventError: The event type is not handled.
            EventDecodeError: The body is not valid JSON for the event type.
        """
        model = EVENT_MODELS.get(event_type)
        if model is None:
            raise UnsupportedEventError(event_type)

        payload = self._load_json(event_type, body)

        try:
            event = model.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                "Webhook payload failed validation",
                event_type=event_type,
                errors=e.error_count(),
            )
            raise EventDecodeError(event_type, str(e)) from e

        return event

    def _load_json(self, event_type: str, body: bytes) -> Dict[str, Any]:
        """Parse the body as a JSON object.

        Args:
            event_type: The delivery type, for error reporting.
            body: The raw request body.

        Returns:
            The decoded JSON object.
        """
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise EventDecodeError(event_type, str(e)) from e

        if not isinstance(payload, dict):
            raise EventDecodeError(
                event_type,
                f"expected a JSON object, got {type(payload).__name__}",
            )

        return payload


def create_webhook_handler() -> WebhookHandler:
    """Factory function to create a WebhookHandler instance."""
    return WebhookHandler()
