"""GitHub webhook event models for the exporter.

This module defines the data models for the webhook deliveries the exporter
consumes: ``ping``, ``workflow_job`` and ``workflow_run``.

GitHub omits or nulls many fields depending on the phase a job or run is in
(``conclusion`` is null until completion, ``completed_at`` only appears on
``completed``, ``deployment`` only when an environment protection rule held
the job). Every field is therefore an explicit ``Optional``; consumers must
decide at each access site whether a missing value means "empty label" or
"skip the computation". Unknown payload keys are ignored.

Timestamps must carry a UTC offset; a naive timestamp fails validation so
that durations are never computed across naive and aware values.
"""

from typing import Any, Dict, List, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    """Base model for webhook payload fragments."""

    model_config = ConfigDict(extra="ignore")


class Owner(_Payload):
    """Repository owner (user or organization)."""

    login: Optional[str] = None


class Repository(_Payload):
    """Repository the event originated from."""

    name: Optional[str] = None
    full_name: Optional[str] = None
    owner: Optional[Owner] = None


class TaskStep(_Payload):
    """A single step of a workflow job.

    Steps are decoded for completeness but never used for duration
    calculations; queue time comes from the correlation cache.
    """

    name: Optional[str] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    number: Optional[int] = None
    started_at: Optional[AwareDatetime] = None
    completed_at: Optional[AwareDatetime] = None


class WorkflowJob(_Payload):
    """The ``workflow_job`` object of a workflow job delivery."""

    id: Optional[int] = None
    run_id: Optional[int] = None
    run_attempt: Optional[int] = None
    name: Optional[str] = None
    workflow_name: Optional[str] = None
    head_branch: Optional[str] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    started_at: Optional[AwareDatetime] = None
    completed_at: Optional[AwareDatetime] = None
    runner_name: Optional[str] = None
    runner_group_name: Optional[str] = None
    labels: Optional[List[str]] = None
    steps: Optional[List[TaskStep]] = None


class Deployment(_Payload):
    """Deployment attached to a job gated by an environment protection rule.

    ``updated_at`` is the moment the job was released from the approval
    hold and is the authoritative queue start for such jobs.
    """

    id: Optional[int] = None
    environment: Optional[str] = None
    created_at: Optional[AwareDatetime] = None
    updated_at: Optional[AwareDatetime] = None


class WorkflowJobEvent(_Payload):
    """Parsed ``workflow_job`` webhook event.

    Attributes:
        action: queued, waiting, in_progress, completed. Other values are
            tolerated and only counted.
        workflow_job: The job snapshot at the time of the delivery.
        repository: Repository the job belongs to.
        deployment: Present when the job waited on an environment approval.
    """

    action: Optional[str] = None
    workflow_job: Optional[WorkflowJob] = None
    repository: Optional[Repository] = None
    deployment: Optional[Deployment] = None


class Workflow(_Payload):
    """The ``workflow`` object of a workflow run delivery."""

    id: Optional[int] = None
    name: Optional[str] = None
    path: Optional[str] = None


class WorkflowRun(_Payload):
    """The ``workflow_run`` object of a workflow run delivery."""

    id: Optional[int] = None
    name: Optional[str] = None
    run_number: Optional[int] = None
    run_attempt: Optional[int] = None
    head_branch: Optional[str] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    run_started_at: Optional[AwareDatetime] = None
    updated_at: Optional[AwareDatetime] = None


class WorkflowRunEvent(_Payload):
    """Parsed ``workflow_run`` webhook event."""

    action: Optional[str] = None
    workflow_run: Optional[WorkflowRun] = None
    workflow: Optional[Workflow] = None
    repository: Optional[Repository] = None


class PingEvent(_Payload):
    """Parsed ``ping`` event sent when a webhook is created."""

    zen: Optional[str] = None
    hook_id: Optional[int] = None
    hook: Optional[Dict[str, Any]] = Field(default=None)
