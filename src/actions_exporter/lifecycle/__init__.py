"""Workflow job and run lifecycle handling."""

from actions_exporter.lifecycle.dispatcher import WorkflowEvent, WorkflowEventDispatcher
from actions_exporter.lifecycle.workflow_job import (
    JobLabels,
    WorkflowJobHandler,
    clamped_seconds,
)
from actions_exporter.lifecycle.workflow_run import WorkflowRunHandler, workflow_name_of

__all__ = [
    "JobLabels",
    "WorkflowEvent",
    "WorkflowEventDispatcher",
    "WorkflowJobHandler",
    "WorkflowRunHandler",
    "clamped_seconds",
    "workflow_name_of",
]
