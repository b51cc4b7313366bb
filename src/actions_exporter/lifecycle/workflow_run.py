"""Workflow run metrics."""

import structlog

from actions_exporter.lifecycle.workflow_job import clamped_seconds
from actions_exporter.metrics import WorkflowObserver
from actions_exporter.webhook.models import WorkflowRun, WorkflowRunEvent

logger = structlog.get_logger(__name__)


def workflow_name_of(event: WorkflowRunEvent) -> str:
    """Workflow name label: the workflow's name, else the run's name."""
    if event.workflow is not None and event.workflow.name:
        return event.workflow.name
    if event.workflow_run is not None and event.workflow_run.name:
        return event.workflow_run.name
    return ""


class WorkflowRunHandler:
    """Turns workflow_run deliveries into run metrics.

    Completed runs with both ``run_started_at`` and ``updated_at`` get an
    execution time observation; every delivery is counted.
    """

    def __init__(self, observer: WorkflowObserver):
        self.observer = observer

    async def handle(self, event: WorkflowRunEvent) -> None:
        run = event.workflow_run or WorkflowRun()
        org = ""
        repo = ""
        if event.repository is not None:
            repo = event.repository.name or ""
            if event.repository.owner is not None:
                org = event.repository.owner.login or ""

        workflow_name = workflow_name_of(event)
        branch = run.head_branch or ""
        conclusion = run.conclusion or ""

        if event.action == "completed":
            if run.run_started_at is not None and run.updated_at is not None:
                seconds = clamped_seconds(
                    run.run_started_at,
                    run.updated_at,
                    run_id=run.id,
                    metric="run_duration",
                )
                self.observer.observe_workflow_run_duration(
                    org,
                    repo,
                    workflow_name,
                    seconds,
                    branch=branch,
                    conclusion=conclusion,
                )
            else:
                logger.debug(
                    "Completed run is missing timestamps, skipping duration",
                    run_id=run.id,
                )

        self.observer.count_workflow_run_status(
            org,
            repo,
            run.status or "",
            conclusion,
            workflow_name,
            branch=branch,
        )
