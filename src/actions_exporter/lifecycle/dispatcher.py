"""Background dispatch of decoded workflow events.

The webhook endpoint acknowledges a delivery as soon as it has been
decoded; the metric work happens afterwards in an asyncio task. The
dispatcher owns those tasks: it keeps a reference to each one until it
finishes, logs failures, and lets shutdown wait for whatever is still
running.
"""

import asyncio
from typing import Set, Union

import structlog

from actions_exporter.lifecycle.workflow_job import WorkflowJobHandler
from actions_exporter.lifecycle.workflow_run import WorkflowRunHandler
from actions_exporter.webhook.models import WorkflowJobEvent, WorkflowRunEvent

logger = structlog.get_logger(__name__)

WorkflowEvent = Union[WorkflowJobEvent, WorkflowRunEvent]


class WorkflowEventDispatcher:
    """Routes workflow events to their handler on background tasks.

    Attributes:
        job_handler: Handler for workflow_job events.
        run_handler: Handler for workflow_run events.
    """

    def __init__(
        self,
        job_handler: WorkflowJobHandler,
        run_handler: WorkflowRunHandler,
    ):
        self.job_handler = job_handler
        self.run_handler = run_handler
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Number of dispatched events still being processed."""
        return len(self._tasks)

    def dispatch(self, event: WorkflowEvent) -> asyncio.Task:
        """Schedule an event for processing and return immediately.

        Must be called from a running event loop.

        Args:
            event: A decoded workflow_job or workflow_run event.

        Returns:
            The task processing the event.
        """
        if isinstance(event, WorkflowJobEvent):
            coro = self.job_handler.handle(event)
            event_type = "workflow_job"
        elif isinstance(event, WorkflowRunEvent):
            coro = self.run_handler.handle(event)
            event_type = "workflow_run"
        else:
            raise TypeError(f"cannot dispatch {type(event).__name__}")

        task = asyncio.create_task(self._run(event_type, event.action, coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, event_type: str, action, coro) -> None:
        try:
            await coro
        except Exception:
            logger.exception(
                "Failed to process workflow event",
                event_type=event_type,
                action=action,
            )

    async def drain(self, timeout: float) -> bool:
        """Wait for in-flight events to finish.

        Args:
            timeout: Maximum seconds to wait.

        Returns:
            True if every task finished, False if some were cancelled
            after the timeout.
        """
        if not self._tasks:
            return True

        pending_tasks = list(self._tasks)
        logger.info("Draining in-flight workflow events", count=len(pending_tasks))
        _, pending = await asyncio.wait(pending_tasks, timeout=timeout)
        if not pending:
            return True

        logger.warning(
            "Cancelling workflow events still running after grace period",
            count=len(pending),
            timeout=timeout,
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        return False
