"""Workflow job lifecycle reconstruction.

GitHub delivers one ``workflow_job`` webhook per job transition, possibly
out of order and possibly more than once. The handler rebuilds the timing
of each job from those deliveries:

- queued / waiting: the event is cached under the job id so the matching
  in_progress delivery can compute queue time
- in_progress: queue time is ``started_at`` of this delivery minus the
  queue start of the cached delivery; the cache entry is consumed
- completed: job duration is ``completed_at - started_at``

Every delivery, whatever its action, increments the job status counter.

Queue start policy: the cached job's ``started_at`` is the reference
unless the cached event carries a deployment, in which case the
deployment's ``updated_at`` (the moment an environment approval released
the job) wins. A deployment without ``updated_at`` means the reference is
unknown, so no queue time is recorded for that job.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog

from actions_exporter.cache import ExpiringCache
from actions_exporter.metrics import WorkflowObserver
from actions_exporter.webhook.models import WorkflowJob, WorkflowJobEvent

logger = structlog.get_logger(__name__)

QUEUED_ACTIONS = frozenset({"queued", "waiting"})
IN_PROGRESS_ACTION = "in_progress"
COMPLETED_ACTION = "completed"


@dataclass(frozen=True)
class JobLabels:
    """Label values shared by every job metric."""

    org: str
    repo: str
    branch: str
    runner_group: str
    workflow_name: str
    job_name: str

    @classmethod
    def from_event(cls, event: WorkflowJobEvent) -> "JobLabels":
        job = event.workflow_job or WorkflowJob()
        repository = event.repository
        org = ""
        repo = ""
        if repository is not None:
            repo = repository.name or ""
            if repository.owner is not None:
                org = repository.owner.login or ""
        return cls(
            org=org,
            repo=repo,
            branch=job.head_branch or "",
            runner_group=job.runner_group_name or "",
            workflow_name=job.workflow_name or "",
            job_name=job.name or "",
        )


def clamped_seconds(start: datetime, end: datetime, **context) -> float:
    """Seconds from start to end, never negative.

    A negative span (clock skew between GitHub services, or reordered
    deliveries) is clamped to zero and logged.
    """
    seconds = (end - start).total_seconds()
    if seconds < 0:
        logger.warning(
            "Negative duration clamped to zero",
            seconds=seconds,
            start=start.isoformat(),
            end=end.isoformat(),
            **context,
        )
        return 0.0
    return seconds


def job_cache_key(job: Optional[WorkflowJob]) -> Optional[str]:
    """Correlation key for a job, or None when the job has no id."""
    if job is None or job.id is None:
        return None
    return str(job.id)


class WorkflowJobHandler:
    """Turns workflow_job deliveries into job metrics.

    Attributes:
        cache: Correlation store of queued-class events keyed by job id.
        observer: Metric sink.

    Example:
        >>> handler = WorkflowJobHandler(cache=ExpiringCache(), observer=observer)
        >>> await handler.handle(queued_event)
        >>> await handler.handle(in_progress_event)  # records queue time
    """

    def __init__(
        self,
        cache: ExpiringCache[WorkflowJobEvent],
        observer: WorkflowObserver,
    ):
        self.cache = cache
        self.observer = observer

    async def handle(self, event: WorkflowJobEvent) -> None:
        """Process one workflow_job delivery.

        Args:
            event: The decoded delivery.
        """
        job = event.workflow_job or WorkflowJob()
        labels = JobLabels.from_event(event)
        action = event.action or ""

        log = logger.bind(
            job_id=job.id,
            action=action,
            org=labels.org,
            repo=labels.repo,
        )
        log.debug("Handling workflow job event")

        try:
            if action in QUEUED_ACTIONS:
                self._remember_queued(event, job, log)
            elif action == IN_PROGRESS_ACTION:
                self._record_queue_time(job, labels, log)
            elif action == COMPLETED_ACTION:
                self._record_duration(job, labels, log)
        finally:
            self.observer.count_workflow_job_status(
                labels.org,
                labels.repo,
                job.status or "",
                job.conclusion or "",
                labels.runner_group,
                workflow_name=labels.workflow_name,
                job_name=labels.job_name,
                branch=labels.branch,
            )

    def _remember_queued(self, event: WorkflowJobEvent, job: WorkflowJob, log) -> None:
        key = job_cache_key(job)
        if key is None:
            log.debug("Job has no id, not caching")
            return
        if job.started_at is None:
            log.debug("Queued job has no started_at, not caching")
            return
        self.cache.set(key, event)

    def _record_queue_time(self, job: WorkflowJob, labels: JobLabels, log) -> None:
        if job.started_at is None:
            log.debug("In-progress job has no started_at, skipping queue time")
            return

        key = job_cache_key(job)
        if key is None:
            log.debug("Job has no id, skipping queue time")
            return

        queued_event, found = self.cache.get(key)
        if not found or queued_event is None:
            log.info("No queued event found for job, skipping queue time")
            return

        queued_at = self._queue_start(queued_event, log)
        if queued_at is not None:
            seconds = clamped_seconds(
                queued_at, job.started_at, job_id=job.id, metric="queue_time"
            )
            self.observer.observe_workflow_job_queue_time(
                labels.org,
                labels.repo,
                labels.runner_group,
                seconds,
                workflow_name=labels.workflow_name,
                job_name=labels.job_name,
                branch=labels.branch,
            )

        self.cache.delete(key)

    @staticmethod
    def _queue_start(queued_event: WorkflowJobEvent, log) -> Optional[datetime]:
        if queued_event.deployment is not None:
            if queued_event.deployment.updated_at is None:
                log.info("Deployment has no updated_at, skipping queue time")
            return queued_event.deployment.updated_at

        queued_job = queued_event.workflow_job
        if queued_job is None:
            return None
        return queued_job.started_at

    def _record_duration(self, job: WorkflowJob, labels: JobLabels, log) -> None:
        if job.started_at is None or job.completed_at is None:
            log.debug("Completed job is missing timestamps, skipping duration")
            return

        seconds = clamped_seconds(
            job.started_at, job.completed_at, job_id=job.id, metric="job_duration"
        )
        self.observer.observe_workflow_job_duration(
            labels.org,
            labels.repo,
            labels.runner_group,
            seconds,
            workflow_name=labels.workflow_name,
            job_name=labels.job_name,
            branch=labels.branch,
        )
        self.observer.count_workflow_job_duration(
            labels.org,
            labels.repo,
            job.status or "",
            job.conclusion or "",
            labels.runner_group,
            seconds,
            workflow_name=labels.workflow_name,
            job_name=labels.job_name,
            branch=labels.branch,
        )
