"""FastAPI application entry point for the GitHub Actions exporter.

This module wires the webhook intake, the lifecycle handlers, the
Prometheus registry and the optional GitHub API pollers into one FastAPI
application, and provides the ``github-actions-exporter`` console script.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
)
from starlette.requests import ClientDisconnect

from actions_exporter import __version__
from actions_exporter.cache import ExpiringCache
from actions_exporter.config import ExporterSettings, get_settings
from actions_exporter.github import GitHubClient
from actions_exporter.lifecycle import (
    WorkflowEventDispatcher,
    WorkflowJobHandler,
    WorkflowRunHandler,
)
from actions_exporter.log_config import configure_logging
from actions_exporter.metrics import (
    BillingObserver,
    PrometheusObserver,
    PrometheusRunnersObserver,
    WorkflowObserver,
    WorkflowQueueObserver,
    generate_metrics_output,
)
from actions_exporter.pollers import (
    BillingMetricsPoller,
    PeriodicPoller,
    PollerConfigError,
    RunnersMetricsPoller,
    WorkflowQueuePoller,
)
from actions_exporter.webhook import (
    EventDecodeError,
    PingEvent,
    SignatureError,
    UnsupportedEventError,
    WorkflowJobEvent,
    create_webhook_handler,
    verify_signature,
)

logger = structlog.get_logger(__name__)

WEBHOOK_ALIAS_PATH = "/webhook"

LANDING_PAGE = """<html>
<head><title>GitHub Actions Exporter</title></head>
<body>
<h1>GitHub Actions Exporter</h1>
<p>Version {version}</p>
<p><a href="{metrics_path}">Metrics</a></p>
</body>
</html>
"""


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters.

    Args:
        value: The secret value to redact.
        visible_chars: Number of characters to show at the start.

    Returns:
        Redacted string with asterisks replacing hidden characters.
    """
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: ExporterSettings) -> None:
    """Log configuration values with secrets redacted."""
    values = settings.model_dump()
    values["webhook_secret"] = _redact_secret(settings.webhook_secret)
    values["github_api_token"] = _redact_secret(settings.github_api_token)
    logger.info("Exporter configuration", **values)


def _create_registry() -> CollectorRegistry:
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    GCCollector(registry=registry)
    return registry


def _build_pollers(
    settings: ExporterSettings,
    client: GitHubClient,
    registry: CollectorRegistry,
) -> List[PeriodicPoller]:
    """Create the pollers enabled in the settings."""
    pollers: List[PeriodicPoller] = []
    if settings.billing_metrics_enabled:
        pollers.append(
            BillingMetricsPoller(settings, client, BillingObserver(registry))
        )
    if settings.runners_metrics_enabled:
        pollers.append(
            RunnersMetricsPoller(settings, client, PrometheusRunnersObserver(registry))
        )
    if settings.workflow_queue_metrics_enabled:
        pollers.append(
            WorkflowQueuePoller(settings, client, WorkflowQueueObserver(registry))
        )
    return pollers


def create_app(
    settings: Optional[ExporterSettings] = None,
    observer: Optional[WorkflowObserver] = None,
    job_cache: Optional[ExpiringCache[WorkflowJobEvent]] = None,
    github_client: Optional[GitHubClient] = None,
    registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """Build the exporter application.

    Args:
        settings: Exporter settings; loaded from the environment if None.
        observer: Workflow metric sink; a PrometheusObserver on the
                  application registry if None.
        job_cache: Correlation cache; built from the cache settings if None.
        github_client: Client used by the pollers; built from the API
                       settings if None.
        registry: Registry exposed at the metrics path; a fresh registry
                  with the process collectors if None.

    Returns:
        The FastAPI application.
    """
    settings = settings or get_settings()
    registry = registry or _create_registry()
    observer = observer or PrometheusObserver(registry=registry)
    job_cache = job_cache or ExpiringCache(
        default_ttl=settings.job_cache_ttl_seconds,
        sweep_interval=settings.job_cache_sweep_seconds,
    )
    github_client = github_client or GitHubClient(
        token=settings.github_api_token,
        base_url=settings.github_api_url,
    )

    webhook_handler = create_webhook_handler()
    dispatcher = WorkflowEventDispatcher(
        job_handler=WorkflowJobHandler(cache=job_cache, observer=observer),
        run_handler=WorkflowRunHandler(observer=observer),
    )
    pollers = _build_pollers(settings, github_client, registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("GitHub Actions exporter starting up", version=__version__)
        _log_configuration(settings)

        job_cache.start()

        started: List[PeriodicPoller] = []
        for poller in pollers:
            try:
                poller.start()
            except PollerConfigError as e:
                logger.warning(
                    "Not exporting poller metrics",
                    poller=poller.name,
                    reason=str(e),
                )
            else:
                started.append(poller)

        logger.info(
            "GitHub Actions exporter started",
            host=settings.host,
            port=settings.port,
            webhook_path=settings.webhook_path,
            metrics_path=settings.metrics_path,
        )

        yield

        logger.info("GitHub Actions exporter shutting down")

        for poller in started:
            await poller.stop()
        await dispatcher.drain(settings.shutdown_grace_seconds)
        await job_cache.stop()
        await github_client.close()

        logger.info("GitHub Actions exporter shutdown complete")

    app = FastAPI(
        title="GitHub Actions Exporter",
        description="Prometheus metrics for GitHub Actions workflows",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.observer = observer
    app.state.job_cache = job_cache
    app.state.dispatcher = dispatcher
    app.state.pollers = pollers

    async def github_webhook(request: Request):
        """GitHub webhook receiver endpoint.

        Verifies the ``X-Hub-Signature`` header, decodes the delivery and
        acknowledges it before any metric work is done.
        """
        try:
            body = await request.body()
        except ClientDisconnect:
            logger.error("Error reading webhook body")
            raise HTTPException(status_code=500, detail="cannot read body")

        try:
            verify_signature(
                settings.webhook_secret,
                body,
                request.headers.get("X-Hub-Signature"),
            )
        except SignatureError as e:
            logger.error("Invalid webhook signature", error=str(e))
            raise HTTPException(status_code=403, detail="invalid signature")

        event_type = request.headers.get("X-GitHub-Event", "")
        delivery = request.headers.get("X-GitHub-Delivery", "")

        try:
            event = webhook_handler.parse_event(event_type, body)
        except UnsupportedEventError:
            logger.info(
                "Unsupported webhook event",
                event_type=event_type,
                delivery=delivery,
            )
            raise HTTPException(
                status_code=501, detail=f"unsupported event type: {event_type}"
            )
        except EventDecodeError as e:
            logger.error(
                "Cannot decode webhook event",
                event_type=event_type,
                delivery=delivery,
                error=str(e),
            )
            raise HTTPException(status_code=400, detail=str(e))

        if isinstance(event, PingEvent):
            logger.info("Received ping", hook_id=event.hook_id, delivery=delivery)
            return JSONResponse(status_code=202, content={"status": "honk"})

        dispatcher.dispatch(event)
        return JSONResponse(status_code=202, content={"status": "accepted"})

    app.add_api_route(settings.webhook_path, github_webhook, methods=["POST"])
    if settings.webhook_path != WEBHOOK_ALIAS_PATH:
        app.add_api_route(WEBHOOK_ALIAS_PATH, github_webhook, methods=["POST"])

    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_metrics_output(registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    app.add_api_route(settings.metrics_path, metrics, methods=["GET"])

    @app.get("/", response_class=HTMLResponse)
    async def index():
        return LANDING_PAGE.format(
            version=__version__, metrics_path=settings.metrics_path
        )

    @app.get("/health")
    async def health():
        """Liveness probe endpoint."""
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready():
        """Readiness probe endpoint.

        Returns:
            dict: Status plus the number of jobs waiting for their
            in_progress event and of events still being processed.
        """
        return {
            "status": "ready",
            "cache_entries": job_cache.count(),
            "in_flight": dispatcher.in_flight,
        }

    return app


def main() -> None:
    """Run the exporter with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
