"""
Ingestion service - accepts simulated events and republishes them through a
local pub/sub sidecar.

Features:
- Event enrichment with process-wide sequence numbers
- Best-effort sidecar publishing with readiness gating and retry
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
from . import __version__
from .config import Settings, get_settings
from .logging import setup_logging, get_logger, SERVICE_NAME
from .api.router import router
from .middleware import (
    CorrelationMiddleware,
    ErrorHandlerMiddleware,
    MetricsMiddleware,
    ValidationMiddleware,
)
from .metrics import Metrics
from .health import HealthChecker
from .services.processor import MessageProcessor
from .services.queue_listener import QueueListener

logger = get_logger()


def create_app(
    settings: Settings | None = None,
    processor: MessageProcessor | None = None,
    metrics: Metrics | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Service settings (defaults to the cached settings)
        processor: Pre-built processor, e.g. one wired to a mock sidecar
        metrics: Prometheus metrics holder (a fresh registry by default)
    """
    settings = settings or get_settings()
    metrics = metrics or Metrics(service_name=SERVICE_NAME, version=__version__)
    processor = processor or MessageProcessor.from_settings(settings, metrics=metrics)
    health_checker = HealthChecker(service_name=SERVICE_NAME, version=__version__)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the optional queue listener; release clients on shutdown."""
        logger.info(
            "service_starting",
            version=__version__,
            env=settings.ENV,
            sidecar_port=settings.SIDECAR_HTTP_PORT,
            queue_listener=settings.QUEUE_LISTENER_ENABLED,
        )
        if settings.QUEUE_LISTENER_ENABLED:
            if not settings.REDIS_URL:
                logger.warning("queue_listener.disabled", reason="REDIS_URL not configured")
            else:
                listener = QueueListener(
                    processor,
                    redis_url=str(settings.REDIS_URL),
                    stream_key=settings.QUEUE_NAME,
                )
                listener.start()
                app.state.queue_listener = listener

        yield

        logger.info("service_stopping")
        if app.state.queue_listener is not None:
            await app.state.queue_listener.stop()
            app.state.queue_listener = None
        await processor.close()
        metrics.app_up.labels(service=SERVICE_NAME, version=__version__).set(0)

    app = FastAPI(
        title="Ingestion Service",
        version=__version__,
        description="Accepts simulated events and republishes them through a pub/sub sidecar",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.processor = processor
    app.state.queue_listener = None

    # Last added runs first: correlation id must be bound before anything logs
    app.add_middleware(ValidationMiddleware, max_size=settings.MAX_EVENT_SIZE)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    # Mount Prometheus metrics endpoint
    app.mount("/metrics", make_asgi_app(registry=metrics.registry))

    @app.get("/health")
    async def health():
        """Liveness check. Returns 200 while the process is up."""
        logger.debug("health_check_liveness")
        return health_checker.liveness()

    @app.get("/ready")
    async def ready():
        """Readiness check. Independent of the sidecar readiness gate."""
        logger.debug("health_check_readiness")
        return health_checker.readiness()

    return app


_settings = get_settings()
setup_logging(json_output=_settings.LOG_JSON, service_name=SERVICE_NAME)

app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ingestion.main:app",
        host="0.0.0.0",
        port=_settings.SERVICE_PORT,
        reload=True,
    )
