"""Shared fixtures: a scriptable fake sidecar behind httpx.MockTransport."""
import httpx
import pytest
from ingestion.config import Settings
from ingestion.metrics import Metrics
from ingestion.services.processor import MessageProcessor


class FakeSidecar:
    """
    Stand-in for the pub/sub sidecar.

    Set ``healthy``, ``publish_status`` or ``publish_error`` to script its
    behaviour; every request is recorded in ``requests``.
    """

    def __init__(self, healthy=True, publish_status=204, publish_error=None):
        self.healthy = healthy
        self.publish_status = publish_status
        self.publish_error = publish_error
        self.requests: list[httpx.Request] = []

    @property
    def publish_requests(self):
        return [r for r in self.requests if "/v1.0/publish/" in r.url.path]

    @property
    def health_requests(self):
        return [r for r in self.requests if r.url.path == "/v1.0/healthz"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/v1.0/healthz":
            if self.healthy is True:
                return httpx.Response(204)
            if self.healthy is False:
                raise httpx.ConnectError("connection refused", request=request)
            return self.healthy(request)
        if path == "/v1.0/metadata":
            return httpx.Response(200, json={"id": "ingestion-service", "components": []})
        if path.startswith("/v1.0/publish/"):
            if self.publish_error is not None:
                raise self.publish_error
            return httpx.Response(self.publish_status, text="" if self.publish_status == 204 else "rejected")
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def sidecar():
    return FakeSidecar()


@pytest.fixture
def settings():
    return Settings(
        SIMULATE_DELAY_MS=0,
        READINESS_TIMEOUT_SECONDS=1.0,
        READINESS_POLL_INTERVAL_SECONDS=0.01,
        PUBLISH_INITIAL_BACKOFF_MS=1,
        LOG_JSON=False,
    )


@pytest.fixture
def metrics():
    return Metrics()


@pytest.fixture
def processor(settings, sidecar, metrics):
    return MessageProcessor.from_settings(settings, metrics=metrics, transport=sidecar.transport())
