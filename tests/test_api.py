"""Tests for the HTTP API."""
import asyncio
import httpx
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport
from ingestion.main import create_app


@pytest.fixture
def app(settings, processor, metrics):
    return create_app(settings, processor=processor, metrics=metrics)


@pytest.fixture
def client(app):
    return TestClient(app)


def test_service_info(client):
    r = client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["service"] == "ingestion-service"
    assert data["version"] == "1.0.0"
    assert len(data["features"]) == 3


def test_simulate_with_body(client, sidecar):
    r = client.post(
        "/simulate",
        json={"id": "evt-42", "deviceId": "sensor-1", "payload": {"temperature": 70.1}},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["message"] == "Event simulated"
    event = data["event"]
    assert event["id"] == "evt-42"
    assert event["deviceId"] == "sensor-1"
    assert event["eventType"] == "telemetry"
    assert event["payload"] == {"temperature": 70.1}
    assert event["processingMetadata"]["sequenceNumber"] == 1
    assert event["processingMetadata"]["ingestedBy"] == "ingestion-service"
    assert len(sidecar.publish_requests) == 1


def test_simulate_without_body_uses_synthetic_event(client):
    r = client.post("/simulate")
    assert r.status_code == 200
    event = r.json()["event"]
    assert event["id"] == "sim-1"
    assert event["deviceId"] == "simulator-001"
    assert event["eventType"] == "temperature"
    assert event["payload"]["pressure"] == 1013.25


def test_simulate_empty_object_gets_fallbacks(client):
    r = client.post("/simulate", json={})
    event = r.json()["event"]
    assert event["id"] == "1"
    assert event["deviceId"] == "unknown"
    assert event["payload"] is None


def test_simulate_succeeds_when_sidecar_unreachable(client, sidecar):
    sidecar.publish_error = httpx.ConnectError("connection refused")

    r = client.post("/simulate", json={"id": "evt-1"})

    assert r.status_code == 200
    assert r.json()["event"]["id"] == "evt-1"
    assert len(sidecar.publish_requests) == 3


def test_simulate_succeeds_when_sidecar_rejects(client, sidecar):
    sidecar.publish_status = 403

    r = client.post("/simulate")

    assert r.status_code == 200
    assert len(sidecar.publish_requests) == 1


def test_simulate_rejects_wrong_payload_type(client):
    r = client.post("/simulate", json={"payload": "not-a-dict"})
    assert r.status_code == 422


def test_stats(client):
    assert client.get("/stats").json() == {
        "messagesProcessed": 0,
        "lastMessageTime": None,
        "queueName": "telemetry",
    }

    client.post("/simulate")
    client.post("/simulate")

    data = client.get("/stats").json()
    assert data["messagesProcessed"] == 2
    assert data["lastMessageTime"] is not None


def test_health_and_ready(client, sidecar):
    sidecar.healthy = False
    for path, status in (("/health", "healthy"), ("/ready", "ready")):
        r = client.get(path)
        assert r.status_code == 200
        assert r.json()["status"] == status
        assert "timestamp" in r.json()


def test_subscriptions(client):
    r = client.get("/dapr/subscribe")
    assert r.status_code == 200
    assert r.json() == []


def test_sidecar_status_healthy(client):
    data = client.get("/sidecar-status").json()
    assert data["sidecarHealthy"] is True
    assert data["sidecarPort"] == 3500
    assert data["metadata"]["id"] == "ingestion-service"
    assert data["error"] is None


def test_sidecar_status_unreachable(client, sidecar):
    sidecar.healthy = False

    r = client.get("/sidecar-status")

    assert r.status_code == 200
    data = r.json()
    assert data["sidecarHealthy"] is False
    assert "connection refused" in data["error"]


def test_correlation_id_generated(client):
    r = client.get("/health")
    assert r.headers.get("x-correlation-id")


def test_correlation_id_preserved(client):
    r = client.get("/health", headers={"X-Correlation-ID": "corr-123"})
    assert r.headers["x-correlation-id"] == "corr-123"


def test_payload_too_large(client, settings):
    big = {"payload": {"data": "x" * (settings.MAX_EVENT_SIZE + 100)}}
    r = client.post("/simulate", json=big)
    assert r.status_code == 413
    data = r.json()
    assert data["error"] == "PayloadTooLarge"
    assert data["max_size"] == settings.MAX_EVENT_SIZE


def test_invalid_json(client):
    r = client.post(
        "/simulate",
        content=b"{invalid json}",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidJSON"


def test_unhandled_error_is_structured(app, client):
    class Broken:
        def stats(self):
            raise RuntimeError("counter store unavailable")

    app.state.processor = Broken()

    r = client.get("/stats", headers={"X-Correlation-ID": "corr-err"})

    assert r.status_code == 500
    data = r.json()
    assert data["error"] == "InternalServerError"
    assert data["correlation_id"] == "corr-err"
    assert data["path"] == "/stats"


def test_metrics_endpoint(client):
    client.post("/simulate")

    r = client.get("/metrics")

    assert r.status_code == 200
    content = r.text
    assert "http_requests_total" in content
    assert "ingestion_events_enriched_total" in content
    assert "ingestion_publish_total" in content
    assert "ingestion_sidecar_readiness" in content
    assert "app_up" in content


@pytest.mark.asyncio
async def test_concurrent_simulate_requests(app, processor):
    app.state.settings = app.state.settings.model_copy(update={"SIMULATE_DELAY_MS": 50})
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        responses = await asyncio.gather(*(client.post("/simulate", json={}) for _ in range(10)))

    assert all(r.status_code == 200 for r in responses)
    sequences = sorted(r.json()["event"]["processingMetadata"]["sequenceNumber"] for r in responses)
    assert sequences == list(range(1, 11))
    assert processor.counters.message_count == 10


def test_queue_listener_disabled_by_default(app):
    with TestClient(app):
        assert app.state.queue_listener is None


def test_queue_listener_needs_redis_url(settings, processor, metrics):
    app = create_app(
        settings.model_copy(update={"QUEUE_LISTENER_ENABLED": True}),
        processor=processor,
        metrics=metrics,
    )
    with TestClient(app):
        assert app.state.queue_listener is None


def test_queue_listener_started_and_stopped(settings, processor, metrics):
    enabled = settings.model_copy(
        update={"QUEUE_LISTENER_ENABLED": True, "REDIS_URL": "redis://localhost:6379/0"}
    )
    with patch("ingestion.main.QueueListener") as listener_cls:
        listener = listener_cls.return_value
        listener.stop = AsyncMock()
        app = create_app(enabled, processor=processor, metrics=metrics)

        with TestClient(app):
            listener.start.assert_called_once()
            assert app.state.queue_listener is listener

        listener.stop.assert_awaited_once()
    assert listener_cls.call_args.kwargs["stream_key"] == "telemetry"


def test_simulate_rejects_payload_the_publisher_cannot_encode(client, sidecar):
    r = client.post("/simulate", json={"payload": {"n": 123456789012345678901234567890}})

    assert r.status_code == 422
    assert len(sidecar.publish_requests) == 0
    assert client.get("/stats").json()["messagesProcessed"] == 0
