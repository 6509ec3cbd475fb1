"""Message processor: enrichment, publishing and stats for one service instance."""
from typing import Any, Dict
import structlog
from ..config import Settings, get_settings
from ..event_models import EnrichedEvent, InboundEvent
from .counters import MessageCounters
from .enricher import enrich
from .publisher import SidecarPublisher
from .readiness import ReadinessGate
from .sidecar import SidecarClient

log = structlog.get_logger()

SIMULATED_DEVICE = "simulator-001"
SIMULATED_EVENT_TYPE = "temperature"


class MessageProcessor:
    """
    Owns the counters, readiness gate and publisher for one app instance.

    Tests build their own processor with a mock sidecar transport, so no
    state is shared between them.
    """

    def __init__(
        self,
        sidecar: SidecarClient,
        publisher: SidecarPublisher,
        counters: MessageCounters | None = None,
        queue_name: str = "telemetry",
        metrics=None,
    ):
        self.sidecar = sidecar
        self.publisher = publisher
        self.counters = counters or MessageCounters()
        self.queue_name = queue_name
        self._metrics = metrics

    @classmethod
    def from_settings(cls, settings: Settings | None = None, metrics=None, transport=None):
        """
        Wire up a processor from configuration.

        Args:
            settings: Service settings (defaults to the cached settings)
            metrics: Optional Prometheus metrics holder
            transport: Optional httpx transport for the sidecar client
        """
        settings = settings or get_settings()
        sidecar = SidecarClient(settings, transport=transport)
        gate = ReadinessGate(
            sidecar,
            timeout=settings.READINESS_TIMEOUT_SECONDS,
            poll_interval=settings.READINESS_POLL_INTERVAL_SECONDS,
            metrics=metrics,
        )
        publisher = SidecarPublisher(
            sidecar,
            gate,
            max_attempts=settings.PUBLISH_MAX_ATTEMPTS,
            initial_backoff=settings.PUBLISH_INITIAL_BACKOFF_MS / 1000,
            metrics=metrics,
        )
        return cls(sidecar, publisher, queue_name=settings.QUEUE_NAME, metrics=metrics)

    @property
    def gate(self) -> ReadinessGate:
        return self.publisher.gate

    def default_event(self) -> InboundEvent:
        """Synthetic event used when a simulate request has no body."""
        return InboundEvent(
            id=f"sim-{self.counters.message_count + 1}",
            device_id=SIMULATED_DEVICE,
            event_type=SIMULATED_EVENT_TYPE,
            payload={
                "temperature": 72.5,
                "humidity": 45.2,
                "pressure": 1013.25,
            },
        )

    async def process(self, event: InboundEvent) -> EnrichedEvent:
        """
        Enrich and publish one event.

        Publishing is best-effort: its result is logged and counted but never
        returned or raised to the caller.
        """
        enriched = enrich(event, self.counters)
        log.info(
            "event.enriched",
            event_id=enriched.id,
            sequence_number=enriched.processing_metadata.sequence_number,
            event_type=enriched.event_type,
        )
        if self._metrics:
            self._metrics.record_event_enriched(enriched.event_type)

        result = await self.publisher.publish(enriched)
        # Delivery outcome intentionally not surfaced to the caller
        _ = result
        return enriched

    def stats(self) -> Dict[str, Any]:
        snapshot = self.counters.snapshot()
        last = snapshot.last_message_time
        return {
            "messagesProcessed": snapshot.message_count,
            "lastMessageTime": last.isoformat() if last else None,
            "queueName": self.queue_name,
        }

    async def close(self):
        await self.sidecar.close()
