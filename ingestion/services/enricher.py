"""Attach ingestion metadata to inbound events."""
from datetime import datetime, timezone
from ..event_models import (
    DEFAULT_EVENT_TYPE,
    INGESTED_BY,
    UNKNOWN_DEVICE,
    EnrichedEvent,
    InboundEvent,
    ProcessingMetadata,
)
from .counters import MessageCounters


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def enrich(event: InboundEvent, counters: MessageCounters) -> EnrichedEvent:
    """
    Build the enriched form of an inbound event.

    Consumes exactly one sequence number from ``counters``. Every field has a
    fallback, so this never fails.
    """
    sequence = counters.record_message()
    now = utc_now_iso()

    metadata = ProcessingMetadata(
        ingested_at=now,
        ingested_by=INGESTED_BY,
        sequence_number=sequence,
    )
    # model_construct keeps the payload object as-is instead of re-validating a copy
    return EnrichedEvent.model_construct(
        id=event.id or str(sequence),
        device_id=event.device_id if event.device_id is not None else UNKNOWN_DEVICE,
        timestamp=event.timestamp if event.timestamp is not None else now,
        event_type=event.event_type if event.event_type is not None else DEFAULT_EVENT_TYPE,
        payload=event.payload,
        processing_metadata=metadata,
    )
