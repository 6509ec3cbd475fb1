from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict
import orjson

INGESTED_BY = "ingestion-service"
DEFAULT_EVENT_TYPE = "telemetry"
UNKNOWN_DEVICE = "unknown"


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python, immutable once built."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class InboundEvent(_WireModel):
    id: str | None = Field(None, description="Caller-supplied event identity")
    device_id: str | None = Field(None, description="Originating device")
    event_type: str | None = Field(DEFAULT_EVENT_TYPE, description="Event type tag")
    timestamp: str | None = Field(None, description="ISO-8601 event time")
    payload: Dict[str, Any] | None = None

    @field_validator("payload")
    @classmethod
    def payload_must_serialize(cls, v):
        # The publisher serializes with orjson; reject what it cannot encode
        if v is not None:
            try:
                orjson.dumps(v)
            except orjson.JSONEncodeError as e:
                raise ValueError(f"payload cannot be serialized: {e}") from e
        return v


class ProcessingMetadata(_WireModel):
    ingested_at: str
    ingested_by: str = INGESTED_BY
    sequence_number: int


class EnrichedEvent(_WireModel):
    id: str
    device_id: str
    timestamp: str
    event_type: str
    payload: Dict[str, Any] | None = None
    processing_metadata: ProcessingMetadata

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
