from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List
from ..event_models import EnrichedEvent


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SimulateResponse(BaseModel):
    message: str = "Event simulated"
    event: EnrichedEvent


class StatsResponse(_CamelModel):
    messages_processed: int
    last_message_time: str | None = None
    queue_name: str


class ServiceInfo(BaseModel):
    service: str
    version: str
    framework: str
    description: str
    features: List[str]


class SidecarStatus(_CamelModel):
    sidecar_healthy: bool
    sidecar_port: int
    metadata: Dict[str, Any] | List[Any] | None = None
    error: str | None = None
