import asyncio
from typing import Any, List
from fastapi import APIRouter, Body, Depends, Request
from .schemas import ServiceInfo, SidecarStatus, SimulateResponse, StatsResponse
from ..event_models import InboundEvent
from ..services.processor import MessageProcessor
from .. import __version__

router = APIRouter()


def get_processor(request: Request) -> MessageProcessor:
    return request.app.state.processor


@router.get("/", response_model=ServiceInfo)
async def service_info():
    return ServiceInfo(
        service="ingestion-service",
        version=__version__,
        framework="FastAPI",
        description="Event ingestion service republishing through a pub/sub sidecar",
        features=[
            "Scale-to-zero when idle",
            "Event-driven autoscaling",
            "Sidecar pub/sub for messaging",
        ],
    )


@router.post("/simulate", response_model=SimulateResponse)
async def simulate_event(
    request: Request,
    event: InboundEvent | None = Body(default=None),
    processor: MessageProcessor = Depends(get_processor),
):
    # Artificial processing time so concurrent requests pile up visibly
    delay_ms = request.app.state.settings.SIMULATE_DELAY_MS
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)

    if event is None:
        event = processor.default_event()
    processed = await processor.process(event)
    return SimulateResponse(event=processed)


@router.get("/stats", response_model=StatsResponse)
async def stats(processor: MessageProcessor = Depends(get_processor)):
    return processor.stats()


@router.get("/sidecar-status", response_model=SidecarStatus)
async def sidecar_status(processor: MessageProcessor = Depends(get_processor)):
    return await processor.sidecar.status()


@router.get("/dapr/subscribe")
async def subscriptions() -> List[Any]:
    """Sidecar subscription discovery; this service subscribes to nothing."""
    return []
