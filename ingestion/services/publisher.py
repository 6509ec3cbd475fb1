"""Deliver enriched events to the pub/sub sidecar with bounded retry."""
import asyncio
from enum import Enum
from typing import Awaitable, Callable, List
import httpx
import orjson
from pydantic import BaseModel, Field
import structlog
from ..event_models import EnrichedEvent
from .readiness import ReadinessGate
from .retry import BackoffSchedule
from .sidecar import SidecarClient

log = structlog.get_logger()

ACCEPTED_STATUS = 204


class PublishOutcome(str, Enum):
    PUBLISHED = "published"
    # Sidecar answered with something other than 204
    REJECTED = "rejected"
    # Unexpected exception, not retried
    FAILED = "failed"
    # Transport failure on every attempt
    EXHAUSTED = "exhausted"


class PublishResult(BaseModel):
    outcome: PublishOutcome
    attempts: int
    status_code: int | None = None
    error: str | None = None
    delays: List[float] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome is PublishOutcome.PUBLISHED


class SidecarPublisher:
    """
    Publishes enriched events through the sidecar's publish endpoint.

    Transport failures are retried with exponential backoff; any response
    from the sidecar is final. ``publish`` never raises.
    """

    def __init__(
        self,
        sidecar: SidecarClient,
        gate: ReadinessGate,
        max_attempts: int = 3,
        initial_backoff: float = 0.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        metrics=None,
    ):
        self._sidecar = sidecar
        self.gate = gate
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self._sleep = sleep
        self._metrics = metrics

    async def publish(self, evt: EnrichedEvent) -> PublishResult:
        """
        Publish one event.

        Args:
            evt: The enriched event

        Returns:
            PublishResult describing what happened
        """
        result = await self._publish(evt)
        if self._metrics:
            self._metrics.record_publish(result.outcome.value, result.attempts)
        return result

    async def _publish(self, evt: EnrichedEvent) -> PublishResult:
        if not self.gate.checked:
            await self.gate.await_ready()

        schedule = BackoffSchedule(max_attempts=self.max_attempts, initial_delay=self.initial_backoff)
        delays: List[float] = []

        while True:
            attempt = schedule.begin_attempt()
            try:
                body = orjson.dumps(evt.to_wire())
                response = await self._sidecar.post_event(body)
            except httpx.TransportError as e:
                if not schedule.can_retry:
                    log.error(
                        "publish.exhausted",
                        event_id=evt.id,
                        attempts=attempt,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    return PublishResult(
                        outcome=PublishOutcome.EXHAUSTED, attempts=attempt, error=str(e), delays=delays
                    )
                delay = schedule.next_delay()
                log.warning(
                    "publish.retrying",
                    event_id=evt.id,
                    attempt=attempt,
                    delay_ms=round(delay * 1000),
                    error=str(e),
                )
                delays.append(delay)
                await self._sleep(delay)
                continue
            except Exception as e:
                log.error(
                    "publish.failed",
                    event_id=evt.id,
                    attempts=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                return PublishResult(
                    outcome=PublishOutcome.FAILED, attempts=attempt, error=str(e), delays=delays
                )

            if response.status_code == ACCEPTED_STATUS:
                log.debug("publish.ok", event_id=evt.id, attempts=attempt)
                return PublishResult(
                    outcome=PublishOutcome.PUBLISHED,
                    attempts=attempt,
                    status_code=response.status_code,
                    delays=delays,
                )

            log.warning(
                "publish.rejected",
                event_id=evt.id,
                status_code=response.status_code,
                response_body=response.text,
            )
            return PublishResult(
                outcome=PublishOutcome.REJECTED,
                attempts=attempt,
                status_code=response.status_code,
                error=response.text,
                delays=delays,
            )
