"""Redis Streams queue listener.

Feeds events read from the ``QUEUE_NAME`` stream through the message
processor. Disabled by default: the sidecar publishes to that same queue, so
enabling both would make the service re-ingest its own output.
"""
import asyncio
import orjson
import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError
from ..event_models import InboundEvent
from .processor import MessageProcessor

log = structlog.get_logger()


class QueueListener:
    """Background task consuming a Redis stream into a MessageProcessor."""

    def __init__(
        self,
        processor: MessageProcessor,
        redis_url: str,
        stream_key: str = "telemetry",
        block_ms: int = 5000,
        batch_size: int = 10,
        error_backoff: float = 1.0,
        client: Redis | None = None,
    ):
        self._processor = processor
        self.redis_url = redis_url
        self.stream_key = stream_key
        self.block_ms = block_ms
        self.batch_size = batch_size
        self.error_backoff = error_backoff
        self._client = client
        self._last_id = "$"
        self._task: asyncio.Task | None = None

    def _get_client(self) -> Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = Redis.from_url(
                self.redis_url,
                decode_responses=False,
                socket_connect_timeout=5,
            )
        return self._client

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        log.info("queue_listener.starting", stream=self.stream_key)
        self._task = asyncio.create_task(self.run())

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                log.warning("queue_listener.stop_failed", error=str(e), stream=self.stream_key)
            self._task = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        log.info("queue_listener.stopped", stream=self.stream_key)

    async def run(self):
        """Consume until cancelled; Redis errors are retried, anything else ends the loop."""
        while True:
            try:
                await self.poll_once()
            except RedisError as e:
                log.error("queue_listener.redis_error", error=str(e), stream=self.stream_key)
                await asyncio.sleep(self.error_backoff)
            except Exception as e:
                # Not a transient Redis failure (bad URL, bad config); give up
                log.error(
                    "queue_listener.crashed",
                    error=str(e),
                    error_type=type(e).__name__,
                    stream=self.stream_key,
                    exc_info=True,
                )
                return

    async def poll_once(self) -> int:
        """
        Read one batch from the stream and process it.

        Returns:
            Number of entries processed successfully
        """
        response = await self._get_client().xread(
            {self.stream_key: self._last_id},
            count=self.batch_size,
            block=self.block_ms,
        )
        processed = 0
        for _stream, entries in response or []:
            for entry_id, entry_data in entries:
                self._last_id = entry_id
                if await self._handle(entry_id, entry_data):
                    processed += 1
        return processed

    async def _handle(self, entry_id, entry_data) -> bool:
        raw = entry_data.get(b"data")
        if raw is None:
            log.warning("queue_listener.entry_skipped", entry_id=entry_id, reason="no data field")
            return False
        try:
            event = InboundEvent.model_validate(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError) as e:
            log.warning("queue_listener.entry_invalid", entry_id=entry_id, error=str(e))
            return False

        try:
            await self._processor.process(event)
        except Exception as e:
            log.error(
                "queue_listener.process_failed",
                entry_id=entry_id,
                error=str(e),
                exc_info=True,
            )
            return False
        return True
