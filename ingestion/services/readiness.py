"""One-shot readiness latch for the pub/sub sidecar."""
import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable
import structlog
from .sidecar import SidecarClient

log = structlog.get_logger()


class ReadinessState(str, Enum):
    NOT_CHECKED = "not_checked"
    READY = "ready"
    TIMED_OUT_PROCEEDING = "timed_out_proceeding"


class ReadinessGate:
    """
    Waits for the sidecar health endpoint once per gate instance.

    The first caller polls until a health check succeeds or the wait budget runs out.
    Either way the latch closes and later callers return immediately. A
    timeout is fail-open: publishing proceeds without confirmed readiness.
    """

    def __init__(
        self,
        sidecar: SidecarClient,
        timeout: float = 30.0,
        poll_interval: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        metrics=None,
    ):
        self._sidecar = sidecar
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._state = ReadinessState.NOT_CHECKED
        self._lock = asyncio.Lock()
        self.checks = 0
        self._metrics = metrics
        self._publish_state()

    @property
    def state(self) -> ReadinessState:
        return self._state

    @property
    def checked(self) -> bool:
        return self._state is not ReadinessState.NOT_CHECKED

    async def await_ready(self) -> ReadinessState:
        """
        Block the calling task until the sidecar is ready or the budget elapses.

        Returns:
            The latched state (READY or TIMED_OUT_PROCEEDING)
        """
        if self.checked:
            return self._state

        async with self._lock:
            # Another task may have finished the wait while we queued on the lock
            if self.checked:
                return self._state
            self._state = await self._poll()
            self._publish_state()
            return self._state

    def _publish_state(self):
        if self._metrics:
            self._metrics.set_readiness(self._state.value, [s.value for s in ReadinessState])

    async def _poll(self) -> ReadinessState:
        log.info("sidecar.waiting", health_url=self._sidecar.health_url, timeout_s=self.timeout)
        start = self._clock()

        while self._clock() - start < self.timeout:
            self.checks += 1
            if await self._sidecar.check_health():
                log.info("sidecar.ready", checks=self.checks)
                return ReadinessState.READY
            await self._sleep(self.poll_interval)

        log.warning(
            "sidecar.readiness_timeout",
            timeout_s=self.timeout,
            checks=self.checks,
            action="proceeding",
        )
        return ReadinessState.TIMED_OUT_PROCEEDING
