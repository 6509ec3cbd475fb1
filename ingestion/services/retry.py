"""Exponential backoff bookkeeping for publish retries."""


class BackoffSchedule:
    """
    Attempt counter plus a doubling delay.

    Usage::

        schedule = BackoffSchedule(max_attempts=3, initial_delay=0.1)
        while True:
            schedule.begin_attempt()
            ...
            if not schedule.can_retry:
                break
            await asyncio.sleep(schedule.next_delay())
    """

    def __init__(self, max_attempts: int = 3, initial_delay: float = 0.1, factor: float = 2.0):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.factor = factor
        self.attempt = 0
        self._delay = initial_delay

    def begin_attempt(self) -> int:
        if self.exhausted:
            raise RuntimeError(f"no attempts left after {self.attempt}")
        self.attempt += 1
        return self.attempt

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    @property
    def can_retry(self) -> bool:
        return not self.exhausted

    def next_delay(self) -> float:
        """Return the delay before the next attempt and grow it for the one after."""
        delay = self._delay
        self._delay *= self.factor
        return delay
