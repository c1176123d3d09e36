"""Exponential backoff policy for transient SQS failures."""

BACKOFF_SLEEP_TIME = 1
BACKOFF_FACTOR = 2
MAX_TIME_BEFORE_GIVING_UP = 60


class BackoffController:
    """Computes how long to wait after consecutive backend failures.

    The delay grows by `factor` after each failure until it exceeds
    `ceiling`. From then on the last delay is returned unchanged rather
    than clamped to the ceiling, so with the defaults the sequence is
    1, 2, 4, 8, 16, 32, 64, 64, ... until a success resets it.
    """

    def __init__(
        self,
        base_delay: float = BACKOFF_SLEEP_TIME,
        factor: float = BACKOFF_FACTOR,
        ceiling: float = MAX_TIME_BEFORE_GIVING_UP
    ):
        if base_delay <= 0:
            raise ValueError(f"base_delay must be positive, got {base_delay}")
        if factor < 1:
            raise ValueError(f"factor must be at least 1, got {factor}")
        if ceiling < base_delay:
            raise ValueError(f"ceiling ({ceiling}) must not be below base_delay ({base_delay})")

        self.base_delay = base_delay
        self.factor = factor
        self.ceiling = ceiling
        self._current_delay = base_delay
        self._consecutive_failures = 0

    @property
    def current_delay(self) -> float:
        """Delay the next failure will return."""
        return self._current_delay

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def on_failure(self) -> float:
        """Record a failure and return how long to wait before retrying."""
        delay = self._current_delay
        self._consecutive_failures += 1
        self._current_delay = delay if delay > self.ceiling else delay * self.factor
        return delay

    def on_success(self) -> None:
        """Record a successful fetch, resetting the delay to the base value."""
        self._current_delay = self.base_delay
        self._consecutive_failures = 0
