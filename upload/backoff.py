"""
Exponential Backoff

Delay before the next upload pass after a RETRY outcome.
"""

from config.settings import RETRY_BACKOFF_BASE_SECONDS, RETRY_BACKOFF_MAX_SECONDS


class ExponentialBackoff:
    """
    Doubling delay with a cap.

    Usage:
        backoff = ExponentialBackoff()
        backoff.next_delay()        # 60
        backoff.next_delay()        # 120
        backoff.next_delay(4.0)     # 960
        backoff.reset()
    """

    def __init__(
        self,
        base_seconds: float = RETRY_BACKOFF_BASE_SECONDS,
        max_seconds: float = RETRY_BACKOFF_MAX_SECONDS,
    ):
        self.base_seconds = base_seconds
        self.max_seconds = max_seconds
        self.attempts = 0

    def next_delay(self, multiplier: float = 1.0) -> float:
        """Delay for the next retry; each call counts as one attempt"""
        delay = self.base_seconds * (2 ** self.attempts) * multiplier
        self.attempts += 1
        return min(delay, self.max_seconds)

    def reset(self) -> None:
        self.attempts = 0
