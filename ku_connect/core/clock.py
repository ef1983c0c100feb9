"""Clock used by the rate limiter for window bookkeeping."""

import time


class MonotonicClock:
    """Milliseconds from a monotonic source. Not wall-clock time."""

    def now_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000
