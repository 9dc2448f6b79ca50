"""Wall-clock helpers."""

import time


def now_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


class SystemClock:
    def now_ms(self) -> int:
        return now_ms()
