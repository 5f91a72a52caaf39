import time
from typing import Callable

Clock = Callable[[], int]

def now_millis() -> int:
    """Wall-clock milliseconds since the epoch."""
    return int(time.time() * 1000)
