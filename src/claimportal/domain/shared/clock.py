"""Portal time source."""

from __future__ import annotations

import time
from typing import Callable

# Returns the current portal time in unix seconds
Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time())
