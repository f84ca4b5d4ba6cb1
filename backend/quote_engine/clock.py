from __future__ import annotations

import datetime
from typing import Callable

Clock = Callable[[], datetime.datetime]


def system_clock() -> datetime.datetime:
    """Local wall-clock time carrying its UTC offset.

    ``date()`` stays the local calendar day, while epoch conversions for
    provider windows use the real instant.
    """
    return datetime.datetime.now().astimezone()
