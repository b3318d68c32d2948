from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time in whole unix seconds (UTC)."""

    def now(self) -> int:
        return int(datetime.now(timezone.utc).timestamp())


class ManualClock:
    """A clock that only moves when told to. Used by tests and local demos."""

    def __init__(self, start: int = 0):
        self.current = start

    def now(self) -> int:
        return self.current

    def set(self, timestamp: int) -> None:
        self.current = timestamp

    def advance(self, seconds: int) -> int:
        self.current += seconds
        return self.current
