"""Hand-driven Manila clock for deterministic tests."""
import sys
import threading
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from guild_boss_timer.manila_time import MANILA, ManilaClock, to_manila


def manila(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """Aware Manila datetime for a wall-clock time."""
    return MANILA.localize(datetime(year, month, day, hour, minute, second))


class ManualClock(ManilaClock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self._current = to_manila(start)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current

    def set(self, value: datetime) -> None:
        with self._lock:
            self._current = to_manila(value)

    def advance(self, **kwargs) -> datetime:
        """Move forward by timedelta(**kwargs) and return the new time."""
        with self._lock:
            self._current = MANILA.normalize(self._current + timedelta(**kwargs))
            return self._current
