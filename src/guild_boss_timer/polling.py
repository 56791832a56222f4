"""Background interval loop used by the promoter and the notification scheduler."""
import threading
from typing import Callable, Optional

from .logger import get_logger

logger = get_logger(__name__)


class PollingLoop:
    """
    Runs a tick function on a daemon thread every `interval` seconds.

    At most one tick runs at a time, across stop() and start() as well: each
    run has its own stop event, and a new run waits for the previous thread
    to finish its tick before ticking itself.
    """

    def __init__(self, name: str, interval: float, tick: Callable[[], object],
                 run_immediately: bool = True):
        """
        Initialize the loop.

        Args:
            name: Label used in logs and as the thread name
            interval: Seconds between ticks
            tick: Unit of work; exceptions are logged and the loop continues
            run_immediately: Tick once right after start instead of waiting one interval
        """
        self.name = name
        self.interval = interval
        self.tick = tick
        self.run_immediately = run_immediately
        self.running = False
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.running:
            return
        previous = self._thread if self._thread and self._thread.is_alive() else None
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._wake_event.clear()
        self.running = True
        self._thread = threading.Thread(
            target=self._loop, args=(stop_event, previous), name=self.name, daemon=True,
        )
        self._thread.start()
        logger.info(f"[POLL] {self.name} loop started (every {self.interval}s)")

    def stop(self, timeout: float = 5) -> None:
        """Stop ticking. A tick already running is left to finish."""
        self.running = False
        self._stop_event.set()
        self._wake_event.set()
        thread = self._thread
        if thread is None:
            return
        thread.join(timeout=timeout)
        if thread.is_alive():
            # Kept so the next start() waits for it
            logger.warning(f"[POLL] {self.name} tick still running after {timeout}s, it will exit when done")
        else:
            self._thread = None
        logger.info(f"[POLL] {self.name} loop stopped")

    def trigger(self) -> None:
        """Run the next tick now instead of waiting for the interval."""
        self._wake_event.set()

    def _loop(self, stop_event: threading.Event, previous: Optional[threading.Thread]) -> None:
        if previous is not None:
            logger.debug(f"[POLL] {self.name} waiting for the previous run to finish its tick")
            previous.join()
        if not self.run_immediately and not self._wait(stop_event):
            return
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.error(f"[POLL] Error in {self.name} tick: {e}", exc_info=True)
            if not self._wait(stop_event):
                return

    def _wait(self, stop_event: threading.Event) -> bool:
        """Sleep until the interval passes or trigger() is called. False once this run is stopped."""
        if not stop_event.is_set():
            self._wake_event.wait(self.interval)
        self._wake_event.clear()
        return not stop_event.is_set()
