"""
Base class for the periodic automation loops.

A task is driven by tick(), which can be called from the background thread
started by start() or directly with an injected instant (tests, one-shot
scripts). Ticks are single-flight: a tick that fires while the previous one
is still running is skipped, never queued.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
import threading
import traceback
from typing import Callable, Optional

from bittensor.utils.btlogging import logging

from launchpad.errors import ConfigurationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TickResult:
    """Summary of one tick."""

    checked: int = 0
    updated: int = 0
    failed: int = 0
    interrupted: bool = False  # A stop request ended the tick before every item was processed


class PeriodicTask(ABC):
    """Externally driven, clock-injectable periodic task."""

    name = "periodic-task"

    def __init__(self, interval_seconds: float, clock: Callable[[], datetime] = utc_now):
        """
        Initialize periodic task.

        Args:
            interval_seconds: Delay between the end of one tick and the next
            clock: Returns the current instant; injected by tests

        Raises:
            ConfigurationError: If interval_seconds is not positive
        """
        if interval_seconds is None or interval_seconds <= 0:
            raise ConfigurationError(
                f"{self.name} interval must be positive, got {interval_seconds}"
            )
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[TickResult] = None
        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @abstractmethod
    def run_once(self, now: datetime) -> TickResult:
        """Process every eligible campaign once at the given instant."""
        pass

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self, now: Optional[datetime] = None) -> Optional[TickResult]:
        """
        Run one tick unless another is still in progress.

        Returns:
            TickResult, or None if the tick was skipped
        """
        if not self._run_lock.acquire(blocking=False):
            logging.warning(f"{self.name}: previous run still in progress, skipping tick")
            return None
        try:
            now = now or self.clock()
            result = self.run_once(now)
            self.last_run_at = now
            self.last_result = result
            logging.debug(f"{self.name}: {result}")
            return result
        finally:
            self._run_lock.release()

    def run_forever(self) -> None:
        """Tick every interval until stop() is called."""
        logging.info(f"Starting {self.name} loop (every {self.interval_seconds}s).")
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                logging.error(f"Error in {self.name} loop: {e}")
                traceback.print_exc()
            self._stop_event.wait(self.interval_seconds)
        logging.info(f"{self.name} loop stopped.")

    def start(self) -> None:
        """Run the loop in a background thread."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Request a stop and wait for the loop to drain.

        The campaign being processed finishes its update; the remaining ones
        are left for the next start.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logging.warning(f"{self.name}: still draining after {timeout}s")
            else:
                self._thread = None
