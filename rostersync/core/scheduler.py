"""Periodic task scheduling for the sync client.

PeriodicTask runs an action after an initial delay and then on a fixed
interval, using a chain of daemon threading.Timer objects. The returned task
is the cancellation handle; tick() runs the action once synchronously so tests
do not have to wait on the clock.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

__all__ = ["PeriodicTask"]


class PeriodicTask:
    """Run an action repeatedly on a timer until cancelled.

    Attributes:
        name: Label used in log messages
        interval: Seconds between runs
        initial_delay: Seconds before the first run
        runs: Number of completed runs
    """

    def __init__(
        self,
        action: Callable[[], Any],
        interval: float,
        initial_delay: float = 0.0,
        name: str = "periodic-task",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if initial_delay < 0:
            raise ValueError(f"initial_delay must not be negative, got {initial_delay}")
        self.action = action
        self.interval = interval
        self.initial_delay = initial_delay
        self.name = name
        self.runs = 0
        self._timer: Optional[threading.Timer] = None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._cancelled.is_set()

    def start(self) -> "PeriodicTask":
        """Schedule the first run after initial_delay."""
        with self._lock:
            if self._timer is not None:
                raise RuntimeError(f"{self.name} already started")
            self._cancelled.clear()
            self._schedule(self.initial_delay)
        logger.info(
            f"Started {self.name}: first run in {self.initial_delay}s, "
            f"then every {self.interval}s"
        )
        return self

    def cancel(self) -> None:
        """Stop scheduling further runs. A run in progress completes."""
        with self._lock:
            self._cancelled.set()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        logger.info(f"Cancelled {self.name}")

    def tick(self) -> Any:
        """Run the action once now and return its result.

        Exceptions from the action are logged and swallowed so one failed run
        does not stop the schedule; tick() then returns None.
        """
        try:
            result = self.action()
        except Exception as e:
            logger.error(f"{self.name} run failed: {e}")
            result = None
        self.runs += 1
        return result

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled. Returns True if cancelled within timeout."""
        return self._cancelled.wait(timeout)

    def _schedule(self, delay: float) -> None:
        timer = threading.Timer(delay, self._run)
        timer.daemon = True
        timer.name = self.name
        self._timer = timer
        timer.start()

    def _run(self) -> None:
        if self._cancelled.is_set():
            return
        self.tick()
        with self._lock:
            if not self._cancelled.is_set():
                self._schedule(self.interval)
