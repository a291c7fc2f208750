from __future__ import annotations
import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from guided_cookbook.session import CookSessionMachine

logger = logging.getLogger(__name__)


class SessionTicker:
    """Background thread that drives a session's clock.

    Every ``interval`` seconds it calls ``machine.sync()``, which measures the
    real elapsed time, so a late wake-up is still counted correctly.
    """

    def __init__(self, machine: CookSessionMachine, interval: float = 1.0):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.machine = machine
        self.interval = interval
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="session-ticker", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stopped.set()
        thread = self._thread
        # the machine stops the ticker from inside a tick when the recipe completes
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run(self) -> None:
        logger.debug("Session ticker started (interval=%ss)", self.interval)
        while not self._stopped.wait(self.interval):
            self.machine.sync()
        logger.debug("Session ticker stopped")


def ticker_factory(interval: float = 1.0):
    """Build a ``tick_source_factory`` for ``CookSessionMachine``."""

    def factory(machine: CookSessionMachine) -> SessionTicker:
        return SessionTicker(machine, interval=interval)

    return factory
