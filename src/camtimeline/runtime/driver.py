from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from ..core.registry import TimelineRegistry

logger = logging.getLogger(__name__)


class TickDriver:
    """Calls `registry.update(dt)` at a fixed rate from a daemon thread.

    `dt` is measured with the monotonic clock, so it is real time regardless of
    how late a tick fires. `user_rotating` is polled once per tick when given.
    """

    def __init__(
        self,
        registry: TimelineRegistry,
        *,
        tick_rate_hz: float | None = None,
        user_rotating: Callable[[], bool] | None = None,
    ) -> None:
        if tick_rate_hz is None:
            interval = registry.settings.tick_interval
        else:
            rate = float(tick_rate_hz)
            if not rate > 0.0:
                raise ValueError("tick_rate_hz must be > 0")
            interval = 1.0 / rate
        self._registry = registry
        self._interval = interval
        self._user_rotating = user_rotating
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="camtimeline-tick", daemon=True)
        self._thread.start()
        logger.debug("Tick driver started at %.1f Hz", 1.0 / self._interval)

    def stop(self, timeout: float | None = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.debug("Tick driver stopped")

    def tick(self, delta_time: float) -> None:
        rotating = bool(self._user_rotating()) if self._user_rotating is not None else False
        self._registry.update(delta_time, user_rotating=rotating)

    def _run(self) -> None:
        last = time.monotonic()
        while not self._stop.wait(self._interval):
            now = time.monotonic()
            dt, last = now - last, now
            try:
                self.tick(dt)
            except Exception:
                # Logged and skipped; the driver keeps running.
                logger.exception("Timeline tick failed")
