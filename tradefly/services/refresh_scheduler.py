from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from tradefly.services.price_service import PriceService

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Recurring action on a daemon thread, owned and stopped by its creator.

    ``stop()`` wakes a sleeping worker immediately, so ``stop()`` followed by
    ``join()`` returns as soon as any in-flight tick completes.
    """

    def __init__(
        self,
        name: str,
        interval_sec: float,
        action: Callable[[], Any],
        *,
        run_immediately: bool = False,
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be > 0")
        self.name = name
        self.interval_sec = interval_sec
        self.action = action
        self.run_immediately = run_immediately
        self.ticks = 0
        self.failures = 0
        self.last_error: str | None = None
        self.last_run_ts: int | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        if self.running:
            return
        # per-run event: a worker still inside a stopped tick exits after it
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run, args=(stop_event,), daemon=True, name=self.name
        )
        logger.info("[TASK][start] name=%s interval_sec=%s", self.name, self.interval_sec)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is None:
            return
        self._thread.join(timeout=timeout)
        if not self._thread.is_alive():
            logger.info("[TASK][stop] name=%s ticks=%d", self.name, self.ticks)

    def run_once(self) -> bool:
        self.last_run_ts = int(time.time())
        try:
            self.action()
        except Exception as exc:
            self.failures += 1
            self.last_error = str(exc)
            logger.exception("[TASK][tick_failed] name=%s", self.name)
            return False
        self.ticks += 1
        self.last_error = None
        return True

    def _run(self, stop_event: threading.Event) -> None:
        if self.run_immediately and not stop_event.is_set():
            self.run_once()
        while not stop_event.wait(self.interval_sec):
            self.run_once()

    def status(self) -> dict:
        return {
            "name": self.name,
            "running": self.running,
            "interval_sec": self.interval_sec,
            "ticks": self.ticks,
            "failures": self.failures,
            "last_error": self.last_error,
            "last_run_ts": self.last_run_ts,
        }


class RefreshScheduler(PeriodicTask):
    """Re-fetches every ticker already in the price cache on a fixed period."""

    def __init__(self, price_service: PriceService, interval_sec: float = 5.0) -> None:
        super().__init__("price-refresh", interval_sec, price_service.refresh_cached_tickers)
        self.price_service = price_service
