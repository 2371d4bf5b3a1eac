from __future__ import annotations

import logging
import threading

from tradefly.errors import BackendApiError
from tradefly.integrations.backend_api import BackendApiClient
from tradefly.schemas.signal import TradingSignal

logger = logging.getLogger(__name__)


class SignalFeedService:
    """Active trading signals polled from the backend, plus local history.

    A failed poll keeps the previous active list; the error text is kept in
    ``error`` until the next successful poll.
    """

    def __init__(self, api_client: BackendApiClient) -> None:
        self.api_client = api_client
        self._lock = threading.Lock()
        self.active_signals: list[TradingSignal] = []
        self.historical_signals: list[TradingSignal] = []
        self.error: str | None = None
        self.is_loading = False

    def refresh(self) -> list[TradingSignal]:
        with self._lock:
            self.is_loading = True
        try:
            signals = self.api_client.fetch_active_signals()
        except BackendApiError as exc:
            with self._lock:
                self.error = str(exc)
                self.is_loading = False
                current = list(self.active_signals)
            logger.warning("[SIGNAL][poll_failed] error=%s", exc)
            return current

        with self._lock:
            self.active_signals = list(signals)
            self.error = None
            self.is_loading = False
        logger.debug("[SIGNAL][poll] active_count=%d", len(signals))
        return list(signals)

    def _pop_active(self, signal_id: str) -> TradingSignal | None:
        for idx, signal in enumerate(self.active_signals):
            if signal.id == signal_id:
                return self.active_signals.pop(idx)
        return None

    def mark_executed(self, signal_id: str) -> bool:
        with self._lock:
            signal = self._pop_active(signal_id)
            if signal is None:
                return False
            self.historical_signals.insert(0, signal)
            return True

    def dismiss(self, signal_id: str) -> bool:
        with self._lock:
            return self._pop_active(signal_id) is not None

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "active": [s.model_dump(mode="json") for s in self.active_signals],
                "historical_count": len(self.historical_signals),
                "error": self.error,
            }
