from __future__ import annotations

import logging
import threading

from tradefly.errors import BackendApiError
from tradefly.integrations.backend_api import BackendApiClient
from tradefly.schemas.backend import MarketStatusResponse

logger = logging.getLogger(__name__)


class MarketStatusService:
    """Holds the last market status fetched from the backend."""

    def __init__(self, api_client: BackendApiClient) -> None:
        self.api_client = api_client
        self._lock = threading.Lock()
        self.market_status: MarketStatusResponse | None = None
        self.error: str | None = None
        self.is_loading = False

    def refresh(self) -> MarketStatusResponse | None:
        with self._lock:
            self.is_loading = True
        try:
            status = self.api_client.fetch_market_status()
        except BackendApiError as exc:
            with self._lock:
                self.error = str(exc)
                self.is_loading = False
            logger.warning("[MARKET][status_failed] error=%s", exc)
            return self.market_status

        with self._lock:
            self.market_status = status
            self.error = None
            self.is_loading = False
        return status
