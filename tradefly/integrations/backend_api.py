from __future__ import annotations

from typing import Any, Optional

import requests
from pydantic import ValidationError

from tradefly.errors import BackendApiError
from tradefly.schemas.backend import (
    CandlesResponse,
    HealthResponse,
    MarketNewsResponse,
    MarketStatusResponse,
    NewsResponse,
    PriceResponse,
    StatsResponse,
)
from tradefly.schemas.signal import TradingSignal


class BackendApiClient:
    """Client for the TradeFly backend REST API (snake_case JSON bodies)."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        session: Optional[Any] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, params: Optional[dict] = None) -> Any:
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendApiError(f"request failed: {type(exc).__name__}") from exc

        if not 200 <= response.status_code < 300:
            raise BackendApiError(f"HTTP {response.status_code}", status_code=response.status_code)
        if method == "POST":
            return None

        try:
            return response.json()
        except ValueError as exc:
            raise BackendApiError("INVALID_RESPONSE") from exc

    @staticmethod
    def _parse(model, payload: Any):
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise BackendApiError("INVALID_RESPONSE") from exc

    def check_health(self) -> HealthResponse:
        return self._parse(HealthResponse, self._request("GET", "/health"))

    def fetch_active_signals(self) -> list[TradingSignal]:
        payload = self._request("GET", "/signals/active")
        # accept both a bare list and {"signals": [...]}
        if isinstance(payload, dict):
            payload = payload.get("signals", [])
        if not isinstance(payload, list):
            raise BackendApiError("INVALID_RESPONSE")
        return [self._parse(TradingSignal, row) for row in payload]

    def trigger_signal_scan(self) -> None:
        self._request("POST", "/signals/scan")

    def fetch_market_status(self) -> MarketStatusResponse:
        return self._parse(MarketStatusResponse, self._request("GET", "/market-status"))

    def fetch_price(self, ticker: str) -> PriceResponse:
        return self._parse(PriceResponse, self._request("GET", f"/price/{ticker}"))

    def fetch_ticker_news(self, ticker: str, hours_back: int = 4) -> NewsResponse:
        payload = self._request("GET", f"/news/{ticker}", params={"hours_back": hours_back})
        return self._parse(NewsResponse, payload)

    def fetch_market_news(self, hours_back: int = 6) -> MarketNewsResponse:
        payload = self._request("GET", "/news/market/latest", params={"hours_back": hours_back})
        return self._parse(MarketNewsResponse, payload)

    def fetch_candles(self, ticker: str, interval: str = "1m", limit: int = 100) -> CandlesResponse:
        payload = self._request(
            "GET",
            f"/candles/{ticker}",
            params={"interval": interval, "limit": limit},
        )
        return self._parse(CandlesResponse, payload)

    def fetch_stats(self) -> StatsResponse:
        return self._parse(StatsResponse, self._request("GET", "/stats"))
