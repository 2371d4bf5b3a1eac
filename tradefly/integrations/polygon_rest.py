from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import requests

from tradefly.errors import (
    NoDataError,
    RateLimitedError,
    ServerError,
    TransportError,
    UnauthorizedError,
)
from tradefly.schemas.quote import Quote


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_change(price: float, reference: float) -> tuple[float, float]:
    """Return ``(change, change_percent)`` of ``price`` against ``reference``."""
    change = price - reference
    if reference == 0:
        return change, 0.0
    return change, change / reference * 100


class PolygonRestClient:
    """Polygon.io aggregate and last-trade client with classified failures."""

    BASE_URL = "https://api.polygon.io"

    def __init__(
        self,
        api_key: str,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.clock = clock

    @staticmethod
    def _to_float(value: Any, *, field_name: str, ticker: str) -> float:
        try:
            if value is None or value == "":
                raise ValueError(f"missing value for {field_name}")
            return float(value)
        except (TypeError, ValueError) as exc:
            raise TransportError(ticker, f"invalid {field_name}: {value!r}") from exc

    def _get_json(self, ticker: str, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                params={**params, "apiKey": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(ticker, type(exc).__name__) from exc

        status = response.status_code
        if status == 401:
            raise UnauthorizedError(ticker)
        if status == 429:
            raise RateLimitedError(ticker)
        if not 200 <= status < 300:
            raise ServerError(ticker, status)

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(ticker, "malformed body") from exc
        if not isinstance(payload, dict):
            raise TransportError(ticker, "malformed body")
        return payload

    def fetch_quote(self, ticker: str) -> Quote:
        """Previous-close bar for ``ticker`` normalized into a Quote."""
        payload = self._get_json(ticker, f"/v2/aggs/ticker/{ticker}/prev", {"adjusted": "true"})
        results = payload.get("results") or []
        if not isinstance(results, list):
            raise TransportError(ticker, "malformed results")
        if not results:
            raise NoDataError(ticker)

        bar = results[0]
        if not isinstance(bar, dict):
            raise TransportError(ticker, "malformed results")
        open_price = self._to_float(bar.get("o"), field_name="o", ticker=ticker)
        close_price = self._to_float(bar.get("c"), field_name="c", ticker=ticker)
        volume = self._to_float(bar.get("v", 0), field_name="v", ticker=ticker)
        change, change_percent = compute_change(close_price, open_price)

        return Quote(
            ticker=ticker,
            name=ticker,
            last_price=close_price,
            change=change,
            change_percent=change_percent,
            volume=max(int(volume), 0),
            timestamp=self.clock(),
        )

    def fetch_last_trade(self, ticker: str) -> Dict[str, Any]:
        payload = self._get_json(ticker, f"/v2/last/trade/{ticker}", {})
        results = payload.get("results")
        if not isinstance(results, dict) or not results:
            raise NoDataError(ticker)

        return {
            "ticker": ticker,
            "price": self._to_float(results.get("p"), field_name="p", ticker=ticker),
            "size": max(int(self._to_float(results.get("s", 0), field_name="s", ticker=ticker)), 0),
        }
