from __future__ import annotations

import threading

from tradefly.schemas.quote import Quote


class QuoteCache:
    """Last known quote per ticker, shared by fetch callers and the refresh task.

    Quotes are immutable, so swapping the dict entry under the lock is the
    whole write: readers see either the old record or the new one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, Quote] = {}

    def upsert(self, quote: Quote) -> None:
        with self._lock:
            self._rows[quote.ticker] = quote

    def get(self, ticker: str) -> Quote | None:
        with self._lock:
            return self._rows.get(ticker)

    def tickers(self) -> list[str]:
        with self._lock:
            return list(self._rows.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)
