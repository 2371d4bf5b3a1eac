from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Protocol

from tradefly.errors import FetchError, RateLimitedError, UnauthorizedError
from tradefly.integrations.polygon_rest import compute_change, utcnow
from tradefly.schemas.quote import PriceResult, Quote
from tradefly.services.quote_cache import QuoteCache

logger = logging.getLogger(__name__)


class QuoteProvider(Protocol):
    def fetch_quote(self, ticker: str) -> Quote:
        ...

    def fetch_last_trade(self, ticker: str) -> Dict[str, Any]:
        ...


class PriceService:
    """Batched provider fan-out merged into a shared QuoteCache.

    Failures never reach the caller: a ticker that could not be fetched
    resolves to its cached quote (STALE) or is reported UNAVAILABLE.
    """

    def __init__(
        self,
        *,
        quote_cache: QuoteCache,
        provider: QuoteProvider,
        batch_size: int = 5,
        fresh_ttl_sec: float = 10.0,
        rate_limit_cooldown_sec: float = 0.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.quote_cache = quote_cache
        self.provider = provider
        self.batch_size = batch_size
        self.fresh_ttl_sec = fresh_ttl_sec
        self.rate_limit_cooldown_sec = rate_limit_cooldown_sec
        self.clock = clock

        self._lock = threading.Lock()
        self._cooldown_until: dict[str, datetime] = {}
        self._counters: dict[str, int] = {
            "provider_calls": 0,
            "fresh_count": 0,
            "stale_count": 0,
            "unavailable_count": 0,
            "cooldown_skips": 0,
        }
        self._error_counts: dict[str, int] = {}
        self.last_batch_target = 0
        self.last_batch_waves = 0
        self.last_batch_final = 0

    @staticmethod
    def normalize_tickers(tickers: list[str]) -> list[str]:
        unique_tickers: list[str] = []
        seen: set[str] = set()
        for ticker in tickers:
            value = str(ticker).strip().upper()
            if not value or value in seen:
                continue
            seen.add(value)
            unique_tickers.append(value)
        return unique_tickers

    def _count(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount

    def _is_fresh(self, quote: Quote, now: datetime) -> bool:
        age = (now - quote.timestamp).total_seconds()
        return age < self.fresh_ttl_sec

    def _prune_expired_cooldowns(self, now: datetime) -> None:
        with self._lock:
            expired = [t for t, until in self._cooldown_until.items() if until <= now]
            for t in expired:
                self._cooldown_until.pop(t, None)

    def _is_ticker_cooldown(self, ticker: str, now: datetime) -> bool:
        with self._lock:
            until = self._cooldown_until.get(ticker)
        return until is not None and now < until

    def _mark_ticker_cooldown(self, ticker: str, now: datetime) -> None:
        if self.rate_limit_cooldown_sec <= 0:
            return
        with self._lock:
            self._cooldown_until[ticker] = now + timedelta(seconds=self.rate_limit_cooldown_sec)

    def _record_failure(self, exc: FetchError, now: datetime) -> None:
        with self._lock:
            self._error_counts[exc.kind] = self._error_counts.get(exc.kind, 0) + 1
        if isinstance(exc, UnauthorizedError):
            logger.error("[PRICE][provider_unauthorized] ticker=%s check POLYGON_API_KEY", exc.ticker)
            return
        if isinstance(exc, RateLimitedError):
            self._mark_ticker_cooldown(exc.ticker, now)
        logger.warning("[PRICE][fetch_failed] ticker=%s error=%s", exc.ticker, exc)

    def _fallback(self, ticker: str, error: str) -> PriceResult:
        cached = self.quote_cache.get(ticker)
        if cached is not None:
            self._count("stale_count")
            return PriceResult(ticker=ticker, status="STALE", quote=cached, error=error)
        self._count("unavailable_count")
        return PriceResult(ticker=ticker, status="UNAVAILABLE", quote=None, error=error)

    def _resolve(self, ticker: str) -> PriceResult:
        now = self.clock()
        if self._is_ticker_cooldown(ticker, now):
            self._count("cooldown_skips")
            return self._fallback(ticker, RateLimitedError.kind)

        self._count("provider_calls")
        try:
            quote = self.provider.fetch_quote(ticker)
        except FetchError as exc:
            self._record_failure(exc, now)
            return self._fallback(ticker, exc.kind)

        self.quote_cache.upsert(quote)
        self._count("fresh_count")
        return PriceResult(ticker=ticker, status="FRESH", quote=quote)

    def fetch_price_results(self, tickers: list[str]) -> list[PriceResult]:
        unique_tickers = self.normalize_tickers(tickers)
        if not unique_tickers:
            return []

        self._prune_expired_cooldowns(self.clock())
        batches = [
            unique_tickers[i : i + self.batch_size]
            for i in range(0, len(unique_tickers), self.batch_size)
        ]

        resolved: dict[str, PriceResult] = {}
        workers = min(self.batch_size, len(unique_tickers))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="price-fetch") as pool:
            for batch in batches:
                futures = [pool.submit(self._resolve, ticker) for ticker in batch]
                # next wave only starts once every fetch of this one is done
                wait(futures)
                for future in futures:
                    result = future.result()
                    resolved[result.ticker] = result

        out = [resolved[ticker] for ticker in unique_tickers]
        fresh = sum(1 for r in out if r.status == "FRESH")
        stale = sum(1 for r in out if r.status == "STALE")
        final = len(out) - sum(1 for r in out if r.status == "UNAVAILABLE")

        with self._lock:
            self.last_batch_target = len(unique_tickers)
            self.last_batch_waves = len(batches)
            self.last_batch_final = final

        logger.info(
            "[PRICE][batch_resolve] target_count=%d waves=%d fresh_count=%d stale_count=%d final_count=%d",
            len(unique_tickers),
            len(batches),
            fresh,
            stale,
            final,
        )
        return out

    def fetch_prices(self, tickers: list[str]) -> list[Quote]:
        return [r.quote for r in self.fetch_price_results(tickers) if r.quote is not None]

    def get_price(self, ticker: str) -> Quote | None:
        """Cached quote if younger than ``fresh_ttl_sec``, else one direct fetch."""
        symbol = str(ticker).strip().upper()
        if not symbol:
            return None

        cached = self.quote_cache.get(symbol)
        if cached is not None and self._is_fresh(cached, self.clock()):
            return cached
        return self._resolve(symbol).quote

    def get_real_time_quote(self, ticker: str) -> Quote | None:
        symbol = str(ticker).strip().upper()
        if not symbol:
            return None

        self._count("provider_calls")
        try:
            trade = self.provider.fetch_last_trade(symbol)
        except FetchError as exc:
            self._record_failure(exc, self.clock())
            logger.info("[PRICE][realtime_fallback] ticker=%s error=%s", symbol, exc.kind)
            return self._resolve(symbol).quote

        price = float(trade["price"])
        cached = self.quote_cache.get(symbol)
        reference = cached.last_price if cached is not None else price
        change, change_percent = compute_change(price, reference)
        return Quote(
            ticker=symbol,
            name=symbol,
            last_price=price,
            change=change,
            change_percent=change_percent,
            volume=int(trade.get("size", 0)),
            timestamp=self.clock(),
        )

    def refresh_cached_tickers(self) -> int:
        tickers = self.quote_cache.tickers()
        if not tickers:
            return 0
        self.fetch_price_results(tickers)
        return len(tickers)

    def metrics(self) -> dict[str, int]:
        with self._lock:
            out: dict[str, int] = dict(self._counters)
            for kind, count in self._error_counts.items():
                out[f"error_{kind.lower()}"] = count
            out["cached_tickers"] = len(self.quote_cache)
            out["cooldown_tickers"] = len(self._cooldown_until)
            out["batch_target_count"] = self.last_batch_target
            out["batch_wave_count"] = self.last_batch_waves
            out["batch_final_count"] = self.last_batch_final
        return out
