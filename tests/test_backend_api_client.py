import unittest
from unittest.mock import MagicMock

import requests

from tradefly.errors import BackendApiError
from tradefly.integrations.backend_api import BackendApiClient
from tradefly.schemas.signal import AssetType, Quality, SignalType

MARKET_STATUS = {
    "status": "open",
    "status_text": "Market Open",
    "is_open": True,
    "next_change": "16:00 ET",
    "indices": {
        "SPY": {"price": 512.3, "change_percent": 0.42},
        "QQQ": {"price": 441.0, "change_percent": -0.1},
        "BTC": None,
    },
    "timestamp": "2026-01-02T15:00:00Z",
}

SIGNAL = {
    "id": "sig-1",
    "ticker": "NVDA",
    "signal_type": "VWAP_RECLAIM_LONG",
    "quality": "HIGH",
    "timestamp": "2026-01-02T15:00:00Z",
    "price": 188.2,
    "vwap": 187.9,
    "ema9": 188.1,
    "ema20": 187.7,
    "ema50": 186.9,
    "volume": 1250000,
    "context": "Strong VWAP reclaim with rising volume",
    "idea": "CALL",
    "entry": {"low": 188.1, "high": 188.3},
    "stop_loss": 187.8,
    "target": 210.78,
    "target_percentage": 12.0,
    "timeframe": "1min",
    "asset_type": "STOCK",
    "signal_strength": 92.0,
    "success_probability": 78.0,
}


def _response(status_code: int = 200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def _client(session) -> BackendApiClient:
    return BackendApiClient(base_url="https://backend.test/", session=session, timeout=30)


class TestBackendApiClient(unittest.TestCase):
    def test_market_status_parses_snake_case_and_index_aliases(self):
        session = MagicMock()
        session.request.return_value = _response(payload=MARKET_STATUS)

        status = _client(session).fetch_market_status()

        session.request.assert_called_once_with(
            "GET", "https://backend.test/market-status", params=None, timeout=30
        )
        self.assertTrue(status.is_open)
        self.assertEqual(status.status_text, "Market Open")
        self.assertEqual(status.indices.spy.price, 512.3)
        self.assertEqual(status.indices.qqq.change_percent, -0.1)
        self.assertIsNone(status.indices.btc)

    def test_active_signals_parse_enums(self):
        session = MagicMock()
        session.request.return_value = _response(payload=[SIGNAL])

        signals = _client(session).fetch_active_signals()

        self.assertEqual(len(signals), 1)
        self.assertEqual(signals[0].signal_type, SignalType.VWAP_RECLAIM_LONG)
        self.assertEqual(signals[0].quality, Quality.HIGH)
        self.assertEqual(signals[0].quality.score, 3)
        self.assertEqual(signals[0].asset_type, AssetType.STOCK)
        self.assertEqual(signals[0].entry.low, 188.1)

    def test_active_signals_accepts_wrapped_list(self):
        session = MagicMock()
        session.request.return_value = _response(payload={"signals": [SIGNAL]})

        self.assertEqual(len(_client(session).fetch_active_signals()), 1)

    def test_news_and_candles_pass_query_params(self):
        session = MagicMock()
        session.request.side_effect = [
            _response(payload={"ticker": "AAPL", "news_count": 0, "news": []}),
            _response(payload={"news_count": 1, "news": [{"title": "Fed holds"}]}),
            _response(payload={"ticker": "AAPL", "interval": "5m", "candle_count": 0, "candles": []}),
        ]
        client = _client(session)

        news = client.fetch_ticker_news("AAPL")
        market_news = client.fetch_market_news(hours_back=12)
        candles = client.fetch_candles("AAPL", interval="5m", limit=50)

        calls = session.request.call_args_list
        self.assertEqual(calls[0].args, ("GET", "https://backend.test/news/AAPL"))
        self.assertEqual(calls[0].kwargs["params"], {"hours_back": 4})
        self.assertEqual(calls[1].args, ("GET", "https://backend.test/news/market/latest"))
        self.assertEqual(calls[1].kwargs["params"], {"hours_back": 12})
        self.assertEqual(calls[2].kwargs["params"], {"interval": "5m", "limit": 50})
        self.assertEqual(news.news_count, 0)
        self.assertEqual(market_news.news[0].title, "Fed holds")
        self.assertEqual(candles.interval, "5m")

    def test_health_stats_and_price(self):
        session = MagicMock()
        session.request.side_effect = [
            _response(payload={
                "status": "healthy", "supabase": "connected", "market_data": "ok",
                "active_signals": 3, "scheduler": "running",
            }),
            _response(payload={
                "total_active_signals": 3,
                "by_quality": {"HIGH": 1, "MEDIUM": 1, "LOW": 1},
                "tickers_watched": 20,
                "scan_interval": 60,
            }),
            _response(payload={
                "ticker": "AAPL", "price": 175.8, "timestamp": "2026-01-02T15:00:00Z",
                "open": 174.0, "high": 176.0, "low": 173.5, "volume": 2100000, "vwap": 175.6,
            }),
        ]
        client = _client(session)

        health = client.check_health()
        stats = client.fetch_stats()
        price = client.fetch_price("AAPL")

        self.assertEqual(health.active_signals, 3)
        self.assertEqual(stats.by_quality.high, 1)
        self.assertEqual(price.vwap, 175.6)
        self.assertIsNone(price.ema9)

    def test_trigger_scan_posts(self):
        session = MagicMock()
        session.request.return_value = _response(status_code=202)

        self.assertIsNone(_client(session).trigger_signal_scan())
        self.assertEqual(session.request.call_args.args, ("POST", "https://backend.test/signals/scan"))
        session.request.return_value.json.assert_not_called()

    def test_non_2xx_raises_with_status(self):
        session = MagicMock()
        session.request.return_value = _response(status_code=500, payload={})

        with self.assertRaises(BackendApiError) as ctx:
            _client(session).fetch_market_status()

        self.assertEqual(str(ctx.exception), "HTTP 500")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_transport_failure_raises_backend_error(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(BackendApiError) as ctx:
            _client(session).check_health()

        self.assertIsInstance(ctx.exception.__cause__, requests.ConnectionError)

    def test_schema_mismatch_is_invalid_response(self):
        session = MagicMock()
        session.request.return_value = _response(payload={"status": "open"})

        with self.assertRaises(BackendApiError) as ctx:
            _client(session).fetch_market_status()

        self.assertEqual(str(ctx.exception), "INVALID_RESPONSE")


if __name__ == "__main__":
    unittest.main()
