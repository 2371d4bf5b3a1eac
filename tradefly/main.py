from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import ValidationError

from tradefly.api.routes import router
from tradefly.config.settings import Settings, get_settings
from tradefly.integrations.backend_api import BackendApiClient
from tradefly.integrations.polygon_rest import PolygonRestClient
from tradefly.logging_utils import setup_logging
from tradefly.services.market_status import MarketStatusService
from tradefly.services.price_service import PriceService
from tradefly.services.quote_cache import QuoteCache
from tradefly.services.refresh_scheduler import PeriodicTask, RefreshScheduler
from tradefly.services.signal_feed import SignalFeedService

logger = logging.getLogger(__name__)

_TASK_STOP_TIMEOUT_SEC = 1.0


def apply_settings(app: FastAPI, settings: Settings) -> None:
    state = app.state
    state.polygon_client.api_key = settings.POLYGON_API_KEY
    state.polygon_client.timeout = settings.HTTP_TIMEOUT_SEC
    state.backend_client.base_url = settings.BACKEND_BASE_URL.rstrip('/')
    state.backend_client.timeout = settings.HTTP_TIMEOUT_SEC

    state.price_service.batch_size = settings.PRICE_BATCH_SIZE
    state.price_service.fresh_ttl_sec = settings.PRICE_FRESH_TTL_SEC
    state.price_service.rate_limit_cooldown_sec = settings.PRICE_RATE_LIMIT_COOLDOWN_SEC

    state.refresh_scheduler.interval_sec = settings.PRICE_REFRESH_INTERVAL_SEC
    state.market_status_task.interval_sec = settings.MARKET_STATUS_POLL_SEC
    state.signal_task.interval_sec = settings.SIGNAL_POLL_SEC


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        settings = app.state.get_settings()
    except ValidationError as exc:
        # app still serves cached/absent data; provider calls will report UNAUTHORIZED
        logger.warning('[APP][settings_unavailable] errors=%d', exc.error_count())
    else:
        setup_logging(settings.LOG_LEVEL)
        apply_settings(app, settings)

    tasks = app.state.periodic_tasks
    for task in tasks:
        task.start()

    try:
        yield
    finally:
        for task in tasks:
            task.stop()
        for task in tasks:
            task.join(timeout=_TASK_STOP_TIMEOUT_SEC)


app = FastAPI(title='TradeFly Price Gateway', version='0.1.0', lifespan=lifespan)
app.include_router(router, prefix='/v1')

# NOTE: lazy-loaded so app import does not require env during tests.
app.state.get_settings = get_settings
app.state.quote_cache = QuoteCache()
app.state.polygon_client = PolygonRestClient(api_key='')
app.state.backend_client = BackendApiClient()
app.state.price_service = PriceService(
    quote_cache=app.state.quote_cache,
    provider=app.state.polygon_client,
)
app.state.market_status_service = MarketStatusService(app.state.backend_client)
app.state.signal_feed_service = SignalFeedService(app.state.backend_client)

app.state.refresh_scheduler = RefreshScheduler(app.state.price_service, interval_sec=5.0)
app.state.market_status_task = PeriodicTask(
    'market-status-poll',
    60.0,
    app.state.market_status_service.refresh,
    run_immediately=True,
)
app.state.signal_task = PeriodicTask(
    'signal-poll',
    30.0,
    app.state.signal_feed_service.refresh,
    run_immediately=True,
)
app.state.periodic_tasks = [
    app.state.refresh_scheduler,
    app.state.market_status_task,
    app.state.signal_task,
]
