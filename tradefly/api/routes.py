from fastapi import APIRouter, HTTPException, Request

router = APIRouter()


def _split_tickers(tickers: str) -> list[str]:
    return [t.strip() for t in tickers.split(',') if t.strip()]


@router.get('/prices')
def get_prices(tickers: str, request: Request):
    service = request.app.state.price_service
    quotes = service.fetch_prices(_split_tickers(tickers))
    return [q.model_dump(mode='json') for q in quotes]


@router.get('/prices/results')
def get_price_results(tickers: str, request: Request):
    service = request.app.state.price_service
    results = service.fetch_price_results(_split_tickers(tickers))
    return [r.model_dump(mode='json') for r in results]


@router.get('/prices/{ticker}')
def get_price(ticker: str, request: Request):
    service = request.app.state.price_service
    quote = service.get_price(ticker)
    if quote is None:
        raise HTTPException(status_code=404, detail='PRICE_UNAVAILABLE')
    return quote.model_dump(mode='json')


@router.get('/prices/{ticker}/realtime')
def get_real_time_quote(ticker: str, request: Request):
    service = request.app.state.price_service
    quote = service.get_real_time_quote(ticker)
    if quote is None:
        raise HTTPException(status_code=404, detail='PRICE_UNAVAILABLE')
    return quote.model_dump(mode='json')


@router.get('/market-status')
def get_market_status(request: Request):
    service = request.app.state.market_status_service
    if service.market_status is None:
        raise HTTPException(status_code=503, detail='MARKET_STATUS_UNAVAILABLE')
    return {
        **service.market_status.model_dump(mode='json', by_alias=True),
        'error': service.error,
    }


@router.get('/signals/active')
def get_active_signals(request: Request):
    return request.app.state.signal_feed_service.snapshot()


@router.post('/signals/{signal_id}/dismiss')
def dismiss_signal(signal_id: str, request: Request):
    if not request.app.state.signal_feed_service.dismiss(signal_id):
        raise HTTPException(status_code=404, detail='signal not found')
    return {'signal_id': signal_id, 'status': 'DISMISSED'}


@router.post('/signals/{signal_id}/executed')
def mark_signal_executed(signal_id: str, request: Request):
    if not request.app.state.signal_feed_service.mark_executed(signal_id):
        raise HTTPException(status_code=404, detail='signal not found')
    return {'signal_id': signal_id, 'status': 'EXECUTED'}


@router.get('/metrics/price')
def price_metrics(request: Request):
    return request.app.state.price_service.metrics()


@router.get('/metrics/scheduler')
def scheduler_metrics(request: Request):
    return [task.status() for task in request.app.state.periodic_tasks]
