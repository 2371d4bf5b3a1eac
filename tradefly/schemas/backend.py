from pydantic import BaseModel, ConfigDict, Field


class IndexData(BaseModel):
    price: float
    change_percent: float


class MarketIndices(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spy: IndexData | None = Field(default=None, alias="SPY")
    qqq: IndexData | None = Field(default=None, alias="QQQ")
    btc: IndexData | None = Field(default=None, alias="BTC")


class MarketStatusResponse(BaseModel):
    status: str
    status_text: str
    is_open: bool
    next_change: str | None = None
    indices: MarketIndices
    timestamp: str


class PriceResponse(BaseModel):
    ticker: str
    price: float
    timestamp: str
    open: float
    high: float
    low: float
    volume: int
    vwap: float | None = None
    ema9: float | None = None
    ema20: float | None = None
    ema50: float | None = None


class NewsArticle(BaseModel):
    title: str
    url: str | None = None
    source: str | None = None
    published_at: str | None = None
    summary: str | None = None
    sentiment: str | None = None


class NewsResponse(BaseModel):
    ticker: str
    news_count: int
    news: list[NewsArticle]
    sentiment_summary: str | None = None


class MarketNewsResponse(BaseModel):
    news_count: int
    news: list[NewsArticle]
    summary: str | None = None


class Candle(BaseModel):
    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: int


class CandlesResponse(BaseModel):
    ticker: str
    interval: str
    candle_count: int
    candles: list[Candle]


class HealthResponse(BaseModel):
    status: str
    supabase: str
    market_data: str
    active_signals: int
    scheduler: str


class QualityCounts(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    high: int = Field(alias="HIGH")
    medium: int = Field(alias="MEDIUM")
    low: int = Field(alias="LOW")


class StatsResponse(BaseModel):
    total_active_signals: int
    by_quality: QualityCounts
    tickers_watched: int
    scan_interval: int
