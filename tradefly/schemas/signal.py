from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SignalType(str, Enum):
    ORB_BREAKOUT_LONG = "ORB_BREAKOUT_LONG"
    VWAP_RECLAIM_LONG = "VWAP_RECLAIM_LONG"
    EMA_TREND_CONTINUATION_LONG = "EMA_TREND_CONTINUATION_LONG"
    HOD_BREAKOUT_LONG = "HOD_BREAKOUT_LONG"
    ORB_BREAKDOWN_PUT = "ORB_BREAKDOWN_PUT"
    VWAP_REJECT_PUT = "VWAP_REJECT_PUT"
    LOD_BREAK_PUT = "LOD_BREAK_PUT"


class Quality(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def score(self) -> int:
        return {"HIGH": 3, "MEDIUM": 2, "LOW": 1}[self.value]


class TradeIdea(str, Enum):
    CALL = "CALL"
    PUT = "PUT"
    SKIP = "SKIP"


class AssetType(str, Enum):
    STOCK = "STOCK"
    CRYPTO = "CRYPTO"


class PriceRange(BaseModel):
    low: float
    high: float


class TradingSignal(BaseModel):
    id: str
    ticker: str
    signal_type: SignalType
    quality: Quality
    timestamp: datetime
    price: float
    vwap: float
    ema9: float
    ema20: float
    ema50: float
    volume: int
    context: str
    idea: TradeIdea
    entry: PriceRange
    stop_loss: float
    target: float
    target_percentage: float
    timeframe: str
    asset_type: AssetType
    signal_strength: float
    success_probability: float
