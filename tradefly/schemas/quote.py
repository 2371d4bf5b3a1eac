from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    ticker: str
    name: str
    last_price: float
    change: float
    change_percent: float
    volume: int = Field(ge=0)
    timestamp: datetime


class PriceResult(BaseModel):
    ticker: str
    status: Literal["FRESH", "STALE", "UNAVAILABLE"]
    quote: Quote | None = None
    error: str | None = None
