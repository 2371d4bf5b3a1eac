import os
from functools import lru_cache

from pydantic import BaseModel, Field


class Settings(BaseModel):
    POLYGON_API_KEY: str = Field(min_length=1)
    BACKEND_BASE_URL: str = "http://localhost:8000"
    PRICE_REFRESH_INTERVAL_SEC: float = Field(default=5.0, gt=0)
    PRICE_BATCH_SIZE: int = Field(default=5, ge=1)
    PRICE_FRESH_TTL_SEC: float = Field(default=10.0, ge=0)
    PRICE_RATE_LIMIT_COOLDOWN_SEC: float = Field(default=0.0, ge=0)
    HTTP_TIMEOUT_SEC: float = Field(default=30.0, gt=0)
    MARKET_STATUS_POLL_SEC: float = Field(default=60.0, gt=0)
    SIGNAL_POLL_SEC: float = Field(default=30.0, gt=0)
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {"POLYGON_API_KEY": os.getenv("POLYGON_API_KEY")}
        # unset optional vars fall through to model defaults
        for name in (
            "BACKEND_BASE_URL",
            "PRICE_REFRESH_INTERVAL_SEC",
            "PRICE_BATCH_SIZE",
            "PRICE_FRESH_TTL_SEC",
            "PRICE_RATE_LIMIT_COOLDOWN_SEC",
            "HTTP_TIMEOUT_SEC",
            "MARKET_STATUS_POLL_SEC",
            "SIGNAL_POLL_SEC",
            "LOG_LEVEL",
        ):
            raw = os.getenv(name)
            if raw is not None and raw.strip():
                values[name] = raw.strip()

        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
