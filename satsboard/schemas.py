from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# --- Market snapshot (wire shape of GET /snapshot) ---
class BitcoinQuote(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)
    usd: int | float = Field(gt=0)
    lkr: int | float = Field(gt=0)
    usd_24h_change: int | float = 0


class MempoolStats(BaseModel):
    model_config = ConfigDict(frozen=True)
    count: int = Field(ge=0)
    vsize: int = Field(ge=0)


class MarketSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)
    bitcoin: BitcoinQuote
    mempool: MempoolStats
    blockHeight: int = Field(ge=0)


DEFAULT_MEMPOOL = MempoolStats(count=15000, vsize=8500000)
DEFAULT_BLOCK_HEIGHT = 875000

FALLBACK_SNAPSHOT = MarketSnapshot(
    bitcoin=BitcoinQuote(usd=98500, lkr=29850000, usd_24h_change=2.5),
    mempool=DEFAULT_MEMPOOL,
    blockHeight=DEFAULT_BLOCK_HEIGHT,
)


# --- Health payload ---
class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    as_of: str
    service: str = "satsboard"
    cache_age_s: float | None = None


# --- Version payload ---
class VersionResponse(BaseModel):
    service: str  # "satsboard-proxy:0.1.0"
    service_version: str
    commit: str
    build_time: str  # UTC ISO


# --- Error taxonomy (log/metric labels; never surfaced as HTTP errors) ---
class ErrorCode(str, Enum):
    UPSTREAM_STATUS = "UPSTREAM_STATUS"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    MALFORMED_PAYLOAD = "MALFORMED_PAYLOAD"
    INTERNAL_ERROR = "INTERNAL_ERROR"
