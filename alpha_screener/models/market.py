"""Market quote data and the judged market analysis."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

ProblemType = Literal["Niche", "Broad"]
NarrativeCycleTiming = Literal["Early", "Mid", "Late", "Post-Peak"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RawMarketData(BaseModel):
    """Quote snapshot from a single market-data provider."""

    name: str
    symbol: str = ""
    market_cap: float | None = None
    volume_24h: float | None = None
    price: float | None = None
    price_change_24h: float | None = None
    price_change_7d: float | None = None
    price_change_30d: float | None = None
    circulating_supply: float | None = None
    total_supply: float | None = None
    max_supply: float | None = None
    rank: int | None = None
    categories: list[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=_utcnow)


class Competitor(BaseModel):
    name: str
    market_cap: float | None = None
    similarity: float = Field(..., ge=0, le=100)


class MarketJudgment(BaseModel):
    """Schema the AI judgment must satisfy for the market stage."""

    problem_type: ProblemType
    competitors: list[Competitor] = Field(default_factory=list)
    differentiation_clarity: float = Field(..., ge=0, le=100)
    market_saturation: float = Field(..., ge=0, le=100)
    narrative_cycle_timing: NarrativeCycleTiming


class MarketAnalysis(MarketJudgment):
    market_cap: float | None = None
    volume_24h: float | None = None
    price_change_7d: float | None = None
