"""Funding records as delivered by providers and after reconciliation."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_round_date(value: str) -> datetime:
    """Parse an ISO-8601 date or timestamp into an aware UTC datetime."""
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = f"{candidate[:-1]}+00:00"
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class FundingStage(str, Enum):
    BOOTSTRAPPED = "Bootstrapped"
    PRE_SEED = "Pre-Seed"
    SEED = "Seed"
    SERIES_A = "Series A"
    SERIES_B = "Series B"
    SERIES_C = "Series C"
    PUBLIC = "Public"
    UNKNOWN = "Unknown"


class InvestorQuality(str, Enum):
    TIER_1 = "Tier-1"
    STRATEGIC = "Strategic"
    ANGELS = "Angels"
    MIXED = "Mixed"
    UNKNOWN = "Unknown"


class RawFundingRound(BaseModel):
    """Single round as reported by one provider; not yet deduplicated."""

    stage: str
    amount_usd: float = 0.0
    date: str
    investors: list[str] = Field(default_factory=list)
    source: str

    @field_validator("date")
    @classmethod
    def _ensure_iso_date(cls, value: str) -> str:
        try:
            parse_round_date(value)
        except ValueError as exc:
            raise ValueError(f"Round date is not ISO-8601: {value!r}") from exc
        return value

    @property
    def parsed_date(self) -> datetime:
        return parse_round_date(self.date)

    @property
    def dedupe_key(self) -> tuple[str, datetime]:
        return (self.stage, self.parsed_date)


class RawFundingData(BaseModel):
    """One provider's funding history, pre-merge."""

    project_name: str
    total_raised: float = 0.0
    rounds: list[RawFundingRound] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=_utcnow)


class FundingRound(BaseModel):
    stage: str
    amount_usd: float
    date: datetime
    investors: list[str] = Field(default_factory=list)


class FundingAnalysis(BaseModel):
    """Reconciled funding history; rounds are sorted ascending by date."""

    stage: FundingStage
    total_raised_usd: float
    rounds: list[FundingRound] = Field(default_factory=list)
    investor_quality: InvestorQuality
    timeline_consistency: float = Field(..., ge=0, le=100)
