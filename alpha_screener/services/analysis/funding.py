"""Funding reconciliation: merge provider histories, classify stage and investors."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Iterable, Sequence
from typing import Final, Protocol

from alpha_screener.models.funding import (
    FundingAnalysis,
    FundingRound,
    FundingStage,
    InvestorQuality,
    RawFundingData,
    RawFundingRound,
)
from alpha_screener.observability.metrics import metrics

logger = logging.getLogger(__name__)

TIER1_INVESTORS: Final[tuple[str, ...]] = (
    "a16z",
    "andreessen horowitz",
    "paradigm",
    "sequoia",
    "polychain",
    "pantera",
    "dragonfly",
    "multicoin",
    "electric capital",
    "coinbase ventures",
    "binance labs",
    "framework ventures",
    "delphi digital",
    "jump crypto",
    "galaxy digital",
    "blockchain capital",
    "variant",
    "haun ventures",
)

# Checked in order; the first label fragment found wins.
_STAGE_RULES: Final[tuple[tuple[tuple[str, ...], FundingStage], ...]] = (
    (("series c",), FundingStage.SERIES_C),
    (("series b",), FundingStage.SERIES_B),
    (("series a",), FundingStage.SERIES_A),
    (("seed",), FundingStage.SEED),
    (("pre-seed", "preseed", "pre seed"), FundingStage.PRE_SEED),
    (("public", "ico", "ido"), FundingStage.PUBLIC),
)

_SECONDS_PER_DAY: Final = 86_400


class FundingPort(Protocol):
    """Two independent funding providers; both return None when nothing is found."""

    async def fetch_from_messari(self, project_name: str) -> RawFundingData | None:
        ...

    async def fetch_from_cryptorank(self, project_name: str) -> RawFundingData | None:
        ...


def merge_funding_data(
    first: RawFundingData | None,
    second: RawFundingData | None,
) -> RawFundingData | None:
    """Merge two provider histories into one deduplicated, date-sorted history."""
    if first is None and second is None:
        return None
    if first is None:
        return second
    if second is None:
        return first
    return RawFundingData(
        project_name=first.project_name,
        total_raised=max(first.total_raised, second.total_raised),
        rounds=deduplicate_rounds([*first.rounds, *second.rounds]),
    )


def deduplicate_rounds(rounds: Iterable[RawFundingRound]) -> list[RawFundingRound]:
    """Collapse rounds sharing (stage, date), keeping the larger amount.

    On equal amounts the later round in iteration order wins.
    """
    seen: dict[tuple, RawFundingRound] = {}
    for funding_round in rounds:
        key = funding_round.dedupe_key
        existing = seen.get(key)
        if existing is None or funding_round.amount_usd >= existing.amount_usd:
            seen[key] = funding_round
    return sorted(seen.values(), key=lambda item: item.parsed_date)


def determine_stage(stage_label: str | None) -> FundingStage:
    if not stage_label:
        return FundingStage.UNKNOWN
    normalized = stage_label.lower()
    for fragments, stage in _STAGE_RULES:
        if any(fragment in normalized for fragment in fragments):
            return stage
    return FundingStage.UNKNOWN


def assess_investor_quality(rounds: Sequence[RawFundingRound]) -> InvestorQuality:
    investors = {
        investor.strip().lower()
        for funding_round in rounds
        for investor in funding_round.investors
        if investor.strip()
    }
    tier1_count = sum(
        1 for investor in investors if any(tier1 in investor for tier1 in TIER1_INVESTORS)
    )
    if tier1_count >= 3:
        return InvestorQuality.TIER_1
    if tier1_count >= 1:
        return InvestorQuality.STRATEGIC
    if investors:
        return InvestorQuality.ANGELS
    return InvestorQuality.UNKNOWN


def calculate_timeline_consistency(rounds: Sequence[RawFundingRound]) -> float:
    """Score 0-100 rewarding evenly spaced raises; fewer than two rounds scores 100."""
    if len(rounds) < 2:
        return 100.0
    dates = sorted((funding_round.parsed_date for funding_round in rounds), reverse=True)
    intervals = [
        (newer - older).total_seconds() / _SECONDS_PER_DAY
        for newer, older in zip(dates, dates[1:])
    ]
    mean = sum(intervals) / len(intervals)
    variance = sum((interval - mean) ** 2 for interval in intervals) / len(intervals)
    cv = math.sqrt(variance) / mean if mean > 0 else 0.0
    return _clamp(100 - cv * 50, 0.0, 100.0)


def build_funding_analysis(data: RawFundingData) -> FundingAnalysis:
    chronological = deduplicate_rounds(data.rounds)
    newest_first = sorted(chronological, key=lambda item: item.parsed_date, reverse=True)
    latest = newest_first[0] if newest_first else None
    return FundingAnalysis(
        stage=determine_stage(latest.stage if latest else None),
        total_raised_usd=data.total_raised,
        rounds=[
            FundingRound(
                stage=item.stage,
                amount_usd=item.amount_usd,
                date=item.parsed_date,
                investors=list(item.investors),
            )
            for item in chronological
        ],
        investor_quality=assess_investor_quality(chronological),
        timeline_consistency=calculate_timeline_consistency(chronological),
    )


class FundingAnalysisService:
    """Fetches both funding providers concurrently and reconciles their histories."""

    def __init__(self, funding_port: FundingPort) -> None:
        self._port = funding_port

    async def analyze(self, project_name: str) -> FundingAnalysis | None:
        messari, cryptorank = await asyncio.gather(
            _fail_safe("messari", self._port.fetch_from_messari(project_name)),
            _fail_safe("cryptorank", self._port.fetch_from_cryptorank(project_name)),
        )
        merged = merge_funding_data(messari, cryptorank)
        if merged is None or not merged.rounds:
            logger.info("funding.no_data", extra={"project": project_name})
            return None
        analysis = build_funding_analysis(merged)
        logger.info(
            "funding.reconciled",
            extra={
                "project": project_name,
                "rounds": len(analysis.rounds),
                "stage": analysis.stage.value,
                "investor_quality": analysis.investor_quality.value,
            },
        )
        return analysis


async def _fail_safe(provider: str, call: Awaitable[RawFundingData | None]) -> RawFundingData | None:
    try:
        return await call
    except Exception as exc:
        metrics.increment(
            "funding.provider_errors",
            tags={"provider": provider, "error": type(exc).__name__},
        )
        logger.warning(
            "funding.provider_failed",
            extra={"provider": provider, "error": str(exc)},
        )
        return None


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
