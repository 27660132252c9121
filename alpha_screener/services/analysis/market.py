"""Market reconciliation and the market-opportunity judgment."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Final, Protocol

from alpha_screener.models.market import MarketAnalysis, MarketJudgment, RawMarketData
from alpha_screener.models.project import ProjectNarrative
from alpha_screener.observability.metrics import metrics
from alpha_screener.services.analysis.judgment import JudgmentClient, judge, to_prompt_json
from alpha_screener.services.analysis.prompts import MARKET_ANALYSIS_PROMPT

logger = logging.getLogger(__name__)

NARRATIVE_COMPETITORS: Final[dict[ProjectNarrative, tuple[str, ...]]] = {
    ProjectNarrative.INFRASTRUCTURE: ("Ethereum", "Solana", "Avalanche", "Polygon", "Near"),
    ProjectNarrative.DEFI: ("Uniswap", "Aave", "Compound", "MakerDAO", "Curve"),
    ProjectNarrative.MODULAR: ("Celestia", "Eigenlayer", "Avail", "Dymension"),
    ProjectNarrative.STABLECOIN: ("USDT", "USDC", "DAI", "FRAX", "LUSD"),
    ProjectNarrative.AI: ("Render", "Akash", "Bittensor", "Fetch.ai", "Ocean Protocol"),
    ProjectNarrative.RWA: ("Ondo", "Centrifuge", "Maple", "Goldfinch"),
    ProjectNarrative.GAMING: ("Immutable", "Axie Infinity", "Gala", "The Sandbox", "Decentraland"),
    ProjectNarrative.SOCIAL: ("Lens", "Farcaster", "Friend.tech", "DeSo"),
    ProjectNarrative.PRIVACY: ("Monero", "Zcash", "Secret Network", "Aztec"),
    ProjectNarrative.L1: ("Ethereum", "Solana", "Cardano", "Aptos", "Sui"),
    ProjectNarrative.L2: ("Arbitrum", "Optimism", "Base", "zkSync", "Starknet"),
    ProjectNarrative.INTEROPERABILITY: ("Chainlink", "LayerZero", "Axelar", "Wormhole"),
    ProjectNarrative.ORACLE: ("Chainlink", "Pyth", "Band Protocol", "API3", "RedStone"),
    ProjectNarrative.STORAGE: ("Filecoin", "Arweave", "Storj", "Sia"),
    ProjectNarrative.UNKNOWN: (),
}

_MERGED_FIELDS: Final[tuple[str, ...]] = tuple(
    name for name in RawMarketData.model_fields if name != "categories"
)


class MarketPort(Protocol):
    """Two independent market-data providers; both return None when nothing is found."""

    async def fetch_from_coingecko(self, identifier: str) -> RawMarketData | None:
        ...

    async def fetch_from_coinmarketcap(self, identifier: str) -> RawMarketData | None:
        ...


def merge_market_data(
    preferred: RawMarketData | None,
    fallback: RawMarketData | None,
) -> RawMarketData | None:
    """Field-by-field merge; the first non-empty value wins, categories are concatenated."""
    if preferred is None and fallback is None:
        return None
    if preferred is None:
        return fallback
    if fallback is None:
        return preferred
    merged: dict[str, Any] = {
        field: _first_present(getattr(preferred, field), getattr(fallback, field))
        for field in _MERGED_FIELDS
    }
    merged["categories"] = [*preferred.categories, *fallback.categories]
    return RawMarketData(**merged)


def _first_present(primary: Any, secondary: Any) -> Any:
    if primary is None or primary == "":
        return secondary
    return primary


class MarketAnalysisService:
    def __init__(self, market_port: MarketPort, judgment_client: JudgmentClient) -> None:
        self._port = market_port
        self._judgment = judgment_client

    async def fetch_market_data(self, project_name: str) -> RawMarketData | None:
        coingecko, coinmarketcap = await asyncio.gather(
            _fail_safe("coingecko", self._port.fetch_from_coingecko(project_name)),
            _fail_safe("coinmarketcap", self._port.fetch_from_coinmarketcap(project_name)),
        )
        return merge_market_data(coingecko, coinmarketcap)

    async def analyze(self, project_name: str, narrative: ProjectNarrative) -> MarketAnalysis:
        market_data = await self.fetch_market_data(project_name)
        competitors = NARRATIVE_COMPETITORS.get(narrative, ())
        prompt = MARKET_ANALYSIS_PROMPT.format(
            project_name=project_name,
            narrative=narrative.value,
            market_data=to_prompt_json(market_data) if market_data else "null",
            competitors=", ".join(competitors),
        )
        judgment = await judge(self._judgment, prompt, MarketJudgment, stage="market")
        return MarketAnalysis(
            **judgment.model_dump(),
            market_cap=market_data.market_cap if market_data else None,
            volume_24h=market_data.volume_24h if market_data else None,
            price_change_7d=market_data.price_change_7d if market_data else None,
        )


async def _fail_safe(provider: str, call: Awaitable[RawMarketData | None]) -> RawMarketData | None:
    try:
        return await call
    except Exception as exc:
        metrics.increment(
            "market.provider_errors",
            tags={"provider": provider, "error": type(exc).__name__},
        )
        logger.warning("market.provider_failed", extra={"provider": provider, "error": str(exc)})
        return None
