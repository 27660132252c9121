"""In-memory collaborators for exercising analysis services without the network."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

from alpha_screener.models.code import CommitInfo, ContributorInfo, RawCodeData, RepositoryInfo
from alpha_screener.models.documentation import DocumentationContent
from alpha_screener.models.funding import RawFundingData, RawFundingRound
from alpha_screener.models.market import RawMarketData
from alpha_screener.services.analysis.code import CodeAnalysisService
from alpha_screener.services.analysis.documentation import DocumentationAnalysisService
from alpha_screener.services.analysis.funding import FundingAnalysisService
from alpha_screener.services.analysis.market import MarketAnalysisService
from alpha_screener.services.analysis.orchestrator import AnalysisOrchestrator
from alpha_screener.services.analysis.rating import RatingService
from alpha_screener.services.analysis.team import TeamAnalysisService
from alpha_screener.services.cache import InMemoryCache

_PROMPT_STAGES = (
    ("You are an expert crypto/Web3 analyst", "documentation"),
    ("Extract team member information", "team_extraction"),
    ("Analyze the following team information", "team"),
    ("Analyze the following repository data", "code"),
    ("Analyze the market opportunity", "market"),
    ("Generate a final rating", "rating"),
)


def documentation_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "narrative": "DeFi",
        "writing_quality": {
            "context_consistency": 80,
            "logical_flow": 75,
            "marketing_language_density": 20,
            "ai_writing_signals": {
                "emoji_overuse": False,
                "long_dash_usage": 0,
                "repetitive_phrases": [],
                "generic_phrase_count": 1,
            },
            "human_vs_ai_score": 85,
        },
        "has_funding_signal": True,
        "funding_signals": ["Backed by Paradigm"],
        "summary": "A lending protocol for long-tail assets.",
    }
    payload.update(overrides)
    return payload


def team_extraction_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "members": [
            {"name": "Ada", "role": "CEO", "linkedin": "https://linkedin.com/in/ada", "twitter": "@ada"},
            {"name": "Linus", "role": "CTO"},
        ]
    }
    payload.update(overrides)
    return payload


def team_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "members": [
            {"name": "Ada", "role": "CEO", "previous_projects": ["Compound"]},
            {"name": "Linus", "role": "CTO", "previous_projects": []},
        ],
        "builder_portfolio_strength": 70,
        "previous_outcomes": ["Compound reached $1B TVL"],
        "years_in_crypto": 6,
        "skillset_alignment": 80,
    }
    payload.update(overrides)
    return payload


def code_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "commit_frequency": 12.5,
        "commit_consistency": 70,
        "prefers_many_small_commits": True,
        "activity_level": "High",
        "contributor_diversity": 60,
        "architecture_clarity": 75,
        "mechanism_originality": "Iterative",
        "similar_projects_count": 4,
    }
    payload.update(overrides)
    return payload


def market_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "problem_type": "Niche",
        "competitors": [{"name": "Aave", "market_cap": 1_500_000_000, "similarity": 70}],
        "differentiation_clarity": 65,
        "market_saturation": 55,
        "narrative_cycle_timing": "Mid",
    }
    payload.update(overrides)
    return payload


def rating_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "consistency_score": 80,
        "opportunity_score": 70,
        "execution_credibility_score": 60,
        "final_grade": "B",
        "strengths": ["Experienced founders"],
        "risks": ["Crowded lending market"],
        "red_flags": [],
        "asymmetric_upside": "Long-tail collateral support.",
        "executive_summary": "Solid team in a competitive niche.",
    }
    payload.update(overrides)
    return payload


def default_judgments() -> dict[str, Any]:
    return {
        "documentation": documentation_payload(),
        "team_extraction": team_extraction_payload(),
        "team": team_payload(),
        "code": code_payload(),
        "market": market_payload(),
        "rating": rating_payload(),
    }


def prompt_stage(prompt: str) -> str:
    for prefix, stage in _PROMPT_STAGES:
        if prompt.startswith(prefix):
            return stage
    raise AssertionError(f"Unrecognised prompt: {prompt[:60]!r}")


class RoutingJudgmentClient:
    """Answers each prompt with the payload registered for its stage.

    A registered exception is raised instead of returned. ``delays`` lets a test
    hold one stage open to observe concurrent scheduling.
    """

    def __init__(
        self,
        responses: dict[str, Any] | None = None,
        *,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.responses = responses if responses is not None else default_judgments()
        self.delays = delays or {}
        self.calls: list[str] = []
        self.prompts: dict[str, str] = {}
        self.started: list[str] = []

    async def analyze(self, prompt: str) -> dict[str, Any]:
        stage = prompt_stage(prompt)
        self.started.append(stage)
        self.prompts[stage] = prompt
        if stage in self.delays:
            await asyncio.sleep(self.delays[stage])
        self.calls.append(stage)
        response = self.responses[stage]
        if isinstance(response, BaseException):
            raise response
        return response


class FakeDocumentationPort:
    def __init__(self, content: str = "Lending protocol docs. Team: Ada (CEO), Linus (CTO).") -> None:
        self.content = content
        self.website_content = content
        self.error: Exception | None = None
        self.requested: list[str] = []

    async def fetch_documentation(self, url: str) -> DocumentationContent:
        self.requested.append(url)
        if self.error is not None:
            raise self.error
        return DocumentationContent(url=url, title="Docs", content=self.content)

    async def fetch_website_content(self, url: str) -> str:
        self.requested.append(url)
        if self.error is not None:
            raise self.error
        return self.website_content


class FakeFundingPort:
    def __init__(
        self,
        messari: RawFundingData | None = None,
        cryptorank: RawFundingData | None = None,
        *,
        messari_error: Exception | None = None,
        cryptorank_error: Exception | None = None,
    ) -> None:
        self.messari = messari
        self.cryptorank = cryptorank
        self.messari_error = messari_error
        self.cryptorank_error = cryptorank_error
        self.calls: list[str] = []

    async def fetch_from_messari(self, project_name: str) -> RawFundingData | None:
        self.calls.append("messari")
        if self.messari_error is not None:
            raise self.messari_error
        return self.messari

    async def fetch_from_cryptorank(self, project_name: str) -> RawFundingData | None:
        self.calls.append("cryptorank")
        if self.cryptorank_error is not None:
            raise self.cryptorank_error
        return self.cryptorank


class FakeMarketPort:
    def __init__(
        self,
        coingecko: RawMarketData | None = None,
        coinmarketcap: RawMarketData | None = None,
        *,
        coingecko_error: Exception | None = None,
    ) -> None:
        self.coingecko = coingecko
        self.coinmarketcap = coinmarketcap
        self.coingecko_error = coingecko_error

    async def fetch_from_coingecko(self, identifier: str) -> RawMarketData | None:
        if self.coingecko_error is not None:
            raise self.coingecko_error
        return self.coingecko

    async def fetch_from_coinmarketcap(self, identifier: str) -> RawMarketData | None:
        return self.coinmarketcap


class FakeGitHubPort:
    def __init__(self, data: RawCodeData | None = None) -> None:
        self.data = data or sample_code_data()
        self.requested: list[tuple[str, str]] = []

    async def fetch_full_code_data(self, owner: str, repo: str) -> RawCodeData:
        self.requested.append((owner, repo))
        return self.data


def funding_round(
    stage: str,
    amount: float,
    date: str,
    investors: list[str] | None = None,
    source: str = "messari",
) -> RawFundingRound:
    return RawFundingRound(
        stage=stage,
        amount_usd=amount,
        date=date,
        investors=investors or [],
        source=source,
    )


def funding_data(*rounds: RawFundingRound, project_name: str = "Lendr") -> RawFundingData:
    return RawFundingData(
        project_name=project_name,
        total_raised=sum(item.amount_usd for item in rounds),
        rounds=list(rounds),
    )


def sample_market_data(**overrides: Any) -> RawMarketData:
    payload: dict[str, Any] = {
        "name": "Lendr",
        "symbol": "LND",
        "market_cap": 25_000_000,
        "volume_24h": 1_200_000,
        "price": 0.42,
        "price_change_7d": 3.5,
        "categories": ["DeFi"],
    }
    payload.update(overrides)
    return RawMarketData(**payload)


def sample_code_data(*, now: datetime | None = None) -> RawCodeData:
    now = now or datetime.now(timezone.utc)
    commits = [
        CommitInfo(
            sha=f"sha{index}",
            message=f"commit {index}",
            author="ada",
            date=now - timedelta(days=index * 7),
            additions=40,
            deletions=10,
        )
        for index in range(4)
    ]
    return RawCodeData(
        repository=RepositoryInfo(
            name="lendr",
            full_name="lendr-labs/lendr",
            url="https://github.com/lendr-labs/lendr",
            stars=120,
            created_at=now - timedelta(days=365),
            updated_at=now,
            pushed_at=now,
        ),
        commits=commits,
        contributors=[
            ContributorInfo(username="ada", contributions=30, profile_url="https://github.com/ada"),
            ContributorInfo(username="linus", contributions=12, profile_url="https://github.com/linus"),
        ],
        languages={"Solidity": 9000, "TypeScript": 3000},
        total_commits=250,
    )


def build_orchestrator(
    *,
    judgment: RoutingJudgmentClient | None = None,
    documentation_port: FakeDocumentationPort | None = None,
    funding_port: FakeFundingPort | None = None,
    market_port: FakeMarketPort | None = None,
    github_port: FakeGitHubPort | None = None,
    cache: InMemoryCache | None = None,
    parallel_stages: bool = True,
    dedupe_inflight: bool = True,
) -> AnalysisOrchestrator:
    judgment = judgment or RoutingJudgmentClient()
    if funding_port is None:
        funding_port = FakeFundingPort(
            messari=funding_data(
                funding_round("Seed", 3_000_000, "2022-01-10", ["Paradigm", "Coinbase Ventures"]),
                funding_round("Series A", 15_000_000, "2023-03-01", ["a16z"]),
            )
        )
    return AnalysisOrchestrator(
        documentation_service=DocumentationAnalysisService(
            documentation_port or FakeDocumentationPort(),
            judgment,
        ),
        funding_service=FundingAnalysisService(funding_port),
        market_service=MarketAnalysisService(market_port or FakeMarketPort(sample_market_data()), judgment),
        team_service=TeamAnalysisService(judgment),
        code_service=CodeAnalysisService(github_port or FakeGitHubPort(), judgment),
        rating_service=RatingService(judgment),
        cache=cache if cache is not None else InMemoryCache(),
        parallel_stages=parallel_stages,
        dedupe_inflight=dedupe_inflight,
    )
