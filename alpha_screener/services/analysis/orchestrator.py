"""Drives one project analysis through the state machine with caching.

A run is: cache lookup, documentation, optional funding branch, market / team /
code (started together when ``parallel_stages`` is on, but always reported in
the same state order), rating, formatting, cache write, ``COMPLETED``. Any error
moves the run to ``FAILED`` and is re-raised unchanged.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from alpha_screener.config import settings
from alpha_screener.models.analysis import AnalysisResult, FullAnalysis
from alpha_screener.models.analysis_state import (
    AnalysisProgress,
    AnalysisState,
    create_initial_progress,
    transition_state,
)
from alpha_screener.models.code import CodeAnalysis
from alpha_screener.models.documentation import DocumentationAnalysis
from alpha_screener.models.market import MarketAnalysis
from alpha_screener.models.project import ProjectIdentifier, analysis_cache_key
from alpha_screener.models.team import TeamAnalysis
from alpha_screener.observability.metrics import metrics
from alpha_screener.services.analysis.code import CodeAnalysisService
from alpha_screener.services.analysis.documentation import DocumentationAnalysisService
from alpha_screener.services.analysis.funding import FundingAnalysisService
from alpha_screener.services.analysis.market import MarketAnalysisService
from alpha_screener.services.analysis.output_formatter import OutputFormatter
from alpha_screener.services.analysis.rating import RatingService
from alpha_screener.services.analysis.team import TeamAnalysisService
from alpha_screener.services.cache import CachePort

logger = logging.getLogger(__name__)

StateObserver = Callable[[AnalysisState], Awaitable[None] | None]


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of one ``analyze`` call together with the progress it recorded."""

    result: AnalysisResult
    progress: AnalysisProgress
    cached: bool = False


class _RunTracker:
    """Holds the progress value of a single run and notifies the observer."""

    def __init__(self, project: str, observer: StateObserver | None) -> None:
        self._project = project
        self._observer = observer
        self.progress = create_initial_progress()

    async def advance(self, state: AnalysisState, metadata: dict[str, Any] | None = None) -> None:
        self.progress = transition_state(self.progress, state, metadata)
        logger.info("analysis.state", extra={"project": self._project, "state": state.value})
        await self._notify(state)

    async def fail(self, exc: BaseException) -> None:
        if self.progress.is_terminal:
            return
        self.progress = transition_state(
            self.progress,
            AnalysisState.FAILED,
            {"error_type": type(exc).__name__, "failed_in": self.progress.current_state.value},
            error=str(exc) or type(exc).__name__,
        )
        try:
            await self._notify(AnalysisState.FAILED)
        except Exception:
            logger.exception("analysis.observer_failed", extra={"project": self._project})

    async def _notify(self, state: AnalysisState) -> None:
        if self._observer is None:
            return
        outcome = self._observer(state)
        if inspect.isawaitable(outcome):
            await outcome


class AnalysisOrchestrator:
    def __init__(
        self,
        *,
        documentation_service: DocumentationAnalysisService,
        funding_service: FundingAnalysisService,
        market_service: MarketAnalysisService,
        team_service: TeamAnalysisService,
        code_service: CodeAnalysisService,
        rating_service: RatingService,
        cache: CachePort,
        output_formatter: OutputFormatter | None = None,
        cache_ttl_seconds: int = 3600,
        parallel_stages: bool = True,
        dedupe_inflight: bool = True,
    ) -> None:
        self._documentation = documentation_service
        self._funding = funding_service
        self._market = market_service
        self._team = team_service
        self._code = code_service
        self._rating = rating_service
        self._cache = cache
        self._formatter = output_formatter or OutputFormatter()
        self._cache_ttl_seconds = cache_ttl_seconds
        self._parallel_stages = parallel_stages
        self._dedupe_inflight = dedupe_inflight
        self._inflight: dict[str, asyncio.Future[AnalysisOutcome]] = {}

    async def analyze(
        self,
        identifier: ProjectIdentifier,
        on_state_change: StateObserver | None = None,
    ) -> AnalysisResult:
        outcome = await self.analyze_with_progress(identifier, on_state_change)
        return outcome.result

    async def analyze_with_progress(
        self,
        identifier: ProjectIdentifier,
        on_state_change: StateObserver | None = None,
    ) -> AnalysisOutcome:
        key = identifier.fingerprint
        cached = await self._read_cache(key)
        if cached is not None:
            metrics.increment("analysis.cache_hit", tags={"project": identifier.name})
            logger.info("analysis.cache.hit", extra={"project": identifier.name, "key": key})
            return AnalysisOutcome(result=cached, progress=create_initial_progress(), cached=True)

        metrics.increment("analysis.cache_miss", tags={"project": identifier.name})
        if not self._dedupe_inflight:
            return await self._run(identifier, on_state_change)

        pending = self._inflight.get(key)
        if pending is not None:
            logger.info("analysis.inflight.join", extra={"project": identifier.name, "key": key})
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._run(identifier, on_state_change))
        self._inflight[key] = task
        task.add_done_callback(lambda _: self._release_inflight(key, task))
        return await asyncio.shield(task)

    async def get_cached(self, name: str) -> AnalysisResult | None:
        return await self._read_cache(analysis_cache_key(name))

    async def invalidate(self, name: str) -> bool:
        key = analysis_cache_key(name)
        existed = await self._cache.exists(key)
        await self._cache.delete(key)
        logger.info("analysis.cache.invalidated", extra={"key": key, "existed": existed})
        return existed

    async def _run(
        self,
        identifier: ProjectIdentifier,
        on_state_change: StateObserver | None,
    ) -> AnalysisOutcome:
        tracker = _RunTracker(identifier.name, on_state_change)
        tags = {"project": identifier.name}
        start = time.perf_counter()
        try:
            result = await self._execute(identifier, tracker)
        except Exception as exc:
            if tracker.progress.current_state is AnalysisState.COMPLETED:
                # Observer rejected COMPLETED; the run must not leave a cached result behind.
                await self._cache.delete(identifier.fingerprint)
            await tracker.fail(exc)
            metrics.increment(
                "analysis.errors",
                tags={**tags, "code": getattr(exc, "code", type(exc).__name__)},
            )
            logger.error(
                "analysis.failed",
                extra={
                    "project": identifier.name,
                    "error": str(exc),
                    "states": [state.value for state in tracker.progress.visited_states],
                },
            )
            raise
        finally:
            metrics.timing("analysis.latency_ms", (time.perf_counter() - start) * 1000, tags=tags)
        metrics.increment("analysis.success", tags=tags)
        return AnalysisOutcome(result=result, progress=tracker.progress)

    async def _execute(self, identifier: ProjectIdentifier, tracker: _RunTracker) -> AnalysisResult:
        name = identifier.name

        await tracker.advance(AnalysisState.FETCHING_DOCUMENTATION)
        content = await self._documentation.fetch_content(
            docs_url=identifier.docs_url,
            website=identifier.website,
        )

        await tracker.advance(AnalysisState.ANALYZING_DOCUMENTATION)
        documentation = await self._documentation.analyze_from_content(content or f"Project: {name}")

        await tracker.advance(AnalysisState.CHECKING_FUNDING_SIGNAL)
        funding = None
        if documentation.has_funding_signal:
            await tracker.advance(AnalysisState.FETCHING_FUNDING)
            await tracker.advance(AnalysisState.ANALYZING_FUNDING)
            funding = await self._funding.analyze(name)
        else:
            await tracker.advance(AnalysisState.NO_FUNDING)

        market, team, code = await self._gather_market_team_code(
            identifier, documentation, content, tracker
        )

        await tracker.advance(AnalysisState.GENERATING_RATING)
        rating = await self._rating.generate_rating(name, documentation, funding, market, team, code)

        await tracker.advance(AnalysisState.FORMATTING_OUTPUT)
        analysis = FullAnalysis(
            project_id=name,
            documentation=documentation,
            funding=funding,
            market=market,
            team=team,
            code=code,
            rating=rating,
        )
        result = AnalysisResult(
            analysis=analysis,
            json_report=self._formatter.format_as_json(analysis),
            markdown_report=self._formatter.format_as_markdown(analysis),
            no_funding=not documentation.has_funding_signal,
        )

        await self._cache.set(
            identifier.fingerprint,
            result.model_dump(mode="json"),
            self._cache_ttl_seconds,
        )
        await tracker.advance(AnalysisState.COMPLETED, {"composite_score": rating.composite_score})
        return result

    async def _gather_market_team_code(
        self,
        identifier: ProjectIdentifier,
        documentation: DocumentationAnalysis,
        content: str,
        tracker: _RunTracker,
    ) -> tuple[MarketAnalysis, TeamAnalysis, CodeAnalysis]:
        """Run market, team and code stages; transitions are emitted in fixed order."""
        name = identifier.name
        stages: dict[str, Callable[[], Awaitable[Any]]] = {
            "market": lambda: self._market.analyze(name, documentation.narrative),
            "team": lambda: self._team.analyze_from_documentation(name, content),
        }
        if identifier.github_url:
            github_url = identifier.github_url
            stages["code"] = lambda: self._code.analyze(github_url)

        await tracker.advance(AnalysisState.FETCHING_MARKET_DATA)
        started: dict[str, asyncio.Future[Any]] = {}
        if self._parallel_stages:
            started = {stage: asyncio.ensure_future(factory()) for stage, factory in stages.items()}

        async def _await_stage(stage: str) -> Any:
            if stage in started:
                return await started[stage]
            return await stages[stage]()

        try:
            await tracker.advance(AnalysisState.ANALYZING_MARKET)
            market = await _await_stage("market")

            await tracker.advance(AnalysisState.FETCHING_TEAM_DATA)
            await tracker.advance(AnalysisState.ANALYZING_TEAM)
            team = await _await_stage("team")

            if "code" in stages:
                await tracker.advance(AnalysisState.FETCHING_CODE)
                await tracker.advance(AnalysisState.ANALYZING_CODE)
                code = await _await_stage("code")
            else:
                code = CodeAnalysis.inactive()
        finally:
            pending = [future for future in started.values() if not future.done()]
            for future in pending:
                future.cancel()
            if started:
                await asyncio.gather(*started.values(), return_exceptions=True)
        return market, team, code

    async def _read_cache(self, key: str) -> AnalysisResult | None:
        payload = await self._cache.get(key)
        if payload is None:
            return None
        try:
            return AnalysisResult.model_validate(payload)
        except ValidationError:
            logger.warning("analysis.cache.corrupt", extra={"key": key})
            await self._cache.delete(key)
            return None

    def _release_inflight(self, key: str, task: asyncio.Future[AnalysisOutcome]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved; callers awaiting the shield still see it.
            task.exception()


def build_orchestrator() -> AnalysisOrchestrator:
    """Wire the orchestrator with HTTP-backed providers and the configured cache."""
    from alpha_screener.clients.documentation import DocumentationClient
    from alpha_screener.clients.funding import FundingClient
    from alpha_screener.clients.github import GitHubClient
    from alpha_screener.clients.market import MarketClient
    from alpha_screener.services.analysis.judgment import OpenAIJudgmentClient
    from alpha_screener.services.cache import build_cache

    judgment = OpenAIJudgmentClient.from_settings()
    return AnalysisOrchestrator(
        documentation_service=DocumentationAnalysisService(
            DocumentationClient.from_settings(),
            judgment,
            max_chars=settings.documentation_max_chars,
        ),
        funding_service=FundingAnalysisService(FundingClient.from_settings()),
        market_service=MarketAnalysisService(MarketClient.from_settings(), judgment),
        team_service=TeamAnalysisService(judgment, max_chars=settings.team_documentation_max_chars),
        code_service=CodeAnalysisService(GitHubClient.from_settings(), judgment),
        rating_service=RatingService(judgment),
        cache=build_cache(),
        cache_ttl_seconds=settings.cache_ttl_seconds,
        parallel_stages=settings.analysis_parallel_stages,
        dedupe_inflight=settings.analysis_dedupe_inflight,
    )


_ORCHESTRATOR_INSTANCE: AnalysisOrchestrator | None = None


def get_orchestrator() -> AnalysisOrchestrator:
    """Singleton accessor used by API routes and the CLI."""
    global _ORCHESTRATOR_INSTANCE  # noqa: PLW0603
    if _ORCHESTRATOR_INSTANCE is None:
        _ORCHESTRATOR_INSTANCE = build_orchestrator()
    return _ORCHESTRATOR_INSTANCE
