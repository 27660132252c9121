"""Command-line entry point: analyze one project and print the report."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from alpha_screener.clients.documentation import DocumentationFetchError
from alpha_screener.clients.github import GitHubError
from alpha_screener.config import settings
from alpha_screener.models.analysis import AnalysisResult
from alpha_screener.models.analysis_state import AnalysisState
from alpha_screener.models.project import ProjectIdentifier
from alpha_screener.services.analysis.errors import AnalysisError
from alpha_screener.services.analysis.orchestrator import AnalysisOrchestrator, get_orchestrator

logger = logging.getLogger("alpha_screener.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Screen a crypto project and print a due-diligence report.")
    parser.add_argument("name", help="Project name, also used as the cache key.")
    parser.add_argument("--symbol", help="Ticker symbol.")
    parser.add_argument("--website", help="Project website, used when no docs URL is given.")
    parser.add_argument("--docs-url", help="Documentation URL.")
    parser.add_argument("--github-url", help="Repository URL; enables the code analysis stage.")
    parser.add_argument(
        "--format",
        choices=("json", "markdown"),
        default="markdown",
        help="Report rendering printed to stdout (default markdown).",
    )
    parser.add_argument("--refresh", action="store_true", help="Drop any cached result before analyzing.")
    return parser.parse_args(argv)


def _log_state(state: AnalysisState) -> None:
    logger.info("Analysis state: %s", state.value)


async def run_analysis(
    args: argparse.Namespace,
    orchestrator: AnalysisOrchestrator,
) -> AnalysisResult:
    identifier = ProjectIdentifier(
        name=args.name,
        symbol=args.symbol,
        website=args.website,
        docs_url=args.docs_url,
        github_url=args.github_url,
    )
    if args.refresh:
        await orchestrator.invalidate(identifier.name)
    outcome = await orchestrator.analyze_with_progress(identifier, _log_state)
    if outcome.cached:
        logger.info("Served cached analysis for %s", identifier.name)
    return outcome.result


def main(argv: Sequence[str] | None = None, *, orchestrator: AnalysisOrchestrator | None = None) -> int:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    try:
        result = asyncio.run(run_analysis(args, orchestrator or get_orchestrator()))
    except (AnalysisError, GitHubError, DocumentationFetchError) as exc:
        logger.error("Analysis failed code=%s: %s", exc.code, exc)
        return 1
    report = result.json_report if args.format == "json" else result.markdown_report
    sys.stdout.write(report + "\n")
    if result.no_funding:
        logger.info("No funding signal found in documentation; funding stage skipped.")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
