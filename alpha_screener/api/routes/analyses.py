"""API endpoints for running and inspecting project analyses."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from alpha_screener.clients.documentation import DocumentationFetchError
from alpha_screener.clients.github import GitHubError
from alpha_screener.models.analysis import AnalysisResult
from alpha_screener.models.analysis_state import InvalidStateTransitionError
from alpha_screener.models.project import ProjectIdentifier
from alpha_screener.services.analysis.errors import AnalysisError
from alpha_screener.services.analysis.orchestrator import AnalysisOrchestrator, get_orchestrator

router = APIRouter()
logger = logging.getLogger(__name__)

_PIPELINE_ERRORS = (AnalysisError, GitHubError, DocumentationFetchError, InvalidStateTransitionError)


@router.post("/analyses", response_model=AnalysisResult, status_code=status.HTTP_201_CREATED)
async def create_analysis(
    payload: ProjectIdentifier,
    *,
    refresh: bool = Query(False, description="Drop any cached result before analyzing."),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisResult:
    """Run the full pipeline for a project, or return the cached result."""
    if refresh:
        await orchestrator.invalidate(payload.name)
    try:
        return await orchestrator.analyze(payload)
    except _PIPELINE_ERRORS as exc:
        logger.error(
            "analysis.api_error",
            extra={"project": payload.name, "code": exc.code},
        )
        raise HTTPException(status_code=_map_error_code(exc.code), detail=str(exc)) from exc


@router.get("/analyses/{name}", response_model=AnalysisResult)
async def get_analysis(
    name: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisResult:
    """Fetch a cached analysis without running the pipeline."""
    result = await orchestrator.get_cached(name)
    if result is None:
        raise HTTPException(status_code=404, detail="No cached analysis for project.")
    return result


@router.delete("/analyses/{name}")
async def delete_analysis(
    name: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> dict[str, object]:
    invalidated = await orchestrator.invalidate(name)
    return {"name": name, "invalidated": invalidated}


def _map_error_code(code: str) -> int:
    if code.startswith("404_"):
        return status.HTTP_404_NOT_FOUND
    if code.startswith("409_"):
        return status.HTTP_409_CONFLICT
    if code.startswith("422_"):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if code.startswith("429_"):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if code.startswith("502_"):
        return status.HTTP_502_BAD_GATEWAY
    if code.startswith("504_"):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_500_INTERNAL_SERVER_ERROR
