"""Final rating and the terminal analysis aggregate."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from alpha_screener.models.code import CodeAnalysis
from alpha_screener.models.documentation import DocumentationAnalysis
from alpha_screener.models.funding import FundingAnalysis
from alpha_screener.models.market import MarketAnalysis
from alpha_screener.models.team import TeamAnalysis

FinalGrade = Literal["A", "B", "C", "D"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RatingJudgment(BaseModel):
    """Schema the AI judgment must satisfy for the rating stage."""

    consistency_score: float = Field(..., ge=0, le=100)
    opportunity_score: float = Field(..., ge=0, le=100)
    execution_credibility_score: float = Field(..., ge=0, le=100)
    final_grade: FinalGrade
    strengths: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)
    asymmetric_upside: str = ""
    executive_summary: str = ""


class FinalRating(RatingJudgment):
    composite_score: int = Field(..., ge=0, le=100)


class FullAnalysis(BaseModel):
    """Terminal aggregate of one run; built once and never mutated."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    documentation: DocumentationAnalysis
    funding: FundingAnalysis | None = None
    market: MarketAnalysis
    team: TeamAnalysis
    code: CodeAnalysis
    rating: FinalRating
    analyzed_at: datetime = Field(default_factory=_utcnow)


class AnalysisResult(BaseModel):
    """Cached value: the analysis plus its pre-rendered outputs."""

    model_config = ConfigDict(frozen=True)

    analysis: FullAnalysis
    json_report: str
    markdown_report: str
    no_funding: bool = False
