"""Fetched documentation content and the judged documentation analysis."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from alpha_screener.models.project import ProjectNarrative


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentationSection(BaseModel):
    heading: str
    content: str = ""
    level: int = Field(..., ge=1, le=6)


class DocumentationContent(BaseModel):
    url: str
    title: str
    content: str
    sections: list[DocumentationSection] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=_utcnow)


class AIWritingSignals(BaseModel):
    emoji_overuse: bool = False
    long_dash_usage: int = Field(default=0, ge=0)
    repetitive_phrases: list[str] = Field(default_factory=list)
    generic_phrase_count: int = Field(default=0, ge=0)


class WritingQuality(BaseModel):
    context_consistency: float = Field(..., ge=0, le=100)
    logical_flow: float = Field(..., ge=0, le=100)
    marketing_language_density: float = Field(..., ge=0, le=100)
    ai_writing_signals: AIWritingSignals = Field(default_factory=AIWritingSignals)
    human_vs_ai_score: float = Field(..., ge=0, le=100, description="100 means definitely human.")


class DocumentationAnalysis(BaseModel):
    narrative: ProjectNarrative = ProjectNarrative.UNKNOWN
    writing_quality: WritingQuality
    has_funding_signal: bool
    funding_signals: list[str] = Field(default_factory=list)
    summary: str
