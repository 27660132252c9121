"""Team member data extracted from documentation and its judged analysis."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TeamMemberSource(BaseModel):
    name: str
    role: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    bio: str | None = None


class TeamDataSource(BaseModel):
    members: list[TeamMemberSource] = Field(default_factory=list)
    source: str


class TeamExtraction(BaseModel):
    """Schema for the member-extraction judgment."""

    members: list[TeamMemberSource] = Field(default_factory=list)


class TeamMember(BaseModel):
    name: str
    role: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    previous_projects: list[str] = Field(default_factory=list)


class TeamJudgment(BaseModel):
    """Schema the AI judgment must satisfy for the team stage."""

    members: list[TeamMember] = Field(default_factory=list)
    builder_portfolio_strength: float = Field(..., ge=0, le=100)
    previous_outcomes: list[str] = Field(default_factory=list)
    years_in_crypto: float = Field(..., ge=0)
    skillset_alignment: float = Field(..., ge=0, le=100)


class TeamAnalysis(TeamJudgment):
    @classmethod
    def empty(cls) -> TeamAnalysis:
        """Analysis used when no team information could be found."""
        return cls(
            members=[],
            builder_portfolio_strength=0,
            previous_outcomes=[],
            years_in_crypto=0,
            skillset_alignment=0,
        )
