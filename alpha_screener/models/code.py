"""Repository activity data and the judged code analysis."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ActivityLevel = Literal["High", "Medium", "Low", "Inactive"]
MechanismOriginality = Literal["Common", "Iterative", "Pioneering"]


class RepositoryInfo(BaseModel):
    name: str
    full_name: str
    description: str | None = None
    url: str
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    language: str | None = None
    created_at: datetime
    updated_at: datetime
    pushed_at: datetime


class CommitInfo(BaseModel):
    sha: str
    message: str
    author: str
    date: datetime
    additions: int = 0
    deletions: int = 0


class ContributorInfo(BaseModel):
    username: str
    contributions: int
    profile_url: str


class RawCodeData(BaseModel):
    """Everything fetched for one repository; commits are newest first."""

    repository: RepositoryInfo
    commits: list[CommitInfo] = Field(default_factory=list)
    contributors: list[ContributorInfo] = Field(default_factory=list)
    languages: dict[str, int] = Field(default_factory=dict)
    total_commits: int = 0
    readme: str | None = None


class CodeMetrics(BaseModel):
    repo_age_days: int
    avg_commit_size: float
    commit_frequency_per_week: float
    days_since_last_commit: int


class CodeJudgment(BaseModel):
    """Schema the AI judgment must satisfy for the code stage."""

    commit_frequency: float = Field(..., ge=0)
    commit_consistency: float = Field(..., ge=0, le=100)
    prefers_many_small_commits: bool
    activity_level: ActivityLevel
    contributor_diversity: float = Field(..., ge=0, le=100)
    architecture_clarity: float = Field(..., ge=0, le=100)
    mechanism_originality: MechanismOriginality
    similar_projects_count: int = Field(..., ge=0)


class CodeAnalysis(CodeJudgment):
    repo_age: int = 0
    total_commits: int = 0
    total_contributors: int = 0
    last_commit_date: datetime | None = None

    @classmethod
    def inactive(cls) -> CodeAnalysis:
        """Zeroed analysis for projects without a repository URL."""
        return cls(
            commit_frequency=0,
            commit_consistency=0,
            prefers_many_small_commits=False,
            activity_level="Inactive",
            contributor_diversity=0,
            architecture_clarity=0,
            mechanism_originality="Common",
            similar_projects_count=0,
            repo_age=0,
            total_commits=0,
            total_contributors=0,
        )
