"""Repository activity analysis for projects that publish a GitHub URL."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Protocol

from alpha_screener.models.code import CodeAnalysis, CodeJudgment, CodeMetrics, RawCodeData
from alpha_screener.services.analysis.errors import InvalidGitHubUrlError
from alpha_screener.services.analysis.judgment import JudgmentClient, judge, to_prompt_json
from alpha_screener.services.analysis.prompts import CODE_ANALYSIS_PROMPT

logger = logging.getLogger(__name__)

_GITHUB_URL = re.compile(r"github\.com/([^/]+)/([^/?#]+)")
_RECENT_COMMITS_IN_PROMPT = 20


class GitHubPort(Protocol):
    async def fetch_full_code_data(self, owner: str, repo: str) -> RawCodeData:
        ...


def parse_github_url(url: str) -> tuple[str, str]:
    match = _GITHUB_URL.search(url)
    if not match:
        raise InvalidGitHubUrlError(url)
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        raise InvalidGitHubUrlError(url)
    return owner, repo


def calculate_code_metrics(data: RawCodeData, *, now: datetime | None = None) -> CodeMetrics:
    current = now or datetime.now(timezone.utc)
    repo_age_days = math.floor((current - data.repository.created_at).total_seconds() / 86_400)
    if data.commits:
        days_since_last_commit = math.floor(
            (current - data.commits[0].date).total_seconds() / 86_400
        )
        avg_commit_size = sum(c.additions + c.deletions for c in data.commits) / len(data.commits)
    else:
        days_since_last_commit = repo_age_days
        avg_commit_size = 0.0
    weeks_old = max(1.0, repo_age_days / 7)
    return CodeMetrics(
        repo_age_days=repo_age_days,
        avg_commit_size=avg_commit_size,
        commit_frequency_per_week=data.total_commits / weeks_old,
        days_since_last_commit=days_since_last_commit,
    )


class CodeAnalysisService:
    def __init__(self, github_port: GitHubPort, judgment_client: JudgmentClient) -> None:
        self._port = github_port
        self._judgment = judgment_client

    async def analyze(self, github_url: str) -> CodeAnalysis:
        owner, repo = parse_github_url(github_url)
        data = await self._port.fetch_full_code_data(owner, repo)
        code_metrics = calculate_code_metrics(data)
        prompt = CODE_ANALYSIS_PROMPT.format(
            repo_data=to_prompt_json(
                {
                    "repository": data.repository.model_dump(mode="json"),
                    "total_commits": data.total_commits,
                    "contributor_count": len(data.contributors),
                    "languages": data.languages,
                    "recent_commits": [
                        commit.model_dump(mode="json")
                        for commit in data.commits[:_RECENT_COMMITS_IN_PROMPT]
                    ],
                    "metrics": code_metrics.model_dump(),
                }
            )
        )
        judgment = await judge(self._judgment, prompt, CodeJudgment, stage="code")
        logger.info(
            "code.analyzed",
            extra={"repository": f"{owner}/{repo}", "activity_level": judgment.activity_level},
        )
        return CodeAnalysis(
            **judgment.model_dump(),
            repo_age=code_metrics.repo_age_days,
            total_commits=data.total_commits,
            total_contributors=len(data.contributors),
            last_commit_date=data.commits[0].date if data.commits else None,
        )
