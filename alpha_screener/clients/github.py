"""Async GitHub REST client used by the code analysis stage."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from alpha_screener.config import settings
from alpha_screener.models.code import CommitInfo, ContributorInfo, RawCodeData, RepositoryInfo

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
COMMIT_PAGE_SIZE = 100
_LAST_PAGE_PATTERN = re.compile(r'[?&]page=(\d+)>; rel="last"')


class GitHubError(RuntimeError):
    """Base error for GitHub client failures."""

    def __init__(self, message: str, code: str = "502_GITHUB_UPSTREAM") -> None:
        super().__init__(message)
        self.code = code


class GitHubAuthError(GitHubError):
    """Raised on 401, or 403 without rate-limit exhaustion."""

    def __init__(self, message: str = "GitHub authentication failed. Please check your token.") -> None:
        super().__init__(message, code="502_GITHUB_AUTH")


class GitHubRateLimitError(GitHubError):
    """Raised when the hourly GitHub quota is exhausted."""

    def __init__(self, reset_at: datetime | None = None) -> None:
        message = "GitHub API rate limit exceeded"
        if reset_at is not None:
            message = f"{message}; resets at {reset_at.isoformat()}"
        super().__init__(message, code="429_RATE_LIMIT")
        self.reset_at = reset_at


class GitHubNotFoundError(GitHubError):
    def __init__(self, path: str) -> None:
        super().__init__(f"GitHub resource not found: {path}", code="404_GITHUB_NOT_FOUND")


class GitHubClient:
    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls) -> "GitHubClient":
        return cls(token=settings.github_token, timeout=settings.documentation_timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def fetch_repository(self, owner: str, repo: str) -> RepositoryInfo:
        data = (await self._get(f"/repos/{owner}/{repo}")).json()
        return RepositoryInfo(
            name=data["name"],
            full_name=data["full_name"],
            description=data.get("description"),
            url=data["html_url"],
            stars=data.get("stargazers_count") or 0,
            forks=data.get("forks_count") or 0,
            open_issues=data.get("open_issues_count") or 0,
            language=data.get("language"),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            pushed_at=data.get("pushed_at") or data["updated_at"],
        )

    async def fetch_commits(self, owner: str, repo: str, limit: int = COMMIT_PAGE_SIZE) -> list[CommitInfo]:
        payload = (await self._get(f"/repos/{owner}/{repo}/commits", params={"per_page": limit})).json()
        commits = []
        for entry in payload:
            commit = entry.get("commit") or {}
            author = commit.get("author") or {}
            stats = entry.get("stats") or {}
            commits.append(
                CommitInfo(
                    sha=entry["sha"],
                    message=commit.get("message", ""),
                    author=author.get("name", "unknown"),
                    date=author["date"],
                    additions=stats.get("additions") or 0,
                    deletions=stats.get("deletions") or 0,
                )
            )
        return commits

    async def fetch_contributors(self, owner: str, repo: str) -> list[ContributorInfo]:
        response = await self._get(f"/repos/{owner}/{repo}/contributors", params={"per_page": 100})
        # Empty repositories answer 204 with no body.
        if response.status_code == 204 or not response.content:
            return []
        return [
            ContributorInfo(
                username=entry["login"],
                contributions=entry.get("contributions") or 0,
                profile_url=entry.get("html_url", ""),
            )
            for entry in response.json()
        ]

    async def fetch_languages(self, owner: str, repo: str) -> dict[str, int]:
        return (await self._get(f"/repos/{owner}/{repo}/languages")).json()

    async def fetch_readme(self, owner: str, repo: str) -> str | None:
        try:
            response = await self._get(
                f"/repos/{owner}/{repo}/readme",
                headers={"Accept": "application/vnd.github.raw+json"},
            )
        except GitHubNotFoundError:
            return None
        return response.text

    async def count_commits(self, owner: str, repo: str) -> int | None:
        """Total commit count read from the ``Link`` header of a one-per-page listing."""
        response = await self._get(f"/repos/{owner}/{repo}/commits", params={"per_page": 1})
        match = _LAST_PAGE_PATTERN.search(response.headers.get("link", ""))
        if match:
            return int(match.group(1))
        return None

    async def fetch_full_code_data(self, owner: str, repo: str) -> RawCodeData:
        repository, commits, contributors, languages, readme = await asyncio.gather(
            self.fetch_repository(owner, repo),
            self.fetch_commits(owner, repo, COMMIT_PAGE_SIZE),
            self.fetch_contributors(owner, repo),
            self.fetch_languages(owner, repo),
            self.fetch_readme(owner, repo),
        )
        total_commits = await self.count_commits(owner, repo)
        logger.info(
            "github.fetched",
            extra={
                "repository": f"{owner}/{repo}",
                "commits": len(commits),
                "contributors": len(contributors),
            },
        )
        return RawCodeData(
            repository=repository,
            commits=commits,
            contributors=contributors,
            languages=languages,
            total_commits=total_commits if total_commits is not None else len(commits),
            readme=readme or None,
        )

    async def _get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.get(
                f"{self._base_url}{path}",
                params=params,
                headers={**self._headers, **(headers or {})},
            )
        except httpx.TimeoutException as exc:
            raise GitHubError("GitHub request timed out", code="504_GITHUB_TIMEOUT") from exc
        except httpx.HTTPError as exc:
            raise GitHubError(f"HTTP error calling GitHub: {exc}") from exc

        if response.status_code == 401:
            raise GitHubAuthError()
        if response.status_code in (403, 429):
            if response.headers.get("x-ratelimit-remaining") == "0" or response.status_code == 429:
                raise GitHubRateLimitError(_reset_at(response))
            raise GitHubAuthError("GitHub API access forbidden. Token may lack required permissions.")
        if response.status_code == 404:
            raise GitHubNotFoundError(path)
        if response.status_code >= 400:
            raise GitHubError(f"GitHub request failed: {response.status_code} - {response.text[:200]}")
        return response


def _reset_at(response: httpx.Response) -> datetime | None:
    raw = response.headers.get("x-ratelimit-reset")
    if not raw or not raw.isdigit():
        return None
    return datetime.fromtimestamp(int(raw), tz=timezone.utc)
