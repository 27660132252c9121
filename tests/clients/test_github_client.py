from __future__ import annotations

import httpx
import pytest

from alpha_screener.clients.github import (
    GitHubAuthError,
    GitHubClient,
    GitHubError,
    GitHubRateLimitError,
)

REPO = {
    "name": "lendr",
    "full_name": "lendr-labs/lendr",
    "description": "Lending",
    "html_url": "https://github.com/lendr-labs/lendr",
    "stargazers_count": 120,
    "forks_count": 8,
    "open_issues_count": 3,
    "language": "Solidity",
    "created_at": "2023-01-01T00:00:00Z",
    "updated_at": "2024-06-01T00:00:00Z",
    "pushed_at": "2024-06-02T00:00:00Z",
}
COMMITS = [
    {"sha": "b", "commit": {"message": "fix", "author": {"name": "ada", "date": "2024-06-02T00:00:00Z"}}},
    {"sha": "a", "commit": {"message": "init", "author": {"name": "linus", "date": "2024-05-01T00:00:00Z"}}},
]


def _repository_handler(*, readme_status: int = 200, link: str | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/repos/lendr-labs/lendr":
            return httpx.Response(200, json=REPO)
        if path == "/repos/lendr-labs/lendr/commits":
            if request.url.params["per_page"] == "1":
                headers = {"link": link} if link else {}
                return httpx.Response(200, json=COMMITS[:1], headers=headers)
            return httpx.Response(200, json=COMMITS)
        if path == "/repos/lendr-labs/lendr/contributors":
            return httpx.Response(200, json=[{"login": "ada", "contributions": 30, "html_url": "https://github.com/ada"}])
        if path == "/repos/lendr-labs/lendr/languages":
            return httpx.Response(200, json={"Solidity": 9000})
        if path == "/repos/lendr-labs/lendr/readme":
            assert request.headers["accept"] == "application/vnd.github.raw+json"
            return httpx.Response(readme_status, text="# Lendr")
        return httpx.Response(404)

    return handler


def _client(handler, token: str | None = "ghp_test") -> tuple[GitHubClient, httpx.AsyncClient]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubClient(token, http_client=http), http


@pytest.mark.asyncio
async def test_full_code_data_uses_link_header_for_total():
    link = (
        '<https://api.github.com/repositories/1/commits?per_page=1&page=2>; rel="next", '
        '<https://api.github.com/repositories/1/commits?per_page=1&page=842>; rel="last"'
    )
    client, http = _client(_repository_handler(link=link))
    async with http:
        data = await client.fetch_full_code_data("lendr-labs", "lendr")

    assert data.total_commits == 842
    assert data.repository.full_name == "lendr-labs/lendr"
    assert [commit.sha for commit in data.commits] == ["b", "a"]
    assert data.contributors[0].username == "ada"
    assert data.languages == {"Solidity": 9000}
    assert data.readme == "# Lendr"


@pytest.mark.asyncio
async def test_total_commits_falls_back_to_fetched_count_and_readme_is_optional():
    client, http = _client(_repository_handler(readme_status=404))
    async with http:
        data = await client.fetch_full_code_data("lendr-labs", "lendr")

    assert data.total_commits == 2
    assert data.readme is None


@pytest.mark.asyncio
async def test_token_is_sent_as_bearer():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("authorization", ""))
        return httpx.Response(200, json=REPO)

    client, http = _client(handler)
    async with http:
        await client.fetch_repository("lendr-labs", "lendr")

    assert seen == ["Bearer ghp_test"]


@pytest.mark.asyncio
async def test_rate_limit_exhaustion_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1735689600"})

    client, http = _client(handler)
    async with http:
        with pytest.raises(GitHubRateLimitError) as excinfo:
            await client.fetch_repository("lendr-labs", "lendr")

    assert excinfo.value.code == "429_RATE_LIMIT"
    assert excinfo.value.reset_at is not None
    assert excinfo.value.reset_at.year == 2025


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_auth_failures(status):
    client, http = _client(lambda request: httpx.Response(status))
    async with http:
        with pytest.raises(GitHubAuthError):
            await client.fetch_repository("lendr-labs", "lendr")


@pytest.mark.asyncio
async def test_missing_repository_is_a_github_error():
    client, http = _client(lambda request: httpx.Response(404))
    async with http:
        with pytest.raises(GitHubError) as excinfo:
            await client.fetch_repository("lendr-labs", "gone")

    assert excinfo.value.code == "404_GITHUB_NOT_FOUND"
