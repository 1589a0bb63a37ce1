from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from sponsor_report.crawlers.client import GitHubSponsorsClient, sanitize_for_log, sanitize_log_extra
from sponsor_report.crawlers.contracts import FetchState


def _connection(nodes: list[dict[str, Any]], *, has_next: bool = False) -> dict[str, Any]:
    return {
        "data": {
            "user": {
                "sponsorshipsAsMaintainer": {
                    "pageInfo": {"endCursor": "abc" if has_next else None, "hasNextPage": has_next},
                    "nodes": nodes,
                }
            }
        }
    }


def _client(handler, **kwargs: Any) -> GitHubSponsorsClient:
    return GitHubSponsorsClient(
        token="ghp_secret",
        transport=httpx.MockTransport(handler),
        backoff_base_seconds=0,
        backoff_max_seconds=0,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_fetch_page_posts_query_with_cursor_and_auth() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        node = {"sponsorEntity": {"login": "alice"}, "createdAt": "2023-01-15T00:00:00Z", "tier": {"monthlyPriceInDollars": 5}}
        return httpx.Response(200, json=_connection([node], has_next=True))

    async with _client(handler) as client:
        result = await client.fetch_sponsorships_page("octocat", cursor="c1", per_page=50)

    assert result.state == FetchState.OK
    assert result.data["pageInfo"]["hasNextPage"] is True
    assert result.data["nodes"][0]["sponsorEntity"]["login"] == "alice"

    request = seen[0]
    body = json.loads(request.content)
    assert request.method == "POST"
    assert str(request.url) == "https://api.github.com/graphql"
    assert request.headers["Authorization"] == "bearer ghp_secret"
    assert body["variables"] == {"user": "octocat", "cursor": "c1", "first": 50}
    assert "sponsorshipsAsMaintainer" in body["query"]


@pytest.mark.asyncio
async def test_fetch_page_reports_empty_connection() -> None:
    async with _client(lambda request: httpx.Response(200, json=_connection([]))) as client:
        result = await client.fetch_sponsorships_page("octocat")

    assert result.state == FetchState.EMPTY
    assert result.data["nodes"] == []


@pytest.mark.asyncio
async def test_fetch_page_maps_graphql_errors_to_failure() -> None:
    payload = {"data": {"user": None}, "errors": [{"message": "Could not resolve to a User"}]}

    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        result = await client.fetch_sponsorships_page("nobody")

    assert result.is_failed
    assert "Could not resolve" in (result.error or "")


@pytest.mark.asyncio
async def test_fetch_page_fails_when_user_missing() -> None:
    async with _client(lambda request: httpx.Response(200, json={"data": {"user": None}})) as client:
        result = await client.fetch_sponsorships_page("nobody")

    assert result.is_failed
    assert "nobody" in (result.error or "")


@pytest.mark.asyncio
async def test_fetch_page_retries_rate_limit_then_succeeds() -> None:
    responses = [
        httpx.Response(429, headers={"retry-after": "0"}),
        httpx.Response(200, json=_connection([{"createdAt": "2023-01-15T00:00:00Z"}])),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    async with _client(handler, max_retries=3) as client:
        result = await client.fetch_sponsorships_page("octocat")

    assert result.is_ok
    assert responses == []


@pytest.mark.asyncio
async def test_fetch_page_gives_up_after_max_retries() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(403, headers={"retry-after": "0"})

    async with _client(handler, max_retries=2) as client:
        result = await client.fetch_sponsorships_page("octocat")

    assert result.is_failed
    assert calls == 2


@pytest.mark.asyncio
async def test_fetch_page_reports_http_errors() -> None:
    async with _client(lambda request: httpx.Response(401, json={"message": "Bad credentials"})) as client:
        result = await client.fetch_sponsorships_page("octocat")

    assert result.is_failed
    assert result.status_code == 401


def test_sanitize_redacts_tokens() -> None:
    assert sanitize_for_log({"Authorization": "bearer abc"}) == {"Authorization": "***REDACTED***"}
    assert "abcdef123" not in str(sanitize_for_log("failed with ghp_abcdef123"))
    assert sanitize_log_extra(owner="octocat") == {"owner": "octocat"}
