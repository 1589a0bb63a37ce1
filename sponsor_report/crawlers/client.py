"""Resilient async GitHub GraphQL client for sponsorship ingestion."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from sponsor_report.config.settings import Settings
from sponsor_report.crawlers.contracts import FetchResult, FetchState, SponsorshipPage

logger = logging.getLogger(__name__)

SPONSORSHIPS_QUERY = """
query ($user: String!, $cursor: String, $first: Int!) {
  user(login: $user) {
    sponsorshipsAsMaintainer(first: $first, after: $cursor, includePrivate: true) {
      pageInfo {
        endCursor
        hasNextPage
      }
      nodes {
        sponsorEntity {
          ... on User {
            login
          }
          ... on Organization {
            login
          }
        }
        createdAt
        tier {
          monthlyPriceInDollars
          isOneTime
          isCustomAmount
        }
      }
    }
  }
}
"""

_REDACTED_VALUE = "***REDACTED***"
_SENSITIVE_KEYS = (
    "authorization",
    "token",
    "api_key",
    "apikey",
    "secret",
    "password",
    "cookie",
)
_TOKEN_PATTERNS = (
    re.compile(r"(?i)(bearer\s+)[^\s,;]+"),
    re.compile(r"(?i)(token\s+)[^\s,;]+"),
    re.compile(r"(?i)(token\s*[=:]\s*)[^\s,;]+"),
    re.compile(r"(?i)(access_token=)[^&\s]+"),
    re.compile(r"(ghp_|gho_|ghs_|github_pat_)[A-Za-z0-9_]+"),
)
_RETRYABLE_STATUS_CODES = (403, 429, 502, 503, 504)


def sanitize_for_log(value: Any, *, key: Optional[str] = None) -> Any:
    """Return a recursively sanitized copy of log payloads."""

    if isinstance(value, dict):
        sanitized: dict[str, Any] = {}
        for raw_key, raw_value in value.items():
            field = str(raw_key)
            if _contains_keyword(field, _SENSITIVE_KEYS):
                sanitized[field] = _REDACTED_VALUE
                continue
            sanitized[field] = sanitize_for_log(raw_value, key=field)
        return sanitized

    if isinstance(value, (list, tuple, set)):
        return [sanitize_for_log(item, key=key) for item in value]

    if isinstance(value, str):
        return _redact_text(value)

    return value


def sanitize_log_extra(**kwargs: Any) -> dict[str, Any]:
    """Helper for `extra=` payloads in structured logging."""

    return {key: sanitize_for_log(value, key=key) for key, value in kwargs.items()}


def _contains_keyword(field_name: str, keywords: tuple[str, ...]) -> bool:
    lowered = field_name.lower()
    return any(keyword in lowered for keyword in keywords)


def _redact_text(raw: str) -> str:
    redacted = raw
    for pattern in _TOKEN_PATTERNS:
        redacted = pattern.sub(rf"\1{_REDACTED_VALUE}", redacted)
    return redacted


class _RetryableResponseError(Exception):
    """Retryable rate-limit or gateway signal for tenacity."""


class GitHubSponsorsClient:
    """GitHub GraphQL client with rate-limit resilience."""

    GRAPHQL_URL = "https://api.github.com/graphql"

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        graphql_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        backoff_base_seconds: float = 1.0,
        backoff_max_seconds: float = 16.0,
        rate_limit_buffer_seconds: int = 2,
        user_agent: str = "SponsorReport/1.0",
        transport: Optional[Any] = None,
    ) -> None:
        self._token = token
        self._graphql_url = graphql_url or self.GRAPHQL_URL
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._backoff_base_seconds = backoff_base_seconds
        self._backoff_max_seconds = backoff_max_seconds
        self._rate_limit_buffer_seconds = rate_limit_buffer_seconds
        self._user_agent = user_agent
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: Optional[Any] = None) -> "GitHubSponsorsClient":
        return cls(
            token=settings.GITHUB_TOKEN,
            graphql_url=settings.GITHUB_GRAPHQL_URL,
            timeout_seconds=settings.GITHUB_TIMEOUT_SECONDS,
            max_retries=settings.GITHUB_MAX_RETRIES,
            backoff_base_seconds=settings.GITHUB_BACKOFF_BASE_SECONDS,
            backoff_max_seconds=settings.GITHUB_BACKOFF_MAX_SECONDS,
            rate_limit_buffer_seconds=settings.GITHUB_RATE_LIMIT_BUFFER_SECONDS,
            user_agent=settings.USER_AGENT,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubSponsorsClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_sponsorships_page(
        self,
        login: str,
        *,
        cursor: Optional[str] = None,
        per_page: int = 100,
    ) -> SponsorshipPage:
        """Fetch one `sponsorshipsAsMaintainer` connection page for `login`.

        `data` carries the connection object (`pageInfo` and `nodes`).
        """

        response = await self._post(
            SPONSORSHIPS_QUERY,
            {"user": login, "cursor": cursor, "first": per_page},
        )
        if response.state != FetchState.OK:
            return response

        payload = response.data if isinstance(response.data, dict) else {}
        user = (payload.get("data") or {}).get("user") if isinstance(payload.get("data"), dict) else None
        if not isinstance(user, dict):
            return FetchResult(
                state=FetchState.FAILED,
                status_code=response.status_code,
                error=f"GitHub user not found: {login}",
            )

        connection = user.get("sponsorshipsAsMaintainer")
        if not isinstance(connection, dict):
            return FetchResult(
                state=FetchState.FAILED,
                status_code=response.status_code,
                error="Response is missing sponsorshipsAsMaintainer",
            )

        nodes = connection.get("nodes") if isinstance(connection.get("nodes"), list) else []
        state = FetchState.OK if nodes else FetchState.EMPTY
        return FetchResult(state=state, data=connection, status_code=response.status_code)

    async def _post(self, query: str, variables: dict[str, Any]) -> FetchResult[Any]:
        client = await self._ensure_client()
        body = {"query": query, "variables": variables}

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_retries),
                wait=wait_exponential(multiplier=self._backoff_base_seconds, max=self._backoff_max_seconds),
                retry=retry_if_exception_type(_RetryableResponseError),
                reraise=True,
            ):
                with attempt:
                    response = await client.post(self._graphql_url, json=body)

                    if response.status_code in _RETRYABLE_STATUS_CODES:
                        wait_seconds = self._compute_rate_limit_wait(response.headers)
                        logger.warning(
                            "GitHub API returned a retryable status",
                            extra=sanitize_log_extra(
                                variables=variables,
                                status_code=response.status_code,
                                retry_after_seconds=wait_seconds,
                            ),
                        )
                        if wait_seconds > 0:
                            await asyncio.sleep(wait_seconds)
                        raise _RetryableResponseError(
                            f"GitHub returned retryable status ({response.status_code})"
                        )

                    response.raise_for_status()
                    payload = response.json()
                    errors = payload.get("errors") if isinstance(payload, dict) else None
                    if errors:
                        messages = "; ".join(
                            str(error.get("message", error)) if isinstance(error, dict) else str(error)
                            for error in errors
                        )
                        logger.warning(
                            "GitHub GraphQL query returned errors",
                            extra=sanitize_log_extra(variables=variables, error=messages),
                        )
                        return FetchResult(
                            state=FetchState.FAILED,
                            status_code=response.status_code,
                            error=messages,
                        )
                    return FetchResult(
                        state=FetchState.OK,
                        data=payload,
                        status_code=response.status_code,
                    )
        except _RetryableResponseError as exc:
            logger.warning(
                "GitHub request failed after retries",
                extra=sanitize_log_extra(variables=variables, error=str(exc)),
            )
            return FetchResult(state=FetchState.FAILED, error=str(exc), status_code=429)
        except httpx.HTTPError as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            logger.warning(
                "GitHub request failed",
                extra=sanitize_log_extra(variables=variables, error=str(exc), status_code=status_code),
            )
            return FetchResult(state=FetchState.FAILED, error=str(exc), status_code=status_code)
        except ValueError as exc:
            logger.warning(
                "GitHub returned a non-JSON response",
                extra=sanitize_log_extra(variables=variables, error=str(exc)),
            )
            return FetchResult(state=FetchState.FAILED, error=f"Invalid JSON response: {exc}")

        return FetchResult(state=FetchState.FAILED, error="Unknown GitHub request failure")

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        headers = {
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }
        if self._token:
            headers["Authorization"] = f"bearer {self._token}"

        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=self._timeout_seconds,
            transport=self._transport,
        )
        return self._client

    def _compute_rate_limit_wait(self, headers: httpx.Headers) -> float:
        retry_after = headers.get("retry-after")
        if retry_after is not None:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                pass

        reset_raw = headers.get("x-ratelimit-reset")
        if reset_raw is not None:
            try:
                reset_epoch = int(reset_raw)
                wait_seconds = reset_epoch - int(time.time()) + self._rate_limit_buffer_seconds
                return float(max(wait_seconds, 0))
            except ValueError:
                pass

        return self._backoff_base_seconds
