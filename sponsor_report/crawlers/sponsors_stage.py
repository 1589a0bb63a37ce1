"""Sponsorship ingestion stage: walks every page of a maintainer's sponsorships."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from dateutil import parser as date_parser

from sponsor_report.crawlers.contracts import FetchState
from sponsor_report.errors import SponsorFetchError
from sponsor_report.models.sponsorship import SponsorshipEvent

logger = logging.getLogger(__name__)

GHOST_LOGIN = "ghost"


@dataclass(slots=True)
class SponsorsCollectionResult:
    """Events gathered for one maintainer plus pagination metadata."""

    events: list[SponsorshipEvent] = field(default_factory=list)
    fetched_pages: int = 0
    reached_cap: bool = False
    skipped_nodes: int = 0


class SponsorsStage:
    """Collect `SponsorshipEvent`s by following GraphQL cursors until exhausted."""

    def __init__(self, github_client: Any, *, per_page: int = 100, max_pages: int = 500) -> None:
        self._github_client = github_client
        self._per_page = per_page
        self._max_pages = max_pages

    async def collect(self, login: str) -> SponsorsCollectionResult:
        result = SponsorsCollectionResult()
        cursor: Optional[str] = None

        while result.fetched_pages < self._max_pages:
            response = await self._github_client.fetch_sponsorships_page(
                login,
                cursor=cursor,
                per_page=self._per_page,
            )
            if response.state == FetchState.FAILED:
                raise SponsorFetchError(
                    f"Failed to fetch sponsorships page {result.fetched_pages + 1} for {login}: "
                    f"{response.error or 'unknown'}"
                )

            result.fetched_pages += 1
            connection = response.data if isinstance(response.data, dict) else {}
            nodes = connection.get("nodes") if isinstance(connection.get("nodes"), list) else []
            for node in nodes:
                event = self._parse_node(node)
                if event is None:
                    result.skipped_nodes += 1
                    continue
                result.events.append(event)

            page_info = connection.get("pageInfo") if isinstance(connection.get("pageInfo"), dict) else {}
            if not page_info.get("hasNextPage"):
                break
            next_cursor = page_info.get("endCursor")
            if not next_cursor or next_cursor == cursor:
                raise SponsorFetchError(
                    f"Sponsorships page {result.fetched_pages} for {login} reports a next page "
                    f"without advancing its cursor ({next_cursor!r})"
                )
            cursor = next_cursor
        else:
            result.reached_cap = True
            logger.warning(
                "Sponsorship pagination stopped at page cap",
                extra={"owner": login, "max_pages": self._max_pages},
            )

        logger.info(
            "Collected sponsorships",
            extra={
                "owner": login,
                "events": len(result.events),
                "pages": result.fetched_pages,
                "skipped_nodes": result.skipped_nodes,
            },
        )
        return result

    @staticmethod
    def _parse_node(node: Any) -> Optional[SponsorshipEvent]:
        if not isinstance(node, dict):
            return None

        raw_created = node.get("createdAt")
        if not isinstance(raw_created, str):
            return None
        try:
            created_at = date_parser.isoparse(raw_created)
        except (TypeError, ValueError):
            logger.warning("Skipping sponsorship with unparseable createdAt", extra={"created_at": raw_created})
            return None

        entity = node.get("sponsorEntity") if isinstance(node.get("sponsorEntity"), dict) else {}
        login = entity.get("login") if isinstance(entity.get("login"), str) else GHOST_LOGIN

        tier = node.get("tier") if isinstance(node.get("tier"), dict) else {}
        price = tier.get("monthlyPriceInDollars")
        return SponsorshipEvent(
            sponsor_login=login,
            created_at=created_at,
            monthly_price_dollars=int(price) if isinstance(price, (int, float)) else None,
        )
