"""Sponsorship event and monthly snapshot records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Iterator, Optional

from dateutil import parser as date_parser

from sponsor_report.errors import HistoryLookupMiss

MONTH_FORMAT = "%Y-%m"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def to_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def month_key(value: datetime) -> str:
    return to_utc(value).strftime(MONTH_FORMAT)


def month_start(key: str) -> datetime:
    return datetime.strptime(key, MONTH_FORMAT).replace(tzinfo=UTC)


def next_month_start(key: str) -> datetime:
    start = month_start(key)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def month_end(key: str) -> datetime:
    """Last representable instant of the month `key`, in UTC."""

    return next_month_start(key) - timedelta(microseconds=1)


def iter_month_keys(first: str, last: str) -> Iterator[str]:
    """Yield every month key from `first` to `last` inclusive, ascending."""

    current = month_start(first)
    stop = month_start(last)
    while current <= stop:
        key = current.strftime(MONTH_FORMAT)
        yield key
        current = next_month_start(key)


@dataclass(frozen=True, slots=True)
class SponsorshipEvent:
    """One sponsorship becoming active."""

    sponsor_login: str
    created_at: datetime
    monthly_price_dollars: Optional[int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", to_utc(self.created_at))

    @property
    def month(self) -> str:
        return month_key(self.created_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sponsorEntity": {"login": self.sponsor_login},
            "createdAt": self.created_at.strftime(TIMESTAMP_FORMAT),
            "tier": {"monthlyPriceInDollars": self.monthly_price_dollars},
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "SponsorshipEvent":
        entity = payload.get("sponsorEntity") if isinstance(payload.get("sponsorEntity"), dict) else {}
        tier = payload.get("tier") if isinstance(payload.get("tier"), dict) else {}
        price = tier.get("monthlyPriceInDollars")
        return cls(
            sponsor_login=str(entity.get("login") or "ghost"),
            created_at=date_parser.isoparse(str(payload["createdAt"])),
            monthly_price_dollars=int(price) if price is not None else None,
        )


@dataclass(frozen=True, slots=True)
class SponsorSnapshot:
    """Cumulative sponsorship metrics for one calendar month."""

    month: str
    sponsors: tuple[SponsorshipEvent, ...]
    sponsor_count: int
    new_sponsors_count: int
    estimated_income_dollar: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "estimatedIncomeDollar": self.estimated_income_dollar,
            "sponsorCount": self.sponsor_count,
            "sponsors": [sponsor.to_dict() for sponsor in self.sponsors],
            "newSponsorsCount": self.new_sponsors_count,
        }

    def to_row(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "estimatedIncomeDollar": self.estimated_income_dollar,
            "sponsorCount": self.sponsor_count,
            "newSponsorsCount": self.new_sponsors_count,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "SponsorSnapshot":
        """Rebuild a persisted snapshot; raises `HistoryLookupMiss` if malformed."""

        if not isinstance(payload, dict):
            raise HistoryLookupMiss(f"Snapshot record is not an object: {type(payload).__name__}")
        try:
            sponsors = tuple(SponsorshipEvent.from_dict(item) for item in payload.get("sponsors") or [])
            return cls(
                month=str(payload["month"]),
                sponsors=sponsors,
                sponsor_count=int(payload["sponsorCount"]),
                new_sponsors_count=int(payload["newSponsorsCount"]),
                estimated_income_dollar=int(payload["estimatedIncomeDollar"]),
            )
        except (KeyError, TypeError, ValueError, OverflowError, AttributeError) as exc:
            raise HistoryLookupMiss(f"Malformed snapshot record: {exc}") from exc
