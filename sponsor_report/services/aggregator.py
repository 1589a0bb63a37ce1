"""Monthly cumulative aggregation of sponsorship events."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import UTC, datetime
from typing import Iterable, Sequence

from sponsor_report.errors import ConfigurationError, DataIntegrityError
from sponsor_report.models.sponsorship import (
    SponsorshipEvent,
    SponsorSnapshot,
    iter_month_keys,
    month_end,
    month_key,
)

logger = logging.getLogger(__name__)


def _validate_prices(events: Sequence[SponsorshipEvent]) -> None:
    for event in events:
        if event.monthly_price_dollars is None:
            raise DataIntegrityError(
                f"Not found monthlyPriceInDollars for sponsor {event.sponsor_login!r} "
                f"created at {event.created_at.isoformat()}"
            )
        if event.monthly_price_dollars < 0:
            raise DataIntegrityError(
                f"Negative monthlyPriceInDollars ({event.monthly_price_dollars}) for sponsor "
                f"{event.sponsor_login!r} created at {event.created_at.isoformat()}"
            )


def aggregate(
    events: Iterable[SponsorshipEvent],
    *,
    now: datetime | None = None,
) -> list[SponsorSnapshot]:
    """Build one cumulative snapshot per month, from the first sponsorship to `now`.

    Every month in the range is present, including months without new
    sponsors. Income uses each tier's current price for every month.
    """

    events = list(events)
    if not events:
        raise ConfigurationError("No sponsorship events to aggregate")
    _validate_prices(events)

    if now is None:
        now = datetime.now(UTC)

    ordered = sorted(events, key=lambda item: item.created_at)
    first_month = ordered[0].month
    last_month = max(first_month, month_key(now))
    new_by_month = Counter(event.month for event in ordered)

    logger.info(
        "Aggregating sponsorships",
        extra={"first_month": first_month, "last_month": last_month, "event_count": len(ordered)},
    )

    snapshots: list[SponsorSnapshot] = []
    index = 0
    income = 0
    for key in iter_month_keys(first_month, last_month):
        cutoff = month_end(key)
        while index < len(ordered) and ordered[index].created_at <= cutoff:
            income += ordered[index].monthly_price_dollars or 0
            index += 1
        snapshots.append(
            SponsorSnapshot(
                month=key,
                sponsors=tuple(ordered[:index]),
                sponsor_count=index,
                new_sponsors_count=new_by_month.get(key, 0),
                estimated_income_dollar=income,
            )
        )
    return snapshots
