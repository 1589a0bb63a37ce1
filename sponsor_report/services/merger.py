"""Overlay freshly computed snapshots with previously persisted months."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from sponsor_report.errors import HistoryLookupMiss
from sponsor_report.models.sponsorship import SponsorSnapshot

logger = logging.getLogger(__name__)

HistoryLookup = Callable[[str], Optional[SponsorSnapshot]]


def merge_snapshots(
    current: Sequence[SponsorSnapshot],
    history_lookup: HistoryLookup,
    *,
    enabled: bool = True,
) -> list[SponsorSnapshot]:
    """Replace each month that already has a persisted snapshot with that snapshot.

    A prior record always wins over the fresh one. Missing or unreadable
    records keep the fresh snapshot; an unreadable record is logged.
    """

    merged = list(current)
    if not enabled:
        return merged

    frozen = 0
    for index, snapshot in enumerate(merged):
        try:
            prior = history_lookup(snapshot.month)
        except HistoryLookupMiss as exc:
            logger.warning(
                "Ignoring unreadable snapshot history",
                extra={"month": snapshot.month, "error": str(exc)},
            )
            continue
        if prior is None:
            logger.debug("No snapshot history for month", extra={"month": snapshot.month})
            continue
        merged[index] = prior
        frozen += 1

    logger.info("Merged snapshot history", extra={"months": len(merged), "frozen_months": frozen})
    return merged
