"""Sponsor report run: collect, aggregate, merge history, write, render."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Optional

from sponsor_report.config.settings import Settings
from sponsor_report.crawlers.client import GitHubSponsorsClient, sanitize_log_extra
from sponsor_report.crawlers.sponsors_stage import SponsorsStage
from sponsor_report.errors import ConfigurationError
from sponsor_report.reporters.charts import render_charts
from sponsor_report.reporters.snapshot_writer import write_snapshots
from sponsor_report.services.aggregator import aggregate
from sponsor_report.services.history_store import FileHistoryStore
from sponsor_report.services.merger import merge_snapshots

logger = logging.getLogger(__name__)


def validate_settings(settings: Settings) -> None:
    if not settings.GITHUB_TOKEN:
        raise ConfigurationError("No env.GITHUB_TOKEN")
    if not settings.OWNER_NAME:
        raise ConfigurationError("No env.OWNER_NAME")


async def run_sponsor_report(
    settings: Settings,
    *,
    client: Optional[Any] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Run one full report for `settings.OWNER_NAME`.

    Fatal errors propagate before any snapshot or image file is written.
    """

    validate_settings(settings)
    if now is None:
        now = datetime.now(UTC)
    owner = settings.OWNER_NAME

    logger.info(
        "Sponsor report run started",
        extra=sanitize_log_extra(
            owner=owner,
            generate_only_image=settings.GENERATE_ONLY_IMAGE,
            merge_old_snapshots=settings.MERGE_OLD_SNAPSHOTS,
        ),
    )

    if not settings.GENERATE_ONLY_IMAGE:
        settings.snapshot_dir.mkdir(parents=True, exist_ok=True)
    settings.img_dir.mkdir(parents=True, exist_ok=True)

    if client is None:
        async with GitHubSponsorsClient.from_settings(settings) as github_client:
            collected = await _collect(settings, github_client)
    else:
        collected = await _collect(settings, client)

    snapshots = aggregate(collected.events, now=now)
    items = merge_snapshots(
        snapshots,
        FileHistoryStore(settings.snapshot_dir),
        enabled=settings.MERGE_OLD_SNAPSHOTS,
    )

    snapshot_files = []
    if not settings.GENERATE_ONLY_IMAGE:
        snapshot_files = write_snapshots(items, settings.snapshot_dir, today=now)
    image_files = render_charts(items, settings.img_dir)

    latest = items[-1]
    stats = {
        "owner": owner,
        "months": len(items),
        "first_month": items[0].month,
        "last_month": latest.month,
        "sponsor_count": latest.sponsor_count,
        "estimated_income_dollar": latest.estimated_income_dollar,
        "fetched_pages": collected.fetched_pages,
        "reached_cap": collected.reached_cap,
        "snapshot_files": [str(path) for path in snapshot_files],
        "image_files": [str(path) for path in image_files],
    }
    logger.info("Sponsor report run completed", extra=sanitize_log_extra(**stats))
    return stats


async def _collect(settings: Settings, github_client: Any):
    stage = SponsorsStage(
        github_client,
        per_page=settings.SPONSORS_PAGE_SIZE,
        max_pages=settings.SPONSORS_MAX_PAGES,
    )
    return await stage.collect(settings.OWNER_NAME)
