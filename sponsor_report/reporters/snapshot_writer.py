"""JSON and CSV export of monthly snapshots."""

from __future__ import annotations

import csv
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Sequence

from sponsor_report.models.sponsorship import SponsorSnapshot, month_key

logger = logging.getLogger(__name__)

INDEX_JSON = "index.json"
INDEX_CSV = "index.csv"

CSV_COLUMNS = [
    "month",
    "estimatedIncomeDollar",
    "sponsorCount",
    "newSponsorsCount",
]


def write_snapshots(
    items: Sequence[SponsorSnapshot],
    snapshot_dir: Path,
    *,
    today: datetime | None = None,
) -> list[Path]:
    """Write `<YYYY-MM>.json`, `index.json` and `index.csv` under `snapshot_dir`.

    The monthly file is named after `today` so later runs can read it back as
    frozen history for that month.
    """

    snapshot_dir = Path(snapshot_dir)
    snapshot_dir.mkdir(parents=True, exist_ok=True)
    if today is None:
        today = datetime.now(UTC)

    document = json.dumps([item.to_dict() for item in items], indent=4)
    monthly_path = snapshot_dir / f"{month_key(today)}.json"
    index_path = snapshot_dir / INDEX_JSON
    monthly_path.write_text(document, encoding="utf-8")
    index_path.write_text(document, encoding="utf-8")

    csv_path = snapshot_dir / INDEX_CSV
    with csv_path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(item.to_row() for item in items)

    written = [monthly_path, index_path, csv_path]
    logger.info("Wrote snapshot files", extra={"files": [path.name for path in written], "months": len(items)})
    return written
