from __future__ import annotations

import csv
import json
from datetime import UTC, datetime

from sponsor_report.models.sponsorship import SponsorshipEvent
from sponsor_report.reporters.charts import INCOME_CHART, SPONSORS_CHART, render_charts
from sponsor_report.reporters.snapshot_writer import CSV_COLUMNS, write_snapshots
from sponsor_report.services.aggregator import aggregate


def _snapshots():
    events = [
        SponsorshipEvent("alice", datetime(2023, 1, 15, tzinfo=UTC), 5),
        SponsorshipEvent("bob", datetime(2023, 1, 20, tzinfo=UTC), 10),
        SponsorshipEvent("carol", datetime(2023, 3, 10, tzinfo=UTC), 5),
    ]
    return aggregate(events, now=datetime(2023, 3, 31, tzinfo=UTC))


def test_write_snapshots_writes_month_index_and_csv(tmp_path) -> None:
    snapshot_dir = tmp_path / "snapshots"

    written = write_snapshots(_snapshots(), snapshot_dir, today=datetime(2023, 3, 31, tzinfo=UTC))

    assert [path.name for path in written] == ["2023-03.json", "index.json", "index.csv"]

    index = json.loads((snapshot_dir / "index.json").read_text(encoding="utf-8"))
    assert (snapshot_dir / "2023-03.json").read_text(encoding="utf-8") == (snapshot_dir / "index.json").read_text(
        encoding="utf-8"
    )
    assert [item["month"] for item in index] == ["2023-01", "2023-02", "2023-03"]
    assert index[0]["sponsors"][0] == {
        "sponsorEntity": {"login": "alice"},
        "createdAt": "2023-01-15T00:00:00Z",
        "tier": {"monthlyPriceInDollars": 5},
    }

    with (snapshot_dir / "index.csv").open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        rows = list(reader)
    assert reader.fieldnames == CSV_COLUMNS
    assert rows[1] == {"month": "2023-02", "estimatedIncomeDollar": "15", "sponsorCount": "2", "newSponsorsCount": "0"}


def test_render_charts_writes_svg_files(tmp_path) -> None:
    img_dir = tmp_path / "docs" / "img"

    paths = render_charts(_snapshots(), img_dir)

    assert [path.name for path in paths] == [INCOME_CHART, SPONSORS_CHART]
    for path in paths:
        assert "<svg" in path.read_text(encoding="utf-8")
