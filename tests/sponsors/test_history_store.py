from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from sponsor_report.errors import HistoryLookupMiss
from sponsor_report.models.sponsorship import SponsorshipEvent
from sponsor_report.reporters.snapshot_writer import write_snapshots
from sponsor_report.services.aggregator import aggregate
from sponsor_report.services.history_store import FileHistoryStore
from sponsor_report.services.merger import merge_snapshots


def test_lookup_returns_none_when_file_missing(tmp_path) -> None:
    store = FileHistoryStore(tmp_path)

    assert store.lookup("2023-01") is None


def test_lookup_reads_snapshot_written_for_that_month(tmp_path) -> None:
    events = [
        SponsorshipEvent("alice", datetime(2023, 1, 15, 8, 30, tzinfo=UTC), 5),
        SponsorshipEvent("bob", datetime(2023, 2, 2, tzinfo=UTC), 10),
    ]
    snapshots = aggregate(events, now=datetime(2023, 2, 20, tzinfo=UTC))
    write_snapshots(snapshots, tmp_path, today=datetime(2023, 2, 20, tzinfo=UTC))

    store = FileHistoryStore(tmp_path)

    assert store("2023-02") == snapshots[1]
    # 2023-01 only appears inside 2023-02.json, which is not its own month file
    assert store.lookup("2023-01") is None


def test_lookup_returns_none_when_month_absent_from_file(tmp_path) -> None:
    (tmp_path / "2023-04.json").write_text(json.dumps([]), encoding="utf-8")

    assert FileHistoryStore(tmp_path).lookup("2023-04") is None


def test_lookup_raises_miss_on_invalid_json(tmp_path) -> None:
    (tmp_path / "2023-04.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(HistoryLookupMiss):
        FileHistoryStore(tmp_path).lookup("2023-04")


def test_lookup_raises_miss_on_malformed_record(tmp_path) -> None:
    (tmp_path / "2023-04.json").write_text(
        json.dumps([{"month": "2023-04", "sponsors": [], "estimatedIncomeDollar": 5}]),
        encoding="utf-8",
    )

    with pytest.raises(HistoryLookupMiss):
        FileHistoryStore(tmp_path).lookup("2023-04")


def test_lookup_raises_miss_when_document_is_not_a_list(tmp_path) -> None:
    (tmp_path / "2023-04.json").write_text(json.dumps({"month": "2023-04"}), encoding="utf-8")

    with pytest.raises(HistoryLookupMiss):
        FileHistoryStore(tmp_path).lookup("2023-04")


def test_lookup_raises_miss_on_non_finite_numbers(tmp_path) -> None:
    (tmp_path / "2023-01.json").write_text(
        '[{"month": "2023-01", "sponsors": [], "sponsorCount": Infinity, '
        '"newSponsorsCount": 0, "estimatedIncomeDollar": 0}]',
        encoding="utf-8",
    )

    with pytest.raises(HistoryLookupMiss):
        FileHistoryStore(tmp_path).lookup("2023-01")


def test_merge_keeps_fresh_month_when_history_has_non_finite_numbers(tmp_path) -> None:
    events = [SponsorshipEvent("alice", datetime(2023, 1, 15, tzinfo=UTC), 5)]
    fresh = aggregate(events, now=datetime(2023, 2, 1, tzinfo=UTC))
    (tmp_path / "2023-01.json").write_text(
        '[{"month": "2023-01", "sponsors": [], "sponsorCount": Infinity, '
        '"newSponsorsCount": 0, "estimatedIncomeDollar": 0}]',
        encoding="utf-8",
    )

    merged = merge_snapshots(fresh, FileHistoryStore(tmp_path))

    assert merged == fresh
