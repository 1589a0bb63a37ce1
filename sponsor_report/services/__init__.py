"""Snapshot aggregation service helpers."""

from sponsor_report.services.aggregator import aggregate
from sponsor_report.services.history_store import FileHistoryStore
from sponsor_report.services.merger import HistoryLookup, merge_snapshots

__all__ = [
    "aggregate",
    "merge_snapshots",
    "HistoryLookup",
    "FileHistoryStore",
]
