"""File-backed lookup of previously written monthly snapshots."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from sponsor_report.errors import HistoryLookupMiss
from sponsor_report.models.sponsorship import SponsorSnapshot


class FileHistoryStore:
    """Reads `<snapshot_dir>/<YYYY-MM>.json` files written by earlier runs.

    Each file holds the full snapshot sequence as of that month; only the
    entry for the file's own month is treated as frozen history.
    """

    def __init__(self, snapshot_dir: Path) -> None:
        self._snapshot_dir = Path(snapshot_dir)

    def __call__(self, month: str) -> Optional[SponsorSnapshot]:
        return self.lookup(month)

    def lookup(self, month: str) -> Optional[SponsorSnapshot]:
        path = self._snapshot_dir / f"{month}.json"
        if not path.is_file():
            return None

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise HistoryLookupMiss(f"Cannot read {path.name}: {exc}") from exc

        if not isinstance(payload, list):
            raise HistoryLookupMiss(f"{path.name} does not contain a snapshot list")

        for item in payload:
            if isinstance(item, dict) and item.get("month") == month:
                return SponsorSnapshot.from_dict(item)
        return None
