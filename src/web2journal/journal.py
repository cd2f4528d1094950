"""File-backed journal store.

Each entry is one JSON file under ``<data_path>/entries``. Appends are the
only write; entries are never rewritten.
"""

import json
import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from .exceptions import StorageError
from .models import JournalEntry, generate_entry_id, utc_now

logger = logging.getLogger(__name__)


class JournalStore:
    def __init__(self, data_path: Path):
        self.entries_dir = Path(data_path) / "entries"
        self._lock = threading.Lock()

    def append(
        self,
        content: str,
        category: str,
        metadata: Optional[dict] = None,
        entry_type: str = "entry",
    ) -> JournalEntry:
        """Persist a new entry and return it (its id is assigned here)."""
        with self._lock:
            self.entries_dir.mkdir(parents=True, exist_ok=True)
            now = utc_now()
            entry_id = generate_entry_id(now)
            while (self.entries_dir / f"{entry_id}.json").exists():
                entry_id = generate_entry_id(now)
            entry = JournalEntry(
                id=entry_id,
                content=content,
                category=category,
                timestamp=now,
                entry_type=entry_type,
                metadata=dict(metadata or {}),
            )
            path = self.entries_dir / f"{entry_id}.json"
            path.write_text(
                json.dumps(entry.to_dict(), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
        logger.info("Appended journal entry %s (%s)", entry.id, category)
        return entry

    def get(self, entry_id: str) -> Optional[JournalEntry]:
        path = self.entries_dir / f"{entry_id}.json"
        if not path.is_file():
            return None
        return self._read(path)

    def list_entries(self, on_date: Optional[date] = None) -> list[JournalEntry]:
        """All entries sorted by timestamp, optionally limited to one local day."""
        if not self.entries_dir.is_dir():
            return []
        entries = []
        for path in self.entries_dir.glob("*.json"):
            try:
                entries.append(self._read(path))
            except StorageError as e:
                logger.warning("%s", e)
        if on_date is not None:
            entries = [e for e in entries if _local_date(e.timestamp) == on_date]
        entries.sort(key=lambda e: e.timestamp)
        return entries

    @staticmethod
    def _read(path: Path) -> JournalEntry:
        try:
            return JournalEntry.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError) as e:
            raise StorageError(f"Unreadable journal entry {path}: {e}") from e


def _local_date(ts: datetime) -> date:
    return ts.astimezone().date()
