"""Durable on-disk cache of the client's tasks and timers.

Each collection is a JSON array in its own file. Saves replace the whole file
atomically (temp file, fsync, rename), so a crash leaves either the previous
snapshot or the new one, never a torn write.
"""

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from focus_sync.core.config import ClientSettings
from focus_sync.domain.records import SyncRecord, TaskRecord, TimerRecord


logger = logging.getLogger(__name__)

PREFERENCES_FILE = "preferences.json"


class Collection(StrEnum):
    """Independently persisted record collections."""

    TASKS = "tasks"
    TIMERS = "timers"


_RECORD_TYPES: dict[Collection, type[SyncRecord]] = {
    Collection.TASKS: TaskRecord,
    Collection.TIMERS: TimerRecord,
}


def _atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON to ``path`` so that readers see either the old or the new content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _read_json(path: Path) -> Any | None:
    """Read JSON from ``path``; None if the file is missing or unreadable."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("local_store_read_failed", extra={"path": str(path), "error": str(e)})
        return None

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("local_store_corrupt", extra={"path": str(path), "error": str(e)})
        return None


class LocalStore:
    """Whole-collection snapshots of tasks and timers plus client preferences."""

    def __init__(self, cache_dir: str | Path | None = None) -> None:
        self.cache_dir = Path(cache_dir) if cache_dir is not None else ClientSettings().cache_dir

    def _path(self, collection: Collection) -> Path:
        return self.cache_dir / f"{Collection(collection).value}.json"

    def save(self, collection: Collection, records: Iterable[SyncRecord]) -> None:
        """Replace the persisted collection. Durable once this returns."""
        payload = [record.to_wire() for record in records]
        _atomic_write_json(self._path(collection), payload)
        logger.debug("local_store_saved", extra={"collection": str(collection), "count": len(payload)})

    def load(self, collection: Collection) -> list[SyncRecord]:
        """Return the last saved collection, or an empty list if none or corrupt.

        Entries that no longer validate are dropped with a warning.
        """
        collection = Collection(collection)
        data = _read_json(self._path(collection))
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("local_store_corrupt", extra={"collection": str(collection), "error": "not a list"})
            return []

        record_type = _RECORD_TYPES[collection]
        records: list[SyncRecord] = []
        for entry in data:
            try:
                records.append(record_type.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(
                    "local_store_entry_dropped",
                    extra={"collection": str(collection), "error": str(e)},
                )
        return records

    def save_tasks(self, tasks: Iterable[TaskRecord]) -> None:
        self.save(Collection.TASKS, tasks)

    def load_tasks(self) -> list[TaskRecord]:
        return [record for record in self.load(Collection.TASKS) if isinstance(record, TaskRecord)]

    def save_timers(self, timers: Iterable[TimerRecord]) -> None:
        self.save(Collection.TIMERS, timers)

    def load_timers(self) -> list[TimerRecord]:
        return [record for record in self.load(Collection.TIMERS) if isinstance(record, TimerRecord)]

    # Preferences

    def _load_preferences(self) -> dict[str, Any]:
        data = _read_json(self.cache_dir / PREFERENCES_FILE)
        return data if isinstance(data, dict) else {}

    def _update_preferences(self, **values: Any) -> None:
        preferences = self._load_preferences()
        preferences.update(values)
        _atomic_write_json(self.cache_dir / PREFERENCES_FILE, preferences)

    def save_offline_preference(self, enabled: bool) -> None:
        """Remember whether the user chose to work offline."""
        self._update_preferences(offline_mode=enabled)

    def load_offline_preference(self) -> bool:
        return self._load_preferences().get("offline_mode") is True

    def save_last_synced_at(self, synced_at: str) -> None:
        self._update_preferences(last_synced_at=synced_at)

    def load_last_synced_at(self) -> str | None:
        value = self._load_preferences().get("last_synced_at")
        return value if isinstance(value, str) else None
