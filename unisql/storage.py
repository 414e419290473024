"""Persistence adapters that keep the full connection list under one key."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from pydantic import ValidationError as PydanticValidationError

from .errors import StorageError, describe_errors
from .models import BASE_ORDER, ConnectionProfile, DatabaseType

STORAGE_KEY = "database-connections"

LOG = logging.getLogger(__name__)


@runtime_checkable
class StorageAdapter(Protocol):
    """Protocol implemented by persistence backends."""

    def load(self) -> list[ConnectionProfile]:
        """Return the stored collection, or an empty list if none exists yet."""

    def save(self, records: Sequence[ConnectionProfile]) -> None:
        """Replace the stored collection with `records`."""


class JsonFileStorage:
    """Stores the collection as a JSON array in `<directory>/<key>.json`."""

    def __init__(self, directory: Path, *, key: str = STORAGE_KEY) -> None:
        self._directory = Path(directory)
        self._key = key

    @property
    def path(self) -> Path:
        return self._directory / f"{self._key}.json"

    def load(self) -> list[ConnectionProfile]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageError(f"Failed to read {self.path}: {exc}") from exc
        return parse_document(text, source=str(self.path))

    def save(self, records: Sequence[ConnectionProfile]) -> None:
        payload = serialize_records(records)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._key}.",
                suffix=".tmp",
                dir=self._directory,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write {self.path}: {exc}") from exc


class MemoryStorage:
    """In-process storage that still round-trips through the JSON document."""

    def __init__(self, document: str | None = None) -> None:
        self.document = document
        self.saves = 0

    def load(self) -> list[ConnectionProfile]:
        if self.document is None:
            return []
        return parse_document(self.document, source="memory")

    def save(self, records: Sequence[ConnectionProfile]) -> None:
        self.document = serialize_records(records)
        self.saves += 1


def serialize_records(records: Sequence[ConnectionProfile]) -> str:
    return json.dumps([record.to_document() for record in records], indent=2)


def parse_document(text: str, *, source: str) -> list[ConnectionProfile]:
    """Parse a stored document, skipping entries that no longer validate."""

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StorageError(f"Stored connections in {source} are not valid JSON: {exc}") from exc
    if not isinstance(raw, list):
        raise StorageError(f"Stored connections in {source} must be a JSON array.")

    next_order: dict[DatabaseType, int] = {}
    pending: list[dict[str, object]] = []
    seen: set[str] = set()
    records: list[ConnectionProfile | None] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            LOG.warning("Skipping non-object stored connection", extra={"index": index, "source": source})
            continue
        record_id = entry.get("id")
        if isinstance(record_id, str) and record_id in seen:
            LOG.warning("Skipping duplicate stored connection", extra={"id": record_id, "source": source})
            continue
        if isinstance(record_id, str):
            seen.add(record_id)
        if entry.get("order") is None:
            # Slot these once every explicit order in the partition is known.
            pending.append(entry)
            records.append(None)
            continue
        record = _validate_entry(entry, index=index, source=source)
        if record is None:
            continue
        records.append(record)
        top = next_order.get(record.type, BASE_ORDER)
        next_order[record.type] = max(top, record.order + 1)

    placed = iter(pending)
    result: list[ConnectionProfile] = []
    for slot in records:
        if slot is not None:
            result.append(slot)
            continue
        entry = next(placed)
        record = _validate_entry({**entry, "order": BASE_ORDER}, index=None, source=source)
        if record is None:
            continue
        order = next_order.get(record.type, BASE_ORDER)
        next_order[record.type] = order + 1
        result.append(record.model_copy(update={"order": order}))
    return result


def _validate_entry(entry: dict[str, object], *, index: int | None, source: str) -> ConnectionProfile | None:
    try:
        return ConnectionProfile.model_validate(entry)
    except PydanticValidationError as exc:
        LOG.warning(
            "Skipping invalid stored connection",
            extra={"index": index, "source": source, "errors": describe_errors(exc)},
        )
        return None


__all__ = [
    "JsonFileStorage",
    "MemoryStorage",
    "STORAGE_KEY",
    "StorageAdapter",
    "parse_document",
    "serialize_records",
]
