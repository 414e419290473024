"""Export/import codec for the portable connections document."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from pydantic import ValidationError as PydanticValidationError

from .errors import FormatError, describe_errors
from .models import ConnectionProfile, ImportedProfile

DOCUMENT_FORMAT = "unisql.connections"
DOCUMENT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({DOCUMENT_VERSION})


@dataclass(frozen=True, slots=True)
class RejectedRecord:
    """An import entry that failed validation."""

    index: int
    reason: str


@dataclass(frozen=True, slots=True)
class ImportBatch:
    """Decoded import document, ready to be merged into a store."""

    records: tuple[ImportedProfile, ...]
    rejected: tuple[RejectedRecord, ...] = ()
    version: int = DOCUMENT_VERSION


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Outcome of merging an import into the store."""

    accepted: tuple[ConnectionProfile, ...]
    rejected: tuple[RejectedRecord, ...] = ()

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


def encode(records: Iterable[ConnectionProfile], *, exported_at: datetime | None = None) -> str:
    """Serialize every record (ids and orders included) into an export document."""

    stamp = exported_at or datetime.now(tz=timezone.utc)
    document = {
        "format": DOCUMENT_FORMAT,
        "version": DOCUMENT_VERSION,
        "exportedAt": stamp.isoformat(),
        "connections": [record.to_document() for record in records],
    }
    return json.dumps(document, indent=2)


def export_filename(now: datetime | None = None) -> str:
    stamp = now or datetime.now(tz=timezone.utc)
    return f"database-connections-{stamp:%Y-%m-%d}.json"


def decode(document: str | bytes) -> ImportBatch:
    """Parse an import document; entries that fail validation are reported, not raised."""

    try:
        raw = json.loads(document)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FormatError(f"Import file is not valid JSON: {exc}") from exc

    version = DOCUMENT_VERSION
    if isinstance(raw, dict):
        fmt = raw.get("format", DOCUMENT_FORMAT)
        if fmt != DOCUMENT_FORMAT:
            raise FormatError(f"Unsupported import format: {fmt!r}")
        version = raw.get("version")
        if isinstance(version, bool) or not isinstance(version, int) or version not in SUPPORTED_VERSIONS:
            raise FormatError(f"Unsupported import version: {version!r}")
        entries = raw.get("connections")
        if not isinstance(entries, list):
            raise FormatError("Import document is missing its 'connections' array.")
    elif isinstance(raw, list):
        # Bare arrays are what older exports produced.
        entries = raw
    else:
        raise FormatError("Import file must contain a JSON array or a connections document.")

    records: list[ImportedProfile] = []
    rejected: list[RejectedRecord] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            rejected.append(RejectedRecord(index=index, reason="entry is not an object"))
            continue
        try:
            records.append(ImportedProfile.model_validate(entry))
        except PydanticValidationError as exc:
            rejected.append(RejectedRecord(index=index, reason="; ".join(describe_errors(exc))))
    return ImportBatch(records=tuple(records), rejected=tuple(rejected), version=version)


__all__ = [
    "DOCUMENT_FORMAT",
    "DOCUMENT_VERSION",
    "ImportBatch",
    "ImportResult",
    "RejectedRecord",
    "decode",
    "encode",
    "export_filename",
]
