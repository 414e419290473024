"""Authoritative in-memory connection store."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping, Sequence

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from . import codec
from .codec import ImportResult, RejectedRecord
from .errors import NotFoundError, StorageError, ValidationError, describe_errors
from .models import (
    BASE_ORDER,
    ConnectionDraft,
    ConnectionPatch,
    ConnectionProfile,
    DatabaseType,
    ImportedProfile,
)
from .storage import StorageAdapter

LOG = logging.getLogger(__name__)

Clock = Callable[[], datetime]
StoreListener = Callable[["StoreEvent"], None]
StorageErrorHandler = Callable[[StorageError], None]


@dataclass(frozen=True, slots=True)
class StoreEvent:
    """Emitted to listeners after a mutation has been applied."""

    action: str
    ids: tuple[str, ...]
    db_type: DatabaseType | None = None


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class ConnectionStore:
    """Owns the connection list; every mutation goes through here.

    Records are kept in insertion sequence. Display order within a database
    type comes from each record's `order`, with insertion sequence breaking
    ties. Every successful mutation is followed by exactly one `save()` on
    the storage adapter and one `StoreEvent` to subscribers.

    `delete` of an unknown id is a no-op that returns False.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        *,
        clock: Clock | None = None,
        on_storage_error: StorageErrorHandler | None = None,
    ) -> None:
        self._storage = storage
        self._clock = clock or _utcnow
        self._on_storage_error = on_storage_error
        self._lock = threading.RLock()
        self._listeners: set[StoreListener] = set()
        self._records: list[ConnectionProfile] = []
        self._issued_ids: set[str] = set()
        self._load_error: StorageError | None = None
        self._last_storage_error: StorageError | None = None
        self._load()

    @property
    def records(self) -> tuple[ConnectionProfile, ...]:
        """All records in insertion sequence."""

        with self._lock:
            return tuple(self._records)

    @property
    def load_error(self) -> StorageError | None:
        """Error raised by the initial load, if the store started empty because of it."""

        return self._load_error

    @property
    def last_storage_error(self) -> StorageError | None:
        return self._last_storage_error

    def get(self, record_id: str) -> ConnectionProfile:
        with self._lock:
            return self._records[self._index_of(record_id)]

    def list_by_type(self, db_type: DatabaseType | str) -> tuple[ConnectionProfile, ...]:
        """Records of one type sorted by `order`; ties keep insertion sequence."""

        kind = _coerce_type(db_type)
        with self._lock:
            members = [record for record in self._records if record.type is kind]
        return tuple(sorted(members, key=lambda record: record.order))

    def counts(self) -> dict[DatabaseType, int]:
        with self._lock:
            totals = {kind: 0 for kind in DatabaseType}
            for record in self._records:
                totals[record.type] += 1
            return totals

    def create(self, draft: ConnectionDraft | Mapping[str, object]) -> ConnectionProfile:
        """Validate a draft, assign identity/order/timestamps, and append it."""

        payload = _validate_draft(draft)
        with self._lock:
            now = self._clock()
            record = _build_profile(
                {
                    **payload.model_dump(),
                    "id": self._new_id(),
                    "order": self._next_order(payload.type),
                    "created_at": now,
                    "last_used": now,
                },
                message="Invalid connection",
            )
            self._records.append(record)
            self._persist()
        LOG.debug("Created connection", extra={"id": record.id, "db_type": record.type.value})
        self._notify(StoreEvent("create", (record.id,), record.type))
        return record

    def update(self, record_id: str, patch: ConnectionPatch | Mapping[str, object]) -> ConnectionProfile:
        """Merge `patch` into the record; id and order cannot be changed this way.

        An unknown id raises NotFoundError before the patch is validated.
        """

        with self._lock:
            index = self._index_of(record_id)
            changes = _validate_patch(patch).changes()
            current = self._records[index]
            merged = {**current.model_dump(), **changes, "last_used": self._clock()}
            moved = "type" in changes and changes["type"] is not current.type
            if moved:
                merged["order"] = self._next_order(changes["type"])  # type: ignore[arg-type]
            record = _build_profile(merged, message=f"Invalid update for '{record_id}'")
            if moved:
                # A type change behaves like delete + append in the new partition.
                del self._records[index]
                self._records.append(record)
            else:
                self._records[index] = record
            self._persist()
        LOG.debug("Updated connection", extra={"id": record_id, "fields": tuple(sorted(changes))})
        self._notify(StoreEvent("update", (record_id,), record.type))
        return record

    def update_password(self, record_id: str, new_password: str) -> ConnectionProfile:
        """Replace only the password (and refresh `last_used`)."""

        return self.update(record_id, ConnectionPatch(password=new_password))

    def delete(self, record_id: str) -> bool:
        """Remove a record; returns False when the id is unknown."""

        with self._lock:
            try:
                index = self._index_of(record_id)
            except NotFoundError:
                return False
            removed = self._records.pop(index)
            self._persist()
        LOG.debug("Deleted connection", extra={"id": record_id})
        self._notify(StoreEvent("delete", (record_id,), removed.type))
        return True

    def reorder(self, db_type: DatabaseType | str, ordered_ids: Sequence[str]) -> tuple[ConnectionProfile, ...]:
        """Assign `order = index` for a full permutation of one partition's ids."""

        kind = _coerce_type(db_type)
        requested = list(ordered_ids)
        with self._lock:
            current = {record.id for record in self._records if record.type is kind}
            if len(set(requested)) != len(requested):
                raise ValidationError(f"Reorder for {kind.value} lists an id more than once")
            if set(requested) != current:
                missing = sorted(current - set(requested))
                unknown = sorted(set(requested) - current)
                details = []
                if missing:
                    details.append(f"missing {', '.join(missing)}")
                if unknown:
                    details.append(f"not in partition {', '.join(unknown)}")
                raise ValidationError(f"Reorder for {kind.value} does not match its connections", details)
            position = {record_id: index for index, record_id in enumerate(requested)}
            self._records = [
                record.model_copy(update={"order": position[record.id]}) if record.id in position else record
                for record in self._records
            ]
            self._persist()
        self._notify(StoreEvent("reorder", tuple(requested), kind))
        return self.list_by_type(kind)

    def import_bulk(self, records: Iterable[BaseModel | Mapping[str, object]]) -> ImportResult:
        """Merge imported records additively and persist once for the batch.

        Incoming ids are kept unless they were already issued in this session
        (or repeat within the batch), in which case a fresh id is assigned.
        Incoming orders keep their spacing and land after the partition's
        current maximum; entries without an order go last.
        """

        incoming: list[ImportedProfile] = []
        rejected: list[RejectedRecord] = []
        for index, entry in enumerate(records):
            if isinstance(entry, ImportedProfile):
                incoming.append(entry)
                continue
            if isinstance(entry, BaseModel):
                entry = entry.model_dump()
            try:
                incoming.append(ImportedProfile.model_validate(entry))
            except PydanticValidationError as exc:
                rejected.append(RejectedRecord(index=index, reason="; ".join(describe_errors(exc))))

        with self._lock:
            accepted = self._reconcile(incoming)
            self._records.extend(accepted)
            self._persist()
        if rejected:
            LOG.warning("Rejected imported connections", extra={"rejected": len(rejected)})
        self._notify(StoreEvent("import", tuple(record.id for record in accepted)))
        return ImportResult(accepted=tuple(accepted), rejected=tuple(rejected))

    def import_document(self, document: str | bytes) -> ImportResult:
        """Decode an exchange document and merge it; FormatError aborts the import."""

        batch = codec.decode(document)
        result = self.import_bulk(batch.records)
        return ImportResult(accepted=result.accepted, rejected=batch.rejected + result.rejected)

    def export_document(self, *, exported_at: datetime | None = None) -> str:
        with self._lock:
            records = tuple(self._records)
        return codec.encode(records, exported_at=exported_at or self._clock())

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Subscribe to store mutations; returns an unsubscribe handle."""

        self._listeners.add(listener)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def _load(self) -> None:
        try:
            loaded = self._storage.load()
        except StorageError as exc:
            LOG.warning("Starting with an empty connection list", extra={"error": str(exc)})
            self._load_error = exc
            return
        for record in loaded:
            if record.id in self._issued_ids:
                continue
            self._issued_ids.add(record.id)
            self._records.append(record)

    def _reconcile(self, incoming: Sequence[ImportedProfile]) -> list[ConnectionProfile]:
        now = self._clock()
        shift: dict[DatabaseType, int] = {}
        top: dict[DatabaseType, int] = {}
        for record in self._records:
            top[record.type] = max(top.get(record.type, record.order), record.order)
        for kind in {record.type for record in incoming}:
            explicit = [record.order for record in incoming if record.type is kind and record.order is not None]
            if kind in top and explicit:
                shift[kind] = top[kind] + 1 - min(explicit)
            else:
                shift[kind] = 0

        orders: list[int | None] = []
        for record in incoming:
            if record.order is None:
                orders.append(None)
                continue
            order = record.order + shift[record.type]
            top[record.type] = max(top.get(record.type, order), order)
            orders.append(order)

        accepted: list[ConnectionProfile] = []
        for record, order in zip(incoming, orders):
            if order is None:
                order = top[record.type] + 1 if record.type in top else BASE_ORDER
                top[record.type] = order
            if record.id and record.id not in self._issued_ids:
                record_id = record.id
                self._issued_ids.add(record_id)
            else:
                record_id = self._new_id()
            payload = record.model_dump()
            payload.update(
                id=record_id,
                order=order,
                created_at=record.created_at or now,
                last_used=record.last_used,
            )
            accepted.append(_build_profile(payload, message="Invalid imported connection"))
        return accepted

    def _new_id(self) -> str:
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate

    def _next_order(self, kind: DatabaseType) -> int:
        orders = [record.order for record in self._records if record.type is kind]
        return max(orders) + 1 if orders else BASE_ORDER

    def _index_of(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise NotFoundError(record_id)

    def _persist(self) -> None:
        try:
            self._storage.save(tuple(self._records))
        except StorageError as exc:
            LOG.warning("Failed to persist connections", extra={"error": str(exc)})
            self._last_storage_error = exc
            if self._on_storage_error is not None:
                self._on_storage_error(exc)
        else:
            self._last_storage_error = None

    def _notify(self, event: StoreEvent) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(event)
            except Exception:
                LOG.exception("Store listener failed", extra={"action": event.action, "ids": event.ids})


def _coerce_type(db_type: DatabaseType | str) -> DatabaseType:
    try:
        return DatabaseType(db_type)
    except ValueError as exc:
        raise ValidationError(f"Unknown database type: {db_type!r}") from exc


def _validate_draft(draft: ConnectionDraft | Mapping[str, object]) -> ConnectionDraft:
    if isinstance(draft, ConnectionDraft):
        return draft
    try:
        return ConnectionDraft.model_validate(draft)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic("Invalid connection", exc) from exc


def _validate_patch(patch: ConnectionPatch | Mapping[str, object]) -> ConnectionPatch:
    if isinstance(patch, ConnectionPatch):
        return patch
    try:
        return ConnectionPatch.model_validate(patch)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic("Invalid update", exc) from exc


def _build_profile(payload: Mapping[str, object], *, message: str) -> ConnectionProfile:
    try:
        return ConnectionProfile.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(message, exc) from exc


__all__ = ["ConnectionStore", "StoreEvent", "StoreListener"]
