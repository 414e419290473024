"""Status bar widget that mirrors store totals and storage health."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from unisql.models import DatabaseType
from unisql.store import ConnectionStore, StoreEvent


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, store: ConnectionStore) -> None:
        super().__init__("", id="status-bar", markup=False)
        self._store = store
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._store.subscribe(self._handle_store_event)
        self.update(self.describe())

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def describe(self) -> str:
        counts = self._store.counts()
        parts = [f"{kind.value}: {counts[kind]}" for kind in DatabaseType]
        parts.append(f"Total: {sum(counts.values())}")
        error = self._store.last_storage_error or self._store.load_error
        if error:
            parts.append(f"Storage: {str(error).splitlines()[0][:80]}")
        return " | ".join(parts)

    def _handle_store_event(self, event: StoreEvent) -> None:
        self.update(self.describe())


__all__ = ["StatusBar"]
