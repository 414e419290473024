"""List widget showing one database type's connections in display order."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.binding import Binding
from textual.widgets import Label, ListItem, ListView

from unisql.models import ConnectionProfile, DatabaseType
from unisql.store import ConnectionStore, StoreEvent


def list_id(db_type: DatabaseType) -> str:
    return f"connections-{db_type.name.lower()}"


class ConnectionItem(ListItem):
    """Row for a single profile."""

    def __init__(self, record: ConnectionProfile) -> None:
        super().__init__(classes=f"env-{record.environment.value}")
        self.record = record

    @property
    def record_id(self) -> str:
        return self.record.id

    def compose(self) -> ComposeResult:
        yield Label(
            f"{self.record.connection_name}  ·  {self.record.environment.label}",
            classes="connection-name",
            markup=False,
        )
        yield Label(self.record.address, classes="connection-address", markup=False)


class ConnectionList(ListView):
    """Renders `ConnectionStore.list_by_type` and keeps the highlighted row across refreshes."""

    DEFAULT_CSS = """
    ConnectionList {
        height: 1fr;
        border: round $primary 30%;
    }

    ConnectionList:focus {
        border: round $primary;
    }

    ConnectionList .connection-name {
        text-style: bold;
    }

    ConnectionList .connection-address {
        color: $text-muted;
    }

    ConnectionList .env-prod .connection-name {
        color: $error;
    }
    """

    BINDINGS = ListView.BINDINGS + [
        Binding("a", "app.add_connection", "Add"),
        Binding("e", "app.edit_connection", "Edit"),
        Binding("p", "app.update_password", "Password"),
        Binding("d", "app.delete_connection", "Delete"),
        Binding("ctrl+up,shift+up", "app.move_up", "Move up"),
        Binding("ctrl+down,shift+down", "app.move_down", "Move down"),
        Binding("t", "app.toggle_theme", "Theme"),
    ]

    def __init__(self, store: ConnectionStore, db_type: DatabaseType) -> None:
        super().__init__(id=list_id(db_type))
        self._store = store
        self.db_type = db_type
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def selected_id(self) -> str | None:
        item = self.highlighted_child
        if isinstance(item, ConnectionItem):
            return item.record_id
        return None

    async def on_mount(self) -> None:
        self._unsubscribe = self._store.subscribe(self._handle_store_event)
        await self.refresh_items()

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def refresh_items(self, select: str | None = None) -> None:
        """Rebuild the rows from the store, re-highlighting `select` or the current row."""

        target = select or self.selected_id
        records = self._store.list_by_type(self.db_type)
        await self.clear()
        await self.extend(ConnectionItem(record) for record in records)
        if not records:
            return
        ids = [record.id for record in records]
        self.index = ids.index(target) if target in ids else 0

    def _handle_store_event(self, event: StoreEvent) -> None:
        # Type changes touch two partitions, so every list refreshes.
        self.call_later(self.refresh_items)


__all__ = ["ConnectionItem", "ConnectionList", "list_id"]
