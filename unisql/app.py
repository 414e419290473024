"""Textual application entry point for unisql."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from textual import on
from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, TabbedContent, TabPane

from .codec import ImportResult, export_filename
from .config import AppConfig, load_config, save_config
from .connections import ConnectionTester
from .errors import FormatError, NotFoundError, StorageError, ValidationError
from .models import ConnectionDraft, ConnectionProfile, DatabaseType
from .providers import DatabaseTabProvider, TransferProvider
from .storage import JsonFileStorage, MemoryStorage, StorageAdapter
from .store import ConnectionStore, StoreEvent
from .widgets import (
    ConfirmScreen,
    ConnectionFormScreen,
    ConnectionList,
    PasswordScreen,
    PathPromptScreen,
    StatusBar,
    list_id,
)

LOG = logging.getLogger(__name__)

_THEMES = {"dark": "textual-dark", "light": "textual-light"}


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


def _create_storage(config: AppConfig, *, ephemeral: bool) -> StorageAdapter:
    if ephemeral:
        return MemoryStorage()
    return JsonFileStorage(config.data_dir)


def pane_id(db_type: DatabaseType) -> str:
    return f"tab-{db_type.name.lower()}"


class UniSqlApp(App[None]):
    """Connection manager: one tab per database type over a shared store."""

    TITLE = "Universal SQL Editor"
    SUB_TITLE = "Connections"
    COMMANDS = App.COMMANDS | {DatabaseTabProvider, TransferProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #database-tabs {
        height: 1fr;
        padding: 0 1;
    }
    TabPane {
        padding: 1 0;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self, *, ephemeral: bool = False) -> None:
        super().__init__()
        self._config = _load_app_config()
        self._pending_notifications: list[tuple[str, str]] = []
        self._active_type = self._config.active_type
        self._store = ConnectionStore(
            _create_storage(self._config, ephemeral=ephemeral),
            on_storage_error=self._handle_storage_error,
        )
        if self._store.load_error:
            reason = str(self._store.load_error).splitlines()[0][:120]
            self._pending_notifications.append(
                (f"Saved connections could not be read ({reason}); starting empty.", "warning")
            )
        self._tester = ConnectionTester(
            delay=self._config.connection_test.delay,
            timeout=self._config.connection_test.timeout,
        )
        self._store_unsubscribe: Callable[[], None] | None = self._store.subscribe(self._handle_store_event)

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        with TabbedContent(initial=pane_id(self._active_type), id="database-tabs"):
            for kind in DatabaseType:
                with TabPane(self._tab_label(kind), id=pane_id(kind)):
                    yield ConnectionList(self._store, kind)
        yield StatusBar(self._store)
        yield Footer()

    async def on_mount(self) -> None:
        self.theme = _THEMES.get(self._config.theme, _THEMES["dark"])
        self._flush_pending_notifications()

    @property
    def store(self) -> ConnectionStore:
        """Expose the connection store for tests and providers."""

        return self._store

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def active_type(self) -> DatabaseType:
        return self._active_type

    def action_add_connection(self) -> None:
        self.push_screen(
            ConnectionFormScreen(self._tester, db_type=self._active_type),
            callback=self.create_connection,
        )

    def action_edit_connection(self) -> None:
        record = self._selected_record()
        if record is None:
            return

        def _apply(draft: ConnectionDraft | None) -> None:
            if draft is not None:
                self.edit_connection(record.id, draft)

        self.push_screen(ConnectionFormScreen(self._tester, profile=record), callback=_apply)

    def action_update_password(self) -> None:
        record = self._selected_record()
        if record is None:
            return

        def _apply(password: str | None) -> None:
            if password is None:
                return
            try:
                self._store.update_password(record.id, password)
            except NotFoundError as exc:
                self._safe_notify(str(exc), severity="error")
                return
            self._safe_notify(f"Password updated for {record.connection_name}.")

        self.push_screen(PasswordScreen(record), callback=_apply)

    def action_delete_connection(self) -> None:
        record = self._selected_record()
        if record is None:
            return

        def _apply(confirmed: bool | None) -> None:
            if confirmed and self._store.delete(record.id):
                self._safe_notify(f"Deleted {record.connection_name}.")

        self.push_screen(ConfirmScreen(f"Delete connection '{record.connection_name}'?"), callback=_apply)

    def action_move_up(self) -> None:
        record = self._selected_record()
        if record is not None:
            self.move_connection(record.id, -1)

    def action_move_down(self) -> None:
        record = self._selected_record()
        if record is not None:
            self.move_connection(record.id, 1)

    def action_toggle_theme(self) -> None:
        theme = "light" if self._config.theme == "dark" else "dark"
        self._config = self._config.with_theme(theme)
        self.theme = _THEMES[theme]
        save_config(self._config)

    def action_import_connections(self) -> None:
        def _apply(path: Path | None) -> None:
            if path is not None:
                self.import_connections(path)

        self.push_screen(
            PathPromptScreen("Import connections from", initial=self._config.export_dir),
            callback=_apply,
        )

    def create_connection(self, draft: ConnectionDraft | None) -> ConnectionProfile | None:
        """Store a new profile from the add form."""

        if draft is None:
            return None
        try:
            record = self._store.create(draft)
        except ValidationError as exc:
            self._safe_notify(str(exc), severity="error")
            return None
        self._safe_notify(f"Added {record.connection_name}.")
        if record.type is not self._active_type:
            self.show_type(record.type)
        return record

    def edit_connection(self, record_id: str, draft: ConnectionDraft) -> ConnectionProfile | None:
        """Apply every field of the edit form to an existing profile."""

        try:
            record = self._store.update(record_id, draft.model_dump())
        except (ValidationError, NotFoundError) as exc:
            self._safe_notify(str(exc), severity="error")
            return None
        self._safe_notify(f"Saved {record.connection_name}.")
        if record.type is not self._active_type:
            self.show_type(record.type)
        return record

    def move_connection(self, record_id: str, offset: int) -> bool:
        """Shift a profile within its tab; the keyboard stand-in for drag-and-drop."""

        try:
            record = self._store.get(record_id)
        except NotFoundError as exc:
            self._safe_notify(str(exc), severity="error")
            return False
        ids = [item.id for item in self._store.list_by_type(record.type)]
        index = ids.index(record_id)
        target = index + offset
        if not 0 <= target < len(ids):
            return False
        ids.insert(target, ids.pop(index))
        try:
            self._store.reorder(record.type, ids)
        except ValidationError as exc:
            self._safe_notify(str(exc), severity="error")
            return False
        return True

    def show_type(self, db_type: DatabaseType) -> None:
        """Switch to the tab for `db_type` and remember the choice."""

        self._remember_active_type(db_type)
        if self.is_running:
            self.query_one(TabbedContent).active = pane_id(db_type)

    def export_connections(self) -> Path | None:
        """Write the export document into the configured export directory."""

        now = datetime.now(tz=timezone.utc)
        path = self._config.export_dir / export_filename(now)
        document = self._store.export_document(exported_at=now)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(document, encoding="utf-8")
        except OSError as exc:
            LOG.exception("Failed to export connections", extra={"path": str(path)})
            self._safe_notify(f"Export failed: {exc}", severity="error")
            return None
        count = len(self._store.records)
        self._safe_notify(f"Exported {count} connection(s) to {path}.")
        return path

    def import_connections(self, path: Path) -> ImportResult | None:
        """Merge connections from an export document; existing profiles are never overwritten."""

        try:
            document = path.read_bytes()
        except OSError as exc:
            self._safe_notify(f"Import failed: {exc}", severity="error")
            return None
        try:
            result = self._store.import_document(document)
        except FormatError as exc:
            self._safe_notify(str(exc), severity="error")
            return None
        message = f"Imported {result.accepted_count} connection(s)"
        if result.rejected_count:
            message += f", {result.rejected_count} rejected"
            self._safe_notify(f"{message}.", severity="warning")
        else:
            self._safe_notify(f"{message}.")
        return result

    @on(TabbedContent.TabActivated, "#database-tabs")
    def _handle_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        for kind in DatabaseType:
            if event.pane.id == pane_id(kind):
                self._remember_active_type(kind)
                event.pane.query_one(ConnectionList).focus()
                return

    async def _shutdown(self) -> None:
        if self._store_unsubscribe:
            self._store_unsubscribe()
            self._store_unsubscribe = None
        await super()._shutdown()

    def _remember_active_type(self, db_type: DatabaseType) -> None:
        self._active_type = db_type
        if self._config.active_type is db_type:
            return
        self._config = self._config.with_active_type(db_type)
        save_config(self._config)

    def _selected_record(self) -> ConnectionProfile | None:
        listing = self.query_one(f"#{list_id(self._active_type)}", ConnectionList)
        record_id = listing.selected_id
        if record_id is None:
            self._safe_notify("Select a connection first.", severity="warning")
            return None
        try:
            return self._store.get(record_id)
        except NotFoundError as exc:
            self._safe_notify(str(exc), severity="error")
            return None

    def _tab_label(self, db_type: DatabaseType) -> str:
        return f"{db_type.value} ({self._store.counts()[db_type]})"

    def _handle_store_event(self, event: StoreEvent) -> None:
        if not self.is_running:
            return
        tabs = self.query_one(TabbedContent)
        for kind in DatabaseType:
            tabs.get_tab(pane_id(kind)).label = self._tab_label(kind)

    def _handle_storage_error(self, exc: StorageError) -> None:
        self._safe_notify(f"Changes kept in memory only: {exc}", severity="warning")

    def _safe_notify(self, message: str, *, severity: str = "information") -> None:
        if self.is_running:
            try:
                self.notify(message, severity=severity)  # type: ignore[arg-type]
            except Exception:
                LOG.exception("Failed to display notification", extra={"notice": message})
        else:
            self._pending_notifications.append((message, severity))

    def _flush_pending_notifications(self) -> None:
        if not self._pending_notifications:
            return
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            try:
                self.notify(message, severity=severity)  # type: ignore[arg-type]
            except Exception:
                LOG.exception("Failed to display queued notification", extra={"notice": message})


def _configure_logging(config: AppConfig) -> None:
    # The terminal belongs to the TUI, so logs only go to a file when one is configured.
    if config.log_file is None:
        return
    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=config.log_file,
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Invoke the Textual application."""

    parser = argparse.ArgumentParser(prog="unisql", description="Manage database connection profiles.")
    parser.add_argument(
        "--ephemeral",
        action="store_true",
        help="Keep connections in memory only; nothing is written to disk.",
    )
    args = parser.parse_args(argv)
    _configure_logging(load_config())
    UniSqlApp(ephemeral=args.ephemeral).run()


if __name__ == "__main__":
    main()
