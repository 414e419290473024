"""Modal dialogs that collect user intents for the connection store."""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Select, Static

from unisql.connections import ConnectionTester
from unisql.errors import describe_errors
from unisql.models import ConnectionDraft, ConnectionProfile, DatabaseType, Environment

DIALOG_CSS = """
ModalScreen {
    align: center middle;
}

.dialog {
    width: 72;
    height: auto;
    padding: 1 2;
    border: thick $primary 60%;
    background: $surface;
}

.dialog .dialog-title {
    text-style: bold;
    margin-bottom: 1;
}

.dialog .dialog-row {
    height: auto;
}

.dialog .dialog-row > * {
    width: 1fr;
}

.dialog .dialog-status {
    color: $text-muted;
    min-height: 1;
    margin: 1 0;
}

.dialog .dialog-status.error {
    color: $error;
}

.dialog .dialog-status.success {
    color: $success;
}

.dialog .dialog-actions {
    height: auto;
    align-horizontal: right;
}

.dialog .dialog-actions Button {
    margin-left: 1;
}
"""


class ConnectionFormScreen(ModalScreen[ConnectionDraft | None]):
    """Add/edit form; dismisses with a validated draft or None."""

    DEFAULT_CSS = DIALOG_CSS
    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(
        self,
        tester: ConnectionTester,
        *,
        profile: ConnectionProfile | None = None,
        db_type: DatabaseType = DatabaseType.POSTGRESQL,
    ) -> None:
        super().__init__()
        self._tester = tester
        self._profile = profile
        self._db_type = profile.type if profile else db_type

    def compose(self) -> ComposeResult:
        profile = self._profile
        with Vertical(classes="dialog", id="connection-form"):
            title = f"Edit {profile.connection_name}" if profile else "Add connection"
            yield Static(title, classes="dialog-title", markup=False)
            with Horizontal(classes="dialog-row"):
                yield Select(
                    [(kind.value, kind) for kind in DatabaseType],
                    value=self._db_type,
                    allow_blank=False,
                    id="field-type",
                )
                yield Select(
                    [(env.label, env) for env in Environment],
                    value=profile.environment if profile else Environment.DEV,
                    allow_blank=False,
                    id="field-environment",
                )
            yield Input(
                profile.connection_name if profile else "",
                placeholder="My Database Connection",
                id="field-connection-name",
            )
            with Horizontal(classes="dialog-row"):
                yield Input(profile.host if profile else "localhost", placeholder="localhost", id="field-host")
                yield Input(
                    str(profile.port if profile else self._db_type.default_port),
                    placeholder="Port",
                    type="integer",
                    id="field-port",
                )
            yield Input(
                (profile.database_name or "") if profile else "",
                placeholder="Database name (optional)",
                id="field-database-name",
            )
            with Horizontal(classes="dialog-row"):
                yield Input(profile.username if profile else "", placeholder="Username", id="field-username")
                yield Input(
                    profile.password if profile else "",
                    placeholder="Password",
                    password=True,
                    id="field-password",
                )
            yield Static("", classes="dialog-status", id="form-status", markup=False)
            with Horizontal(classes="dialog-actions"):
                yield Button("Test connection", id="test-connection")
                yield Button("Cancel", id="cancel")
                yield Button("Save", variant="primary", id="save")

    @on(Select.Changed, "#field-type")
    def _handle_type_changed(self, event: Select.Changed) -> None:
        if not isinstance(event.value, DatabaseType):
            return
        port = self.query_one("#field-port", Input)
        previous = self._db_type
        # Only swap the port if the user had not typed a custom one.
        if not port.value.strip() or port.value.strip() == str(previous.default_port):
            port.value = str(event.value.default_port)
        self._db_type = event.value

    @on(Button.Pressed, "#save")
    def _handle_save(self) -> None:
        draft = self._validated_draft()
        if draft is not None:
            self.dismiss(draft)

    @on(Button.Pressed, "#cancel")
    def _handle_cancel(self) -> None:
        self.action_cancel()

    @on(Button.Pressed, "#test-connection")
    def _handle_test(self) -> None:
        self._set_status("Testing connection…")
        self.run_worker(self._run_test(self.form_values()), exclusive=True, group="connection-test")

    def action_cancel(self) -> None:
        self.dismiss(None)

    def form_values(self) -> dict[str, object]:
        """Raw field values keyed by their wire names."""

        values: dict[str, object] = {
            "type": self.query_one("#field-type", Select).value,
            "environment": self.query_one("#field-environment", Select).value,
            "connectionName": self.query_one("#field-connection-name", Input).value,
            "host": self.query_one("#field-host", Input).value,
            "username": self.query_one("#field-username", Input).value,
            "password": self.query_one("#field-password", Input).value,
        }
        database = self.query_one("#field-database-name", Input).value.strip()
        values["databaseName"] = database or None
        port = self.query_one("#field-port", Input).value.strip()
        values["port"] = port or None
        return values

    def _validated_draft(self) -> ConnectionDraft | None:
        try:
            return ConnectionDraft.model_validate(self.form_values())
        except PydanticValidationError as exc:
            self._set_status("; ".join(describe_errors(exc)), error=True)
            return None

    async def _run_test(self, values: dict[str, object]) -> None:
        result = await self._tester.test(values)
        self._set_status(f"{result.message} ({result.elapsed_ms} ms)", error=not result.ok, success=result.ok)

    def _set_status(self, message: str, *, error: bool = False, success: bool = False) -> None:
        status = self.query_one("#form-status", Static)
        status.set_class(error, "error")
        status.set_class(success, "success")
        status.update(message)


class PasswordScreen(ModalScreen[str | None]):
    """Collects a replacement password."""

    DEFAULT_CSS = DIALOG_CSS
    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, profile: ConnectionProfile) -> None:
        super().__init__()
        self._profile = profile

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog", id="password-form"):
            yield Static(f"Update password for {self._profile.connection_name}", classes="dialog-title", markup=False)
            yield Input(placeholder="New password", password=True, id="field-new-password")
            with Horizontal(classes="dialog-actions"):
                yield Button("Cancel", id="cancel")
                yield Button("Update", variant="primary", id="save")

    @on(Button.Pressed, "#save")
    @on(Input.Submitted, "#field-new-password")
    def _handle_save(self) -> None:
        self.dismiss(self.query_one("#field-new-password", Input).value)

    @on(Button.Pressed, "#cancel")
    def _handle_cancel(self) -> None:
        self.action_cancel()

    def action_cancel(self) -> None:
        self.dismiss(None)


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no confirmation before destructive actions."""

    DEFAULT_CSS = DIALOG_CSS
    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, message: str, *, confirm_label: str = "Delete") -> None:
        super().__init__()
        self._message = message
        self._confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog", id="confirm-dialog"):
            yield Static(self._message, classes="dialog-title", markup=False)
            with Horizontal(classes="dialog-actions"):
                yield Button("Cancel", id="cancel")
                yield Button(self._confirm_label, variant="error", id="confirm")

    @on(Button.Pressed, "#confirm")
    def _handle_confirm(self) -> None:
        self.dismiss(True)

    @on(Button.Pressed, "#cancel")
    def _handle_cancel(self) -> None:
        self.action_cancel()

    def action_cancel(self) -> None:
        self.dismiss(False)


class PathPromptScreen(ModalScreen[Path | None]):
    """Asks for a file path (used by import)."""

    DEFAULT_CSS = DIALOG_CSS
    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, title: str, *, initial: Path | None = None) -> None:
        super().__init__()
        self._title = title
        self._initial = initial

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog", id="path-prompt"):
            yield Static(self._title, classes="dialog-title", markup=False)
            yield Input(str(self._initial or ""), placeholder="/path/to/connections.json", id="field-path")
            with Horizontal(classes="dialog-actions"):
                yield Button("Cancel", id="cancel")
                yield Button("Open", variant="primary", id="save")

    @on(Button.Pressed, "#save")
    @on(Input.Submitted, "#field-path")
    def _handle_save(self) -> None:
        value = self.query_one("#field-path", Input).value.strip()
        self.dismiss(Path(value).expanduser() if value else None)

    @on(Button.Pressed, "#cancel")
    def _handle_cancel(self) -> None:
        self.action_cancel()

    def action_cancel(self) -> None:
        self.dismiss(None)


__all__ = ["ConfirmScreen", "ConnectionFormScreen", "PasswordScreen", "PathPromptScreen"]
