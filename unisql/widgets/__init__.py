"""Widget library for the Textual UI."""

from __future__ import annotations

from .connection_list import ConnectionItem, ConnectionList, list_id
from .dialogs import ConfirmScreen, ConnectionFormScreen, PasswordScreen, PathPromptScreen
from .status_bar import StatusBar

__all__ = [
    "ConfirmScreen",
    "ConnectionFormScreen",
    "ConnectionItem",
    "ConnectionList",
    "PasswordScreen",
    "PathPromptScreen",
    "StatusBar",
    "list_id",
]
