"""Command palette providers for core app features."""

from __future__ import annotations

from typing import Any, Callable

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .models import DatabaseType


class DatabaseTabProvider(Provider):
    """Expose the database type tabs to the command palette."""

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        for kind in DatabaseType:
            label = f"Show {kind.value} connections"
            match = matcher.match(label)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=matcher.highlight(label),
                    command=self._build_callback(kind),
                    help="Switch the active database tab.",
                )

    async def discover(self) -> Hits:
        for kind in DatabaseType:
            yield DiscoveryHit(
                display=f"Show {kind.value} connections",
                command=self._build_callback(kind),
                help="Switch the active database tab.",
            )

    def _build_callback(self, kind: DatabaseType) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            switcher = getattr(self.app, "show_type", None)
            if switcher is None:
                return
            switcher(kind)

        return _run


class TransferProvider(Provider):
    """Expose import/export of the connection list."""

    _COMMANDS: tuple[tuple[str, str, str], ...] = (
        ("Export connections", "export_connections", "Write every connection to a JSON file."),
        ("Import connections", "action_import_connections", "Add connections from a JSON file."),
    )

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        for label, method, help_text in self._COMMANDS:
            score = matcher.match(label)
            if score > 0:
                yield Hit(
                    score=score,
                    match_display=matcher.highlight(label),
                    command=self._build_callback(method),
                    help=help_text,
                )

    async def discover(self) -> Hits:
        for label, method, help_text in self._COMMANDS:
            yield DiscoveryHit(
                display=label,
                command=self._build_callback(method),
                help=help_text,
            )

    def _build_callback(self, method: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            handler: Callable[[], Any] | None = getattr(self.app, method, None)
            if handler is None:
                return
            handler()

        return _run


__all__ = ["DatabaseTabProvider", "TransferProvider"]
