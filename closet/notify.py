"""
User-facing notifications (loading / info / success / error).

A notification may carry a correlation id so that a later success or error
replaces the loading message it belongs to.
"""

from typing import Literal, Optional, Protocol

from rich.console import Console

console = Console()

NotificationKind = Literal["loading", "info", "success", "error"]


class Notifier(Protocol):
    def notify(
        self,
        kind: NotificationKind,
        message: str,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Report a message to the user."""
        ...


_STYLES = {
    "loading": "cyan",
    "info": "dim",
    "success": "green",
    "error": "red",
}


class ConsoleNotifier:
    """Prints notifications to the terminal."""

    def __init__(self, out: Optional[Console] = None):
        self.console = out or console
        self._pending: dict[str, str] = {}

    def notify(
        self,
        kind: NotificationKind,
        message: str,
        correlation_id: Optional[str] = None,
    ) -> None:
        style = _STYLES.get(kind, "white")
        if kind == "loading":
            if correlation_id:
                self._pending[correlation_id] = message
            self.console.print(f"[{style}]… {message}[/{style}]")
            return

        if correlation_id:
            self._pending.pop(correlation_id, None)
        marker = {"success": "✓", "error": "✗"}.get(kind, "•")
        self.console.print(f"[{style}]{marker} {message}[/{style}]")

    @property
    def pending(self) -> list[str]:
        """Loading messages that have not been resolved yet."""
        return list(self._pending.values())
