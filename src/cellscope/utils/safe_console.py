"""Rich Console wrapper that degrades to ASCII on legacy terminals."""
from typing import Any

from rich.console import Console
from rich.markup import escape

from .logger import sanitize_for_terminal, is_utf8_capable


class SafeConsole(Console):
    """Console that sanitizes Unicode output for non-UTF-8 terminals.

    Strings are sanitized before rendering; renderables such as tables and
    trees switch to ASCII box and guide characters instead.
    """

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()

        if self._needs_sanitization:
            kwargs['legacy_windows'] = True

        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        """Print with automatic Unicode sanitization."""
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)

    def error(self, message: str) -> None:
        """Print an error line; the message is escaped, not parsed as markup."""
        self.print(f"[bold red]Error:[/bold red] {escape(message)}")
