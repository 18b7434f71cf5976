"""
Console and log-file reporting for shh.

Every message goes to two places: a colorized, severity-tagged line on the
console (stderr, so an exec'd command keeps stdout to itself) and a
timestamped line in a log sink. Secret values are never handed to the
reporter; callers log names only.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.table import Table

REDACTED = "[REDACTED]"

_STYLES = {
    "INFO": "blue",
    "WARN": "yellow",
    "ERROR": "red",
    "SUCCESS": "green",
}


class LogSink(Protocol):
    """Destination for timestamped diagnostic lines."""

    def write(self, line: str) -> None: ...


class FileLogSink:
    """Append-only log file, opened and closed for every line."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def write(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")


class MemoryLogSink:
    """Collects log lines in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write(self, line: str) -> None:
        self.lines.append(line)

    def text(self) -> str:
        return "\n".join(self.lines)


class Reporter:
    """Severity-tagged output to the console and a log sink."""

    def __init__(
        self,
        sink: LogSink | None = None,
        console: Console | None = None,
        quiet: bool = False,
    ) -> None:
        self.sink = sink if sink is not None else MemoryLogSink()
        self.console = console or Console(stderr=True, highlight=False)
        self.quiet = quiet

    def _emit(self, level: str, message: str) -> None:
        if not self.quiet or level == "ERROR":
            style = _STYLES[level]
            self.console.print(f"[bold {style}]{level}:[/bold {style}] {escape(message)}")

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        try:
            self.sink.write(f"[{timestamp}] {level}: {message}")
        except OSError as exc:
            # Log write failures are reported on the console only
            self.console.print(f"[yellow]Could not write log: {escape(str(exc))}[/yellow]")

    def info(self, message: str) -> None:
        self._emit("INFO", message)

    def warn(self, message: str) -> None:
        self._emit("WARN", message)

    def error(self, message: str) -> None:
        self._emit("ERROR", message)

    def success(self, message: str) -> None:
        self._emit("SUCCESS", message)

    def variables(self, names: list[str]) -> None:
        """Print a table of loaded variable names with redacted values."""
        table = Table(title="Final Environment Variables", title_style="magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Value")

        for name in sorted(names):
            table.add_row(name, escape(REDACTED))

        self.console.print(table)
