"""Console output abstraction.

Services report progress through ConsoleProtocol instead of printing
directly. Besides plain styled messages the protocol has step markers for
workflow progress:

    [RUN]   a sequential step starts
    [GO]    a concurrent step is launched
    [OK]    a step finished successfully
    [FAIL]  a step failed
    [SKIP]  a step is disabled

Implementations: RichConsole for the terminal (writes to stderr) and
MockConsole for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output."""

    @property
    def verbose(self) -> bool:
        """True if detail() lines are shown."""
        ...

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling."""
        ...

    def detail(self, message: str) -> None:
        """Print a dimmed line, only in verbose mode."""
        ...

    def run(self, message: str) -> None: ...

    def go(self, message: str) -> None: ...

    def ok(self, message: str) -> None: ...

    def fail(self, message: str) -> None: ...

    def skip(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Print a section header."""
        ...

    def newline(self) -> None: ...


class RichConsole:
    """Console implementation using Rich library.

    Progress goes to stderr, like git's own progress output, so stdout stays
    free for anything a caller may want to pipe.
    """

    def __init__(self, *, verbose: bool = False, stderr: bool = True) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(stderr=stderr, highlight=False)
        self._verbose = verbose
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    @property
    def verbose(self) -> bool:
        return self._verbose

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def detail(self, message: str) -> None:
        if self._verbose:
            self.print(message, Style.DIM)

    def _marker(self, marker: str, color: str, message: str) -> None:
        self._console.print(f"[{color}]\\[{marker}][/{color}]", end=" ")
        self._console.print(message, markup=False)

    def run(self, message: str) -> None:
        self._marker("RUN", "blue", message)

    def go(self, message: str) -> None:
        self._marker("GO", "cyan", message)

    def ok(self, message: str) -> None:
        self._marker("OK", "green", message)

    def fail(self, message: str) -> None:
        self._marker("FAIL", "red bold", message)

    def skip(self, message: str) -> None:
        self._marker("SKIP", "yellow", message)

    def success(self, message: str) -> None:
        self._console.print(f"[green]{message}[/green]")

    def error(self, message: str) -> None:
        self._console.print("[red bold]error:[/red bold]", end=" ")
        self._console.print(message, markup=False)

    def warning(self, message: str) -> None:
        self._console.print("[yellow]warning:[/yellow]", end=" ")
        self._console.print(message, markup=False)

    def info(self, message: str) -> None:
        self._console.print("[cyan]info:[/cyan]", end=" ")
        self._console.print(message, markup=False)

    def header(self, message: str) -> None:
        self._console.print()
        self._console.print(f"---> {message}", style="blue bold", markup=False)

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing.

    Records everything, including detail() lines, so tests do not depend
    on the verbosity setting.
    """

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)
    verbose: bool = True

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def detail(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.DIM))

    def run(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"[RUN] {message}", Style.INFO))

    def go(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"[GO] {message}", Style.INFO))

    def ok(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"[OK] {message}", Style.SUCCESS))

    def fail(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"[FAIL] {message}", Style.ERROR))

    def skip(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"[SKIP] {message}", Style.WARNING))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helper methods

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

    def markers(self, marker: str) -> list[str]:
        """Messages logged with a step marker, e.g. markers("OK")."""
        prefix = f"[{marker}] "
        return [m[len(prefix) :] for m in self.messages if m.startswith(prefix)]
