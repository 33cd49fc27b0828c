"""Diagnostics collected by the lexer and parser, and their rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from chtholly.source import SourceFile

if TYPE_CHECKING:
    from chtholly.source import Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str = ""


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def span(self) -> Span | None:
        return self.labels[0].span if self.labels else None


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors.

    Source lines are looked up in ``sources`` first (for stdin and editor
    buffers) and then read from disk by file name.
    """

    def __init__(
        self, *, color: bool = True, sources: dict[str, str] | None = None,
    ) -> None:
        self.color = color
        self._file_cache: dict[str, SourceFile | None] = {}
        for name, text in (sources or {}).items():
            self._file_cache[name] = SourceFile(name, text)

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        """Load and cache source file, return the 1-indexed line."""
        if filename not in self._file_cache:
            try:
                path = Path(filename)
                self._file_cache[filename] = (
                    SourceFile.from_path(path) if path.is_file() else None
                )
            except OSError:
                self._file_cache[filename] = None
        source = self._file_cache[filename]
        if source is None or not 1 <= line_num <= len(source.lines):
            return None
        return source.line_at(line_num)

    def render(self, diag: Diagnostic) -> str:
        """Header, then the labelled source line with carets, then notes."""
        color = self._c(_COLORS[diag.severity])
        reset = self._c(_RESET)
        bar = f"  {self._c(_BLUE)}   |{reset}"
        out = [
            f"{color}{diag.severity.value}[{diag.code}]{reset}"
            f"{self._c(_BOLD)}: {diag.message}{reset}"
        ]

        # Lexer and parser diagnostics carry at most one label.
        if diag.labels:
            label = diag.labels[0]
            span = label.span
            out.append(f"  {self._c(_BLUE)}-->{reset} {span}")
            out.append(bar)
            source_line = self._get_source_line(span.file, span.start_line)
            if source_line is not None:
                out.append(
                    f"  {self._c(_BLUE)}{span.start_line:>4} |{reset} {source_line}"
                )
                if span.start_line == span.end_line:
                    width = max(1, span.end_col - span.start_col + 1)
                    pad = " " * (span.start_col - 1)
                    out.append(f"{bar} {pad}{color}{'^' * width}{reset}")
            if label.message:
                out.append(f"{bar}   {color}{label.message}{reset}")

        out.extend(f"  {self._c(_BLUE)}={reset} note: {note}" for note in diag.notes)
        return "\n".join(out)


class CompileError(Exception):
    """Raised by the strict entry points, carrying every diagnostic."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        super().__init__(f"{len(diagnostics)} error(s): {'; '.join(messages)}")
