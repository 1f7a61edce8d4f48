from __future__ import annotations

from typing import Tuple

from ..vm_errors import StructuralError, VMRuntimeError
from ..vm_events import TapeWindow, VMStateSnapshot


def line_column(source: str, position: int) -> Tuple[int, int]:
    """1-based line and column of a character offset."""
    line = source.count("\n", 0, position) + 1
    column = position - (source.rfind("\n", 0, position) + 1) + 1
    return line, column


def format_tape(snapshot: VMStateSnapshot, radius: int = 8) -> str:
    window = TapeWindow.around(snapshot, radius)
    cells = []
    for offset, value in enumerate(window.cells):
        index = window.start + offset
        cells.append(f"[{value}]" if index == window.pointer else str(value))
    prefix = "... " if window.start > 0 else ""
    suffix = " ..." if window.start + len(window.cells) < len(snapshot.tape) else ""
    return f"tape[{window.start}:{window.start + len(window.cells)}] {prefix}{' '.join(cells)}{suffix}"


def format_runtime_error(error: VMRuntimeError, source: str | None = None) -> str:
    snapshot = error.snapshot
    lines = [f"runtime error: {error}"]
    if source is not None and snapshot.pc < len(source):
        line, column = line_column(source, snapshot.pc)
        lines.append(f"  at {line}:{column} instruction {source[snapshot.pc]!r}")
    lines.append(f"  pc={snapshot.pc} dp={snapshot.data_pointer} steps={snapshot.steps}")
    lines.append(f"  {format_tape(snapshot)}")
    if snapshot.output:
        lines.append(f"  output so far: {snapshot.output!r}")
    return "\n".join(lines)


def format_structural_error(error: StructuralError, source: str) -> str:
    line, column = line_column(source, error.position)
    text = source.split("\n")[line - 1].rstrip("\r")
    return "\n".join(
        [
            f"structural error: {error} (line {line}, column {column})",
            f"  {text}",
            f"  {' ' * (column - 1)}^",
        ]
    )


__all__ = ["format_runtime_error", "format_structural_error", "format_tape", "line_column"]
