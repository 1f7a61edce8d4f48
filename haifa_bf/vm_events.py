from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence


@dataclass(frozen=True)
class StepTraced:
    """One executed instruction, recorded before the instruction runs."""

    step: int
    pc: int
    instruction: str
    data_pointer: int
    cell: int


@dataclass(frozen=True)
class OutputEmitted:
    step: int
    pc: int
    value: int


VMEvent = StepTraced | OutputEmitted


@dataclass(frozen=True)
class VMStateSnapshot:
    pc: int
    data_pointer: int
    tape: Sequence[int]
    output: bytes = b""
    steps: int = 0
    halted: bool = False

    @property
    def current_cell(self) -> int:
        return self.tape[self.data_pointer]


@dataclass
class TapeWindow:
    """Slice of the tape centred on the data pointer, used for display."""

    start: int
    cells: list[int] = field(default_factory=list)
    pointer: int = 0

    @classmethod
    def around(cls, snapshot: VMStateSnapshot, radius: int = 8) -> "TapeWindow":
        start = max(0, snapshot.data_pointer - radius)
        end = min(len(snapshot.tape), snapshot.data_pointer + radius + 1)
        return cls(start=start, cells=list(snapshot.tape[start:end]), pointer=snapshot.data_pointer)


__all__ = [
    "OutputEmitted",
    "StepTraced",
    "TapeWindow",
    "VMEvent",
    "VMStateSnapshot",
]
