from __future__ import annotations

from typing import Sequence

from .vm_events import VMStateSnapshot


class BFError(Exception):
    """Base class for every error raised by the interpreter."""


class StructuralError(BFError, SyntaxError):
    """Unbalanced brackets, detected before any instruction runs."""

    def __init__(self, message: str, position: int, *, bracket: str, positions: Sequence[int] = ()):
        super().__init__(message)
        self.position = position
        self.bracket = bracket
        self.positions = tuple(positions) or (position,)

    def __str__(self) -> str:
        return self.args[0] if self.args else "unbalanced brackets"


class VMRuntimeError(BFError, RuntimeError):
    """Runtime error raised by the tape VM with the machine state attached."""

    def __init__(self, message: str, snapshot: VMStateSnapshot):
        super().__init__(message)
        self.snapshot = snapshot

    @property
    def pc(self) -> int:
        return self.snapshot.pc

    @property
    def data_pointer(self) -> int:
        return self.snapshot.data_pointer


class TapeUnderflowError(VMRuntimeError):
    """Data pointer moved left of cell 0 under the ERROR left-edge policy."""


class CellOverflowError(VMRuntimeError):
    """Cell value left the configured range under the ERROR overflow policy."""


class BudgetExceededError(VMRuntimeError):
    """Step or wall-clock budget ran out before the program halted."""

    def __init__(self, message: str, snapshot: VMStateSnapshot, *, reason: str):
        super().__init__(message, snapshot)
        self.reason = reason

    @classmethod
    def for_reason(cls, reason: str, config, snapshot: VMStateSnapshot) -> "BudgetExceededError":
        if reason == "steps":
            message = f"step budget of {config.max_steps} exceeded at pc={snapshot.pc}"
        else:
            message = f"timeout of {config.timeout}s exceeded at pc={snapshot.pc}"
        return cls(message, snapshot, reason=reason)


__all__ = [
    "BFError",
    "BudgetExceededError",
    "CellOverflowError",
    "StructuralError",
    "TapeUnderflowError",
    "VMRuntimeError",
]
