"""Purely functional rendition of the tape machine.

Each step maps an immutable :class:`FoldState` to a new one; the run is a
fold of :func:`advance` over the instruction stream until the pc leaves
the program. Output and final tape always match :class:`haifa_bf.vm.TapeVM`,
but every tape write copies the tuple, so long-running loops are slower.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .bytecode import Opcode, Program
from .config import DEFAULT_CONFIG, LeftEdgePolicy, MachineConfig
from .vm_errors import BudgetExceededError, CellOverflowError, TapeUnderflowError
from .vm_events import VMStateSnapshot


@dataclass(frozen=True)
class FoldState:
    pc: int = 0
    dp: int = 0
    tape: Tuple[int, ...] = (0,)
    output: bytes = b""
    steps: int = 0

    def snapshot(self, halted: bool = False) -> VMStateSnapshot:
        return VMStateSnapshot(
            pc=self.pc,
            data_pointer=self.dp,
            tape=self.tape,
            output=self.output,
            steps=self.steps,
            halted=halted,
        )


def _write(tape: Tuple[int, ...], index: int, value: int) -> Tuple[int, ...]:
    return tape[:index] + (value,) + tape[index + 1:]


def advance(state: FoldState, program: Program, config: MachineConfig) -> FoldState:
    op = program.opcodes[state.pc]
    cell = state.tape[state.dp]
    next_pc = state.pc + 1

    if op is Opcode.INC or op is Opcode.DEC:
        delta = 1 if op is Opcode.INC else -1
        try:
            value = config.apply_delta(cell, delta)
        except OverflowError as exc:
            raise CellOverflowError(
                f"{exc} at pc={state.pc}, cell {state.dp}", state.snapshot()
            ) from exc
        return replace(state, pc=next_pc, tape=_write(state.tape, state.dp, value), steps=state.steps + 1)
    if op is Opcode.RIGHT:
        tape = state.tape if state.dp + 1 < len(state.tape) else state.tape + (0,)
        return replace(state, pc=next_pc, dp=state.dp + 1, tape=tape, steps=state.steps + 1)
    if op is Opcode.LEFT:
        if state.dp > 0:
            return replace(state, pc=next_pc, dp=state.dp - 1, steps=state.steps + 1)
        if config.left_edge is LeftEdgePolicy.ERROR:
            raise TapeUnderflowError(
                f"data pointer moved left of cell 0 at pc={state.pc}", state.snapshot()
            )
    elif op is Opcode.OUTPUT:
        output = state.output + bytes((cell % 256,))
        return replace(state, pc=next_pc, output=output, steps=state.steps + 1)
    elif op is Opcode.LOOP_START and cell == 0:
        next_pc = program.jumps[state.pc] + 1
    elif op is Opcode.LOOP_END and cell != 0:
        next_pc = program.jumps[state.pc] + 1

    return replace(state, pc=next_pc, steps=state.steps + 1)


def run_folded(
    program: Program,
    config: Optional[MachineConfig] = None,
    state: Optional[FoldState] = None,
) -> FoldState:
    """Fold :func:`advance` over ``program``; returns the halted state."""
    config = config or DEFAULT_CONFIG
    state = state or FoldState()
    deadline = config.start_deadline()
    while state.pc < len(program):
        reason = config.budget_exhausted(state.steps, deadline)
        if reason is not None:
            raise BudgetExceededError.for_reason(reason, config, state.snapshot())
        state = advance(state, program, config)
    return state


__all__ = ["FoldState", "advance", "run_folded"]
