from __future__ import annotations

from typing import Callable, Iterator, List, Optional

from .bytecode import Opcode, Program
from .config import DEFAULT_CONFIG, LeftEdgePolicy, MachineConfig
from .vm_errors import (
    BudgetExceededError,
    CellOverflowError,
    TapeUnderflowError,
    VMRuntimeError,
)
from .vm_events import OutputEmitted, StepTraced, VMEvent, VMStateSnapshot


class TapeVM:
    def __init__(
        self,
        program: Program,
        config: Optional[MachineConfig] = None,
        *,
        output_sink: Optional[Callable[[int], None]] = None,
        trace: bool = False,
    ):
        self.program = program
        self.instructions = program.opcodes
        self.jumps = program.jumps
        self.config = config or DEFAULT_CONFIG
        self.output_sink = output_sink
        self.trace = trace
        self.tape: List[int] = [0]
        self.dp = 0
        self.pc = 0
        self.steps = 0
        self.output = bytearray()
        self.halted = False
        self._deadline: Optional[float] = None
        self._event_buffer: List[VMEvent] = []
        self._handlers = {
            Opcode.INC: self._op_INC,
            Opcode.DEC: self._op_DEC,
            Opcode.RIGHT: self._op_RIGHT,
            Opcode.LEFT: self._op_LEFT,
            Opcode.OUTPUT: self._op_OUTPUT,
            Opcode.INPUT: self._op_NOP,
            Opcode.LOOP_START: self._op_LOOP_START,
            Opcode.LOOP_END: self._op_LOOP_END,
            Opcode.NOP: self._op_NOP,
        }

    # -------------------- State helpers --------------------
    def reset(self) -> None:
        self.tape = [0]
        self.dp = 0
        self.pc = 0
        self.steps = 0
        self.output = bytearray()
        self.halted = False
        self._deadline = None
        self._event_buffer.clear()

    def load(self, program: Program) -> None:
        """Swap in a new program while keeping the tape and data pointer."""
        self.program = program
        self.instructions = program.opcodes
        self.jumps = program.jumps
        self.pc = 0
        self.steps = 0
        self.halted = False
        self._deadline = None

    def snapshot_state(self) -> VMStateSnapshot:
        return VMStateSnapshot(
            pc=self.pc,
            data_pointer=self.dp,
            tape=tuple(self.tape),
            output=bytes(self.output),
            steps=self.steps,
            halted=self.halted,
        )

    def emit_event(self, event: VMEvent) -> None:
        self._event_buffer.append(event)

    def drain_events(self) -> List[VMEvent]:
        events = list(self._event_buffer)
        self._event_buffer.clear()
        return events

    def _wrap_runtime_error(self, exc: Exception) -> VMRuntimeError:
        message = str(exc) or exc.__class__.__name__
        return VMRuntimeError(message, self.snapshot_state())

    def _start_clock(self) -> None:
        self._deadline = self.config.start_deadline()

    def _check_budget(self) -> None:
        # callers driving step() directly get the clock started on first use
        if self._deadline is None and self.config.timeout is not None:
            self._start_clock()
        reason = self.config.budget_exhausted(self.steps, self._deadline)
        if reason is not None:
            raise BudgetExceededError.for_reason(reason, self.config, self.snapshot_state())

    # -------------------- Execution --------------------
    def step(self):
        """Executes a single instruction."""
        if self.pc >= len(self.instructions):
            self.halted = True
            return "halt"

        self._check_budget()
        op = self.instructions[self.pc]
        if self.trace:
            self.emit_event(
                StepTraced(
                    step=self.steps,
                    pc=self.pc,
                    instruction=self.program.source[self.pc],
                    data_pointer=self.dp,
                    cell=self.tape[self.dp],
                )
            )

        try:
            control = self._handlers[op]()
        except VMRuntimeError:
            raise
        except Exception as exc:
            raise self._wrap_runtime_error(exc) from exc

        self.steps += 1
        if control != "jump":
            self.pc += 1
        return None

    def run(self, debug=False, on_step: Optional[Callable[[], None]] = None) -> bytes:
        self._start_clock()
        while self.pc < len(self.instructions):
            if debug:
                print(
                    f"[PC={self.pc}] EXEC: {self.program.source[self.pc]!r}"
                    f"  DP={self.dp} CELL={self.tape[self.dp]} TAPE={self.tape[:16]}"
                )
            self.step()
            if on_step is not None:
                on_step()
        self.halted = True
        return bytes(self.output)

    def iter_output(self) -> Iterator[int]:
        """Run the program, yielding each output byte as soon as it is emitted."""
        self._start_clock()
        while self.pc < len(self.instructions):
            emitted = len(self.output)
            self.step()
            if len(self.output) > emitted:
                yield self.output[-1]
        self.halted = True

    # -------------------- Opcode handlers --------------------
    def _op_INC(self):
        self._adjust(1)

    def _op_DEC(self):
        self._adjust(-1)

    def _adjust(self, delta: int) -> None:
        try:
            self.tape[self.dp] = self.config.apply_delta(self.tape[self.dp], delta)
        except OverflowError as exc:
            raise CellOverflowError(
                f"{exc} at pc={self.pc}, cell {self.dp}", self.snapshot_state()
            ) from exc

    def _op_RIGHT(self):
        self.dp += 1
        if self.dp == len(self.tape):
            self.tape.append(0)

    def _op_LEFT(self):
        if self.dp > 0:
            self.dp -= 1
            return
        if self.config.left_edge is LeftEdgePolicy.CLAMP:
            return
        raise TapeUnderflowError(
            f"data pointer moved left of cell 0 at pc={self.pc}", self.snapshot_state()
        )

    def _op_OUTPUT(self):
        value = self.tape[self.dp] % 256
        self.output.append(value)
        if self.trace:
            self.emit_event(OutputEmitted(step=self.steps, pc=self.pc, value=value))
        if self.output_sink is not None:
            self.output_sink(value)

    def _op_LOOP_START(self):
        if self.tape[self.dp] == 0:
            self.pc = self.jumps[self.pc] + 1
            return "jump"

    def _op_LOOP_END(self):
        if self.tape[self.dp] != 0:
            self.pc = self.jumps[self.pc] + 1
            return "jump"

    def _op_NOP(self):
        return None


__all__ = ["TapeVM"]
