from __future__ import annotations

import curses
from dataclasses import dataclass
from typing import List, Optional

from .bytecode import Program
from .config import MachineConfig
from .debug import format_tape
from .event_format import format_vm_event
from .vm import TapeVM
from .vm_errors import VMRuntimeError


@dataclass
class _VMState:
    vm: TapeVM
    halted: bool = False
    error: Optional[str] = None


class VMVisualizer:
    """Curses-based step-through visualizer for TapeVM.

    Controls:
      - SPACE / p : toggle auto-run
      - n / →     : single-step
      - r         : reset VM state
      - e         : toggle trace log visibility
      - q         : quit
    """

    def __init__(self, program: Program, config: Optional[MachineConfig] = None, max_steps: Optional[int] = None):
        self._program = program
        self._config = config
        self.state = _VMState(vm=self._new_vm())
        self.max_steps = max_steps
        self.auto_run = False
        self.message = "Press SPACE to run/pause, n to step, q to quit."
        self.event_log: List[str] = []
        self.show_events = True

    # ---------------------------- public API ----------------------------- #
    def run(self) -> None:  # pragma: no cover - interactive utility
        curses.wrapper(self._main)

    # --------------------------- internal helpers ------------------------ #
    def _new_vm(self) -> TapeVM:
        return TapeVM(self._program, self._config, trace=True)

    def _main(self, stdscr: "curses._CursesWindow") -> None:  # pragma: no cover - interactive utility
        curses.curs_set(0)
        stdscr.nodelay(False)
        while True:
            self._draw(stdscr)
            stdscr.timeout(60 if (self.auto_run and not self.state.halted) else -1)
            key = stdscr.getch()
            if key == -1:
                if self.auto_run and not self.state.halted:
                    self._advance(auto=True)
                continue

            if key in (ord("q"), ord("Q")):
                break
            if key in (ord(" "), ord("p"), ord("P")):
                if self.state.halted:
                    self.message = "Program halted. Press r to reset or q to quit."
                else:
                    self.auto_run = not self.auto_run
                    self.message = "Running..." if self.auto_run else "Paused."
                continue
            if key in (ord("n"), curses.KEY_RIGHT):
                self._advance(auto=False)
                continue
            if key in (ord("r"), ord("R")):
                self._reset()
                continue
            if key in (ord("e"), ord("E")):
                self.show_events = not self.show_events
                self.message = "Trace visible." if self.show_events else "Trace hidden."
                continue
            self.message = f"Unhandled key: {key}."

    def _advance(self, auto: bool) -> None:
        if self.state.halted:
            self.auto_run = False
            return
        vm = self.state.vm
        if self.max_steps is not None and vm.steps >= self.max_steps:
            self.auto_run = False
            self.message = "Reached max steps; press r to reset or q to quit."
            return

        try:
            control = vm.step()
        except VMRuntimeError as exc:
            self.state.halted = True
            self.state.error = str(exc)
            self.auto_run = False
            self.message = f"Error: {exc}"
            return
        finally:
            self._consume_events()

        if control == "halt" or vm.pc >= len(self._program):
            vm.halted = True
            self.state.halted = True
            self.auto_run = False
            self.message = "Halted. Press r to reset or q to quit."
        elif auto:
            self.message = "Running..."

    def _consume_events(self) -> None:
        for event in self.state.vm.drain_events():
            self.event_log.append(format_vm_event(event))
        if len(self.event_log) > 200:
            self.event_log = self.event_log[-200:]

    def _reset(self) -> None:
        self.state = _VMState(vm=self._new_vm())
        self.auto_run = False
        self.message = "Reset. Press SPACE to run or n to step."
        self.event_log.clear()

    def program_window(self, width: int) -> tuple[int, str]:
        """Slice of the source around the pc with the cursor offset inside it."""
        source = self._program.source.replace("\n", " ").replace("\t", " ")
        pc = min(self.state.vm.pc, max(0, len(source) - 1))
        start = max(0, pc - width // 2)
        return pc - start, source[start:start + width]

    def _draw(self, stdscr: "curses._CursesWindow") -> None:  # pragma: no cover - interactive utility
        stdscr.erase()
        height, width = stdscr.getmaxyx()
        vm = self.state.vm
        self._write(stdscr, 0, 0, "Program (SPACE: run/pause, n: step, r: reset, q: quit)")

        cursor, text = self.program_window(max(1, width - 2))
        self._write(stdscr, 2, 0, text or "<empty program>")
        if text:
            self._write(stdscr, 3, cursor, "^")

        self._write(
            stdscr,
            5,
            0,
            f"Step: {vm.steps} | PC: {vm.pc}/{len(self._program)} | DP: {vm.dp} | "
            f"Auto: {self.auto_run} | Halted: {self.state.halted}",
        )
        snapshot = vm.snapshot_state()
        self._write(stdscr, 7, 0, "Tape:")
        self._write(stdscr, 8, 2, format_tape(snapshot, radius=max(2, (width - 20) // 10)))

        self._write(stdscr, 10, 0, "Output:")
        output = snapshot.output.decode("latin-1")
        for i, line in enumerate(output.splitlines()[-5:] or ["<empty>"]):
            self._write(stdscr, 11 + i, 2, line)

        row = 17
        if self.show_events:
            self._write(stdscr, row, 0, "Trace:")
            for i, line in enumerate(reversed(self.event_log[-(height - row - 4):])):
                self._write(stdscr, row + 1 + i, 2, line)
        else:
            self._write(stdscr, row, 0, "Trace: <hidden>")

        self._write(stdscr, height - 2, 0, self.message[: width - 1])
        stdscr.refresh()

    def _write(self, stdscr: "curses._CursesWindow", y: int, x: int, text: str, attr: int = curses.A_NORMAL) -> None:  # pragma: no cover
        height, width = stdscr.getmaxyx()
        if 0 <= y < height:
            try:
                stdscr.addnstr(y, x, text, max(0, width - x - 1), attr)
            except curses.error:
                pass


__all__ = ["VMVisualizer"]
