from __future__ import annotations

import atexit
import sys
from pathlib import Path
from typing import Optional

from .bytecode import SYMBOLS
from .config import MachineConfig
from .debug import format_runtime_error, format_structural_error, format_tape
from .event_format import format_vm_event
from .runtime import compile_source
from .vm import TapeVM
from .vm_errors import StructuralError, VMRuntimeError

try:  # pragma: no cover - platform specific
    import readline  # type: ignore
except ImportError:  # pragma: no cover - Windows fallback
    readline = None  # type: ignore


_HISTORY_FILE = Path.home() / ".haifa_bf_history"
_COMMANDS = (":help", ":quit", ":q", ":tape", ":reset", ":trace")


class ReplSession:
    """Interactive session whose tape survives between inputs.

    Each complete input runs from its first instruction against the tape
    and data pointer left behind by the previous one. Input with an
    unclosed ``[`` is buffered until the loop is closed.
    """

    MAIN_PROMPT = "bf> "
    CONTINUATION_PROMPT = "... "

    def __init__(
        self,
        *,
        config: Optional[MachineConfig] = None,
        trace: bool = False,
        show_stack: bool = False,
        enable_readline: bool = True,
    ) -> None:
        self.config = config or MachineConfig()
        self.trace = trace
        self.show_stack = show_stack
        self.vm = TapeVM(compile_source(""), self.config)
        self._buffer: list[str] = []
        self._enable_readline = enable_readline
        self._configure_readline()

    # ------------------------------------------------------------------ public API
    def run(self) -> None:
        while True:
            prompt = self.CONTINUATION_PROMPT if self._buffer else self.MAIN_PROMPT
            try:
                line = self._read_line(prompt)
            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                print()
                self._buffer.clear()
                continue
            result = self.process_line(line)
            if result is True:
                break

    def process_line(self, line: str) -> Optional[bool]:
        if not self._buffer:
            command_result = self._try_command(line)
            if command_result is not None:
                return command_result
        self._buffer.append(line)
        source = "\n".join(self._buffer)
        try:
            program = compile_source(source)
        except StructuralError as exc:
            if self.is_incomplete(exc):
                return None
            print(format_structural_error(exc, source), file=sys.stderr)
            self._buffer.clear()
            return None
        self._buffer.clear()
        self.vm.load(program)
        self.vm.trace = self.trace
        output_start = len(self.vm.output)
        try:
            self.vm.run()
        except VMRuntimeError as exc:
            self._print_output(bytes(self.vm.output[output_start:]))
            self._handle_runtime_error(exc, source)
            return None
        finally:
            self._print_events()
        self._print_output(bytes(self.vm.output[output_start:]))
        return None

    def is_incomplete(self, error: StructuralError) -> bool:
        return error.bracket == "["

    # ------------------------------------------------------------------ helpers
    def _print_output(self, data: bytes) -> None:
        if not data:
            return
        text = data.decode("latin-1")
        print(text, end="" if text.endswith("\n") else "\n")

    def _print_events(self) -> None:
        events = self.vm.drain_events()
        if not events:
            return
        print("Trace:")
        for event in events:
            print(f"  - {format_vm_event(event)}")

    def _handle_runtime_error(self, error: VMRuntimeError, source: str) -> None:
        if self.show_stack:
            print(format_runtime_error(error, source), file=sys.stderr)
        else:
            print(f"runtime error: {error}", file=sys.stderr)

    def _try_command(self, line: str) -> Optional[bool]:
        stripped = line.strip()
        if not stripped.startswith(":"):
            return None
        parts = stripped[1:].split()
        if not parts:
            return None
        command, *args = parts
        if command in {"quit", "q"}:
            return True
        if command == "help":
            self._print_help()
            return None
        if command == "tape":
            print(format_tape(self.vm.snapshot_state()))
            return None
        if command == "reset":
            self.vm.reset()
            print("Tape reset.")
            return None
        if command == "trace":
            self._handle_trace_command(args)
            return None
        print(f"Unknown command: :{command}")
        return None

    def _handle_trace_command(self, args: list[str]) -> None:
        if not args:
            print(f"Trace: {'on' if self.trace else 'off'}")
            return
        value = args[0].lower()
        if value not in {"on", "off"}:
            print(f"Invalid trace mode '{value}'. Available: off, on")
            return
        self.trace = value == "on"
        print(f"Trace {value}")

    def _print_help(self) -> None:
        print("Commands:")
        print("  :help             Show this help message")
        print("  :quit / :q        Exit the REPL")
        print("  :tape             Show the tape around the data pointer")
        print("  :reset            Clear the tape and output")
        print("  :trace on|off     Print every executed instruction")
        print(f"Instructions: {' '.join(SYMBOLS)} (',' is ignored); anything else is a comment.")

    def _configure_readline(self) -> None:
        if not self._enable_readline or readline is None:
            return
        if not sys.stdin.isatty():  # pragma: no cover - interactive only
            return
        try:
            readline.parse_and_bind("tab: complete")
            readline.set_completer(self._complete)
            if _HISTORY_FILE.exists():
                readline.read_history_file(str(_HISTORY_FILE))
        except OSError:  # pragma: no cover - unreadable history
            return
        atexit.register(self._save_history)

    def _complete(self, text: str, state: int) -> Optional[str]:
        candidates = sorted(command for command in _COMMANDS if command.startswith(text))
        if state < len(candidates):
            return candidates[state]
        return None

    def _save_history(self) -> None:  # pragma: no cover - interactive only
        if readline is None:
            return
        try:
            readline.write_history_file(str(_HISTORY_FILE))
        except OSError:
            pass

    def _read_line(self, prompt: str) -> str:
        return input(prompt)


__all__ = ["ReplSession"]
