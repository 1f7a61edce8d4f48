from __future__ import annotations

import argparse
import pathlib
import sys
from typing import Optional

from .config import LeftEdgePolicy, MachineConfig, OverflowPolicy
from .debug import format_runtime_error, format_structural_error
from .event_format import format_vm_event
from .repl import ReplSession
from .runtime import compile_source
from .vm import TapeVM
from .vm_errors import BudgetExceededError, StructuralError, VMRuntimeError


def build_config(args: argparse.Namespace) -> MachineConfig:
    return MachineConfig(
        cell_bits=args.cell_bits or None,
        overflow=OverflowPolicy(args.overflow),
        left_edge=LeftEdgePolicy(args.left_edge),
        max_steps=args.max_steps,
        timeout=args.timeout,
    )


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="haifa-bf", description="Run tape-machine programs")
    parser.add_argument("script", nargs="?", help="Path to program file")
    parser.add_argument("-e", "--execute", dest="inline", help="Execute program text")
    parser.add_argument("--cell-bits", type=int, default=8, help="Cell width in bits (0 for unbounded cells)")
    parser.add_argument(
        "--overflow",
        choices=[policy.value for policy in OverflowPolicy],
        default=OverflowPolicy.WRAP.value,
        help="Cell overflow policy",
    )
    parser.add_argument(
        "--left-edge",
        choices=[policy.value for policy in LeftEdgePolicy],
        default=LeftEdgePolicy.ERROR.value,
        help="What '<' does at cell 0",
    )
    parser.add_argument("--max-steps", type=int, help="Abort after this many executed instructions")
    parser.add_argument("--timeout", type=float, help="Abort after this many seconds")
    parser.add_argument("--trace", action="store_true", help="Print every executed instruction to stderr")
    parser.add_argument("--stack", action="store_true", help="Print the tape around the data pointer on error")
    parser.add_argument("--repl", action="store_true", help="Start an interactive REPL session")
    parser.add_argument("--visualize", action="store_true", help="Step through execution in a curses UI")
    args = parser.parse_args(argv)

    if args.inline is not None and args.script:
        parser.error("cannot use script path and --execute together")
    if args.repl and (args.inline is not None or args.script):
        parser.error("--repl cannot be combined with script or --execute")
    if args.visualize and args.repl:
        parser.error("--visualize cannot be combined with --repl")
    if args.cell_bits < 0:
        parser.error("--cell-bits must be >= 0")

    try:
        config = build_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    if args.repl or (args.inline is None and not args.script and sys.stdin.isatty()):
        session = ReplSession(config=config, trace=args.trace, show_stack=args.stack)
        session.run()
        return 0

    if args.inline is not None:
        source = args.inline
    elif args.script:
        source = pathlib.Path(args.script).read_text(encoding="utf-8")
    else:
        source = sys.stdin.read()

    try:
        program = compile_source(source)
    except StructuralError as exc:
        print(format_structural_error(exc, source), file=sys.stderr)
        return 1

    if args.visualize:
        try:
            from .visualizer import VMVisualizer
        except ImportError as exc:  # pragma: no cover - curses missing
            print(f"Visualizer unavailable: {exc}", file=sys.stderr)
            return 1
        VMVisualizer(program, config).run()
        return 0

    return _execute(program, config, args)


def _execute(program, config: MachineConfig, args: argparse.Namespace) -> int:
    stdout = sys.stdout.buffer if hasattr(sys.stdout, "buffer") else None

    def write_byte(value: int) -> None:
        if stdout is not None:
            stdout.write(bytes((value,)))
        else:
            sys.stdout.write(chr(value))

    vm = TapeVM(program, config, output_sink=write_byte, trace=args.trace)
    try:
        vm.run(on_step=(lambda: _print_events(vm)) if args.trace else None)
    except BudgetExceededError as exc:
        _flush(stdout)
        print(f"\nBudget exceeded ({exc.reason}): {exc}", file=sys.stderr)
        if args.stack:
            print(format_runtime_error(exc, program.source), file=sys.stderr)
        return 1
    except VMRuntimeError as exc:
        _flush(stdout)
        if args.stack:
            print(format_runtime_error(exc, program.source), file=sys.stderr)
        else:
            print(f"Execution failed: {exc}", file=sys.stderr)
        return 1
    finally:
        if args.trace:
            _print_events(vm)
    _flush(stdout)
    return 0


def _flush(stdout) -> None:
    if stdout is not None:
        stdout.flush()
    sys.stdout.flush()


def _print_events(vm: TapeVM) -> None:
    for event in vm.drain_events():
        print(format_vm_event(event), file=sys.stderr)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
