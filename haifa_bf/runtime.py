from __future__ import annotations

import pathlib
from typing import Callable, Iterator, Optional

from .bytecode import Program, compile_program
from .config import MachineConfig
from .vm import TapeVM


def compile_source(source: str | bytes) -> Program:
    """Decode ``source`` and resolve its brackets; raises StructuralError."""
    return compile_program(source)


def run(
    source: str | bytes,
    config: Optional[MachineConfig] = None,
    *,
    output: Optional[Callable[[int], None]] = None,
) -> bytes:
    """Run a program on a fresh tape and return every byte it printed.

    ``output`` is called once per emitted byte, in program order, while
    the program runs. Raises StructuralError before execution starts and
    VMRuntimeError subclasses during it.
    """
    program = compile_source(source)
    vm = TapeVM(program, config, output_sink=output)
    return vm.run()


def iter_output(source: str | bytes, config: Optional[MachineConfig] = None) -> Iterator[int]:
    # brackets are resolved eagerly so structural errors surface before iteration
    program = compile_source(source)
    return TapeVM(program, config).iter_output()


def run_script(path: str, config: Optional[MachineConfig] = None) -> bytes:
    data = pathlib.Path(path).read_text(encoding="utf-8")
    return run(data, config)


__all__ = ["compile_source", "iter_output", "run", "run_script"]
