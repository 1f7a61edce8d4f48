from .brackets import JumpTable, resolve_brackets
from .bytecode import Opcode, Program
from .config import LeftEdgePolicy, MachineConfig, OverflowPolicy
from .runtime import compile_source, iter_output, run, run_script
from .vm import TapeVM
from .vm_errors import (
    BFError,
    BudgetExceededError,
    CellOverflowError,
    StructuralError,
    TapeUnderflowError,
    VMRuntimeError,
)

__all__ = [
    "run",
    "run_script",
    "iter_output",
    "compile_source",
    "resolve_brackets",
    "JumpTable",
    "Opcode",
    "Program",
    "TapeVM",
    "MachineConfig",
    "OverflowPolicy",
    "LeftEdgePolicy",
    "BFError",
    "StructuralError",
    "VMRuntimeError",
    "TapeUnderflowError",
    "CellOverflowError",
    "BudgetExceededError",
]
