from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Tuple

from .brackets import JumpTable, resolve_brackets


class Opcode(Enum):
    INC = auto()         # +
    DEC = auto()         # -
    RIGHT = auto()       # >
    LEFT = auto()        # <
    OUTPUT = auto()      # .
    INPUT = auto()       # ,  (decoded, executes as a no-op)
    LOOP_START = auto()  # [
    LOOP_END = auto()    # ]
    NOP = auto()         # any other character


SYMBOLS = {
    "+": Opcode.INC,
    "-": Opcode.DEC,
    ">": Opcode.RIGHT,
    "<": Opcode.LEFT,
    ".": Opcode.OUTPUT,
    ",": Opcode.INPUT,
    "[": Opcode.LOOP_START,
    "]": Opcode.LOOP_END,
}


def decode(source: str) -> Tuple[Opcode, ...]:
    return tuple(SYMBOLS.get(char, Opcode.NOP) for char in source)


@dataclass(frozen=True)
class Program:
    """Program text together with its decoded opcodes and jump table.

    ``opcodes[i]`` always describes ``source[i]``, so positions reported
    by the resolver and the VM are character offsets into the text.
    """

    source: str
    opcodes: Tuple[Opcode, ...]
    jumps: JumpTable

    def __len__(self) -> int:
        return len(self.opcodes)

    def stripped(self) -> str:
        """Source with every non-instruction character removed."""
        return "".join(char for char in self.source if char in SYMBOLS)


def compile_program(source: str | bytes) -> Program:
    if isinstance(source, (bytes, bytearray)):
        source = bytes(source).decode("latin-1")
    jumps = resolve_brackets(source)
    return Program(source=source, opcodes=decode(source), jumps=jumps)


__all__ = ["Opcode", "Program", "SYMBOLS", "compile_program", "decode"]
