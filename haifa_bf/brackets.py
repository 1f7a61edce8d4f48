from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Iterator, List, Sequence, Tuple

from .vm_errors import StructuralError


class JumpTable(Mapping):
    """Read-only pairing of every bracket position with its partner."""

    __slots__ = ("_targets",)

    def __init__(self, targets: Dict[int, int]):
        self._targets = dict(targets)

    def __getitem__(self, position: int) -> int:
        return self._targets[position]

    def __iter__(self) -> Iterator[int]:
        return iter(self._targets)

    def __len__(self) -> int:
        return len(self._targets)

    def __repr__(self) -> str:
        return f"JumpTable({self._targets!r})"

    def pairs(self) -> List[Tuple[int, int]]:
        """(open, close) pairs ordered by the position of the opening bracket."""
        return sorted((p, q) for p, q in self._targets.items() if p < q)


def resolve_brackets(source: Sequence[str]) -> JumpTable:
    """Match every ``[`` with its ``]`` in a single left-to-right pass."""
    targets: Dict[int, int] = {}
    pending: List[int] = []

    for position, char in enumerate(source):
        if char == "[":
            pending.append(position)
        elif char == "]":
            if not pending:
                raise StructuralError(
                    f"Unmatched ']' at position {position}",
                    position,
                    bracket="]",
                )
            start = pending.pop()
            targets[start] = position
            targets[position] = start

    if pending:
        raise StructuralError(
            f"Unmatched '[' at position {pending[-1]}",
            pending[-1],
            bracket="[",
            positions=pending,
        )

    return JumpTable(targets)


__all__ = ["JumpTable", "resolve_brackets"]
