from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# wall-clock budget is only consulted every N steps
CLOCK_INTERVAL = 1024


class OverflowPolicy(Enum):
    WRAP = "wrap"     # modulo 2**cell_bits
    ERROR = "error"   # raise CellOverflowError


class LeftEdgePolicy(Enum):
    ERROR = "error"   # raise TapeUnderflowError
    CLAMP = "clamp"   # `<` at cell 0 is a no-op


@dataclass(frozen=True)
class MachineConfig:
    """Execution policy for a tape VM run.

    ``cell_bits=None`` gives unbounded cells; the overflow policy is then
    irrelevant. Budgets are disabled when left as ``None``.
    """

    cell_bits: Optional[int] = 8
    overflow: OverflowPolicy = OverflowPolicy.WRAP
    left_edge: LeftEdgePolicy = LeftEdgePolicy.ERROR
    max_steps: Optional[int] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        # accept plain strings, e.g. straight from argparse
        if not isinstance(self.overflow, OverflowPolicy):
            object.__setattr__(self, "overflow", OverflowPolicy(self.overflow))
        if not isinstance(self.left_edge, LeftEdgePolicy):
            object.__setattr__(self, "left_edge", LeftEdgePolicy(self.left_edge))
        if self.cell_bits is not None and self.cell_bits <= 0:
            raise ValueError(f"cell_bits must be positive or None, got {self.cell_bits}")
        if self.max_steps is not None and self.max_steps < 0:
            raise ValueError(f"max_steps must be >= 0, got {self.max_steps}")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")

    @property
    def modulus(self) -> Optional[int]:
        if self.cell_bits is None:
            return None
        return 1 << self.cell_bits

    def apply_delta(self, value: int, delta: int) -> int:
        """Return ``value + delta`` under this config's overflow policy."""
        result = value + delta
        modulus = self.modulus
        if modulus is None:
            return result
        if 0 <= result < modulus:
            return result
        if self.overflow is OverflowPolicy.WRAP:
            return result % modulus
        raise OverflowError(f"cell value {result} outside {self.cell_bits}-bit range [0, {modulus - 1}]")

    def start_deadline(self) -> Optional[float]:
        if self.timeout is None:
            return None
        return time.monotonic() + self.timeout

    def budget_exhausted(self, steps: int, deadline: Optional[float]) -> Optional[str]:
        """Name the budget that stops the next step, or None if both allow it."""
        if self.max_steps is not None and steps >= self.max_steps:
            return "steps"
        if deadline is not None and steps % CLOCK_INTERVAL == 0 and time.monotonic() >= deadline:
            return "timeout"
        return None


DEFAULT_CONFIG = MachineConfig()


__all__ = ["CLOCK_INTERVAL", "DEFAULT_CONFIG", "LeftEdgePolicy", "MachineConfig", "OverflowPolicy"]
