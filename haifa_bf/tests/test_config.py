from __future__ import annotations

import pytest

from haifa_bf.config import LeftEdgePolicy, MachineConfig, OverflowPolicy


def test_defaults():
    config = MachineConfig()
    assert config.cell_bits == 8
    assert config.overflow is OverflowPolicy.WRAP
    assert config.left_edge is LeftEdgePolicy.ERROR
    assert config.max_steps is None
    assert config.timeout is None
    assert config.modulus == 256


def test_string_policies_are_coerced():
    config = MachineConfig(overflow="error", left_edge="clamp")
    assert config.overflow is OverflowPolicy.ERROR
    assert config.left_edge is LeftEdgePolicy.CLAMP


@pytest.mark.parametrize(
    "kwargs",
    [
        {"cell_bits": 0},
        {"cell_bits": -8},
        {"max_steps": -1},
        {"timeout": -0.5},
        {"overflow": "saturate"},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        MachineConfig(**kwargs)


def test_wrap_arithmetic():
    config = MachineConfig()
    assert config.apply_delta(255, 1) == 0
    assert config.apply_delta(0, -1) == 255
    assert config.apply_delta(41, 1) == 42


def test_error_arithmetic():
    config = MachineConfig(overflow=OverflowPolicy.ERROR)
    assert config.apply_delta(254, 1) == 255
    with pytest.raises(OverflowError):
        config.apply_delta(255, 1)
    with pytest.raises(OverflowError):
        config.apply_delta(0, -1)


def test_unbounded_cells():
    config = MachineConfig(cell_bits=None, overflow=OverflowPolicy.ERROR)
    assert config.modulus is None
    assert config.apply_delta(0, -1) == -1
    assert config.apply_delta(10**20, 1) == 10**20 + 1


def test_sixteen_bit_cells():
    config = MachineConfig(cell_bits=16)
    assert config.apply_delta(255, 1) == 256
    assert config.apply_delta(65535, 1) == 0
