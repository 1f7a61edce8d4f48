from __future__ import annotations

import pytest

from haifa_bf.brackets import JumpTable, resolve_brackets
from haifa_bf.vm_errors import StructuralError


def test_simple_pair_both_directions():
    table = resolve_brackets("+[->+<]")
    assert table[1] == 6
    assert table[6] == 1
    assert len(table) == 2


def test_table_is_an_involution():
    source = "[[]+[[-]>]]<[.]"
    table = resolve_brackets(source)
    bracket_positions = [i for i, c in enumerate(source) if c in "[]"]
    assert sorted(table) == bracket_positions
    for position in table:
        assert table[table[position]] == position


def test_open_always_precedes_close():
    table = resolve_brackets("a[b[c]d]e[f]")
    for start, end in table.pairs():
        assert start < end
    assert table.pairs() == [(1, 7), (3, 5), (9, 11)]


def test_no_brackets_gives_empty_table():
    assert len(resolve_brackets("+-<>. hello")) == 0


def test_lone_close_bracket_reports_position_zero():
    with pytest.raises(StructuralError) as excinfo:
        resolve_brackets("]")
    assert excinfo.value.position == 0
    assert excinfo.value.bracket == "]"
    assert str(excinfo.value) == "Unmatched ']' at position 0"


def test_lone_open_bracket():
    with pytest.raises(StructuralError) as excinfo:
        resolve_brackets("[")
    assert excinfo.value.position == 0
    assert excinfo.value.bracket == "["


def test_unmatched_outer_open_bracket():
    with pytest.raises(StructuralError) as excinfo:
        resolve_brackets("[[]")
    assert excinfo.value.position == 0
    assert excinfo.value.positions == (0,)


def test_several_unmatched_opens_report_innermost():
    with pytest.raises(StructuralError) as excinfo:
        resolve_brackets("[][[")
    assert excinfo.value.position == 3
    assert excinfo.value.positions == (2, 3)
    assert "position 3" in str(excinfo.value)


def test_close_before_open_is_not_balanced():
    with pytest.raises(StructuralError) as excinfo:
        resolve_brackets("+][")
    assert excinfo.value.position == 1


def test_structural_error_is_a_syntax_error():
    with pytest.raises(SyntaxError):
        resolve_brackets("]")


def test_resolver_is_pure():
    source = "++[>+[-]<-]>[.]"
    assert resolve_brackets(source) == resolve_brackets(source)


def test_deep_nesting():
    depth = 5000
    table = resolve_brackets("[" * depth + "]" * depth)
    assert table[0] == 2 * depth - 1
    assert table[depth - 1] == depth


def test_jump_table_is_read_only():
    table = resolve_brackets("[]")
    assert isinstance(table, JumpTable)
    with pytest.raises(TypeError):
        table[0] = 5  # type: ignore[index]
