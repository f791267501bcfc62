"""Tests for instruction flag ingestion."""

import numpy as np
import pytest

from instructions.kinds import InstructionKind
from instructions.registry import InstructionRegistry
from instructions.subtables import SubtableKind
from protocol.errors import MalformedTrace
from witness.flags import InstructionFlags

EQ, LT, AND = InstructionKind.EQ, InstructionKind.LT, InstructionKind.AND


@pytest.fixture
def registry():
    return InstructionRegistry([EQ, LT, AND], C=1, log_M=4)


class TestInstructionFlags:

    def test_from_kinds(self, registry):
        flags = InstructionFlags.from_kinds([EQ, AND, LT, EQ], registry)
        assert flags.instruction_flag(EQ).tolist() == [1, 0, 0, 1]
        assert flags.instruction_flag(LT).tolist() == [0, 0, 1, 0]
        assert [int(v) for v in flags.instruction_flag_polys()[2]] == [0, 1, 0, 0]

    def test_subtable_flags_sum_instruction_flags(self, registry):
        flags = InstructionFlags.from_kinds([EQ, AND, LT, EQ], registry)
        # EQ is read by both EQ and LT, LTU only by LT
        assert flags.subtable_flag(SubtableKind.EQ).tolist() == [1, 0, 1, 1]
        assert flags.subtable_flag(SubtableKind.LTU).tolist() == [0, 0, 1, 0]
        assert flags.subtable_flag(SubtableKind.AND).tolist() == [0, 1, 0, 0]

    def test_two_flags_at_one_step(self, registry):
        bits = [
            [1, 0, 1, 0],
            [0, 1, 1, 0],
            [0, 0, 0, 1],
        ]
        with pytest.raises(MalformedTrace, match="step 2 has 2"):
            InstructionFlags.from_bitvectors(bits, registry)

    def test_no_flag_at_step(self, registry):
        bits = [
            [1, 0, 0, 0],
            [0, 1, 0, 0],
            [0, 0, 0, 1],
        ]
        with pytest.raises(MalformedTrace, match="step 2 has 0"):
            InstructionFlags.from_bitvectors(bits, registry)

    def test_non_boolean_flag(self, registry):
        bits = [
            [2, 0, 0, 0],
            [0, 1, 1, 0],
            [0, 0, 0, 1],
        ]
        with pytest.raises(MalformedTrace, match="0 or 1"):
            InstructionFlags.from_bitvectors(bits, registry)

    def test_fractional_flag(self, registry):
        # 1.5 must not be truncated to a valid flag
        with pytest.raises(MalformedTrace, match="integers"):
            InstructionFlags.from_bitvectors([[1.5, 1, 0, 1], [0, 0, 1, 0], [0, 0, 0, 0]], registry)

    def test_boolean_bitvectors_accepted(self, registry):
        bits = [
            [True, False, False, True],
            [False, True, False, False],
            [False, False, True, False],
        ]
        flags = InstructionFlags.from_bitvectors(bits, registry)
        assert flags.instruction_flag(LT).tolist() == [0, 1, 0, 0]

    def test_wrong_row_count(self, registry):
        with pytest.raises(MalformedTrace):
            InstructionFlags(np.ones((2, 4), dtype=np.int64), registry)

    def test_ragged_bitvectors(self, registry):
        with pytest.raises(MalformedTrace):
            InstructionFlags.from_bitvectors([[1, 0], [0, 1, 0], [0]], registry)
