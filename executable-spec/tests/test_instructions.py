"""Tests for instruction decompositions and the instruction registry."""

import pytest

from instructions.kinds import InstructionKind
from instructions.registry import InstructionRegistry
from instructions.subtables import SubtableKind, materialize
from primitives.field import FF
from protocol.errors import MalformedTrace, UnknownInstruction

ALL_KINDS = list(InstructionKind)


@pytest.fixture
def registry():
    """Every instruction kind, two 2-bit chunks per operand."""
    return InstructionRegistry(ALL_KINDS, C=2, log_M=4)


def _terms(registry, kind, x, y):
    """Lookup values of kind on (x, y), in term order."""
    indices = registry.lookup_indices(kind, x, y)
    terms = []
    for subtable in registry.subtables(kind):
        table = materialize(subtable, registry.log_M)
        terms += [FF(table[idx]) for idx in indices]
    return terms


class TestCollation:
    """g(terms) reproduces the instruction's result for every operand pair."""

    @pytest.mark.parametrize("kind", ALL_KINDS)
    def test_collation_matches_direct_evaluation(self, registry, kind):
        for x in range(16):
            for y in range(16):
                collated = registry.collate(kind, _terms(registry, kind, x, y))
                assert int(collated) == registry.lookup_entry(kind, x, y), (kind, x, y)

    def test_known_results(self, registry):
        assert registry.lookup_entry(InstructionKind.LT, 2, 9) == 1
        assert registry.lookup_entry(InstructionKind.LT, 9, 2) == 0
        assert registry.lookup_entry(InstructionKind.GE, 9, 9) == 1
        assert registry.lookup_entry(InstructionKind.XOR, 0b1010, 0b0110) == 0b1100

    def test_signed_results(self, registry):
        # 4-bit two's complement: 0b1111 is -1, 0b1000 is -8
        assert registry.lookup_entry(InstructionKind.SLT, 0b1111, 1) == 1
        assert registry.lookup_entry(InstructionKind.LT, 0b1111, 1) == 0
        assert registry.lookup_entry(InstructionKind.SLT, 1, 0b1111) == 0
        assert registry.lookup_entry(InstructionKind.SLT, 0b1000, 0b1111) == 1
        assert registry.lookup_entry(InstructionKind.BGE, 0b0111, 0b1000) == 1
        assert registry.lookup_entry(InstructionKind.BGE, 0b1000, 0b0111) == 0
        assert registry.lookup_entry(InstructionKind.BGE, 0b1010, 0b1010) == 1

    @pytest.mark.parametrize("C, log_M", [(1, 2), (1, 4), (3, 2)])
    @pytest.mark.parametrize("kind", [InstructionKind.SLT, InstructionKind.BGE])
    def test_signed_collation_other_widths(self, kind, C, log_M):
        registry = InstructionRegistry([kind], C=C, log_M=log_M)
        bound = 1 << registry.operand_bits
        for x in range(bound):
            for y in range(bound):
                collated = registry.collate(kind, _terms(registry, kind, x, y))
                assert int(collated) == registry.lookup_entry(kind, x, y), (x, y)

    def test_wrong_term_count(self, registry):
        with pytest.raises(ValueError):
            registry.collate(InstructionKind.LT, [FF(0)] * 3)


class TestRegistry:

    def test_memory_layout(self, registry):
        # Subtables follow SubtableKind order: EQ, LTU, AND, OR, XOR, then the signed helpers
        assert registry.subtable_kinds == tuple(SubtableKind)
        assert registry.num_memories == 18
        assert registry.memory_index(SubtableKind.LTU, 1) == 3
        assert registry.memory_to_subtable(3) == SubtableKind.LTU
        assert registry.memory_to_dim(3) == 1
        # LT reads LTU then EQ, subtable-major
        assert registry.memory_indices(InstructionKind.LT) == [2, 3, 0, 1]
        # SLT reads GT_MSB, EQ_MSB, LTU, EQ, LT_ABS, EQ_ABS
        assert registry.memory_indices(InstructionKind.SLT) == [10, 11, 12, 13, 2, 3, 0, 1, 14, 15, 16, 17]

    def test_only_used_subtables_are_memories(self):
        registry = InstructionRegistry([InstructionKind.NE, InstructionKind.OR], C=1, log_M=8)
        assert registry.subtable_kinds == (SubtableKind.EQ, SubtableKind.OR)
        assert registry.instructions_using(SubtableKind.EQ) == [InstructionKind.NE]

    def test_sumcheck_degree(self, registry):
        assert registry.g_degree(InstructionKind.EQ) == 2
        assert registry.g_degree(InstructionKind.AND) == 1
        assert registry.g_degree(InstructionKind.SLT) == 3
        assert registry.sumcheck_degree() == 5
        bitwise = InstructionRegistry([InstructionKind.AND, InstructionKind.XOR], C=3, log_M=4)
        assert bitwise.sumcheck_degree() == 3

    def test_lookup_indices_most_significant_chunk_first(self, registry):
        # x = 0b10_01, y = 0b11_00 -> chunks (10, 11) and (01, 00)
        assert registry.lookup_indices(InstructionKind.EQ, 0b1001, 0b1100) == [0b1011, 0b0100]

    def test_unknown_instruction(self):
        registry = InstructionRegistry([InstructionKind.EQ], C=1, log_M=4)
        with pytest.raises(UnknownInstruction):
            registry.instruction_index(InstructionKind.AND)
        with pytest.raises(UnknownInstruction):
            registry.lookup_entry(InstructionKind.AND, 1, 1)

    def test_operand_overflow(self, registry):
        with pytest.raises(MalformedTrace):
            registry.check_operands(InstructionKind.EQ, 16, 0)
        with pytest.raises(MalformedTrace):
            registry.lookup_indices(InstructionKind.EQ, 0, -1)

    @pytest.mark.parametrize("kinds, C, log_M", [
        ([], 1, 4),
        ([InstructionKind.EQ, InstructionKind.EQ], 1, 4),
        ([InstructionKind.EQ], 0, 4),
        ([InstructionKind.EQ], 1, 5),
    ])
    def test_invalid_configuration(self, kinds, C, log_M):
        with pytest.raises(ValueError):
            InstructionRegistry(kinds, C, log_M)
