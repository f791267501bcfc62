"""Instruction kinds and their subtable decompositions.

An instruction on two (C * b)-bit operands is split into C chunks of b bits,
chunk 0 most significant. Each chunk pair is looked up in every subtable the
instruction uses, and the collation function g combines those lookups back
into the instruction's result.

Terms are ordered subtable-major: for each subtable of the instruction in
declaration order, the C lookups for chunks 0..C-1.

Collation functions only use field arithmetic, so the prover applies them to
arrays over all steps and the verifier to scalars at a random point.

Degrees of g (in the lookup values) for C chunks:

    EQ, NE, LT, GE    C
    SLT, BGE          C + 1
    AND, OR, XOR      1

SLT and BGE compare the operands as (C * b)-bit two's complement integers.
The sign bit is the MSB of chunk 0, so the MSB and ABS subtables are only
read from chunk 0 and the remaining chunks go through LTU and EQ.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Sequence, Tuple

from instructions.subtables import SubtableKind
from primitives.field import FF, ONE, ZERO, ff, ff_prod


class InstructionKind(Enum):
    EQ = "eq"
    NE = "ne"
    LT = "lt"    # unsigned
    GE = "ge"    # unsigned
    SLT = "slt"
    BGE = "bge"
    AND = "and"
    OR = "or"
    XOR = "xor"


@dataclass(frozen=True)
class Decomposition:
    """Static description of how one instruction kind is looked up.

    Attributes:
        subtables: Subtables read, in term order
        collate: g(terms, C, log_M) -> field element or array
        degree: deg g as a function of C
        evaluate: Direct semantics evaluate(x, y, bits) on bits-wide integer operands
    """
    subtables: Tuple[SubtableKind, ...]
    collate: Callable[[Sequence, int, int], FF]
    degree: Callable[[int], int]
    evaluate: Callable[[int, int, int], int]


# --- Collation functions ---

def _collate_eq(terms: Sequence, C: int, log_M: int) -> FF:
    return ff_prod(terms[:C])


def _collate_ne(terms: Sequence, C: int, log_M: int) -> FF:
    return ONE - _collate_eq(terms, C, log_M)


def _collate_lt(terms: Sequence, C: int, log_M: int) -> FF:
    # terms = [LTU_0..LTU_{C-1}, EQ_0..EQ_{C-1}]
    ltu, eq = terms[:C], terms[C:2 * C]
    result = ZERO
    eq_prefix = ONE
    for i in range(C):
        result = result + ltu[i] * eq_prefix
        eq_prefix = eq_prefix * eq[i]
    return result


def _collate_ge(terms: Sequence, C: int, log_M: int) -> FF:
    return ONE - _collate_lt(terms, C, log_M)


def _collate_slt(terms: Sequence, C: int, log_M: int) -> FF:
    # terms = [GT_MSB, EQ_MSB, LTU, EQ, LT_ABS, EQ_ABS], C lookups each
    gt_msb, eq_msb = terms[0], terms[C]
    ltu, eq = terms[2 * C:3 * C], terms[3 * C:4 * C]
    lt_abs, eq_abs = terms[4 * C], terms[5 * C]
    # unsigned comparison of everything below the sign bit
    lt_rest = lt_abs
    eq_prefix = eq_abs
    for i in range(1, C):
        lt_rest = lt_rest + ltu[i] * eq_prefix
        eq_prefix = eq_prefix * eq[i]
    return gt_msb + eq_msb * lt_rest


def _collate_bge(terms: Sequence, C: int, log_M: int) -> FF:
    return ONE - _collate_slt(terms, C, log_M)


def _collate_concat(terms: Sequence, C: int, log_M: int) -> FF:
    """Reassemble chunk-wise bitwise results: sum_i 2^(b*(C-1-i)) * T_i."""
    b = log_M // 2
    result = ZERO
    for i in range(C):
        result = result + ff(1 << (b * (C - 1 - i))) * terms[i]
    return result


def _chunk_degree(C: int) -> int:
    return C


def _signed_degree(C: int) -> int:
    return C + 1


def _linear_degree(C: int) -> int:
    return 1


def _to_signed(v: int, bits: int) -> int:
    return v - (1 << bits) if v >> (bits - 1) else v


_SIGNED_SUBTABLES = (
    SubtableKind.GT_MSB, SubtableKind.EQ_MSB, SubtableKind.LTU,
    SubtableKind.EQ, SubtableKind.LT_ABS, SubtableKind.EQ_ABS,
)


DECOMPOSITIONS: Dict[InstructionKind, Decomposition] = {
    InstructionKind.EQ: Decomposition(
        subtables=(SubtableKind.EQ,),
        collate=_collate_eq,
        degree=_chunk_degree,
        evaluate=lambda x, y, bits: int(x == y),
    ),
    InstructionKind.NE: Decomposition(
        subtables=(SubtableKind.EQ,),
        collate=_collate_ne,
        degree=_chunk_degree,
        evaluate=lambda x, y, bits: int(x != y),
    ),
    InstructionKind.LT: Decomposition(
        subtables=(SubtableKind.LTU, SubtableKind.EQ),
        collate=_collate_lt,
        degree=_chunk_degree,
        evaluate=lambda x, y, bits: int(x < y),
    ),
    InstructionKind.GE: Decomposition(
        subtables=(SubtableKind.LTU, SubtableKind.EQ),
        collate=_collate_ge,
        degree=_chunk_degree,
        evaluate=lambda x, y, bits: int(x >= y),
    ),
    InstructionKind.SLT: Decomposition(
        subtables=_SIGNED_SUBTABLES,
        collate=_collate_slt,
        degree=_signed_degree,
        evaluate=lambda x, y, bits: int(_to_signed(x, bits) < _to_signed(y, bits)),
    ),
    InstructionKind.BGE: Decomposition(
        subtables=_SIGNED_SUBTABLES,
        collate=_collate_bge,
        degree=_signed_degree,
        evaluate=lambda x, y, bits: int(_to_signed(x, bits) >= _to_signed(y, bits)),
    ),
    InstructionKind.AND: Decomposition(
        subtables=(SubtableKind.AND,),
        collate=_collate_concat,
        degree=_linear_degree,
        evaluate=lambda x, y, bits: x & y,
    ),
    InstructionKind.OR: Decomposition(
        subtables=(SubtableKind.OR,),
        collate=_collate_concat,
        degree=_linear_degree,
        evaluate=lambda x, y, bits: x | y,
    ),
    InstructionKind.XOR: Decomposition(
        subtables=(SubtableKind.XOR,),
        collate=_collate_concat,
        degree=_linear_degree,
        evaluate=lambda x, y, bits: x ^ y,
    ),
}

if set(DECOMPOSITIONS) != set(InstructionKind):
    raise RuntimeError(f"missing decompositions: {set(InstructionKind) - set(DECOMPOSITIONS)}")
