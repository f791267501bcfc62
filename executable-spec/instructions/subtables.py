"""Lookup subtables.

Every subtable has M = 2^log_M entries indexed by idx = (x << b) | y with
b = log_M / 2, so one lookup reads a function of two b-bit operand chunks.
Each subtable also provides the closed-form multilinear extension of its
table, which lets the verifier evaluate it at a random point without the
table being committed.

MLE points are (x_1, ..., x_b, y_1, ..., y_b) with bit 1 most significant,
matching the big-endian index order of primitives.polynomial.

The MSB and ABS subtables split each chunk into its top bit and the
remaining b - 1 bits. Signed comparisons read them on the most significant
chunk only, where the top bit is the sign bit.
"""

from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple

from primitives.field import FF, ONE, ZERO, ff


class SubtableKind(Enum):
    EQ = "eq"
    LTU = "ltu"
    AND = "and"
    OR = "or"
    XOR = "xor"
    # two's complement helpers; MSB is the top bit of a b-bit chunk
    GT_MSB = "gt_msb"
    EQ_MSB = "eq_msb"
    LT_ABS = "lt_abs"
    EQ_ABS = "eq_abs"


def split_index(idx: int, log_M: int) -> Tuple[int, int]:
    """Split a table index into its (x, y) operand chunks."""
    b = log_M // 2
    return idx >> b, idx & ((1 << b) - 1)


def _split_point(point: Sequence) -> Tuple[Sequence, Sequence]:
    if len(point) % 2 != 0:
        raise ValueError(f"subtable point must have even length, got {len(point)}")
    b = len(point) // 2
    return point[:b], point[b:]


def _bit_eq(x_i, y_i):
    return x_i * y_i + (ONE - x_i) * (ONE - y_i)


# --- Multilinear extensions ---

def _eq_bits(x: Sequence, y: Sequence) -> FF:
    result = ONE
    for x_i, y_i in zip(x, y):
        result = result * _bit_eq(x_i, y_i)
    return result


def _ltu_bits(x: Sequence, y: Sequence) -> FF:
    # x < y decided at the first differing bit, scanning from the top
    result = ZERO
    eq_prefix = ONE
    for x_i, y_i in zip(x, y):
        result = result + (ONE - x_i) * y_i * eq_prefix
        eq_prefix = eq_prefix * _bit_eq(x_i, y_i)
    return result


def _eq_mle(point: Sequence) -> FF:
    return _eq_bits(*_split_point(point))


def _ltu_mle(point: Sequence) -> FF:
    return _ltu_bits(*_split_point(point))


def _gt_msb_mle(point: Sequence) -> FF:
    x, y = _split_point(point)
    return x[0] * (ONE - y[0])


def _eq_msb_mle(point: Sequence) -> FF:
    x, y = _split_point(point)
    return _bit_eq(x[0], y[0])


def _lt_abs_mle(point: Sequence) -> FF:
    x, y = _split_point(point)
    return _ltu_bits(x[1:], y[1:])


def _eq_abs_mle(point: Sequence) -> FF:
    x, y = _split_point(point)
    return _eq_bits(x[1:], y[1:])


def _bitwise_mle(bit_fn: Callable) -> Callable[[Sequence], FF]:
    def mle(point: Sequence) -> FF:
        x, y = _split_point(point)
        b = len(x)
        result = ZERO
        for i, (x_i, y_i) in enumerate(zip(x, y)):
            result = result + ff(1 << (b - 1 - i)) * bit_fn(x_i, y_i)
        return result
    return mle


_and_mle = _bitwise_mle(lambda x_i, y_i: x_i * y_i)
_or_mle = _bitwise_mle(lambda x_i, y_i: x_i + y_i - x_i * y_i)
_xor_mle = _bitwise_mle(lambda x_i, y_i: x_i + y_i - FF(2) * x_i * y_i)


# --- Dispatch ---

def _msb(v: int, b: int) -> int:
    return (v >> (b - 1)) & 1


def _abs(v: int, b: int) -> int:
    return v & ((1 << (b - 1)) - 1)


# entry(x, y, b) for b-bit chunks x, y
_ENTRIES: Dict[SubtableKind, Callable[[int, int, int], int]] = {
    SubtableKind.EQ: lambda x, y, b: int(x == y),
    SubtableKind.LTU: lambda x, y, b: int(x < y),
    SubtableKind.AND: lambda x, y, b: x & y,
    SubtableKind.OR: lambda x, y, b: x | y,
    SubtableKind.XOR: lambda x, y, b: x ^ y,
    SubtableKind.GT_MSB: lambda x, y, b: _msb(x, b) * (1 - _msb(y, b)),
    SubtableKind.EQ_MSB: lambda x, y, b: int(_msb(x, b) == _msb(y, b)),
    SubtableKind.LT_ABS: lambda x, y, b: int(_abs(x, b) < _abs(y, b)),
    SubtableKind.EQ_ABS: lambda x, y, b: int(_abs(x, b) == _abs(y, b)),
}

_MLES: Dict[SubtableKind, Callable[[Sequence], FF]] = {
    SubtableKind.EQ: _eq_mle,
    SubtableKind.LTU: _ltu_mle,
    SubtableKind.AND: _and_mle,
    SubtableKind.OR: _or_mle,
    SubtableKind.XOR: _xor_mle,
    SubtableKind.GT_MSB: _gt_msb_mle,
    SubtableKind.EQ_MSB: _eq_msb_mle,
    SubtableKind.LT_ABS: _lt_abs_mle,
    SubtableKind.EQ_ABS: _eq_abs_mle,
}

if set(_ENTRIES) != set(SubtableKind) or set(_MLES) != set(SubtableKind):
    raise RuntimeError(
        f"subtable kinds without an entry function or MLE: "
        f"{set(SubtableKind) - (set(_ENTRIES) & set(_MLES))}")


def materialize(kind: SubtableKind, log_M: int) -> List[int]:
    """Full table of M = 2^log_M entries."""
    if log_M % 2 != 0:
        raise ValueError(f"log_M must be even, got {log_M}")
    entry = _ENTRIES[kind]
    b = log_M // 2
    return [entry(*split_index(idx, log_M), b) for idx in range(1 << log_M)]


def evaluate_mle(kind: SubtableKind, point: Sequence) -> FF:
    """Multilinear extension of the table at a point of log_M coordinates."""
    return _MLES[kind](point)
