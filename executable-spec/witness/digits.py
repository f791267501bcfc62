"""Digit decomposition witness for the range check.

A value v is shown to lie in [0, T] by writing both v and T - v in base
B = 2^digit_bits with D digits, where D is the least count with B^D > T.
Each digit column is then looked up in the identity table [0, B) with the
usual read counters.
"""

from typing import Dict, List, Sequence

from primitives.field import FF, ff_array
from protocol.errors import RangeViolation

SIDES = ("lo", "hi")


def num_digits(bound: int, digit_bits: int) -> int:
    """Least D with (2^digit_bits)^D > bound."""
    base = 1 << digit_bits
    digits = 1
    while base ** digits <= bound:
        digits += 1
    return digits


def decompose(value: int, base: int, digits: int) -> List[int]:
    """Little-endian base-`base` digits of value."""
    result = []
    for _ in range(digits):
        result.append(value % base)
        value //= base
    return result


def digit_name(prefix: str, value: str, side: str, j: int) -> str:
    return f"{prefix}.{value}.{side}.digit.{j}"


def digit_read_cts_name(prefix: str, value: str, side: str, j: int) -> str:
    return f"{prefix}.{value}.{side}.read_cts.{j}"


def digit_final_cts_name(prefix: str, value: str, side: str, j: int) -> str:
    return f"{prefix}.{value}.{side}.final_cts.{j}"


class RangeCheckWitness:
    """Digits and lookup counters for a set of named value columns.

    Args:
        values: Column name -> integer values, all the same length
        bound: Inclusive upper bound T
        digit_bits: log2 of the digit base
        prefix: Polynomial name prefix

    Raises:
        RangeViolation: Some value is outside [0, bound]
    """

    def __init__(self, values: Dict[str, Sequence[int]], bound: int, digit_bits: int,
                 prefix: str = "range"):
        if digit_bits < 1:
            raise ValueError(f"digit_bits must be >= 1, got {digit_bits}")
        self.prefix = prefix
        self.bound = bound
        self.digit_bits = digit_bits
        self.base = 1 << digit_bits
        self.num_digits = num_digits(bound, digit_bits)
        self.value_names = list(values)
        self.check_bounds(values)

        # (value, side, j) -> digit column / read counters; final counters per table cell
        self.digits: Dict[tuple, List[int]] = {}
        self.read_cts: Dict[tuple, List[int]] = {}
        self.final_cts: Dict[tuple, List[int]] = {}
        for name, column in values.items():
            sides = {
                "lo": [decompose(v, self.base, self.num_digits) for v in column],
                "hi": [decompose(bound - v, self.base, self.num_digits) for v in column],
            }
            for side in SIDES:
                for j in range(self.num_digits):
                    key = (name, side, j)
                    column_digits = [d[j] for d in sides[side]]
                    counts = [0] * self.base
                    reads = []
                    for d in column_digits:
                        reads.append(counts[d])
                        counts[d] += 1
                    self.digits[key] = column_digits
                    self.read_cts[key] = reads
                    self.final_cts[key] = counts

    def check_bounds(self, values: Dict[str, Sequence[int]]) -> None:
        for name, column in values.items():
            for step, v in enumerate(column):
                if not 0 <= v <= self.bound:
                    raise RangeViolation(
                        f"{name} at step {step} is {v}, outside [0, {self.bound}]")

    def polynomials(self) -> Dict[str, FF]:
        polys: Dict[str, FF] = {}
        for (name, side, j), column in self.digits.items():
            polys[digit_name(self.prefix, name, side, j)] = ff_array(column)
            polys[digit_read_cts_name(self.prefix, name, side, j)] = ff_array(self.read_cts[(name, side, j)])
            polys[digit_final_cts_name(self.prefix, name, side, j)] = ff_array(self.final_cts[(name, side, j)])
        return polys
