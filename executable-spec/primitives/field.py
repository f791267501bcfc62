"""Goldilocks field GF(p).

Uses galois library for all field arithmetic. FF is the field type; arrays of
FF are used for polynomials over the boolean hypercube and 0-d FF values for
scalars, so the same expression code runs on both.
"""

from typing import Iterable, List, Sequence

import galois
import numpy as np

# --- Field Construction ---

GOLDILOCKS_PRIME = 0xFFFFFFFF00000001

FF = galois.GF(GOLDILOCKS_PRIME)
"""Base field GF(p) - Goldilocks prime field."""

FF_BYTES = 8
"""Canonical byte width of a field element (little-endian)."""

ZERO = FF(0)
ONE = FF(1)


# --- Conversions ---

def ff(value: int) -> FF:
    """Lift a Python integer (possibly negative) into the field."""
    return FF(int(value) % GOLDILOCKS_PRIME)


def ff_array(values: Iterable[int]) -> FF:
    """Lift a sequence of Python integers into an FF array."""
    return FF([int(v) % GOLDILOCKS_PRIME for v in values])


def ff_to_int_list(values) -> List[int]:
    """Convert an FF array (or list of FF scalars) to canonical ints."""
    return [int(v) for v in values]


def ff_to_bytes(value) -> bytes:
    """Canonical little-endian encoding of one field element."""
    return int(value).to_bytes(FF_BYTES, "little")


# --- Reductions ---

def ff_sum(values: Sequence) -> FF:
    """Sum of field values; scalars or equal-length arrays."""
    result = None
    for v in values:
        result = v if result is None else result + v
    return ZERO if result is None else result


def ff_prod(values: Sequence) -> FF:
    """Product of field values; scalars or equal-length arrays."""
    result = None
    for v in values:
        result = v if result is None else result * v
    return ONE if result is None else result


def reduce_sum(poly: FF) -> FF:
    """Sum of all entries of an FF array."""
    return np.add.reduce(poly)


# --- Montgomery Batch Inversion ---

def batch_inverse(values):
    """Montgomery batch inversion for any galois array.

    Converts N field inversions into 3N-3 multiplications + 1 inversion.

    Args:
        values: Galois FieldArray to invert (must all be non-zero)

    Returns:
        Galois FieldArray where result[i] = values[i]^(-1)

    Raises:
        ZeroDivisionError: If any element is zero
    """
    n = len(values)
    if n == 0:
        return values
    if n == 1:
        return values ** -1

    field_type = type(values)

    # Forward pass: prefix products
    cumprods = field_type.Zeros(n)
    cumprods[0] = values[0]
    for i in range(1, n):
        cumprods[i] = cumprods[i - 1] * values[i]

    inv_total = cumprods[n - 1] ** -1

    # Backward pass: peel off individual inverses
    results = field_type.Zeros(n)
    z = inv_total
    for i in range(n - 1, 0, -1):
        results[i] = z * cumprods[i - 1]
        z = z * values[i]
    results[0] = z

    return results
