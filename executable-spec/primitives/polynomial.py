"""Multilinear and univariate polynomial operations.

Multilinear polynomials are stored as their evaluation table over the boolean
hypercube {0,1}^n, an FF array of length 2^n. Index bits are big-endian: the
first variable is the most significant bit of the index, and it is the first
variable bound by sumcheck.

Univariate round polynomials are stored as evaluations at 0, 1, ..., d.
"""

from typing import Sequence

from primitives.field import FF, GOLDILOCKS_PRIME, ONE, ZERO, batch_inverse


# --- Sizes ---

def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def log2_exact(n: int) -> int:
    """log2 of a power of two; raises ValueError otherwise."""
    if not is_power_of_two(n):
        raise ValueError(f"{n} is not a power of two")
    return n.bit_length() - 1


# --- Equality Polynomial ---

def eq_evals(r: Sequence) -> FF:
    """Evaluation table of eq(r, x) for every x in {0,1}^n.

    Args:
        r: Point of n field elements

    Returns:
        FF array of length 2^n with result[x] = eq(r, x)
    """
    evals = FF([1])
    for r_i in r:
        nxt = FF.Zeros(2 * len(evals))
        nxt[0::2] = evals * (ONE - r_i)
        nxt[1::2] = evals * r_i
        evals = nxt
    return evals


def eq_eval(r: Sequence, x: Sequence) -> FF:
    """eq(r, x) = prod_i (r_i x_i + (1 - r_i)(1 - x_i))."""
    if len(r) != len(x):
        raise ValueError(f"eq_eval: point lengths differ ({len(r)} vs {len(x)})")
    result = ONE
    for r_i, x_i in zip(r, x):
        result = result * (r_i * x_i + (ONE - r_i) * (ONE - x_i))
    return result


# --- Multilinear Extension ---

def bind_top(evals: FF, r) -> FF:
    """Fix the top (most significant) variable of a table to r."""
    half = len(evals) // 2
    lo, hi = evals[:half], evals[half:]
    return lo + r * (hi - lo)


def evaluate_mle(evals: FF, point: Sequence) -> FF:
    """Evaluate the multilinear extension of a table at a point."""
    if len(evals) != 1 << len(point):
        raise ValueError(
            f"evaluate_mle: table of length {len(evals)} does not match "
            f"a point with {len(point)} variables")
    for r_i in point:
        evals = bind_top(evals, r_i)
    return evals[0]


def identity_poly(num_vars: int) -> FF:
    """Table with entry x equal to x itself."""
    return FF(list(range(1 << num_vars)))


def identity_eval(point: Sequence) -> FF:
    """MLE of the identity table: sum_i r_i * 2^(n-1-i)."""
    result = ZERO
    for r_i in point:
        result = result * FF(2) + r_i
    return result


# --- Univariate Interpolation ---

def interpolate_at(evals: Sequence, r) -> FF:
    """Evaluate at r the degree-d polynomial with p(i) = evals[i], i = 0..d.

    Lagrange form over the integer nodes 0..d. The denominators
    prod_{j != i} (i - j) are inverted in one batch.
    """
    d = len(evals) - 1
    if d == 0:
        return evals[0]

    denominators = []
    for i in range(d + 1):
        denom = 1
        for j in range(d + 1):
            if j != i:
                denom *= i - j
        denominators.append(denom % GOLDILOCKS_PRIME)
    weights = batch_inverse(FF(denominators))

    diffs = [r - FF(j) for j in range(d + 1)]
    result = ZERO
    for i in range(d + 1):
        numerator = ONE
        for j in range(d + 1):
            if j != i:
                numerator = numerator * diffs[j]
        result = result + evals[i] * weights[i] * numerator
    return result
