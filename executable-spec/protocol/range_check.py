"""Range check: prove that committed value columns lie in [0, T].

Every value v and its complement T - v are split into D base-B digits, and
every digit column is checked by offline memory checking against the
identity table [0, B): untoggled reads, per-address counters as timestamps,
init tuples (a, a, 0) and final tuples (a, a, final_cts[a]). The verifier
evaluates the identity table itself, so only the digits and counters are
committed.

At the read/write leaf point r the verifier then checks

    sum_j B^j * (lo_j(r) + hi_j(r)) == T

for every value, which bounds sum_j B^j lo_j between 0 and T exactly, and
hands back v(r) = sum_j B^j lo_j(r) for the caller to match against its own
commitment.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from primitives.field import FF, ONE, ZERO, ff, ff_sum
from primitives.polynomial import log2_exact
from primitives.transcript import Transcript
from protocol.errors import RangeViolation
from protocol.memory_checking import (
    MemoryCheckingInstance,
    MemoryCheckingProof,
    MemoryContext,
    MemoryTuple,
    prove_memory_checking,
    verify_memory_checking,
)
from protocol.pcs import PolynomialCommitmentScheme
from witness.digits import (
    SIDES,
    digit_final_cts_name,
    digit_name,
    digit_read_cts_name,
    num_digits,
)

logger = logging.getLogger(__name__)


@dataclass
class RangeCheckProof:
    memory_checking: MemoryCheckingProof = field(default_factory=MemoryCheckingProof)


class RangeCheckMemory(MemoryCheckingInstance):
    """Digit columns as read-only memories over the identity table.

    Args:
        value_names: Range-checked columns, in order
        bound: Inclusive upper bound T
        digit_bits: log2 of the digit base B
        num_steps: Column length
        prefix: Polynomial name prefix
    """

    label = "range check"

    def __init__(self, value_names: Sequence[str], bound: int, digit_bits: int,
                 num_steps: int, prefix: str = "range"):
        self.value_names = list(value_names)
        self.bound = bound
        self.digit_bits = digit_bits
        self.base = 1 << digit_bits
        self.num_digits = num_digits(bound, digit_bits)
        self.prefix = prefix
        self._num_vars = log2_exact(num_steps)
        self._keys: List[Tuple[str, str, int]] = [
            (name, side, j)
            for name in self.value_names
            for side in SIDES
            for j in range(self.num_digits)
        ]

    @property
    def num_memories(self) -> int:
        return len(self._keys)

    @property
    def num_init(self) -> int:
        return 1

    @property
    def read_write_num_vars(self) -> int:
        return self._num_vars

    @property
    def init_final_num_vars(self) -> int:
        return self.digit_bits

    def memory_to_init(self, memory: int) -> int:
        return 0

    def read_write_poly_names(self) -> List[str]:
        names = []
        for key in self._keys:
            names.append(digit_name(self.prefix, *key))
            names.append(digit_read_cts_name(self.prefix, *key))
        return names

    def init_final_poly_names(self) -> List[str]:
        return [digit_final_cts_name(self.prefix, *key) for key in self._keys]

    def committed_poly_names(self) -> List[str]:
        return self.read_write_poly_names() + self.init_final_poly_names()

    def read_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        tuples = []
        for key in self._keys:
            digit = ctx.poly(digit_name(self.prefix, *key))
            tuples.append(MemoryTuple(digit, digit, ctx.poly(digit_read_cts_name(self.prefix, *key))))
        return tuples

    def write_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [MemoryTuple(t.address, t.value, t.timestamp + ONE) for t in self.read_tuples(ctx)]

    def init_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [MemoryTuple(ctx.identity(), ctx.identity(), ZERO)]

    def final_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [
            MemoryTuple(ctx.identity(), ctx.identity(),
                        ctx.poly(digit_final_cts_name(self.prefix, *key)))
            for key in self._keys
        ]

    def tables(self) -> Dict[str, FF]:
        return {}

    def evaluate_tables(self, point: Sequence) -> Dict[str, FF]:
        return {}

    def recompose(self, values: Dict[str, Any], name: str, side: str):
        """sum_j B^j * digit_j for one side of one value."""
        return ff_sum([
            ff(self.base ** j) * values[digit_name(self.prefix, name, side, j)]
            for j in range(self.num_digits)
        ])


# --- Prover ---

def prove_range_check(
    instance: RangeCheckMemory,
    polys: Dict[str, FF],
    pcs: PolynomialCommitmentScheme,
    transcript: Transcript,
) -> Tuple[RangeCheckProof, List[FF]]:
    """Prove the digit lookups. Digits must already be committed.

    Returns:
        (proof, point at which the caller must open its value columns)
    """
    memory_checking, r_leaf = prove_memory_checking(instance, polys, pcs, transcript)
    logger.debug("range check: %d values, %d digits of %d bits",
                 len(instance.value_names), instance.num_digits, instance.digit_bits)
    return RangeCheckProof(memory_checking=memory_checking), r_leaf


# --- Verifier ---

def verify_range_check(
    instance: RangeCheckMemory,
    proof: RangeCheckProof,
    commitments: Dict[str, Any],
    pcs: PolynomialCommitmentScheme,
    transcript: Transcript,
) -> Tuple[List[FF], Dict[str, FF]]:
    """Verify the digit lookups and the two-sided recomposition.

    Returns:
        (point r, value name -> claimed v(r)). The caller must check these
        claims against openings of its own committed columns at r.

    Raises:
        RangeViolation: lo + hi does not recompose to the bound
        VerificationError subclass: The digit lookups do not verify
    """
    r_leaf, values = verify_memory_checking(
        instance, proof.memory_checking, commitments, pcs, transcript)

    claims: Dict[str, FF] = {}
    bound = ff(instance.bound)
    for name in instance.value_names:
        lo = instance.recompose(values, name, "lo")
        hi = instance.recompose(values, name, "hi")
        if int(lo + hi) != int(bound):
            logger.warning("range check: %s does not recompose to the bound", name)
            raise RangeViolation(f"range check: {name} + complement != {instance.bound}")
        claims[name] = lo
    return r_leaf, claims
