"""Sumcheck over multilinear tables with a Fiat-Shamir transcript.

Proves claims of the form

    sum_{x in {0,1}^n} combine(p_1(x), ..., p_k(x)) = claim

where each p_j is multilinear and combine is a polynomial of total degree at
most `degree`. Variables are bound top (most significant) first. Each round
the prover sends s(0), s(1), ..., s(degree); the verifier checks
s(0) + s(1) against the running claim, absorbs the evaluations, draws r and
continues with s(r).

The combine function is applied to FF arrays by the prover and to FF scalars
by callers checking the final claim, so it must use only field arithmetic.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

from primitives.field import FF, ff, ff_to_int_list, reduce_sum
from primitives.polynomial import bind_top, interpolate_at
from primitives.transcript import Transcript
from protocol.errors import SumcheckRoundMismatch

logger = logging.getLogger(__name__)

CombineFn = Callable[[List[FF]], FF]


@dataclass
class SumcheckProof:
    """Round polynomials, each as evaluations at 0..degree."""
    round_polys: List[List[int]] = field(default_factory=list)


# --- Prover ---

def prove_sumcheck(
    claim,
    polys: Sequence[FF],
    combine: CombineFn,
    degree: int,
    transcript: Transcript,
) -> Tuple[SumcheckProof, List[FF], List[FF]]:
    """Run the prover side of sumcheck.

    Args:
        claim: Claimed sum (only used for a debug self-check)
        polys: Multilinear tables, all of length 2^n
        combine: Polynomial applied pointwise to the bound tables
        degree: Degree bound of combine in each variable
        transcript: Session transcript

    Returns:
        (proof, challenges r_1..r_n, final evaluations p_j(r))
    """
    polys = list(polys)
    size = len(polys[0])
    if any(len(p) != size for p in polys):
        raise ValueError("sumcheck: all polynomials must have the same length")

    proof = SumcheckProof()
    challenges: List[FF] = []
    current_claim = claim
    while size > 1:
        half = size // 2
        evals = []
        for t in range(degree + 1):
            point = ff(t)
            bound = [p[:half] + point * (p[half:] - p[:half]) for p in polys]
            evals.append(reduce_sum(combine(bound)))

        if int(evals[0] + evals[1]) != int(current_claim):
            logger.debug("sumcheck round %d: prover claim inconsistent", len(challenges))

        round_poly = ff_to_int_list(evals)
        proof.round_polys.append(round_poly)
        transcript.put(round_poly)
        r = transcript.challenge()
        challenges.append(r)

        current_claim = interpolate_at(evals, r)
        polys = [bind_top(p, r) for p in polys]
        size = half

    final_evals = [p[0] for p in polys]
    return proof, challenges, final_evals


# --- Verifier ---

def verify_sumcheck(
    proof: SumcheckProof,
    claim,
    num_rounds: int,
    degree: int,
    transcript: Transcript,
    label: str = "sumcheck",
) -> Tuple[FF, List[FF]]:
    """Check every round of a sumcheck proof.

    Returns:
        (final claim, challenges). The caller must still check the final
        claim against evaluations of the summand at the challenge point.

    Raises:
        SumcheckRoundMismatch: On a wrong round count, a round polynomial
            exceeding the degree bound, or s(0) + s(1) != previous claim.
    """
    if len(proof.round_polys) != num_rounds:
        raise SumcheckRoundMismatch(
            f"{label}: expected {num_rounds} rounds, got {len(proof.round_polys)}")

    challenges: List[FF] = []
    for round_idx, round_poly in enumerate(proof.round_polys):
        if len(round_poly) != degree + 1:
            raise SumcheckRoundMismatch(
                f"{label}: round {round_idx} sent {len(round_poly)} evaluations, "
                f"degree bound allows {degree + 1}")
        evals = [ff(v) for v in round_poly]
        if int(evals[0] + evals[1]) != int(claim):
            raise SumcheckRoundMismatch(f"{label}: round {round_idx} s(0) + s(1) != claim")

        transcript.put(round_poly)
        r = transcript.challenge()
        challenges.append(r)
        claim = interpolate_at(evals, r)

    return claim, challenges
