"""Committing to and opening named polynomial sets.

Polynomials are addressed by name. Commitments, opening values and opening
proofs are absorbed in sorted name order, so prover and verifier agree on the
transcript regardless of dict construction order.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Sequence

from primitives.field import FF, ff
from primitives.transcript import Transcript
from protocol.errors import OpeningVerificationFailure
from protocol.pcs import PolynomialCommitmentScheme


@dataclass
class PolynomialOpening:
    """Claimed evaluation of a committed polynomial and its opening proof."""
    value: int
    proof: Any


# --- Commitments ---

def commit_polynomials(
    pcs: PolynomialCommitmentScheme,
    polys: Dict[str, FF],
    transcript: Transcript,
) -> Dict[str, Any]:
    commitments = {name: pcs.commit(polys[name]) for name in sorted(polys)}
    absorb_commitments(pcs, commitments, transcript)
    return commitments


def absorb_commitments(
    pcs: PolynomialCommitmentScheme,
    commitments: Dict[str, Any],
    transcript: Transcript,
) -> None:
    for name in sorted(commitments):
        transcript.absorb(name.encode() + b":" + pcs.commitment_bytes(commitments[name]))


# --- Openings ---

def open_polynomials(
    pcs: PolynomialCommitmentScheme,
    polys: Dict[str, FF],
    point: Sequence,
    transcript: Transcript,
) -> Dict[str, PolynomialOpening]:
    openings: Dict[str, PolynomialOpening] = {}
    for name in sorted(polys):
        value, proof = pcs.open(polys[name], point)
        openings[name] = PolynomialOpening(value=int(value), proof=proof)
    transcript.put([openings[name].value for name in sorted(openings)])
    return openings


def verify_openings(
    pcs: PolynomialCommitmentScheme,
    commitments: Dict[str, Any],
    point: Sequence,
    openings: Dict[str, PolynomialOpening],
    names: Iterable[str],
    transcript: Transcript,
) -> Dict[str, FF]:
    """Verify exactly the openings of `names` at point.

    Returns:
        Mapping name -> opened value

    Raises:
        OpeningVerificationFailure: An opening is missing, unexpected,
            refers to an uncommitted polynomial or does not verify.
    """
    names = sorted(names)
    if sorted(openings) != names:
        raise OpeningVerificationFailure(
            f"expected openings for {names}, got {sorted(openings)}")

    values: Dict[str, FF] = {}
    for name in names:
        if name not in commitments:
            raise OpeningVerificationFailure(f"no commitment for polynomial '{name}'")
        opening = openings[name]
        if not pcs.verify(commitments[name], point, opening.value, opening.proof):
            raise OpeningVerificationFailure(f"opening of '{name}' does not verify")
        values[name] = ff(opening.value)

    transcript.put([openings[name].value for name in names])
    return values
