"""Polynomial commitment interface for multilinear polynomials.

The protocol only ever calls commit / open / verify and the serialization
helpers below; it never looks inside a commitment or an opening proof.

MerklePcs is the reference scheme shipped with the package. It commits to
the evaluation table with a Merkle root and opens by revealing the whole
table, so it is binding but neither succinct nor hiding.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

from primitives.field import FF, GOLDILOCKS_PRIME, ff_to_int_list
from primitives.merkle_tree import MerkleRoot, merkle_root
from primitives.polynomial import evaluate_mle, log2_exact

# --- Type Aliases ---

MultilinearPoly = FF  # Evaluation table over {0,1}^n


class PolynomialCommitmentScheme(ABC):
    """Opaque commit / open / verify interface."""

    @abstractmethod
    def commit(self, poly: MultilinearPoly) -> Any:
        pass

    @abstractmethod
    def open(self, poly: MultilinearPoly, point: Sequence) -> Tuple[FF, Any]:
        """Return (poly(point), opening proof)."""
        pass

    @abstractmethod
    def verify(self, commitment: Any, point: Sequence, value, proof: Any) -> bool:
        pass

    # --- Serialization boundary ---

    @abstractmethod
    def commitment_bytes(self, commitment: Any) -> bytes:
        """Canonical bytes absorbed into the transcript."""
        pass

    @abstractmethod
    def commitment_to_json(self, commitment: Any) -> Any:
        pass

    @abstractmethod
    def commitment_from_json(self, data: Any) -> Any:
        pass

    @abstractmethod
    def opening_proof_to_json(self, proof: Any) -> Any:
        pass

    @abstractmethod
    def opening_proof_from_json(self, data: Any) -> Any:
        pass


# --- Reference Merkle Scheme ---

@dataclass(frozen=True)
class MerkleCommitment:
    """Merkle root over an evaluation table of 2^num_vars entries."""
    root: MerkleRoot
    num_vars: int


@dataclass
class MerkleOpeningProof:
    """Full evaluation table of the committed polynomial."""
    evaluations: List[int] = field(default_factory=list)


class MerklePcs(PolynomialCommitmentScheme):
    """Transparent Merkle commitment to multilinear evaluation tables."""

    def commit(self, poly: MultilinearPoly) -> MerkleCommitment:
        return MerkleCommitment(root=merkle_root(poly), num_vars=log2_exact(len(poly)))

    def open(self, poly: MultilinearPoly, point: Sequence) -> Tuple[FF, MerkleOpeningProof]:
        value = evaluate_mle(poly, point)
        return value, MerkleOpeningProof(evaluations=ff_to_int_list(poly))

    def verify(self, commitment: MerkleCommitment, point: Sequence, value,
               proof: MerkleOpeningProof) -> bool:
        if len(point) != commitment.num_vars:
            return False
        if len(proof.evaluations) != 1 << commitment.num_vars:
            return False
        if any(v < 0 or v >= GOLDILOCKS_PRIME for v in proof.evaluations):
            return False
        if merkle_root(proof.evaluations) != commitment.root:
            return False
        return int(evaluate_mle(FF(proof.evaluations), point)) == int(value)

    def commitment_bytes(self, commitment: MerkleCommitment) -> bytes:
        return commitment.num_vars.to_bytes(4, "little") + commitment.root

    def commitment_to_json(self, commitment: MerkleCommitment) -> dict:
        return {"root": commitment.root.hex(), "num_vars": commitment.num_vars}

    def commitment_from_json(self, data: dict) -> MerkleCommitment:
        return MerkleCommitment(root=bytes.fromhex(data["root"]), num_vars=int(data["num_vars"]))

    def opening_proof_to_json(self, proof: MerkleOpeningProof) -> List[str]:
        return [str(v) for v in proof.evaluations]

    def opening_proof_from_json(self, data: List[str]) -> MerkleOpeningProof:
        return MerkleOpeningProof(evaluations=[int(v) for v in data])
