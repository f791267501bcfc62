"""Primitives - field arithmetic, multilinear polynomials, hashing and transcript."""

from primitives.field import (
    FF,
    GOLDILOCKS_PRIME,
    ONE,
    ZERO,
    batch_inverse,
    ff,
    ff_array,
)
from primitives.merkle_tree import HASH_SIZE, MerkleRoot, MerkleTree, merkle_root
from primitives.polynomial import (
    eq_eval,
    eq_evals,
    evaluate_mle,
    identity_eval,
    identity_poly,
    interpolate_at,
)
from primitives.transcript import Challenge, Transcript

__all__ = [
    # Field
    "FF",
    "GOLDILOCKS_PRIME",
    "ZERO",
    "ONE",
    "ff",
    "ff_array",
    "batch_inverse",
    # Multilinear / univariate polynomials
    "eq_evals",
    "eq_eval",
    "evaluate_mle",
    "identity_poly",
    "identity_eval",
    "interpolate_at",
    # Merkle Tree
    "MerkleTree",
    "MerkleRoot",
    "HASH_SIZE",
    "merkle_root",
    # Transcript
    "Transcript",
    "Challenge",
]
