"""Batched grand-product argument over binary product trees (GKR style).

A ProductTree stores its layers as arrays: layers[0] holds the leaves and
layers[k + 1][i] = layers[k][i] * layers[k][i + half]. The root is the single
entry of the last layer.

Verification walks from the roots down. For a parent layer with k variables
the claim V_parent(r) = sum_x eq(r, x) * L(x) * R(x), where L and R are the
lower and upper halves of the child layer. Claims of all trees in the batch
are folded with random coefficients and reduced by one degree-3 sumcheck;
the prover then sends L(r') and R(r') per tree, the verifier draws r_layer,
and the child claim becomes L + r_layer * (R - L) at the point [r_layer] + r'.
After the last layer the verifier holds one claim per tree about its leaves
at a common random point.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from primitives.field import FF, ff, ff_sum, ff_to_int_list
from primitives.polynomial import eq_eval, eq_evals, log2_exact
from primitives.transcript import Transcript
from protocol.errors import SumcheckRoundMismatch
from protocol.sumcheck import SumcheckProof, prove_sumcheck, verify_sumcheck

logger = logging.getLogger(__name__)

LAYER_DEGREE = 3


class ProductTree:
    """Binary product tree with array-indexed layers."""

    def __init__(self, leaves: FF):
        self.num_vars = log2_exact(len(leaves))
        self.layers: List[FF] = [leaves]
        while len(self.layers[-1]) > 1:
            prev = self.layers[-1]
            half = len(prev) // 2
            self.layers.append(prev[:half] * prev[half:])

    def root(self) -> FF:
        return self.layers[-1][0]

    def layer(self, num_vars: int) -> FF:
        """Layer with 2^num_vars entries."""
        return self.layers[self.num_vars - num_vars]


@dataclass
class LayerProof:
    """Reduction of one tree layer for every tree in the batch."""
    sumcheck: SumcheckProof = field(default_factory=SumcheckProof)
    left_claims: List[int] = field(default_factory=list)
    right_claims: List[int] = field(default_factory=list)


@dataclass
class BatchedGrandProductProof:
    """Layer proofs ordered from the root towards the leaves."""
    layers: List[LayerProof] = field(default_factory=list)


def _layer_combine(coeffs: Sequence[FF]):
    def combine(values):
        eq, rest = values[0], values[1:]
        inner = ff_sum([c * rest[2 * j] * rest[2 * j + 1] for j, c in enumerate(coeffs)])
        return eq * inner
    return combine


# --- Prover ---

def prove_grand_products(
    trees: Sequence[ProductTree],
    transcript: Transcript,
) -> Tuple[BatchedGrandProductProof, List[FF], List[FF]]:
    """Prove the roots of a batch of equal-height product trees.

    The roots themselves are assumed to be already absorbed by the caller.

    Returns:
        (proof, leaf claims per tree, common leaf point)
    """
    num_vars = trees[0].num_vars
    if any(t.num_vars != num_vars for t in trees):
        raise ValueError("batched grand product: trees must have equal height")

    proof = BatchedGrandProductProof()
    claims = [t.root() for t in trees]
    point: List[FF] = []

    for k in range(num_vars):
        # Children of the k-variable layer live in the (k + 1)-variable layer
        children = [t.layer(k + 1) for t in trees]
        half = 1 << k
        coeffs = transcript.challenges(len(trees))
        claim = ff_sum([c * v for c, v in zip(coeffs, claims)])

        polys = [eq_evals(point)]
        for child in children:
            polys.append(child[:half])
            polys.append(child[half:])

        sc_proof, r_sumcheck, final_evals = prove_sumcheck(
            claim, polys, _layer_combine(coeffs), LAYER_DEGREE, transcript)

        left = final_evals[1::2]
        right = final_evals[2::2]
        layer_proof = LayerProof(
            sumcheck=sc_proof,
            left_claims=ff_to_int_list(left),
            right_claims=ff_to_int_list(right),
        )
        proof.layers.append(layer_proof)
        transcript.put(layer_proof.left_claims)
        transcript.put(layer_proof.right_claims)

        r_layer = transcript.challenge()
        claims = [lo + r_layer * (hi - lo) for lo, hi in zip(left, right)]
        point = [r_layer] + list(r_sumcheck)

    logger.debug("grand product: %d trees, %d layers", len(trees), num_vars)
    return proof, claims, point


# --- Verifier ---

def verify_grand_products(
    proof: BatchedGrandProductProof,
    roots: Sequence[FF],
    num_vars: int,
    transcript: Transcript,
    label: str = "grand product",
) -> Tuple[List[FF], List[FF]]:
    """Reduce claimed roots to claims about the leaves.

    Returns:
        (leaf claims per tree, common leaf point). The caller resolves the
        leaf claims against commitments.

    Raises:
        SumcheckRoundMismatch: If any layer reduction is inconsistent.
    """
    if len(proof.layers) != num_vars:
        raise SumcheckRoundMismatch(
            f"{label}: expected {num_vars} layers, got {len(proof.layers)}")

    n_trees = len(roots)
    claims = list(roots)
    point: List[FF] = []

    for k, layer_proof in enumerate(proof.layers):
        if len(layer_proof.left_claims) != n_trees or len(layer_proof.right_claims) != n_trees:
            raise SumcheckRoundMismatch(f"{label}: layer {k} has wrong number of claims")

        coeffs = transcript.challenges(n_trees)
        claim = ff_sum([c * v for c, v in zip(coeffs, claims)])
        final_claim, r_sumcheck = verify_sumcheck(
            layer_proof.sumcheck, claim, k, LAYER_DEGREE, transcript, f"{label} layer {k}")

        left = [ff(v) for v in layer_proof.left_claims]
        right = [ff(v) for v in layer_proof.right_claims]
        expected = eq_eval(point, r_sumcheck) * ff_sum(
            [c * lo * hi for c, lo, hi in zip(coeffs, left, right)])
        if int(expected) != int(final_claim):
            raise SumcheckRoundMismatch(f"{label}: layer {k} final claim mismatch")

        transcript.put(layer_proof.left_claims)
        transcript.put(layer_proof.right_claims)
        r_layer = transcript.challenge()
        claims = [lo + r_layer * (hi - lo) for lo, hi in zip(left, right)]
        point = [r_layer] + list(r_sumcheck)

    return claims, point
