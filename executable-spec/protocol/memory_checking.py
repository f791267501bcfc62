"""Offline memory checking with toggled leaves.

For every memory i the prover shows the multiset equation

    Init[memory_to_init(i)] * Write[i] == Read[i] * Final[i]

where each side is the product of tuple fingerprints

    h(a, v, t) = t * gamma^2 + v * gamma + a - tau

over all (address, value, timestamp) tuples of that multiset. Read and write
tuples may carry a 0/1 flag; the leaf is then flag * h + (1 - flag), so
steps that do not touch a memory contribute the multiplicative identity.

The products are proved with two batched grand products: one over the
read/write leaves (one leaf per step) and one over the init/final leaves
(one leaf per memory cell). Their leaf claims are resolved as follows:

- Read/write leaves are degree 2 in the committed polynomials, so one
  degree-3 sumcheck over eq(r_rw, x) * sum_j c_j leaf_j(x) reduces all of
  them to a single point where the committed polynomials are opened.
- Init/final leaves are affine in (identity, table, counters), so the
  verifier evaluates them directly at the grand-product point from the
  identity MLE, the public table MLEs and openings of the final counters.

A MemoryCheckingInstance describes one family of memories. Its tuple methods
receive a MemoryContext and only do field arithmetic, so the same code yields
arrays on the prover side and scalars on the verifier side.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from primitives.field import FF, ONE, ff, ff_sum, ff_to_int_list
from primitives.polynomial import eq_eval, eq_evals, identity_eval, identity_poly
from primitives.transcript import Transcript
from protocol.errors import MemoryCheckingFailure, SumcheckRoundMismatch
from protocol.grand_product import (
    BatchedGrandProductProof,
    ProductTree,
    prove_grand_products,
    verify_grand_products,
)
from protocol.openings import PolynomialOpening, open_polynomials, verify_openings
from protocol.pcs import PolynomialCommitmentScheme
from protocol.sumcheck import SumcheckProof, prove_sumcheck, verify_sumcheck

logger = logging.getLogger(__name__)

LEAF_SUMCHECK_DEGREE = 3


# --- Tuples and fingerprints ---

@dataclass
class MemoryTuple:
    """(address, value, timestamp) with an optional 0/1 toggle."""
    address: Any
    value: Any
    timestamp: Any
    flag: Any = None


def fingerprint(tup: MemoryTuple, gamma, tau):
    """Leaf value of a tuple: toggled fingerprint if the tuple has a flag."""
    h = tup.timestamp * gamma * gamma + tup.value * gamma + tup.address - tau
    if tup.flag is None:
        return h
    return tup.flag * h + ONE - tup.flag


class MemoryContext:
    """Named polynomial values seen by a MemoryCheckingInstance.

    On the prover side every entry is a full table; at a verifier point it
    is a scalar; inside the leaf sumcheck it is a partially bound table.
    """

    def __init__(self, polys: Dict[str, Any], identity, tables: Dict[str, Any] = None):
        self._polys = polys
        self._identity = identity
        self._tables = tables or {}

    def poly(self, name: str):
        if name not in self._polys:
            raise KeyError(f"polynomial '{name}' not available in this context")
        return self._polys[name]

    def identity(self):
        """Index of the step / memory cell."""
        return self._identity

    def table(self, name: str):
        """Public table (materialised, or its MLE at the point)."""
        if name not in self._tables:
            raise KeyError(f"table '{name}' not available in this context")
        return self._tables[name]


class MemoryCheckingInstance(ABC):
    """A family of memories checked together."""

    label: str = "memory"

    @property
    @abstractmethod
    def num_memories(self) -> int:
        pass

    @property
    @abstractmethod
    def num_init(self) -> int:
        """Number of distinct initial tables."""
        pass

    @property
    @abstractmethod
    def read_write_num_vars(self) -> int:
        pass

    @property
    @abstractmethod
    def init_final_num_vars(self) -> int:
        pass

    @abstractmethod
    def memory_to_init(self, memory: int) -> int:
        pass

    @abstractmethod
    def read_write_poly_names(self) -> List[str]:
        """Committed polynomials read by read_tuples / write_tuples."""
        pass

    @abstractmethod
    def init_final_poly_names(self) -> List[str]:
        """Committed polynomials read by final_tuples."""
        pass

    @abstractmethod
    def read_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        pass

    @abstractmethod
    def write_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        pass

    @abstractmethod
    def init_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        pass

    @abstractmethod
    def final_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        pass

    @abstractmethod
    def tables(self) -> Dict[str, FF]:
        """Public tables used by init_tuples, materialised."""
        pass

    @abstractmethod
    def evaluate_tables(self, point: Sequence) -> Dict[str, FF]:
        """MLEs of the public tables at point."""
        pass


@dataclass
class MultisetHashes:
    """Grand-product roots per multiset."""
    read_hashes: List[int] = field(default_factory=list)
    write_hashes: List[int] = field(default_factory=list)
    init_hashes: List[int] = field(default_factory=list)
    final_hashes: List[int] = field(default_factory=list)

    def absorb(self, transcript: Transcript) -> None:
        transcript.put(self.read_hashes)
        transcript.put(self.write_hashes)
        transcript.put(self.init_hashes)
        transcript.put(self.final_hashes)

    def check(self, instance: MemoryCheckingInstance) -> List[int]:
        """Indices of memories whose multiset equation fails."""
        failures = []
        for i in range(instance.num_memories):
            lhs = ff(self.init_hashes[instance.memory_to_init(i)]) * ff(self.write_hashes[i])
            rhs = ff(self.read_hashes[i]) * ff(self.final_hashes[i])
            if int(lhs) != int(rhs):
                failures.append(i)
        return failures


@dataclass
class MemoryCheckingProof:
    multiset_hashes: MultisetHashes = field(default_factory=MultisetHashes)
    read_write_grand_product: BatchedGrandProductProof = field(default_factory=BatchedGrandProductProof)
    init_final_grand_product: BatchedGrandProductProof = field(default_factory=BatchedGrandProductProof)
    leaf_sumcheck: SumcheckProof = field(default_factory=SumcheckProof)
    read_write_openings: Dict[str, PolynomialOpening] = field(default_factory=dict)
    init_final_openings: Dict[str, PolynomialOpening] = field(default_factory=dict)


def _interleave(reads: Sequence, writes: Sequence) -> List:
    result = []
    for r, w in zip(reads, writes):
        result.append(r)
        result.append(w)
    return result


def _read_write_leaves(instance, ctx, gamma, tau) -> List:
    reads = [fingerprint(t, gamma, tau) for t in instance.read_tuples(ctx)]
    writes = [fingerprint(t, gamma, tau) for t in instance.write_tuples(ctx)]
    return _interleave(reads, writes)


def _init_final_leaves(instance, ctx, gamma, tau) -> List:
    inits = [fingerprint(t, gamma, tau) for t in instance.init_tuples(ctx)]
    finals = [fingerprint(t, gamma, tau) for t in instance.final_tuples(ctx)]
    return inits + finals


def _leaf_context(names: Sequence[str], values: Sequence) -> MemoryContext:
    # The identity polynomial rides along as the last entry
    return MemoryContext(dict(zip(names, values[:-1])), values[-1])


def _draw_fingerprint_challenges(instance, transcript) -> Tuple[FF, FF]:
    transcript.absorb_label(f"{instance.label} memory checking")
    gamma, tau = transcript.challenges(2)
    return gamma, tau


# --- Prover ---

def multiset_hashes(
    instance: MemoryCheckingInstance,
    polys: Dict[str, FF],
    gamma,
    tau,
) -> Tuple[MultisetHashes, List[ProductTree], List[ProductTree]]:
    """Build the leaf trees and their roots."""
    rw_ctx = MemoryContext(polys, identity_poly(instance.read_write_num_vars))
    if_ctx = MemoryContext(polys, identity_poly(instance.init_final_num_vars), instance.tables())

    rw_trees = [ProductTree(leaves) for leaves in _read_write_leaves(instance, rw_ctx, gamma, tau)]
    if_trees = [ProductTree(leaves) for leaves in _init_final_leaves(instance, if_ctx, gamma, tau)]

    rw_roots = ff_to_int_list([t.root() for t in rw_trees])
    if_roots = ff_to_int_list([t.root() for t in if_trees])
    hashes = MultisetHashes(
        read_hashes=rw_roots[0::2],
        write_hashes=rw_roots[1::2],
        init_hashes=if_roots[:instance.num_init],
        final_hashes=if_roots[instance.num_init:],
    )
    return hashes, rw_trees, if_trees


def prove_memory_checking(
    instance: MemoryCheckingInstance,
    polys: Dict[str, FF],
    pcs: PolynomialCommitmentScheme,
    transcript: Transcript,
) -> Tuple[MemoryCheckingProof, List[FF]]:
    """Prove the multiset equations of every memory of an instance.

    Polynomials must already be committed and absorbed. The prover does not
    check the equations itself; callers that can detect an inconsistent
    witness should do so before calling.

    Returns:
        (proof, read/write leaf point where the read_write polynomials
        were opened)
    """
    gamma, tau = _draw_fingerprint_challenges(instance, transcript)
    hashes, rw_trees, if_trees = multiset_hashes(instance, polys, gamma, tau)
    hashes.absorb(transcript)

    rw_proof, rw_claims, r_rw = prove_grand_products(rw_trees, transcript)
    if_proof, _, r_if = prove_grand_products(if_trees, transcript)

    # Leaf reduction for the toggled read/write leaves
    names = instance.read_write_poly_names()
    coeffs = transcript.challenges(len(rw_claims))
    claim = ff_sum([c * v for c, v in zip(coeffs, rw_claims)])

    def combine(values):
        ctx = _leaf_context(names, values[1:])
        leaves = _read_write_leaves(instance, ctx, gamma, tau)
        return values[0] * ff_sum([c * leaf for c, leaf in zip(coeffs, leaves)])

    sumcheck_polys = [eq_evals(r_rw)] + [polys[n] for n in names]
    sumcheck_polys.append(identity_poly(instance.read_write_num_vars))
    leaf_sumcheck, r_leaf, _ = prove_sumcheck(
        claim, sumcheck_polys, combine, LEAF_SUMCHECK_DEGREE, transcript)

    rw_openings = open_polynomials(pcs, {n: polys[n] for n in names}, r_leaf, transcript)
    if_openings = open_polynomials(
        pcs, {n: polys[n] for n in instance.init_final_poly_names()}, r_if, transcript)

    logger.debug("%s: %d memories, %d read/write and %d init/final trees",
                 instance.label, instance.num_memories, len(rw_trees), len(if_trees))
    proof = MemoryCheckingProof(
        multiset_hashes=hashes,
        read_write_grand_product=rw_proof,
        init_final_grand_product=if_proof,
        leaf_sumcheck=leaf_sumcheck,
        read_write_openings=rw_openings,
        init_final_openings=if_openings,
    )
    return proof, r_leaf


# --- Verifier ---

def verify_memory_checking(
    instance: MemoryCheckingInstance,
    proof: MemoryCheckingProof,
    commitments: Dict[str, Any],
    pcs: PolynomialCommitmentScheme,
    transcript: Transcript,
) -> Tuple[List[FF], Dict[str, FF]]:
    """Verify a memory-checking proof.

    Returns:
        (read/write leaf point, opened read_write polynomial values) for
        callers that link further claims to the same point.

    Raises:
        MemoryCheckingFailure: Multiset equation or init/final leaf mismatch
        SumcheckRoundMismatch: Grand product or leaf sumcheck inconsistency
        OpeningVerificationFailure: A commitment opening is invalid
    """
    label = instance.label
    gamma, tau = _draw_fingerprint_challenges(instance, transcript)

    hashes = proof.multiset_hashes
    n = instance.num_memories
    if (len(hashes.read_hashes) != n or len(hashes.write_hashes) != n
            or len(hashes.final_hashes) != n or len(hashes.init_hashes) != instance.num_init):
        raise MemoryCheckingFailure(f"{label}: wrong number of multiset hashes")
    hashes.absorb(transcript)

    failures = hashes.check(instance)
    if failures:
        logger.warning("%s: multiset equation fails for memories %s", label, failures)
        raise MemoryCheckingFailure(
            f"{label}: Init * Write != Read * Final for memories {failures}")

    rw_roots = [ff(v) for v in _interleave(hashes.read_hashes, hashes.write_hashes)]
    if_roots = [ff(v) for v in hashes.init_hashes + hashes.final_hashes]
    rw_claims, r_rw = verify_grand_products(
        proof.read_write_grand_product, rw_roots, instance.read_write_num_vars,
        transcript, f"{label} read/write grand product")
    if_claims, r_if = verify_grand_products(
        proof.init_final_grand_product, if_roots, instance.init_final_num_vars,
        transcript, f"{label} init/final grand product")

    # Leaf reduction
    names = instance.read_write_poly_names()
    coeffs = transcript.challenges(len(rw_claims))
    claim = ff_sum([c * v for c, v in zip(coeffs, rw_claims)])
    final_claim, r_leaf = verify_sumcheck(
        proof.leaf_sumcheck, claim, instance.read_write_num_vars,
        LEAF_SUMCHECK_DEGREE, transcript, f"{label} leaf sumcheck")

    rw_values = verify_openings(
        pcs, commitments, r_leaf, proof.read_write_openings, names, transcript)
    ctx = MemoryContext(rw_values, identity_eval(r_leaf))
    leaves = _read_write_leaves(instance, ctx, gamma, tau)
    expected = eq_eval(r_rw, r_leaf) * ff_sum([c * leaf for c, leaf in zip(coeffs, leaves)])
    if int(expected) != int(final_claim):
        logger.warning("%s: leaf sumcheck final claim mismatch", label)
        raise SumcheckRoundMismatch(f"{label}: leaf sumcheck final claim mismatch")

    # Init/final leaves evaluated directly
    if_values = verify_openings(
        pcs, commitments, r_if, proof.init_final_openings,
        instance.init_final_poly_names(), transcript)
    if_ctx = MemoryContext(if_values, identity_eval(r_if), instance.evaluate_tables(r_if))
    for idx, (leaf, leaf_claim) in enumerate(zip(_init_final_leaves(instance, if_ctx, gamma, tau), if_claims)):
        if int(leaf) != int(leaf_claim):
            logger.warning("%s: init/final leaf %d mismatch", label, idx)
            raise MemoryCheckingFailure(f"{label}: init/final leaf claim {idx} does not match openings")

    return r_leaf, rw_values
