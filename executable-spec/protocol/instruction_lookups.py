"""Instruction lookup argument: primary collation sumcheck plus subtable memory checking.

The primary sumcheck proves

    sum_x eq(r, x) * sum_f flag_f(x) * g_f(terms_f(x)) = outputs(r)

for a random r drawn after all commitments, where terms_f(x) are the values
E_i(x) read from the memories of instruction f. Its final claim is checked
against openings of every flag_f and every E_i at the sumcheck point.

Offline memory checking then shows that every E_i(x) really is the subtable
entry at address dim(x), with the subtables acting as read-only memories
whose init and final tuples the verifier evaluates from the closed-form
subtable MLEs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from instructions.registry import InstructionRegistry
from instructions.subtables import evaluate_mle, materialize
from primitives.field import FF, ONE, ZERO, ff_array, ff_sum
from primitives.polynomial import eq_eval, eq_evals, log2_exact
from primitives.transcript import Transcript
from protocol.errors import OpeningVerificationFailure, SumcheckRoundMismatch
from protocol.memory_checking import (
    MemoryCheckingInstance,
    MemoryCheckingProof,
    MemoryContext,
    MemoryTuple,
    prove_memory_checking,
    verify_memory_checking,
)
from protocol.openings import (
    PolynomialOpening,
    absorb_commitments,
    commit_polynomials,
    open_polynomials,
    verify_openings,
)
from protocol.pcs import PolynomialCommitmentScheme
from protocol.sumcheck import SumcheckProof, prove_sumcheck, verify_sumcheck
from witness.lookups import (
    OUTPUTS_NAME,
    InstructionPolynomials,
    dim_name,
    e_name,
    final_cts_name,
    flag_name,
    read_cts_name,
)
from witness.trace import ExecutionTrace

logger = logging.getLogger(__name__)


@dataclass
class InstructionLookupsProof:
    commitments: Dict[str, Any] = field(default_factory=dict)
    outputs_opening: Dict[str, PolynomialOpening] = field(default_factory=dict)
    primary_sumcheck: SumcheckProof = field(default_factory=SumcheckProof)
    primary_openings: Dict[str, PolynomialOpening] = field(default_factory=dict)
    memory_checking: MemoryCheckingProof = field(default_factory=MemoryCheckingProof)


# --- Collation ---

def collation_sum(registry: InstructionRegistry, flags: Sequence, e_values: Sequence):
    """sum_f flag_f * g_f(terms_f) on arrays or scalars."""
    total = []
    for flag, kind in zip(flags, registry.kinds):
        terms = [e_values[i] for i in registry.memory_indices(kind)]
        total.append(flag * registry.collate(kind, terms))
    return ff_sum(total)


def primary_poly_names(registry: InstructionRegistry) -> List[str]:
    """Flags in registry order, then E_i in memory order."""
    return ([flag_name(k) for k in registry.kinds]
            + [e_name(i) for i in range(registry.num_memories)])


def committed_poly_names(registry: InstructionRegistry) -> List[str]:
    names = [dim_name(d) for d in range(registry.C)]
    for i in range(registry.num_memories):
        names += [e_name(i), read_cts_name(i), final_cts_name(i)]
    names += [flag_name(k) for k in registry.kinds]
    names.append(OUTPUTS_NAME)
    return names


# --- Subtables as read-only memories ---

class InstructionLookupsMemory(MemoryCheckingInstance):
    """Subtable memories of the lookup argument.

    Memory i reads subtable memory_to_subtable(i) at address dim_{i mod C}.
    The tuple timestamp is the per-address access counter; a step reads the
    counter and writes it back incremented. The read is toggled by the
    subtable flag, the sum of the flags of the instructions using the table.
    """

    label = "instruction lookups"

    def __init__(self, registry: InstructionRegistry, num_steps: int):
        self.registry = registry
        self.num_steps = num_steps
        self._num_vars = log2_exact(num_steps)

    @property
    def num_memories(self) -> int:
        return self.registry.num_memories

    @property
    def num_init(self) -> int:
        return self.registry.num_subtables

    @property
    def read_write_num_vars(self) -> int:
        return self._num_vars

    @property
    def init_final_num_vars(self) -> int:
        return self.registry.log_M

    def memory_to_init(self, memory: int) -> int:
        return memory // self.registry.C

    def read_write_poly_names(self) -> List[str]:
        names = [dim_name(d) for d in range(self.registry.C)]
        for i in range(self.num_memories):
            names += [e_name(i), read_cts_name(i)]
        names += [flag_name(k) for k in self.registry.kinds]
        return names

    def init_final_poly_names(self) -> List[str]:
        return [final_cts_name(i) for i in range(self.num_memories)]

    def _subtable_flag(self, ctx: MemoryContext, memory: int):
        subtable = self.registry.memory_to_subtable(memory)
        return ff_sum([ctx.poly(flag_name(k)) for k in self.registry.instructions_using(subtable)])

    def read_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [
            MemoryTuple(
                address=ctx.poly(dim_name(self.registry.memory_to_dim(i))),
                value=ctx.poly(e_name(i)),
                timestamp=ctx.poly(read_cts_name(i)),
                flag=self._subtable_flag(ctx, i),
            )
            for i in range(self.num_memories)
        ]

    def write_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [
            MemoryTuple(t.address, t.value, t.timestamp + ONE, t.flag)
            for t in self.read_tuples(ctx)
        ]

    def init_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [
            MemoryTuple(ctx.identity(), ctx.table(s.value), ZERO)
            for s in self.registry.subtable_kinds
        ]

    def final_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [
            MemoryTuple(
                ctx.identity(),
                ctx.table(self.registry.memory_to_subtable(i).value),
                ctx.poly(final_cts_name(i)),
            )
            for i in range(self.num_memories)
        ]

    def tables(self) -> Dict[str, FF]:
        return {s.value: ff_array(materialize(s, self.registry.log_M))
                for s in self.registry.subtable_kinds}

    def evaluate_tables(self, point: Sequence) -> Dict[str, FF]:
        return {s.value: evaluate_mle(s, point) for s in self.registry.subtable_kinds}


# --- Prover ---

class InstructionLookupsProver:
    """Proving session for the instruction lookups of one padded trace."""

    def __init__(self, trace: ExecutionTrace, registry: InstructionRegistry):
        self.registry = registry
        self.witness = InstructionPolynomials(trace, registry)
        self.num_steps = self.witness.num_steps
        self.polys = self.witness.polynomials()

    def lookup_outputs(self) -> List[int]:
        return list(self.witness.outputs)

    def prove(self, pcs: PolynomialCommitmentScheme, transcript: Transcript) -> InstructionLookupsProof:
        registry = self.registry
        polys = self.polys
        num_vars = log2_exact(self.num_steps)

        transcript.absorb_label("instruction lookups")
        commitments = commit_polynomials(pcs, polys, transcript)

        # --- Primary collation sumcheck ---
        r_eq = transcript.challenges(num_vars)
        outputs_opening = open_polynomials(
            pcs, {OUTPUTS_NAME: polys[OUTPUTS_NAME]}, r_eq, transcript)
        claim = FF(outputs_opening[OUTPUTS_NAME].value)

        names = primary_poly_names(registry)
        num_flags = registry.num_instructions

        def combine(values):
            flags = values[1:1 + num_flags]
            e_values = values[1 + num_flags:]
            return values[0] * collation_sum(registry, flags, e_values)

        primary_sumcheck, r_primary, _ = prove_sumcheck(
            claim, [eq_evals(r_eq)] + [polys[n] for n in names], combine,
            registry.sumcheck_degree(), transcript)
        primary_openings = open_polynomials(
            pcs, {n: polys[n] for n in names}, r_primary, transcript)
        logger.debug("primary sumcheck: %d rounds of degree %d",
                     num_vars, registry.sumcheck_degree())

        # --- Subtable memory checking ---
        instance = InstructionLookupsMemory(registry, self.num_steps)
        memory_checking, _ = prove_memory_checking(instance, polys, pcs, transcript)

        return InstructionLookupsProof(
            commitments=commitments,
            outputs_opening=outputs_opening,
            primary_sumcheck=primary_sumcheck,
            primary_openings=primary_openings,
            memory_checking=memory_checking,
        )


# --- Verifier ---

def verify_instruction_lookups(
    proof: InstructionLookupsProof,
    registry: InstructionRegistry,
    num_steps: int,
    pcs: PolynomialCommitmentScheme,
    transcript: Transcript,
) -> bool:
    """Verify the instruction lookups of a trace of num_steps steps.

    Raises:
        VerificationError subclass on rejection.
    """
    num_vars = log2_exact(num_steps)

    transcript.absorb_label("instruction lookups")
    expected_names = sorted(committed_poly_names(registry))
    if sorted(proof.commitments) != expected_names:
        raise OpeningVerificationFailure(
            f"instruction lookups: expected commitments {expected_names}, "
            f"got {sorted(proof.commitments)}")
    absorb_commitments(pcs, proof.commitments, transcript)

    # --- Primary collation sumcheck ---
    r_eq = transcript.challenges(num_vars)
    outputs = verify_openings(
        pcs, proof.commitments, r_eq, proof.outputs_opening, [OUTPUTS_NAME], transcript)
    final_claim, r_primary = verify_sumcheck(
        proof.primary_sumcheck, outputs[OUTPUTS_NAME], num_vars,
        registry.sumcheck_degree(), transcript, "primary collation sumcheck")

    names = primary_poly_names(registry)
    values = verify_openings(
        pcs, proof.commitments, r_primary, proof.primary_openings, names, transcript)
    flags = [values[flag_name(k)] for k in registry.kinds]
    e_values = [values[e_name(i)] for i in range(registry.num_memories)]
    expected = eq_eval(r_eq, r_primary) * collation_sum(registry, flags, e_values)
    if int(expected) != int(final_claim):
        logger.warning("primary collation sumcheck: final claim mismatch")
        raise SumcheckRoundMismatch("primary collation sumcheck: final claim mismatch")

    # --- Subtable memory checking ---
    instance = InstructionLookupsMemory(registry, num_steps)
    verify_memory_checking(instance, proof.memory_checking, proof.commitments, pcs, transcript)
    return True
