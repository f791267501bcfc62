"""Tests for the instruction lookup argument (primary sumcheck and subtable memories)."""

import copy

import pytest

from instructions.kinds import InstructionKind
from instructions.registry import InstructionRegistry
from primitives.transcript import Transcript
from protocol.errors import OpeningVerificationFailure, SumcheckRoundMismatch
from protocol.instruction_lookups import (
    InstructionLookupsProver,
    collation_sum,
    committed_poly_names,
    verify_instruction_lookups,
)
from witness.lookups import OUTPUTS_NAME, e_name, flag_name
from witness.trace import ExecutionTrace

EQ, LT = InstructionKind.EQ, InstructionKind.LT

STEPS = [(EQ, 3, 3), (LT, 2, 9), (EQ, 4, 5), (LT, 9, 2)]


@pytest.fixture
def registry():
    return InstructionRegistry([EQ, LT], C=1, log_M=8)


@pytest.fixture
def prover(registry):
    return InstructionLookupsProver(ExecutionTrace.build(STEPS), registry)


def _verify(proof, registry, pcs):
    return verify_instruction_lookups(proof, registry, 4, pcs, Transcript("lookups-test"))


class TestWitness:

    def test_outputs_match_direct_evaluation(self, prover, registry):
        expected = [registry.lookup_entry(kind, x, y) for kind, x, y in STEPS]
        assert prover.lookup_outputs() == expected == [1, 1, 0, 0]

    def test_collation_sum_equals_outputs(self, prover, registry):
        polys = prover.polys
        flags = [polys[flag_name(k)] for k in registry.kinds]
        e_values = [polys[e_name(i)] for i in range(registry.num_memories)]
        assert list(collation_sum(registry, flags, e_values)) == list(polys[OUTPUTS_NAME])

    def test_committed_polynomials(self, prover, registry):
        assert sorted(prover.polys) == sorted(committed_poly_names(registry))


class TestInstructionLookups:

    def test_honest_proof_verifies(self, prover, registry, pcs):
        proof = prover.prove(pcs, Transcript("lookups-test"))
        assert _verify(proof, registry, pcs)

    def test_multi_chunk_bitwise(self, pcs):
        kinds = [InstructionKind.AND, InstructionKind.XOR, InstructionKind.NE, InstructionKind.GE]
        registry = InstructionRegistry(kinds, C=2, log_M=4)
        steps = [(InstructionKind.AND, 13, 6), (InstructionKind.XOR, 9, 12),
                 (InstructionKind.NE, 7, 7), (InstructionKind.GE, 5, 11)]
        prover = InstructionLookupsProver(ExecutionTrace.build(steps), registry)
        assert prover.lookup_outputs() == [13 & 6, 9 ^ 12, 0, 0]
        proof = prover.prove(pcs, Transcript("lookups-test"))
        assert _verify(proof, registry, pcs)

    def test_signed_comparisons(self, pcs):
        SLT, BGE = InstructionKind.SLT, InstructionKind.BGE
        registry = InstructionRegistry([SLT, BGE, LT], C=2, log_M=4)
        # 4-bit operands: 0b1110 is -2, 0b0011 is 3
        steps = [(SLT, 0b1110, 0b0011), (BGE, 0b1110, 0b0011), (LT, 0b1110, 0b0011), (SLT, 5, 5)]
        prover = InstructionLookupsProver(ExecutionTrace.build(steps), registry)
        assert prover.lookup_outputs() == [1, 0, 0, 0]
        proof = prover.prove(pcs, Transcript("lookups-test"))
        assert _verify(proof, registry, pcs)

    def test_tampered_primary_round_rejected(self, prover, registry, pcs):
        proof = prover.prove(pcs, Transcript("lookups-test"))
        bad = copy.deepcopy(proof)
        bad.primary_sumcheck.round_polys[1][0] = (bad.primary_sumcheck.round_polys[1][0] + 1)
        with pytest.raises(SumcheckRoundMismatch, match="primary collation sumcheck"):
            _verify(bad, registry, pcs)

    def test_tampered_outputs_opening_rejected(self, prover, registry, pcs):
        proof = prover.prove(pcs, Transcript("lookups-test"))
        bad = copy.deepcopy(proof)
        bad.outputs_opening[OUTPUTS_NAME].value = (bad.outputs_opening[OUTPUTS_NAME].value + 1)
        with pytest.raises(OpeningVerificationFailure):
            _verify(bad, registry, pcs)

    def test_wrong_outputs_rejected(self, registry, pcs):
        # A prover committing to a wrong output cannot satisfy the collation sumcheck
        prover = InstructionLookupsProver(ExecutionTrace.build(STEPS), registry)
        outputs = prover.polys[OUTPUTS_NAME].copy()
        outputs[2] = 1
        prover.polys[OUTPUTS_NAME] = outputs
        proof = prover.prove(pcs, Transcript("lookups-test"))
        with pytest.raises(SumcheckRoundMismatch):
            _verify(proof, registry, pcs)

    def test_missing_commitment_rejected(self, prover, registry, pcs):
        proof = prover.prove(pcs, Transcript("lookups-test"))
        bad = copy.deepcopy(proof)
        del bad.commitments[flag_name(LT)]
        with pytest.raises(OpeningVerificationFailure, match="expected commitments"):
            _verify(bad, registry, pcs)

    def test_different_registry_rejected(self, prover, pcs):
        proof = prover.prove(pcs, Transcript("lookups-test"))
        other = InstructionRegistry([EQ, InstructionKind.GE], C=1, log_M=8)
        with pytest.raises(OpeningVerificationFailure):
            _verify(proof, other, pcs)

    def test_first_declared_kind_need_not_be_first_step(self, pcs):
        registry = InstructionRegistry([LT, EQ], C=1, log_M=8)
        prover = InstructionLookupsProver(ExecutionTrace.build(STEPS), registry)
        proof = prover.prove(pcs, Transcript("lookups-test"))
        assert _verify(proof, registry, pcs)
