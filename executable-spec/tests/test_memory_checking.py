"""Tests for offline memory checking over the lookup subtables."""

import copy

import pytest

from instructions.kinds import InstructionKind
from instructions.registry import InstructionRegistry
from primitives.field import FF
from primitives.transcript import Transcript
from protocol.errors import MemoryCheckingFailure, OpeningVerificationFailure
from protocol.instruction_lookups import InstructionLookupsMemory
from protocol.memory_checking import (
    MemoryTuple,
    fingerprint,
    multiset_hashes,
    prove_memory_checking,
    verify_memory_checking,
)
from protocol.openings import commit_polynomials
from witness.lookups import InstructionPolynomials, e_name
from witness.trace import ExecutionTrace

EQ, LT, AND = InstructionKind.EQ, InstructionKind.LT, InstructionKind.AND


def _run(instance, polys, pcs):
    """Commit, prove and verify on fresh transcripts with the same label."""
    t_prover = Transcript("memcheck-test")
    commitments = commit_polynomials(pcs, polys, t_prover)
    proof, r_leaf = prove_memory_checking(instance, polys, pcs, t_prover)

    t_verifier = Transcript("memcheck-test")
    commit_polynomials(pcs, polys, t_verifier)
    return proof, r_leaf, lambda p=proof: verify_memory_checking(
        instance, p, commitments, pcs, t_verifier)


@pytest.fixture
def lookups():
    registry = InstructionRegistry([EQ, LT], C=1, log_M=8)
    trace = ExecutionTrace.build([(EQ, 3, 3), (LT, 2, 9), (EQ, 4, 5), (LT, 9, 2)])
    polys = InstructionPolynomials(trace, registry).polynomials()
    return registry, InstructionLookupsMemory(registry, 4), polys


class TestFingerprint:

    def test_untoggled(self):
        tup = MemoryTuple(FF(2), FF(3), FF(5))
        gamma, tau = FF(7), FF(11)
        assert int(fingerprint(tup, gamma, tau)) == 5 * 49 + 3 * 7 + 2 - 11

    def test_toggled_off_is_one(self):
        tup = MemoryTuple(FF(2), FF(3), FF(5), flag=FF(0))
        assert int(fingerprint(tup, FF(7), FF(11))) == 1

    def test_toggled_on_is_fingerprint(self):
        on = MemoryTuple(FF(2), FF(3), FF(5), flag=FF(1))
        off = MemoryTuple(FF(2), FF(3), FF(5))
        assert fingerprint(on, FF(7), FF(11)) == fingerprint(off, FF(7), FF(11))


class TestLookupMemoryChecking:

    def test_honest_instance_verifies(self, lookups, pcs):
        _, instance, polys = lookups
        _, r_leaf, verify = _run(instance, polys, pcs)
        r_verifier, values = verify()
        assert [int(x) for x in r_verifier] == [int(x) for x in r_leaf]
        assert set(values) == set(instance.read_write_poly_names())

    def test_hashes_satisfy_multiset_equation(self, lookups):
        _, instance, polys = lookups
        hashes, _, _ = multiset_hashes(instance, polys, FF(1234), FF(5678))
        assert hashes.check(instance) == []

    def test_wrong_lookup_value_rejected(self, lookups, pcs):
        # Step 0 is EQ(3, 3); memory 0 is the EQ subtable, which holds 1 there
        _, instance, polys = lookups
        polys = dict(polys)
        tampered = polys[e_name(0)].copy()
        assert int(tampered[0]) == 1
        tampered[0] = 0
        polys[e_name(0)] = tampered
        _, _, verify = _run(instance, polys, pcs)
        with pytest.raises(MemoryCheckingFailure, match=r"memories \[0\]"):
            verify()

    def test_tampered_hash_rejected(self, lookups, pcs):
        _, instance, polys = lookups
        proof, _, verify = _run(instance, polys, pcs)
        bad = copy.deepcopy(proof)
        bad.multiset_hashes.final_hashes[1] = (bad.multiset_hashes.final_hashes[1] + 1)
        with pytest.raises(MemoryCheckingFailure):
            verify(bad)

    def test_missing_opening_rejected(self, lookups, pcs):
        _, instance, polys = lookups
        proof, _, verify = _run(instance, polys, pcs)
        bad = copy.deepcopy(proof)
        bad.init_final_openings.popitem()
        with pytest.raises(OpeningVerificationFailure):
            verify(bad)

    def test_unused_subtable_is_idempotent(self, pcs):
        registry = InstructionRegistry([EQ, AND], C=1, log_M=4)
        trace = ExecutionTrace.build([(EQ, 1, 1), (EQ, 2, 3), (EQ, 0, 0), (EQ, 3, 3)])
        polys = InstructionPolynomials(trace, registry).polynomials()
        instance = InstructionLookupsMemory(registry, 4)

        hashes, _, _ = multiset_hashes(instance, polys, FF(99), FF(12345))
        and_memory = registry.memory_index(registry.subtable_kinds[1], 0)
        assert int(hashes.read_hashes[and_memory]) == 1
        assert int(hashes.write_hashes[and_memory]) == 1
        assert hashes.final_hashes[and_memory] == hashes.init_hashes[1]

        _, _, verify = _run(instance, polys, pcs)
        verify()
