"""End-to-end tests: generate a proof for a trace and verify it."""

import copy
import json

import pytest

from instructions.kinds import InstructionKind
from protocol.config import VMConfig
from protocol.errors import (
    MalformedTrace,
    MemoryCheckingFailure,
    RangeViolation,
    UnknownInstruction,
    VerificationError,
)
from protocol.proof import load_proof, proof_from_json, proof_to_json, save_proof
from protocol.prover import gen_proof
from protocol.verifier import verify_proof
from witness.digits import RangeCheckWitness
from witness.memory import ReadWriteMemoryPolynomials
from witness.trace import ExecutionTrace, MemoryAccess, TraceStep

EQ, LT, AND, XOR = InstructionKind.EQ, InstructionKind.LT, InstructionKind.AND, InstructionKind.XOR


def _program():
    """Six steps mixing lookups and RAM accesses (padded to eight)."""
    instructions = [(EQ, 3, 3), (LT, 2, 9), (EQ, 4, 5), (LT, 9, 2), (EQ, 7, 7), (LT, 0, 1)]
    accesses = [
        MemoryAccess(address=2, value=7, is_write=True),
        None,
        MemoryAccess(address=5, value=0),
        None,
        None,
        MemoryAccess(address=2, value=7),
    ]
    return ExecutionTrace.build(instructions, accesses)


@pytest.fixture
def proof(eq_lt_config, pcs):
    return gen_proof(_program(), eq_lt_config, pcs)


class TestEndToEnd:

    def test_proof_verifies(self, proof, eq_lt_config, pcs):
        assert proof.trace_length == 8
        assert verify_proof(proof, eq_lt_config, pcs)

    def test_default_commitment_scheme(self, eq_lt_config):
        proof = gen_proof(_program(), eq_lt_config)
        assert verify_proof(proof, eq_lt_config)

    def test_minimal_trace_is_padded(self, eq_lt_config, pcs):
        proof = gen_proof(ExecutionTrace.build([(LT, 1, 2)]), eq_lt_config, pcs)
        assert proof.trace_length == 2
        assert verify_proof(proof, eq_lt_config, pcs)

    def test_multi_chunk_config(self, pcs):
        config = VMConfig(instructions=(AND, XOR, LT, EQ), C=2, log_M=6, memory_size=4,
                          initial_memory=(1, 2, 3, 4), range_digit_bits=3)
        instructions = [(AND, 45, 27), (XOR, 63, 1), (LT, 40, 41), (EQ, 9, 9)]
        accesses = [
            MemoryAccess(address=3, value=4),
            MemoryAccess(address=3, value=60, is_write=True),
            None,
            MemoryAccess(address=3, value=60),
        ]
        proof = gen_proof(ExecutionTrace.build(instructions, accesses), config, pcs)
        assert verify_proof(proof, config, pcs)

    def test_json_round_trip(self, proof, eq_lt_config, pcs):
        data = json.loads(json.dumps(proof_to_json(proof, pcs)))
        restored = proof_from_json(data, pcs)
        assert verify_proof(restored, eq_lt_config, pcs)

    def test_save_and_load(self, proof, eq_lt_config, pcs, tmp_path):
        path = tmp_path / "proof.json"
        save_proof(proof, pcs, str(path))
        assert verify_proof(load_proof(str(path), pcs), eq_lt_config, pcs)


class TestRejection:

    def test_tampered_multiset_hash(self, proof, eq_lt_config, pcs):
        bad = copy.deepcopy(proof)
        hashes = bad.lookups.memory_checking.multiset_hashes
        hashes.read_hashes[0] = (hashes.read_hashes[0] + 1)
        with pytest.raises(MemoryCheckingFailure):
            verify_proof(bad, eq_lt_config, pcs)

    def test_tampered_ram_hash(self, proof, eq_lt_config, pcs):
        bad = copy.deepcopy(proof)
        hashes = bad.memory.memory_checking.multiset_hashes
        hashes.write_hashes[0] = (hashes.write_hashes[0] + 1)
        with pytest.raises(MemoryCheckingFailure):
            verify_proof(bad, eq_lt_config, pcs)

    def test_wrong_config_rejected(self, proof, eq_lt_config, pcs):
        other = VMConfig(instructions=eq_lt_config.instructions, C=1, log_M=8, memory_size=8,
                         initial_memory=(1,), range_digit_bits=2)
        with pytest.raises(VerificationError):
            verify_proof(proof, other, pcs)

    @pytest.mark.parametrize("length", [0, 1, 6])
    def test_bad_trace_length(self, proof, eq_lt_config, pcs, length):
        bad = copy.deepcopy(proof)
        bad.trace_length = length
        with pytest.raises(VerificationError, match="power of two"):
            verify_proof(bad, eq_lt_config, pcs)


class TestProverInputChecks:

    def test_non_sequential_timestamps(self):
        with pytest.raises(MalformedTrace, match="timestamp"):
            ExecutionTrace([TraceStep(0, EQ), TraceStep(2, EQ)])

    def test_empty_trace(self):
        with pytest.raises(MalformedTrace):
            ExecutionTrace([])

    def test_undeclared_instruction(self, eq_lt_config, pcs):
        with pytest.raises(UnknownInstruction):
            gen_proof(ExecutionTrace.build([(EQ, 1, 1), (AND, 1, 1)]), eq_lt_config, pcs)

    def test_operand_too_wide(self, eq_lt_config, pcs):
        with pytest.raises(MalformedTrace, match="does not fit"):
            gen_proof(ExecutionTrace.build([(LT, 16, 1)]), eq_lt_config, pcs)

    def test_future_read_timestamp(self, eq_lt_config, pcs):
        instructions = [(EQ, 0, 0)] * 4
        accesses = [MemoryAccess(address=1, value=3, is_write=True), None,
                    MemoryAccess(address=1, value=3, read_timestamp=3), None]
        with pytest.raises(RangeViolation):
            gen_proof(ExecutionTrace.build(instructions, accesses), eq_lt_config, pcs)

    def test_verifier_rejects_prover_that_skips_witness_checks(self, eq_lt_config, pcs, monkeypatch):
        # A prover without the range and consistency checks still emits a
        # proof for a future read timestamp; the verifier must reject it.
        monkeypatch.setattr(RangeCheckWitness, "check_bounds", lambda self, values: None)
        monkeypatch.setattr(ReadWriteMemoryPolynomials, "check_consistency", lambda self: None)
        instructions = [(EQ, 0, 0)] * 8
        accesses = [None] * 8
        accesses[0] = MemoryAccess(address=2, value=7, is_write=True)
        accesses[5] = MemoryAccess(address=2, value=7, read_timestamp=6)
        proof = gen_proof(ExecutionTrace.build(instructions, accesses), eq_lt_config, pcs)
        with pytest.raises(VerificationError):
            verify_proof(proof, eq_lt_config, pcs)


class TestConfig:

    def test_from_dict_round_trip(self):
        config = VMConfig.from_dict({
            "instructions": ["eq", "XOR"],
            "C": 2,
            "log_M": 4,
            "memory_size": 4,
            "initial_memory": [5],
        })
        assert config.instructions == (EQ, XOR)
        assert config.initial_memory == (5, 0, 0, 0)
        assert VMConfig.from_dict(config.to_dict()) == config

    def test_from_json(self, tmp_path):
        path = tmp_path / "vm.json"
        path.write_text(json.dumps({"instructions": ["LT"], "range_digit_bits": 2}))
        config = VMConfig.from_json(str(path))
        assert config.instructions == (LT,)
        assert config.memory_size == 16
        assert config.range_digit_bits == 2

    def test_unknown_instruction_name(self):
        with pytest.raises(UnknownInstruction, match="MUL"):
            VMConfig.from_dict({"instructions": ["MUL"]})

    @pytest.mark.parametrize("kwargs", [
        {"memory_size": 6},
        {"memory_size": 2, "initial_memory": (1, 2, 3)},
        {"range_digit_bits": 0},
        {"log_M": 7},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            VMConfig(instructions=(EQ,), **kwargs)
