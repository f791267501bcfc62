"""Read-write memory checking with timestamp range checks.

Multiset equality alone lets a read observe a tuple that is only written
later in the trace. Timestamps rule that out: a step s reads a tuple with
timestamp read_ts and writes one with timestamp s + 1, and both

    read_ts in [0, T]    and    s - read_ts in [0, T]        (T = trace length)

are proved with the range check, so read_ts <= s. The range check hands
back claims about both columns at its leaf point; the prover opens read_ts
there and the verifier derives s - read_ts from the identity MLE.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from primitives.field import FF, ONE, ZERO, ff_array
from primitives.polynomial import evaluate_mle, identity_eval, log2_exact
from primitives.transcript import Transcript
from protocol.errors import OpeningVerificationFailure, RangeViolation
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
from protocol.range_check import RangeCheckMemory, RangeCheckProof, prove_range_check, verify_range_check
from witness.digits import RangeCheckWitness
from witness.memory import (
    ADDRESS,
    CELL_COLUMNS,
    FINAL_TS,
    FINAL_VALUE,
    FLAG,
    READ_TS,
    READ_VALUE,
    STEP_COLUMNS,
    WRITE_VALUE,
    ReadWriteMemoryPolynomials,
)
from witness.trace import ExecutionTrace

logger = logging.getLogger(__name__)

RANGE_PREFIX = "ram.range"
TS_VALUE = "read_ts"
GAP_VALUE = "ts_gap"


@dataclass
class ReadWriteMemoryProof:
    commitments: Dict[str, Any] = field(default_factory=dict)
    memory_checking: MemoryCheckingProof = field(default_factory=MemoryCheckingProof)
    range_check: RangeCheckProof = field(default_factory=RangeCheckProof)
    timestamp_openings: Dict[str, PolynomialOpening] = field(default_factory=dict)


class ReadWriteMemory(MemoryCheckingInstance):
    """A single RAM of memory_size cells with public initial contents."""

    label = "read-write memory"

    def __init__(self, memory_size: int, initial_memory: Sequence[int], num_steps: int):
        self.memory_size = memory_size
        self.initial_memory = [int(v) for v in initial_memory]
        self._step_vars = log2_exact(num_steps)
        self._cell_vars = log2_exact(memory_size)

    @property
    def num_memories(self) -> int:
        return 1

    @property
    def num_init(self) -> int:
        return 1

    @property
    def read_write_num_vars(self) -> int:
        return self._step_vars

    @property
    def init_final_num_vars(self) -> int:
        return self._cell_vars

    def memory_to_init(self, memory: int) -> int:
        return 0

    def read_write_poly_names(self) -> List[str]:
        return list(STEP_COLUMNS)

    def init_final_poly_names(self) -> List[str]:
        return list(CELL_COLUMNS)

    def read_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [MemoryTuple(ctx.poly(ADDRESS), ctx.poly(READ_VALUE), ctx.poly(READ_TS), ctx.poly(FLAG))]

    def write_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [MemoryTuple(ctx.poly(ADDRESS), ctx.poly(WRITE_VALUE), ctx.identity() + ONE, ctx.poly(FLAG))]

    def init_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [MemoryTuple(ctx.identity(), ctx.table("init"), ZERO)]

    def final_tuples(self, ctx: MemoryContext) -> List[MemoryTuple]:
        return [MemoryTuple(ctx.identity(), ctx.poly(FINAL_VALUE), ctx.poly(FINAL_TS))]

    def tables(self) -> Dict[str, FF]:
        return {"init": ff_array(self.initial_memory)}

    def evaluate_tables(self, point: Sequence) -> Dict[str, FF]:
        return {"init": evaluate_mle(ff_array(self.initial_memory), point)}


def _range_instance(num_steps: int, digit_bits: int) -> RangeCheckMemory:
    return RangeCheckMemory([TS_VALUE, GAP_VALUE], bound=num_steps, digit_bits=digit_bits,
                            num_steps=num_steps, prefix=RANGE_PREFIX)


# --- Prover ---

class ReadWriteMemoryProver:
    """Proving session for the RAM accesses of one padded trace.

    Raises (at construction):
        MalformedTrace: Accesses are inconsistent with the replayed memory
        RangeViolation: A read timestamp is negative, exceeds the trace
            length or lies in the future of its step
    """

    def __init__(self, trace: ExecutionTrace, memory_size: int, initial_memory: Sequence[int],
                 digit_bits: int):
        self.num_steps = len(trace)
        self.memory_size = memory_size
        self.initial_memory = list(initial_memory)
        self.digit_bits = digit_bits

        self.witness = ReadWriteMemoryPolynomials(trace, memory_size, initial_memory)
        self.range_witness = RangeCheckWitness(
            {TS_VALUE: self.witness.columns[READ_TS], GAP_VALUE: self.witness.timestamp_gaps()},
            bound=self.num_steps, digit_bits=digit_bits, prefix=RANGE_PREFIX)
        self.witness.check_consistency()

        self.polys = self.witness.polynomials()
        self.polys.update(self.range_witness.polynomials())

    def prove(self, pcs: PolynomialCommitmentScheme, transcript: Transcript) -> ReadWriteMemoryProof:
        transcript.absorb_label("read-write memory")
        commitments = commit_polynomials(pcs, self.polys, transcript)

        instance = ReadWriteMemory(self.memory_size, self.initial_memory, self.num_steps)
        memory_checking, _ = prove_memory_checking(instance, self.polys, pcs, transcript)

        range_instance = _range_instance(self.num_steps, self.digit_bits)
        range_check, r_range = prove_range_check(range_instance, self.polys, pcs, transcript)
        timestamp_openings = open_polynomials(
            pcs, {READ_TS: self.polys[READ_TS]}, r_range, transcript)

        return ReadWriteMemoryProof(
            commitments=commitments,
            memory_checking=memory_checking,
            range_check=range_check,
            timestamp_openings=timestamp_openings,
        )


# --- Verifier ---

def committed_poly_names(num_steps: int, digit_bits: int) -> List[str]:
    return (STEP_COLUMNS + CELL_COLUMNS
            + _range_instance(num_steps, digit_bits).committed_poly_names())


def verify_read_write_memory(
    proof: ReadWriteMemoryProof,
    memory_size: int,
    initial_memory: Sequence[int],
    num_steps: int,
    digit_bits: int,
    pcs: PolynomialCommitmentScheme,
    transcript: Transcript,
) -> bool:
    """Verify RAM consistency and timestamp ordering.

    Raises:
        RangeViolation: Timestamp range claims do not match the committed
            read timestamps
        VerificationError subclass on any other rejection.
    """
    transcript.absorb_label("read-write memory")
    expected_names = sorted(committed_poly_names(num_steps, digit_bits))
    if sorted(proof.commitments) != expected_names:
        raise OpeningVerificationFailure(
            f"read-write memory: expected commitments {expected_names}, "
            f"got {sorted(proof.commitments)}")
    absorb_commitments(pcs, proof.commitments, transcript)

    instance = ReadWriteMemory(memory_size, initial_memory, num_steps)
    verify_memory_checking(instance, proof.memory_checking, proof.commitments, pcs, transcript)

    range_instance = _range_instance(num_steps, digit_bits)
    r_range, claims = verify_range_check(
        range_instance, proof.range_check, proof.commitments, pcs, transcript)
    opened = verify_openings(
        pcs, proof.commitments, r_range, proof.timestamp_openings, [READ_TS], transcript)

    read_ts = opened[READ_TS]
    if int(claims[TS_VALUE]) != int(read_ts):
        logger.warning("read-write memory: read timestamps differ from range-checked digits")
        raise RangeViolation("read-write memory: read_ts is not the range-checked value")
    if int(claims[GAP_VALUE]) != int(identity_eval(r_range) - read_ts):
        logger.warning("read-write memory: timestamp gaps differ from range-checked digits")
        raise RangeViolation("read-write memory: step - read_ts is not the range-checked value")
    return True
