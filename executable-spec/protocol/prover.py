"""Top-level proof generation.

A proof covers one execution trace: the instruction lookups of every step
and the consistency of every RAM access. Both arguments run in sequence on
one Fiat-Shamir transcript seeded with the configuration's label and the
padded trace length.
"""

import logging
from typing import Optional

from primitives.transcript import Transcript
from protocol.config import VMConfig
from protocol.instruction_lookups import InstructionLookupsProver
from protocol.pcs import MerklePcs, PolynomialCommitmentScheme
from protocol.proof import ZkVmProof
from protocol.read_write_memory import ReadWriteMemoryProver
from witness.trace import ExecutionTrace

logger = logging.getLogger(__name__)


def new_transcript(config: VMConfig, trace_length: int) -> Transcript:
    """Session transcript bound to the configuration and trace length."""
    transcript = Transcript(config.transcript_label)
    transcript.absorb_label("config:" + ",".join(k.name for k in config.instructions))
    transcript.put([config.C, config.log_M, config.memory_size, config.range_digit_bits])
    transcript.put(config.initial_memory)
    transcript.put_int(trace_length)
    return transcript


def gen_proof(
    trace: ExecutionTrace,
    config: VMConfig,
    pcs: Optional[PolynomialCommitmentScheme] = None,
) -> ZkVmProof:
    """Generate a proof for an execution trace.

    All witness checks run before anything is committed, so a failing trace
    never yields a partial proof.

    Args:
        trace: Validated execution trace (padded here if needed)
        config: VM configuration
        pcs: Commitment scheme (MerklePcs by default)

    Returns:
        ZkVmProof

    Raises:
        UnknownInstruction: The trace uses an undeclared instruction
        MalformedTrace: Operand, address, value or timestamp invariants fail
        RangeViolation: A read timestamp lies outside its allowed range
    """
    pcs = pcs or MerklePcs()
    registry = config.registry()
    trace.validate(registry)
    padded = trace.padded(registry)
    trace_length = len(padded)
    logger.info("proving trace of %d steps (%d after padding)", len(trace), trace_length)

    # --- Witness generation ---
    lookups_prover = InstructionLookupsProver(padded, registry)
    memory_prover = ReadWriteMemoryProver(
        padded, config.memory_size, config.initial_memory, config.range_digit_bits)

    # --- Proving ---
    transcript = new_transcript(config, trace_length)
    lookups = lookups_prover.prove(pcs, transcript)
    logger.debug("instruction lookups proved")
    memory = memory_prover.prove(pcs, transcript)
    logger.debug("read-write memory proved")

    logger.info("proof complete")
    return ZkVmProof(trace_length=trace_length, lookups=lookups, memory=memory)
