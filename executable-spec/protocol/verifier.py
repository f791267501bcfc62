"""Top-level proof verification."""

import logging
from typing import Optional

from primitives.polynomial import is_power_of_two
from protocol.config import VMConfig
from protocol.errors import VerificationError
from protocol.instruction_lookups import verify_instruction_lookups
from protocol.pcs import MerklePcs, PolynomialCommitmentScheme
from protocol.proof import ZkVmProof
from protocol.prover import new_transcript
from protocol.read_write_memory import verify_read_write_memory
from witness.trace import MIN_TRACE_LENGTH

logger = logging.getLogger(__name__)


def verify_proof(
    proof: ZkVmProof,
    config: VMConfig,
    pcs: Optional[PolynomialCommitmentScheme] = None,
) -> bool:
    """Verify a proof against a VM configuration.

    The verifier replays the prover's transcript from the proof alone; it
    never sees the trace.

    Returns:
        True if the proof is valid

    Raises:
        VerificationError: SumcheckRoundMismatch, OpeningVerificationFailure
            or MemoryCheckingFailure on rejection
        RangeViolation: Timestamp range claims are inconsistent
    """
    pcs = pcs or MerklePcs()
    registry = config.registry()

    m = proof.trace_length
    if m < MIN_TRACE_LENGTH or not is_power_of_two(m):
        raise VerificationError(f"trace length {m} is not a power of two >= {MIN_TRACE_LENGTH}")

    transcript = new_transcript(config, m)

    # --- Instruction lookups ---
    verify_instruction_lookups(proof.lookups, registry, m, pcs, transcript)
    logger.debug("instruction lookups verified")

    # --- Read-write memory ---
    verify_read_write_memory(
        proof.memory, config.memory_size, config.initial_memory, m,
        config.range_digit_bits, pcs, transcript)
    logger.debug("read-write memory verified")

    logger.info("proof verified (%d steps)", m)
    return True
