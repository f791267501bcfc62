"""Protocol - sumcheck, grand products, memory checking and the top-level prover/verifier.

Only the error types are re-exported here; the prover and verifier live in
protocol.prover and protocol.verifier (importing them here would create an
import cycle with the witness and instructions packages, which raise these
errors).
"""

from protocol.errors import (
    MalformedTrace,
    MemoryCheckingFailure,
    OpeningVerificationFailure,
    ProofError,
    RangeViolation,
    SumcheckRoundMismatch,
    UnknownInstruction,
    VerificationError,
)

__all__ = [
    "ProofError",
    "MalformedTrace",
    "UnknownInstruction",
    "RangeViolation",
    "VerificationError",
    "SumcheckRoundMismatch",
    "OpeningVerificationFailure",
    "MemoryCheckingFailure",
]
