"""Error types raised by the prover and verifier.

Structural problems with the input are raised before any proof is produced.
Verifier rejections all derive from VerificationError; the verifier never
returns a partial result.
"""


class ProofError(Exception):
    """Base class for every error raised by this package."""


class MalformedTrace(ProofError):
    """The execution trace breaks a flag, timestamp, operand or memory invariant."""


class UnknownInstruction(ProofError):
    """An instruction kind was used that the VM configuration does not declare."""


class RangeViolation(ProofError):
    """A range-checked value lies outside [0, T]."""


class VerificationError(ProofError):
    """The verifier rejected the proof."""


class SumcheckRoundMismatch(VerificationError):
    """A round polynomial or final sumcheck claim is inconsistent."""


class OpeningVerificationFailure(VerificationError):
    """A polynomial commitment opening failed to verify."""


class MemoryCheckingFailure(VerificationError):
    """Multiset hashes or memory-checking leaf claims are inconsistent."""
