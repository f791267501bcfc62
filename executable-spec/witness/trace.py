"""Execution trace as produced by the VM interpreter.

The trace is built once and never mutated: steps are frozen dataclasses held
in a tuple. Ingestion checks the invariants every later stage relies on:
step timestamps run 0, 1, 2, ... and every instruction kind is declared.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from instructions.kinds import InstructionKind
from instructions.registry import InstructionRegistry
from protocol.errors import MalformedTrace

logger = logging.getLogger(__name__)

MIN_TRACE_LENGTH = 2


@dataclass(frozen=True)
class MemoryAccess:
    """One RAM access.

    Attributes:
        address: Cell index
        value: Value read, or the new value for a write
        is_write: Whether the access stores value
        read_timestamp: Timestamp of the tuple the access claims to read.
            None means the generator did not record one and the actual
            last-write timestamp is used.
    """
    address: int
    value: int
    is_write: bool = False
    read_timestamp: Optional[int] = None


@dataclass(frozen=True)
class TraceStep:
    """One VM step: a single instruction lookup and at most one RAM access."""
    timestamp: int
    kind: InstructionKind
    x: int = 0
    y: int = 0
    memory: Optional[MemoryAccess] = None


class ExecutionTrace:
    """Immutable, validated sequence of trace steps."""

    def __init__(self, steps: Sequence[TraceStep]):
        self.steps: Tuple[TraceStep, ...] = tuple(steps)
        if not self.steps:
            raise MalformedTrace("empty trace")
        for expected, step in enumerate(self.steps):
            if step.timestamp != expected:
                raise MalformedTrace(
                    f"step {expected} has timestamp {step.timestamp}; timestamps must "
                    f"increase by exactly one per step starting at 0")

    @classmethod
    def build(cls, instructions: Iterable[Tuple], accesses: Optional[Sequence] = None):
        """Assign timestamps to (kind, x, y) triples and optional accesses."""
        instructions = list(instructions)
        if accesses is None:
            accesses = [None] * len(instructions)
        if len(accesses) != len(instructions):
            raise MalformedTrace(
                f"{len(instructions)} instructions but {len(accesses)} memory accesses")
        return cls([
            TraceStep(timestamp=t, kind=kind, x=x, y=y, memory=access)
            for t, ((kind, x, y), access) in enumerate(zip(instructions, accesses))
        ])

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def validate(self, registry: InstructionRegistry) -> None:
        """Check every step against the instruction set.

        Raises:
            UnknownInstruction: A step uses an undeclared kind
            MalformedTrace: An operand does not fit the operand width
        """
        for step in self.steps:
            registry.check_operands(step.kind, step.x, step.y)

    def padded(self, registry: InstructionRegistry) -> "ExecutionTrace":
        """Pad to a power of two (at least MIN_TRACE_LENGTH) with no-op steps.

        Padding steps run the first declared instruction on (0, 0) with no
        memory access; timestamps keep incrementing.
        """
        length = max(MIN_TRACE_LENGTH, len(self.steps))
        target = 1 << (length - 1).bit_length()
        if target == len(self.steps):
            return self
        filler = registry.kinds[0]
        extra = [
            TraceStep(timestamp=t, kind=filler)
            for t in range(len(self.steps), target)
        ]
        logger.debug("padding trace from %d to %d steps", len(self.steps), target)
        return ExecutionTrace(self.steps + tuple(extra))
