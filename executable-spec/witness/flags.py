"""Instruction and subtable flags.

flags[f][x] = 1 iff step x executes the f-th declared instruction. Exactly one
instruction flag is set per step. The subtable flag of a subtable at step x is
the sum of the flags of the instructions reading it, which is 0/1 because the
instruction flags are mutually exclusive.
"""

from typing import List, Sequence

import numpy as np

from instructions.kinds import InstructionKind
from instructions.registry import InstructionRegistry
from instructions.subtables import SubtableKind
from primitives.field import FF
from protocol.errors import MalformedTrace


class InstructionFlags:
    """Validated per-step instruction flags.

    Args:
        bits: 0/1 integer matrix of shape (num_instructions, num_steps)
        registry: Instruction set the rows refer to
    """

    def __init__(self, bits: np.ndarray, registry: InstructionRegistry):
        bits = np.asarray(bits)
        if bits.dtype != np.bool_ and not np.issubdtype(bits.dtype, np.integer):
            raise MalformedTrace(f"instruction flags must be integers, got dtype {bits.dtype}")
        if bits.ndim != 2 or bits.shape[0] != registry.num_instructions:
            raise MalformedTrace(
                f"flag matrix must have shape ({registry.num_instructions}, m), got {bits.shape}")
        if not np.all((bits == 0) | (bits == 1)):
            raise MalformedTrace("instruction flags must be 0 or 1")
        column_sums = bits.sum(axis=0)
        bad = np.nonzero(column_sums != 1)[0]
        if len(bad) > 0:
            step = int(bad[0])
            raise MalformedTrace(
                f"step {step} has {int(column_sums[step])} instruction flags set; exactly one required")

        self.bits = bits.astype(np.uint64)
        self.registry = registry
        self.num_steps = bits.shape[1]

    @classmethod
    def from_kinds(cls, kinds: Sequence[InstructionKind], registry: InstructionRegistry):
        bits = np.zeros((registry.num_instructions, len(kinds)), dtype=np.uint64)
        for step, kind in enumerate(kinds):
            bits[registry.instruction_index(kind), step] = 1
        return cls(bits, registry)

    @classmethod
    def from_bitvectors(cls, bitvectors: Sequence[Sequence[int]], registry: InstructionRegistry):
        """Ingest externally produced flag bitvectors, one per declared kind."""
        try:
            bits = np.array(bitvectors)
        except (TypeError, ValueError) as e:
            raise MalformedTrace(f"flag bitvectors are not a rectangular integer matrix: {e}") from e
        return cls(bits, registry)

    def instruction_flag(self, kind: InstructionKind) -> np.ndarray:
        return self.bits[self.registry.instruction_index(kind)]

    def subtable_flag(self, subtable: SubtableKind) -> np.ndarray:
        result = np.zeros(self.num_steps, dtype=np.uint64)
        for kind in self.registry.instructions_using(subtable):
            result = result + self.instruction_flag(kind)
        return result

    # --- Field views ---

    def instruction_flag_polys(self) -> List[FF]:
        return [FF([int(v) for v in row]) for row in self.bits]
