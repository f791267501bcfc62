"""Instruction registry: the instruction set of one VM configuration.

The registry fixes which instruction kinds exist (their order defines the
instruction flag index), the chunk count C and the subtable size M = 2^log_M.
From those it derives the lookup memories: one memory per (subtable, chunk)
pair, with memory index i = C * subtable_index + dim.

A registry is immutable and may be shared by any number of proof sessions.
"""

from typing import Dict, List, Sequence, Tuple

from instructions.kinds import DECOMPOSITIONS, InstructionKind
from instructions.subtables import SubtableKind
from protocol.errors import MalformedTrace, UnknownInstruction


class InstructionRegistry:
    """Declared instruction kinds with their memory layout.

    Args:
        kinds: Declared instruction kinds, in flag order
        C: Number of operand chunks
        log_M: log2 of every subtable size (even)
    """

    def __init__(self, kinds: Sequence[InstructionKind], C: int, log_M: int):
        if not kinds:
            raise ValueError("instruction registry needs at least one instruction kind")
        if len(set(kinds)) != len(kinds):
            raise ValueError(f"duplicate instruction kinds in {list(kinds)}")
        if C < 1:
            raise ValueError(f"C must be >= 1, got {C}")
        if log_M < 2 or log_M % 2 != 0:
            raise ValueError(f"log_M must be a positive even number, got {log_M}")

        self._kinds: Tuple[InstructionKind, ...] = tuple(kinds)
        self.C = C
        self.log_M = log_M
        self.chunk_bits = log_M // 2
        self.operand_bits = C * self.chunk_bits

        used = {s for k in self._kinds for s in DECOMPOSITIONS[k].subtables}
        self._subtables: Tuple[SubtableKind, ...] = tuple(s for s in SubtableKind if s in used)
        self._subtable_index: Dict[SubtableKind, int] = {
            s: i for i, s in enumerate(self._subtables)}
        self._instruction_index: Dict[InstructionKind, int] = {
            k: i for i, k in enumerate(self._kinds)}

    # --- Declared sets ---

    @property
    def kinds(self) -> Tuple[InstructionKind, ...]:
        return self._kinds

    @property
    def subtable_kinds(self) -> Tuple[SubtableKind, ...]:
        return self._subtables

    @property
    def num_instructions(self) -> int:
        return len(self._kinds)

    @property
    def num_subtables(self) -> int:
        return len(self._subtables)

    @property
    def num_memories(self) -> int:
        return self.C * len(self._subtables)

    @property
    def M(self) -> int:
        return 1 << self.log_M

    def _check(self, kind: InstructionKind) -> None:
        if kind not in self._instruction_index:
            raise UnknownInstruction(
                f"instruction {kind!r} is not declared; declared kinds: "
                f"{[k.name for k in self._kinds]}")

    def instruction_index(self, kind: InstructionKind) -> int:
        self._check(kind)
        return self._instruction_index[kind]

    # --- Decomposition table ---

    def subtables(self, kind: InstructionKind) -> Tuple[SubtableKind, ...]:
        """Subtables read by kind, in term order."""
        self._check(kind)
        return DECOMPOSITIONS[kind].subtables

    def collate(self, kind: InstructionKind, terms: Sequence):
        """Apply g_kind to its lookup terms (scalars or arrays)."""
        self._check(kind)
        expected = self.C * len(DECOMPOSITIONS[kind].subtables)
        if len(terms) != expected:
            raise ValueError(f"{kind.name} collation takes {expected} terms, got {len(terms)}")
        return DECOMPOSITIONS[kind].collate(terms, self.C, self.log_M)

    def g_degree(self, kind: InstructionKind) -> int:
        self._check(kind)
        return DECOMPOSITIONS[kind].degree(self.C)

    def sumcheck_degree(self) -> int:
        """Degree of the primary sumcheck: eq and flag add one each to deg g."""
        return max(self.g_degree(k) for k in self._kinds) + 2

    # --- Memory layout ---

    def memory_index(self, subtable: SubtableKind, dim: int) -> int:
        return self.C * self._subtable_index[subtable] + dim

    def memory_to_subtable(self, memory: int) -> SubtableKind:
        return self._subtables[memory // self.C]

    def memory_to_dim(self, memory: int) -> int:
        return memory % self.C

    def memory_indices(self, kind: InstructionKind) -> List[int]:
        """Memories holding the terms of kind, in term order."""
        return [self.memory_index(s, dim) for s in self.subtables(kind) for dim in range(self.C)]

    def instructions_using(self, subtable: SubtableKind) -> List[InstructionKind]:
        return [k for k in self._kinds if subtable in DECOMPOSITIONS[k].subtables]

    # --- Operands ---

    def check_operands(self, kind: InstructionKind, x: int, y: int) -> None:
        self._check(kind)
        bound = 1 << self.operand_bits
        for name, value in (("x", x), ("y", y)):
            if not 0 <= value < bound:
                raise MalformedTrace(
                    f"{kind.name} operand {name}={value} does not fit in {self.operand_bits} bits")

    def lookup_indices(self, kind: InstructionKind, x: int, y: int) -> List[int]:
        """Subtable index (x_chunk << b) | y_chunk for every chunk, most significant first."""
        self.check_operands(kind, x, y)
        b = self.chunk_bits
        mask = (1 << b) - 1
        indices = []
        for i in range(self.C):
            shift = b * (self.C - 1 - i)
            indices.append((((x >> shift) & mask) << b) | ((y >> shift) & mask))
        return indices

    def lookup_entry(self, kind: InstructionKind, x: int, y: int) -> int:
        """Result of the instruction computed directly from its operands."""
        self.check_operands(kind, x, y)
        return DECOMPOSITIONS[kind].evaluate(x, y, self.operand_bits)
