"""VM configuration shared by prover and verifier.

A configuration fixes the instruction set, the lookup geometry and the RAM
layout. It can be built directly or loaded from JSON:

    {
        "instructions": ["EQ", "LT"],
        "C": 1,
        "log_M": 8,
        "memory_size": 16,
        "initial_memory": [0, 0, 5],
        "range_digit_bits": 4,
        "transcript_label": "lookup-memcheck"
    }
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from instructions.kinds import InstructionKind
from instructions.registry import InstructionRegistry
from primitives.field import GOLDILOCKS_PRIME
from primitives.polynomial import is_power_of_two
from protocol.errors import UnknownInstruction

DEFAULT_TRANSCRIPT_LABEL = "lookup-memcheck"


@dataclass(frozen=True)
class VMConfig:
    """Immutable VM configuration.

    Attributes:
        instructions: Declared instruction kinds, in flag order
        C: Operand chunks per lookup
        log_M: log2 of the subtable size (even)
        memory_size: RAM cells (power of two)
        initial_memory: Initial RAM contents; missing cells are zero
        range_digit_bits: log2 of the digit base used by timestamp range checks
        transcript_label: Fiat-Shamir domain separator
    """
    instructions: Tuple[InstructionKind, ...]
    C: int = 1
    log_M: int = 8
    memory_size: int = 16
    initial_memory: Tuple[int, ...] = ()
    range_digit_bits: int = 4
    transcript_label: str = DEFAULT_TRANSCRIPT_LABEL

    def __post_init__(self):
        object.__setattr__(self, "instructions", tuple(self.instructions))
        if not is_power_of_two(self.memory_size):
            raise ValueError(f"memory_size must be a power of two, got {self.memory_size}")
        if len(self.initial_memory) > self.memory_size:
            raise ValueError(
                f"initial_memory has {len(self.initial_memory)} cells, memory_size is {self.memory_size}")
        if any(not 0 <= v < GOLDILOCKS_PRIME for v in self.initial_memory):
            raise ValueError("initial_memory values must be field elements")
        if self.range_digit_bits < 1:
            raise ValueError(f"range_digit_bits must be >= 1, got {self.range_digit_bits}")
        padded = tuple(self.initial_memory) + (0,) * (self.memory_size - len(self.initial_memory))
        object.__setattr__(self, "initial_memory", padded)
        self.registry()

    def registry(self) -> InstructionRegistry:
        return InstructionRegistry(self.instructions, self.C, self.log_M)

    # --- Loading ---

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VMConfig":
        kinds = []
        for name in data["instructions"]:
            try:
                kinds.append(InstructionKind[name.upper()])
            except KeyError:
                raise UnknownInstruction(f"unknown instruction kind '{name}'") from None
        return cls(
            instructions=tuple(kinds),
            C=int(data.get("C", 1)),
            log_M=int(data.get("log_M", 8)),
            memory_size=int(data.get("memory_size", 16)),
            initial_memory=tuple(int(v) for v in data.get("initial_memory", ())),
            range_digit_bits=int(data.get("range_digit_bits", 4)),
            transcript_label=data.get("transcript_label", DEFAULT_TRANSCRIPT_LABEL),
        )

    @classmethod
    def from_json(cls, path: str) -> "VMConfig":
        with open(path) as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instructions": [k.name for k in self.instructions],
            "C": self.C,
            "log_M": self.log_M,
            "memory_size": self.memory_size,
            "initial_memory": list(self.initial_memory),
            "range_digit_bits": self.range_digit_bits,
            "transcript_label": self.transcript_label,
        }
