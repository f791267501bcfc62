"""Instruction set: subtables, instruction decompositions and the VM registry.

Each instruction kind is a closed enum member with a static Decomposition
(subtables read plus collation function). The registry narrows the set to
the kinds a VM configuration declares.
"""

from .kinds import DECOMPOSITIONS, Decomposition, InstructionKind
from .registry import InstructionRegistry
from .subtables import SubtableKind, evaluate_mle, materialize

__all__ = [
    "InstructionKind",
    "Decomposition",
    "DECOMPOSITIONS",
    "InstructionRegistry",
    "SubtableKind",
    "materialize",
    "evaluate_mle",
]
