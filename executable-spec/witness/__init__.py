"""Witness generation.

Turns an execution trace into the dense tables the prover commits to:
instruction flags, lookup chunks and counters, RAM columns and range-check
digits. Used by the prover only.
"""

from .flags import InstructionFlags
from .trace import ExecutionTrace, MemoryAccess, TraceStep

__all__ = [
    'ExecutionTrace',
    'TraceStep',
    'MemoryAccess',
    'InstructionFlags',
]
