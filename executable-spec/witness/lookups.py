"""Witness polynomials of the instruction lookup argument.

For a padded trace of m steps and a registry with C chunks and memories
i = C * subtable + dim, the prover commits to:

    dim_d          chunk-d subtable index at each step                (C, size m)
    E_i            value read from memory i at each step, 0 if unused (size m)
    read_cts_i     access count of the address before this read       (size m)
    final_cts_i    access count of every address after the trace      (size M)
    flag_<kind>    instruction flags                                  (size m)
    outputs        instruction result per step                        (size m)
"""

from typing import Dict, List

import numpy as np

from instructions.registry import InstructionRegistry
from instructions.subtables import materialize
from primitives.field import FF, ff_array
from witness.flags import InstructionFlags
from witness.trace import ExecutionTrace


def dim_name(dim: int) -> str:
    return f"lookups.dim.{dim}"


def e_name(memory: int) -> str:
    return f"lookups.E.{memory}"


def read_cts_name(memory: int) -> str:
    return f"lookups.read_cts.{memory}"


def final_cts_name(memory: int) -> str:
    return f"lookups.final_cts.{memory}"


def flag_name(kind) -> str:
    return f"lookups.flag.{kind.name}"


OUTPUTS_NAME = "lookups.outputs"


class InstructionPolynomials:
    """Dense witness tables for the instruction lookups of one trace."""

    def __init__(self, trace: ExecutionTrace, registry: InstructionRegistry):
        trace.validate(registry)
        self.registry = registry
        self.num_steps = len(trace)
        kinds = [step.kind for step in trace]
        self.flags = InstructionFlags.from_kinds(kinds, registry)

        C, M = registry.C, registry.M
        chunk_indices = np.array(
            [registry.lookup_indices(step.kind, step.x, step.y) for step in trace],
            dtype=np.int64).reshape(self.num_steps, C)

        num_memories = registry.num_memories
        self.dims: List[List[int]] = [chunk_indices[:, d].tolist() for d in range(C)]
        self.e_values: List[List[int]] = [[0] * self.num_steps for _ in range(num_memories)]
        self.read_cts: List[List[int]] = [[0] * self.num_steps for _ in range(num_memories)]
        self.final_cts: List[List[int]] = [[0] * M for _ in range(num_memories)]

        tables = {s: materialize(s, registry.log_M) for s in registry.subtable_kinds}
        for memory in range(num_memories):
            subtable = registry.memory_to_subtable(memory)
            dim = registry.memory_to_dim(memory)
            table = tables[subtable]
            active = self.flags.subtable_flag(subtable)
            counts = self.final_cts[memory]
            for step in range(self.num_steps):
                if not active[step]:
                    continue
                address = self.dims[dim][step]
                self.read_cts[memory][step] = counts[address]
                counts[address] += 1
                self.e_values[memory][step] = table[address]

        self.outputs: List[int] = [
            registry.lookup_entry(step.kind, step.x, step.y) for step in trace]

    def polynomials(self) -> Dict[str, FF]:
        """Every committed polynomial, by name."""
        polys: Dict[str, FF] = {}
        for d, values in enumerate(self.dims):
            polys[dim_name(d)] = ff_array(values)
        for i in range(self.registry.num_memories):
            polys[e_name(i)] = ff_array(self.e_values[i])
            polys[read_cts_name(i)] = ff_array(self.read_cts[i])
            polys[final_cts_name(i)] = ff_array(self.final_cts[i])
        for kind, poly in zip(self.registry.kinds, self.flags.instruction_flag_polys()):
            polys[flag_name(kind)] = poly
        polys[OUTPUTS_NAME] = ff_array(self.outputs)
        return polys
