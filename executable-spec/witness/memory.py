"""Witness polynomials of the read-write memory (RAM).

The trace is replayed against a memory of K cells. Each step makes at most
one access. A step s that touches address a reads the tuple
(a, v_old, t_read) stored there and writes back (a, v_new, s + 1); a read is
a write of the same value. Steps without an access have flag 0 and all-zero
columns.

Per-step columns (size m): address, read_value, write_value, read_ts, flag.
Per-cell columns (size K): final_value, final_ts.
"""

from collections import Counter
from typing import Dict, List, Sequence

from primitives.field import FF, GOLDILOCKS_PRIME, ff_array
from protocol.errors import MalformedTrace
from witness.trace import ExecutionTrace

ADDRESS = "ram.address"
READ_VALUE = "ram.read_value"
WRITE_VALUE = "ram.write_value"
READ_TS = "ram.read_ts"
FLAG = "ram.flag"
FINAL_VALUE = "ram.final_value"
FINAL_TS = "ram.final_ts"

STEP_COLUMNS = [ADDRESS, READ_VALUE, WRITE_VALUE, READ_TS, FLAG]
CELL_COLUMNS = [FINAL_VALUE, FINAL_TS]


class ReadWriteMemoryPolynomials:
    """Replays the memory accesses of a padded trace.

    Raises:
        MalformedTrace: Out-of-range address or value, or a read whose value
            disagrees with the replayed memory.
    """

    def __init__(self, trace: ExecutionTrace, memory_size: int, initial_memory: Sequence[int]):
        if len(initial_memory) != memory_size:
            raise ValueError(f"initial memory has {len(initial_memory)} cells, expected {memory_size}")
        self.num_steps = len(trace)
        self.memory_size = memory_size
        self.initial_memory = [int(v) for v in initial_memory]

        values = list(self.initial_memory)
        timestamps = [0] * memory_size
        self.columns: Dict[str, List[int]] = {name: [0] * self.num_steps for name in STEP_COLUMNS}

        for step in trace:
            access = step.memory
            if access is None:
                continue
            s = step.timestamp
            if not 0 <= access.address < memory_size:
                raise MalformedTrace(
                    f"step {s}: address {access.address} outside memory of {memory_size} cells")
            if not 0 <= access.value < GOLDILOCKS_PRIME:
                raise MalformedTrace(f"step {s}: value {access.value} is not a field element")

            old_value = values[access.address]
            if not access.is_write and access.value != old_value:
                raise MalformedTrace(
                    f"step {s}: read of address {access.address} returned {access.value}, "
                    f"memory holds {old_value}")
            new_value = access.value if access.is_write else old_value
            read_ts = timestamps[access.address]
            if access.read_timestamp is not None:
                read_ts = access.read_timestamp

            self.columns[ADDRESS][s] = access.address
            self.columns[READ_VALUE][s] = old_value
            self.columns[WRITE_VALUE][s] = new_value
            self.columns[READ_TS][s] = read_ts
            self.columns[FLAG][s] = 1

            values[access.address] = new_value
            timestamps[access.address] = s + 1

        self.columns[FINAL_VALUE] = values
        self.columns[FINAL_TS] = timestamps

    def timestamp_gaps(self) -> List[int]:
        """global_ts - read_ts per step (the step index minus the read timestamp)."""
        return [s - t for s, t in enumerate(self.columns[READ_TS])]

    def check_consistency(self) -> None:
        """Check Init + Write == Read + Final as multisets of integer tuples.

        Raises:
            MalformedTrace: No valid memory-checking proof exists, typically
                because a claimed read timestamp is not the last write.
        """
        c = self.columns
        reads, writes = Counter(), Counter()
        for s in range(self.num_steps):
            if c[FLAG][s]:
                reads[(c[ADDRESS][s], c[READ_VALUE][s], c[READ_TS][s])] += 1
                writes[(c[ADDRESS][s], c[WRITE_VALUE][s], s + 1)] += 1
        init = Counter((a, v, 0) for a, v in enumerate(self.initial_memory))
        final = Counter(zip(range(self.memory_size), c[FINAL_VALUE], c[FINAL_TS]))
        if init + writes != reads + final:
            missing = sorted((reads + final) - (init + writes))
            raise MalformedTrace(
                f"memory accesses are inconsistent; unmatched read tuples {missing}")

    def polynomials(self) -> Dict[str, FF]:
        return {name: ff_array(column) for name, column in self.columns.items()}
