"""Proof data structures and JSON serialization.

Field elements are stored as ints and written to JSON as decimal strings.
Commitments and opening proofs are opaque to this module: the commitment
scheme converts them to and from JSON.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict

from protocol.grand_product import BatchedGrandProductProof, LayerProof
from protocol.instruction_lookups import InstructionLookupsProof
from protocol.memory_checking import MemoryCheckingProof, MultisetHashes
from protocol.openings import PolynomialOpening
from protocol.pcs import PolynomialCommitmentScheme
from protocol.range_check import RangeCheckProof
from protocol.read_write_memory import ReadWriteMemoryProof
from protocol.sumcheck import SumcheckProof


@dataclass
class ZkVmProof:
    """Complete proof for one execution trace.

    Attributes:
        trace_length: Padded number of steps m (public)
        lookups: Instruction lookup argument
        memory: Read-write memory argument
    """
    trace_length: int = 0
    lookups: InstructionLookupsProof = field(default_factory=InstructionLookupsProof)
    memory: ReadWriteMemoryProof = field(default_factory=ReadWriteMemoryProof)


# --- To JSON ---

def _ints_to_json(values) -> list:
    return [str(v) for v in values]


def _sumcheck_to_json(proof: SumcheckProof) -> list:
    return [_ints_to_json(p) for p in proof.round_polys]


def _grand_product_to_json(proof: BatchedGrandProductProof) -> list:
    return [
        {
            "sumcheck": _sumcheck_to_json(layer.sumcheck),
            "left": _ints_to_json(layer.left_claims),
            "right": _ints_to_json(layer.right_claims),
        }
        for layer in proof.layers
    ]


def _openings_to_json(openings: Dict[str, PolynomialOpening], pcs: PolynomialCommitmentScheme) -> dict:
    return {
        name: {"value": str(o.value), "proof": pcs.opening_proof_to_json(o.proof)}
        for name, o in openings.items()
    }


def _commitments_to_json(commitments: Dict[str, Any], pcs: PolynomialCommitmentScheme) -> dict:
    return {name: pcs.commitment_to_json(c) for name, c in commitments.items()}


def _memory_checking_to_json(proof: MemoryCheckingProof, pcs: PolynomialCommitmentScheme) -> dict:
    hashes = proof.multiset_hashes
    return {
        "hashes": {
            "read": _ints_to_json(hashes.read_hashes),
            "write": _ints_to_json(hashes.write_hashes),
            "init": _ints_to_json(hashes.init_hashes),
            "final": _ints_to_json(hashes.final_hashes),
        },
        "read_write_grand_product": _grand_product_to_json(proof.read_write_grand_product),
        "init_final_grand_product": _grand_product_to_json(proof.init_final_grand_product),
        "leaf_sumcheck": _sumcheck_to_json(proof.leaf_sumcheck),
        "read_write_openings": _openings_to_json(proof.read_write_openings, pcs),
        "init_final_openings": _openings_to_json(proof.init_final_openings, pcs),
    }


def proof_to_json(proof: ZkVmProof, pcs: PolynomialCommitmentScheme) -> Dict[str, Any]:
    """Convert a proof to a JSON-serializable dictionary."""
    lookups = proof.lookups
    memory = proof.memory
    return {
        "trace_length": proof.trace_length,
        "lookups": {
            "commitments": _commitments_to_json(lookups.commitments, pcs),
            "outputs_opening": _openings_to_json(lookups.outputs_opening, pcs),
            "primary_sumcheck": _sumcheck_to_json(lookups.primary_sumcheck),
            "primary_openings": _openings_to_json(lookups.primary_openings, pcs),
            "memory_checking": _memory_checking_to_json(lookups.memory_checking, pcs),
        },
        "memory": {
            "commitments": _commitments_to_json(memory.commitments, pcs),
            "memory_checking": _memory_checking_to_json(memory.memory_checking, pcs),
            "range_check": _memory_checking_to_json(memory.range_check.memory_checking, pcs),
            "timestamp_openings": _openings_to_json(memory.timestamp_openings, pcs),
        },
    }


# --- From JSON ---

def _ints_from_json(values) -> list:
    return [int(v) for v in values]


def _sumcheck_from_json(data: list) -> SumcheckProof:
    return SumcheckProof(round_polys=[_ints_from_json(p) for p in data])


def _grand_product_from_json(data: list) -> BatchedGrandProductProof:
    return BatchedGrandProductProof(layers=[
        LayerProof(
            sumcheck=_sumcheck_from_json(layer["sumcheck"]),
            left_claims=_ints_from_json(layer["left"]),
            right_claims=_ints_from_json(layer["right"]),
        )
        for layer in data
    ])


def _openings_from_json(data: dict, pcs: PolynomialCommitmentScheme) -> Dict[str, PolynomialOpening]:
    return {
        name: PolynomialOpening(value=int(o["value"]), proof=pcs.opening_proof_from_json(o["proof"]))
        for name, o in data.items()
    }


def _commitments_from_json(data: dict, pcs: PolynomialCommitmentScheme) -> Dict[str, Any]:
    return {name: pcs.commitment_from_json(c) for name, c in data.items()}


def _memory_checking_from_json(data: dict, pcs: PolynomialCommitmentScheme) -> MemoryCheckingProof:
    hashes = data["hashes"]
    return MemoryCheckingProof(
        multiset_hashes=MultisetHashes(
            read_hashes=_ints_from_json(hashes["read"]),
            write_hashes=_ints_from_json(hashes["write"]),
            init_hashes=_ints_from_json(hashes["init"]),
            final_hashes=_ints_from_json(hashes["final"]),
        ),
        read_write_grand_product=_grand_product_from_json(data["read_write_grand_product"]),
        init_final_grand_product=_grand_product_from_json(data["init_final_grand_product"]),
        leaf_sumcheck=_sumcheck_from_json(data["leaf_sumcheck"]),
        read_write_openings=_openings_from_json(data["read_write_openings"], pcs),
        init_final_openings=_openings_from_json(data["init_final_openings"], pcs),
    )


def proof_from_json(data: Dict[str, Any], pcs: PolynomialCommitmentScheme) -> ZkVmProof:
    """Rebuild a proof from the output of proof_to_json."""
    lookups = data["lookups"]
    memory = data["memory"]
    return ZkVmProof(
        trace_length=int(data["trace_length"]),
        lookups=InstructionLookupsProof(
            commitments=_commitments_from_json(lookups["commitments"], pcs),
            outputs_opening=_openings_from_json(lookups["outputs_opening"], pcs),
            primary_sumcheck=_sumcheck_from_json(lookups["primary_sumcheck"]),
            primary_openings=_openings_from_json(lookups["primary_openings"], pcs),
            memory_checking=_memory_checking_from_json(lookups["memory_checking"], pcs),
        ),
        memory=ReadWriteMemoryProof(
            commitments=_commitments_from_json(memory["commitments"], pcs),
            memory_checking=_memory_checking_from_json(memory["memory_checking"], pcs),
            range_check=RangeCheckProof(
                memory_checking=_memory_checking_from_json(memory["range_check"], pcs)),
            timestamp_openings=_openings_from_json(memory["timestamp_openings"], pcs),
        ),
    )


def save_proof(proof: ZkVmProof, pcs: PolynomialCommitmentScheme, path: str) -> None:
    with open(path, "w") as f:
        json.dump(proof_to_json(proof, pcs), f)


def load_proof(path: str, pcs: PolynomialCommitmentScheme) -> ZkVmProof:
    with open(path) as f:
        return proof_from_json(json.load(f), pcs)
