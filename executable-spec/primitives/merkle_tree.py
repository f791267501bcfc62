"""Binary Merkle tree over field-element leaves, hashed with blake2b."""

import hashlib
from typing import List, Sequence

from primitives.field import ff_to_bytes
from primitives.polynomial import is_power_of_two

# --- Constants ---

HASH_SIZE = 32

_LEAF_TAG = b"\x00"
_NODE_TAG = b"\x01"

# --- Type Aliases ---

MerkleRoot = bytes


# --- Hashing Helpers ---

def hash_leaf(value: int) -> bytes:
    return hashlib.blake2b(_LEAF_TAG + ff_to_bytes(value), digest_size=HASH_SIZE).digest()


def hash_node(left: bytes, right: bytes) -> bytes:
    return hashlib.blake2b(_NODE_TAG + left + right, digest_size=HASH_SIZE).digest()


# --- Merkle Tree ---

class MerkleTree:
    """Binary Merkle tree with one field element per leaf.

    Nodes are stored level by level in a flat list: the leaf hashes first,
    then each parent level, ending with the root.
    """

    def __init__(self):
        self.height = 0
        self.nodes: List[bytes] = []

    # --- Core Operations ---

    def merkelize(self, source: Sequence) -> None:
        """Build the tree from leaf values.

        Args:
            source: Leaf values (FF array or ints); length must be a power of two
        """
        height = len(source)
        if not is_power_of_two(height):
            raise ValueError(f"Merkle tree height must be a power of two, got {height}")
        self.height = height

        level = [hash_leaf(int(v)) for v in source]
        self.nodes = list(level)
        while len(level) > 1:
            level = [hash_node(level[2 * i], level[2 * i + 1]) for i in range(len(level) // 2)]
            self.nodes.extend(level)

    def get_root(self) -> MerkleRoot:
        """Return the Merkle root commitment."""
        if not self.nodes:
            raise ValueError("Merkle tree is empty; call merkelize() first")
        return self.nodes[-1]


def merkle_root(source: Sequence) -> MerkleRoot:
    """Root of the tree over source."""
    tree = MerkleTree()
    tree.merkelize(source)
    return tree.get_root()
