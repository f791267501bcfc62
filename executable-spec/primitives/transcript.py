"""
Fiat-Shamir transcript over a blake2b hash chain.

Every absorb updates state := H(state || round_tag || payload); every
challenge squeezes rand := H(state || round_tag) and sets state := rand.
The round tag is a counter, so two absorbs of the same bytes in a different
order give different states.

A transcript belongs to one proof session. Prover and verifier each build
their own from the same label and replay the same absorbs in the same order.
"""
import hashlib
from typing import List, Sequence, Union

from primitives.field import FF, FF_BYTES, GOLDILOCKS_PRIME, ff_to_bytes

# Digest size in bytes. 256 bits reduced mod a 64-bit prime leaves a
# negligible bias.
DIGEST_SIZE = 32

LABEL_SIZE = 32

Challenge = FF


class Transcript:
    """
    Fiat-Shamir transcript.

    Attributes:
        state: Current 32-byte chaining value
        n_rounds: Number of absorb/squeeze operations so far
    """

    def __init__(self, label: Union[str, bytes] = b"lookup-memcheck"):
        label_b = label.encode() if isinstance(label, str) else bytes(label)
        if len(label_b) > LABEL_SIZE:
            raise ValueError(f"label must be <= {LABEL_SIZE} bytes, got {len(label_b)}")
        padded = label_b + b"\x00" * (LABEL_SIZE - len(label_b))
        self.state = hashlib.blake2b(padded, digest_size=DIGEST_SIZE).digest()
        self.n_rounds = 0

    def _round_tag(self) -> bytes:
        return int(self.n_rounds).to_bytes(8, "big")

    def absorb(self, payload: bytes) -> None:
        """Absorb raw bytes."""
        h = hashlib.blake2b(digest_size=DIGEST_SIZE)
        h.update(self.state)
        h.update(self._round_tag())
        h.update(bytes(payload))
        self.state = h.digest()
        self.n_rounds += 1

    def absorb_label(self, label: str) -> None:
        """Absorb a domain-separation label."""
        self.absorb(b"label:" + label.encode())

    def put(self, values: Sequence) -> None:
        """Absorb field elements (FF scalars, an FF array or ints).

        The element count is prefixed so that [a, b] and [a] + [b] differ.
        """
        values = list(values)
        payload = len(values).to_bytes(8, "little")
        payload += b"".join(ff_to_bytes(int(v) % GOLDILOCKS_PRIME) for v in values)
        self.absorb(payload)

    def put_int(self, value: int) -> None:
        self.absorb(int(value).to_bytes(FF_BYTES, "little"))

    def challenge(self) -> Challenge:
        """Squeeze one field element."""
        h = hashlib.blake2b(digest_size=DIGEST_SIZE)
        h.update(self.state)
        h.update(self._round_tag())
        rand = h.digest()
        self.state = rand
        self.n_rounds += 1
        return FF(int.from_bytes(rand, "little") % GOLDILOCKS_PRIME)

    def challenges(self, n: int) -> List[Challenge]:
        """Squeeze n field elements."""
        return [self.challenge() for _ in range(n)]
