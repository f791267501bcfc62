"""Tests for the Fiat-Shamir transcript."""

import pytest

from primitives.field import GOLDILOCKS_PRIME
from primitives.transcript import Transcript


class TestTranscript:
    """Challenges are a deterministic function of the label and absorbed data."""

    def test_same_inputs_same_challenges(self):
        t1, t2 = Transcript("session"), Transcript("session")
        for t in (t1, t2):
            t.put([1, 2, 3])
            t.absorb(b"commitment")
        assert [int(c) for c in t1.challenges(4)] == [int(c) for c in t2.challenges(4)]

    def test_label_separates_sessions(self):
        assert int(Transcript("a").challenge()) != int(Transcript("b").challenge())

    def test_absorb_order_matters(self):
        t1, t2 = Transcript(), Transcript()
        t1.put([1])
        t1.put([2])
        t2.put([2])
        t2.put([1])
        assert int(t1.challenge()) != int(t2.challenge())

    def test_put_is_length_prefixed(self):
        t1, t2 = Transcript(), Transcript()
        t1.put([1, 2])
        t2.put([1])
        t2.put([2])
        assert t1.state != t2.state
        assert int(t1.challenge()) != int(t2.challenge())

    def test_successive_challenges_differ(self):
        t = Transcript()
        values = [int(c) for c in t.challenges(8)]
        assert len(set(values)) == 8
        assert all(0 <= v < GOLDILOCKS_PRIME for v in values)

    def test_label_too_long(self):
        with pytest.raises(ValueError):
            Transcript("x" * 33)
