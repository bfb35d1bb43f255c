"""
Tests for the deduplication guard.
"""

from pathweaver.core.dedup import DedupToken, DeduplicationGuard


def token(kind="attack", target="wolf-1", turn=0):
    return DedupToken(kind, "player", target, turn)


class TestClaim:
    """Tests for claim()."""

    def test_first_claim_wins(self, guard):
        assert guard.claim(token())
        assert not guard.claim(token())
        assert len(guard) == 1

    def test_different_targets_independent(self, guard):
        assert guard.claim(token(target="wolf-1"))
        assert guard.claim(token(target="wolf-2"))

    def test_different_kinds_independent(self, guard):
        assert guard.claim(token(kind="attack"))
        assert guard.claim(token(kind="harvest"))

    def test_stale_turn_rejected(self, guard):
        """A token from an earlier turn is a no-op."""
        guard.begin_turn(1)
        assert not guard.claim(token(turn=0))
        assert len(guard) == 0

    def test_future_turn_rejected(self, guard):
        assert not guard.claim(token(turn=5))

    def test_sequence_numbers(self, guard):
        first, second = token(target="a"), token(target="b")
        guard.claim(first)
        guard.claim(second)
        assert guard.sequence_of(first) == 1
        assert guard.sequence_of(second) == 2
        assert guard.sequence_of(token(target="c")) is None


class TestTurns:
    """Tests for turn expiry."""

    def test_begin_turn_expires(self, guard):
        guard.claim(token())
        guard.begin_turn(1)
        assert not guard.is_claimed(token())
        assert guard.claim(token(turn=1))

    def test_reset(self, guard):
        guard.claim(token())
        guard.begin_turn(3)
        guard.reset()
        assert guard.current_turn == 0
        assert len(guard) == 0

    def test_overflow_clears(self, caplog):
        guard = DeduplicationGuard(max_entries=2)
        guard.claim(token(target="a"))
        guard.claim(token(target="b"))
        assert guard.claim(token(target="c"))
        assert len(guard) == 1
        assert "Dedup buffer full" in caplog.text
