"""
Deduplication guard.

The UI can fire the same logical action twice (double click, re-render
double-fire). Every turn-advancing action claims a token before its effects
run; only the first claim within the current turn succeeds.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DedupToken:
    kind: str
    actor_id: str
    target_id: str
    turn: int


class DeduplicationGuard:
    """Turn-scoped claim buffer.

    Tokens move Unseen -> Claimed(turn) -> Expired. The buffer is cleared
    wholesale by begin_turn(); there is no wall-clock expiry.
    """

    def __init__(self, current_turn: int = 0, max_entries: int = 100):
        self.current_turn = current_turn
        self.max_entries = max_entries
        self._claims: dict[DedupToken, int] = {}
        self._sequence = 0

    def claim(self, token: DedupToken) -> bool:
        """Claim a token. False means: treat the action as a no-op."""
        if token.turn != self.current_turn:
            logger.debug("Rejecting token from turn %d (current %d): %s",
                         token.turn, self.current_turn, token)
            return False
        if token in self._claims:
            logger.debug("Duplicate action suppressed: %s", token)
            return False

        if len(self._claims) >= self.max_entries:
            logger.warning("Dedup buffer full (%d entries), clearing", self.max_entries)
            self._claims.clear()

        self._sequence += 1
        self._claims[token] = self._sequence
        return True

    def is_claimed(self, token: DedupToken) -> bool:
        return token in self._claims

    def sequence_of(self, token: DedupToken) -> Optional[int]:
        return self._claims.get(token)

    def begin_turn(self, turn: int) -> None:
        """Expire every claim and start accepting tokens for turn."""
        self._claims.clear()
        self.current_turn = turn

    def reset(self) -> None:
        self._claims.clear()
        self._sequence = 0
        self.current_turn = 0

    def __len__(self) -> int:
        return len(self._claims)
