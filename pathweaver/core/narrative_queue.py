"""
Narrative queue and bounded log.

Entries are addressed by id so a placeholder line can later be replaced by
refined text without a separate update path. The queue batches writes; the
advancer flushes it once per turn.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Optional

logger = logging.getLogger(__name__)

ENTRY_KINDS = ("narrative", "action", "system", "monologue")


@dataclass(frozen=True)
class NarrativeEntry:
    id: str
    text: str
    kind: str = "narrative"
    animation: Optional[dict] = None
    is_new: bool = True


class NarrativeLog:
    """Trailing window of entries, oldest evicted first."""

    def __init__(self, max_entries: int = 200):
        self.max_entries = max_entries
        self.entries: list[NarrativeEntry] = []

    def merge(self, pending: list) -> None:
        index = {entry.id: i for i, entry in enumerate(self.entries)}
        for entry in pending:
            if entry.id in index:
                existing = self.entries[index[entry.id]]
                self.entries[index[entry.id]] = replace(
                    existing,
                    text=entry.text,
                    kind=entry.kind,
                    animation=entry.animation or existing.animation,
                    is_new=False,
                )
            else:
                index[entry.id] = len(self.entries)
                self.entries.append(entry)

        self._dedupe()
        if len(self.entries) > self.max_entries:
            self.entries = self.entries[-self.max_entries:]

    def _dedupe(self) -> None:
        # Last write wins, first-seen position kept
        positions: dict[str, int] = {}
        result: list[NarrativeEntry] = []
        for entry in self.entries:
            if entry.id in positions:
                result[positions[entry.id]] = entry
            else:
                positions[entry.id] = len(result)
                result.append(entry)
        self.entries = result

    def get(self, entry_id: str) -> Optional[NarrativeEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def tail(self, n: int = 5) -> list[str]:
        return [entry.text for entry in self.entries[-n:]] if n > 0 else []

    def texts(self) -> list[str]:
        return [entry.text for entry in self.entries]

    def clear(self) -> None:
        self.entries = []

    def __len__(self) -> int:
        return len(self.entries)


class NarrativeQueue:
    def __init__(self, log: Optional[NarrativeLog] = None):
        self.log = log if log is not None else NarrativeLog()
        self._pending: list[NarrativeEntry] = []

    def enqueue(self, text: str, kind: str = "narrative", entry_id: Optional[str] = None,
                animation: Optional[dict] = None) -> str:
        """Append, or replace a pending entry with the same id. Returns the id."""
        if kind not in ENTRY_KINDS:
            logger.warning("Unknown narrative kind %r, using 'narrative'", kind)
            kind = "narrative"
        entry_id = entry_id or uuid.uuid4().hex
        entry = NarrativeEntry(id=entry_id, text=text, kind=kind, animation=animation)

        for i, existing in enumerate(self._pending):
            if existing.id == entry_id:
                self._pending[i] = entry
                return entry_id
        self._pending.append(entry)
        return entry_id

    @property
    def pending(self) -> list[NarrativeEntry]:
        return list(self._pending)

    def flush(self) -> int:
        """Merge pending entries into the log. Returns how many were merged."""
        if not self._pending:
            return 0
        pending, self._pending = self._pending, []
        self.log.merge(pending)
        return len(pending)

    def clear(self) -> None:
        self._pending = []
