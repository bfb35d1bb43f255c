"""
Effect variants.

Effects are plain data: each carries everything its sink needs to apply it,
so a batch can be logged or replayed.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional


@dataclass(frozen=True)
class StatDelta:
    """Replace a piece of state with a new snapshot.

    target is one of "player", "creature", "chunk", "position". For
    "creature", snapshot None removes the occupant of chunk_key.
    changes lists (field, delta) pairs for logs and telemetry.
    """
    kind: ClassVar[str] = "stat_delta"

    target: str
    snapshot: Any
    chunk_key: Optional[str] = None
    changes: tuple = ()


@dataclass(frozen=True)
class NarrativeLine:
    kind: ClassVar[str] = "narrative"

    text: str
    entry_kind: str = "action"
    entry_id: Optional[str] = None
    animation: Optional[dict] = None


@dataclass(frozen=True)
class AudioCue:
    kind: ClassVar[str] = "audio"

    cue: str
    volume: float = 1.0


@dataclass(frozen=True)
class TelemetryEvent:
    kind: ClassVar[str] = "telemetry"

    name: str
    data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class QuestEvaluationTrigger:
    """Marks a batch whose results may complete quests or achievements."""
    kind: ClassVar[str] = "quest_trigger"

    reason: str = "action"


EFFECT_ORDER = ("stat_delta", "narrative", "audio", "telemetry", "quest_trigger")
