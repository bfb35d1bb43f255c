"""
Player statistics, fed by telemetry effects.

Quests and achievements are evaluated against these counters after each
effect batch.
"""

import logging
from typing import Optional

from .effects import TelemetryEvent

logger = logging.getLogger(__name__)


# event name -> (counter, key field, amount field)
TRACKED_EVENTS = {
    "CREATURE_DEFEATED": ("kills", "creature_type", None),
    "DAMAGE_DEALT": ("damage_dealt", None, "amount"),
    "ITEM_COLLECTED": ("items_collected", "name", "quantity"),
    "ITEM_USED": ("items_used", "name", None),
    "SKILL_CAST": ("skills_cast", "skill", None),
    "HARVESTED": ("harvests", "target", None),
    "CRAFTED": ("crafted", "item", "quantity"),
    "MOVED": ("moves", None, None),
    "STRUCTURE_BUILT": ("structures_built", "name", None),
    "RESTED": ("rests", None, None),
}


class Statistics:
    """Counters keyed by (counter, optional key).

    Keyed records also bump the counter's total, so get("kills") counts every
    kill and get("kills", "wolf") counts wolves.
    """

    def __init__(self):
        self._counters: dict[tuple, int] = {}

    def record(self, counter: str, key: Optional[str] = None, amount: int = 1) -> None:
        self._counters[(counter, None)] = self._counters.get((counter, None), 0) + amount
        if key is not None:
            self._counters[(counter, key)] = self._counters.get((counter, key), 0) + amount

    def get(self, counter: str, key: Optional[str] = None) -> int:
        return self._counters.get((counter, key), 0)

    def apply(self, event: TelemetryEvent) -> None:
        """Telemetry sink."""
        tracked = TRACKED_EVENTS.get(event.name)
        if tracked is None:
            return
        counter, key_field, amount_field = tracked
        key = event.data.get(key_field) if key_field else None
        amount = event.data.get(amount_field, 1) if amount_field else 1
        self.record(counter, key, amount)

    def to_dict(self) -> dict:
        result = {}
        for (counter, key), value in self._counters.items():
            name = f"{counter}.{key}" if key is not None else counter
            result[name] = value
        return result

    def reset(self) -> None:
        self._counters.clear()
