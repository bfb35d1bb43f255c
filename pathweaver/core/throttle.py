"""
Move input throttle.

Caps how often movement intents are emitted, however fast keys repeat.
Idle -> Emitted when an intent arrives and the window has elapsed; intents
arriving inside the window are dropped, never queued.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

DIRECTIONS = (
    "north", "south", "east", "west",
    "northeast", "northwest", "southeast", "southwest",
)

KEY_DIRECTIONS = {
    # arrows
    "ArrowUp": "north",
    "ArrowDown": "south",
    "ArrowLeft": "west",
    "ArrowRight": "east",
    # WASD
    "w": "north",
    "s": "south",
    "a": "west",
    "d": "east",
    # vi keys
    "k": "north",
    "j": "south",
    "h": "west",
    "l": "east",
    "y": "northwest",
    "u": "northeast",
    "b": "southwest",
    "n": "southeast",
}


def direction_for_key(key: str) -> Optional[str]:
    """Map a key name to a logical direction, or None."""
    if key in KEY_DIRECTIONS:
        return KEY_DIRECTIONS[key]
    return KEY_DIRECTIONS.get(key.lower()) if len(key) == 1 else None


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class MoveIntent:
    direction: str
    emitted_at: float


class MoveThrottle:
    def __init__(self, window_ms: float = 300, clock: Callable[[], float] = monotonic_ms):
        if window_ms < 0:
            raise ValueError("window_ms must be >= 0")
        self.window_ms = window_ms
        self.clock = clock
        self.last_emitted_at: Optional[float] = None

    @property
    def state(self) -> str:
        return "idle" if self.last_emitted_at is None else "emitted"

    def can_emit(self, now: Optional[float] = None) -> bool:
        """Pure query: has the window elapsed since the last emission?"""
        if self.last_emitted_at is None:
            return True
        now = self.clock() if now is None else now
        return now - self.last_emitted_at >= self.window_ms

    def try_emit(self, direction: str, now: Optional[float] = None,
                 locked: bool = False, animating: bool = False) -> Optional[MoveIntent]:
        """Emit an intent, or drop it.

        Locked (game over) or animating drops unconditionally. Changing
        direction does not reset the window.
        """
        if locked or animating:
            return None
        now = self.clock() if now is None else now
        if not self.can_emit(now):
            return None
        self.last_emitted_at = now
        return MoveIntent(direction=direction, emitted_at=now)

    def reset(self) -> None:
        self.last_emitted_at = None
