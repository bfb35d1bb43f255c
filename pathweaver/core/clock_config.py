"""
Clock configuration framework.

Every resolved action consumes one tick of game time. Settings choose how many
minutes a tick is worth and how long a day lasts; the turn advancer delegates
to ClockConfig for all clock arithmetic.
"""

from dataclasses import dataclass, field


def _default_periods() -> list:
    # (start minute, name), sorted by start
    return [
        [0, "night"],
        [300, "pre_dawn"],
        [360, "dawn"],
        [480, "morning"],
        [720, "afternoon"],
        [1020, "evening"],
        [1200, "night"],
    ]


@dataclass
class ClockConfig:
    """Resolved clock configuration.

    With no arguments: 15-minute ticks, 24-hour days (96 turns per day).
    """
    tick_minutes: int = 15
    day_minutes: int = 1440
    start_minute: int = 360
    periods: list = field(default_factory=_default_periods)

    def advance(self, game_time: int, day: int) -> tuple[int, int]:
        """Advance by one tick. Returns (game_time, day) after wraparound."""
        total = game_time + self.tick_minutes
        days_passed, new_time = divmod(total, self.day_minutes)
        return new_time, day + days_passed

    def period_for(self, game_time: int) -> str:
        """Named period of the day for a minute offset."""
        minute = game_time % self.day_minutes
        name = self.periods[0][1] if self.periods else "day"
        for start, period in self.periods:
            if minute >= start:
                name = period
            else:
                break
        return name

    def turns_per_day(self) -> int:
        return max(1, self.day_minutes // max(1, self.tick_minutes))


def load_clock_config(settings_json: dict) -> ClockConfig:
    """Load ClockConfig from settings.

    Returns the default config when settings_json has no clock section.
    """
    if not settings_json:
        return ClockConfig()

    rules = settings_json.get("clock", {})
    if not rules:
        return ClockConfig()

    tick_minutes = rules.get("tick_minutes", 15)
    day_minutes = rules.get("day_minutes", 1440)
    if tick_minutes <= 0:
        raise ValueError(f"tick_minutes must be positive, got {tick_minutes}")
    if day_minutes <= 0:
        raise ValueError(f"day_minutes must be positive, got {day_minutes}")

    periods = rules.get("periods", _default_periods())
    periods = sorted([list(p) for p in periods], key=lambda p: p[0])

    return ClockConfig(
        tick_minutes=tick_minutes,
        day_minutes=day_minutes,
        start_minute=rules.get("start_minute", 360) % day_minutes,
        periods=periods,
    )
