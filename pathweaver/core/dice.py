"""
Dice & success resolution.

Maps a die roll onto one of five success levels using configured bands, and
maps success levels onto damage/heal multipliers.
"""

import enum
import logging
import math
import random
from dataclasses import dataclass
from typing import Optional

from .balance_config import BalanceConfig

logger = logging.getLogger(__name__)


class SuccessLevel(enum.Enum):
    """Outcome band of a roll, ordered from worst to best."""
    CRITICAL_FAILURE = "critical_failure"
    FAILURE = "failure"
    SUCCESS = "success"
    GREAT_SUCCESS = "great_success"
    CRITICAL_SUCCESS = "critical_success"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other):
        if not isinstance(other, SuccessLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, SuccessLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, SuccessLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, SuccessLevel):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def succeeded(self) -> bool:
        return self.rank >= _RANKS[SuccessLevel.SUCCESS]


_RANKS = {level: i for i, level in enumerate(SuccessLevel)}


@dataclass(frozen=True)
class DiceRoll:
    """Result of a roll."""
    die_type: str
    value: int
    range: tuple[int, int]


_DEFAULT_CONFIG = BalanceConfig()


def roll(die_type: str, rng: Optional[random.Random] = None,
         config: Optional[BalanceConfig] = None) -> DiceRoll:
    """Roll a die. Supported: d20, d12, 2d6.

    Unknown dice roll a d20 so that success_level can still degrade them to
    FAILURE downstream.
    """
    rng = rng or random
    config = config or _DEFAULT_CONFIG

    if die_type == "2d6":
        value = rng.randint(1, 6) + rng.randint(1, 6)
        die_range = (2, 12)
    elif die_type.startswith("d") and die_type[1:].isdigit() and int(die_type[1:]) > 1:
        sides = int(die_type[1:])
        value = rng.randint(1, sides)
        die_range = (1, sides)
    else:
        logger.warning("Unknown die type %r, rolling d20", die_type)
        value = rng.randint(1, 20)
        die_range = (1, 20)

    configured = config.die_range(die_type)
    if configured:
        die_range = configured
    return DiceRoll(die_type=die_type, value=value, range=die_range)


def success_level(value: int, die_type: str,
                  config: Optional[BalanceConfig] = None) -> SuccessLevel:
    """Band a roll value into a SuccessLevel.

    Unknown die types, and values outside every band, resolve to FAILURE.
    """
    config = config or _DEFAULT_CONFIG
    bands = config.bands_for(die_type)
    if not bands:
        logger.warning("No dice bands for %r, treating roll as failure", die_type)
        return SuccessLevel.FAILURE

    for level in SuccessLevel:
        lo, hi = bands[level.value]
        if lo <= value <= hi:
            return level
    return SuccessLevel.FAILURE


def success_multiplier(level: SuccessLevel,
                       config: Optional[BalanceConfig] = None) -> float:
    """Damage/heal multiplier for a success level."""
    config = config or _DEFAULT_CONFIG
    return config.multiplier_for(level.value)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    # Absorb float noise such as 10 * 0.8 * 2.0 == 16.000000000000004
    return int(math.floor(round(value, 9) + 0.5))


def apply_multiplier(base: float, multiplier: float = 1.0) -> int:
    """Scale a non-negative amount and round it to an integer."""
    if base < 0 or multiplier < 0:
        raise ValueError("apply_multiplier expects non-negative inputs")
    return round_half_up(base * multiplier)
