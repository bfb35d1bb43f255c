"""Core module for turn resolution: dice, calculators, effects and the advancer."""

from .dice import SuccessLevel, DiceRoll, roll, success_level, apply_multiplier
from .dedup import DedupToken, DeduplicationGuard
from .effect_bridge import EffectBridge, EffectExecutor, generate_effects
from .throttle import MoveThrottle, MoveIntent, direction_for_key
from .narrative_queue import NarrativeQueue, NarrativeLog, NarrativeEntry
from .advancer import TurnAdvancer, TurnReport
from .session import GameSession, StaleResponsePolicy

__all__ = [
    "SuccessLevel",
    "DiceRoll",
    "roll",
    "success_level",
    "apply_multiplier",
    "DedupToken",
    "DeduplicationGuard",
    "EffectBridge",
    "EffectExecutor",
    "generate_effects",
    "MoveThrottle",
    "MoveIntent",
    "direction_for_key",
    "NarrativeQueue",
    "NarrativeLog",
    "NarrativeEntry",
    "TurnAdvancer",
    "TurnReport",
    "GameSession",
    "StaleResponsePolicy",
]
