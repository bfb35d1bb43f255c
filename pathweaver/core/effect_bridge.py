"""
Effect Generator / Executor bridge.

generate_effects() turns an outcome into an ordered effect list:
stat deltas, narrative lines, audio cues, telemetry, then a quest trigger.
EffectExecutor applies them one by one through sinks, isolating failures,
and runs a second pass for quests/achievements against post-effect state.
EffectBridge puts the dedup guard in front of both.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from .dedup import DedupToken, DeduplicationGuard
from .effects import (
    EFFECT_ORDER,
    AudioCue,
    NarrativeLine,
    QuestEvaluationTrigger,
    StatDelta,
    TelemetryEvent,
)
from .models import (
    CombatOutcome,
    CraftOutcome,
    FusionOutcome,
    GameState,
    GenericOutcome,
    HarvestOutcome,
    ItemOutcome,
    MoveOutcome,
    RestOutcome,
    SkillOutcome,
)

logger = logging.getLogger(__name__)

_TRACKED_STATS = ("hp", "stamina", "mana", "hunger", "experience", "level")


def _changes(before, after) -> tuple:
    changes = []
    for name in _TRACKED_STATS:
        delta = getattr(after, name) - getattr(before, name)
        if delta:
            changes.append((name, delta))
    return tuple(changes)


def token_for(outcome, turn: int) -> DedupToken:
    return DedupToken(outcome.kind, outcome.actor_id, outcome.target_id, turn)


# =============================================================================
# Generation
# =============================================================================

def _stat_deltas(outcome) -> list:
    deltas = []
    if outcome.player_after != outcome.player_before:
        deltas.append(StatDelta(
            target="player",
            snapshot=outcome.player_after,
            changes=_changes(outcome.player_before, outcome.player_after),
        ))

    if isinstance(outcome, CombatOutcome):
        deltas.append(StatDelta("creature", outcome.target_after, outcome.chunk_key,
                                (("hp", outcome.enemy_hp_after - outcome.enemy_hp_before),)))
    elif isinstance(outcome, SkillOutcome) and outcome.enemy_name is not None:
        if outcome.target_after is None or outcome.enemy_hp_after != outcome.enemy_hp_before:
            deltas.append(StatDelta("creature", outcome.target_after, outcome.chunk_key,
                                    (("hp", outcome.enemy_hp_after - outcome.enemy_hp_before),)))
    elif isinstance(outcome, HarvestOutcome):
        deltas.append(StatDelta("creature", outcome.target_after, outcome.chunk_key))
    elif isinstance(outcome, MoveOutcome):
        deltas.append(StatDelta("position", outcome.position_after, outcome.to_key))
    elif isinstance(outcome, GenericOutcome) and outcome.chunk_after is not None:
        deltas.append(StatDelta("chunk", outcome.chunk_after, outcome.chunk_after.key))
    return deltas


def _loot_text(loot) -> str:
    return ", ".join(f"{drop.quantity} {drop.name}" for drop in loot)


def describe_outcome(outcome) -> list[str]:
    """Short action lines for the narrative log."""
    lines = []
    if isinstance(outcome, CombatOutcome):
        if outcome.damage_dealt == 0:
            lines.append(f"You swing at the {outcome.enemy_name} and miss.")
        else:
            lines.append(f"You hit the {outcome.enemy_name} for {outcome.damage_dealt} damage.")
        if outcome.defeated:
            lines.append(f"The {outcome.enemy_name} is defeated! (+{outcome.xp_gained} XP)")
        elif outcome.fled:
            lines.append(f"The {outcome.enemy_name} flees.")
        elif outcome.damage_taken:
            lines.append(f"The {outcome.enemy_name} strikes back for {outcome.damage_taken} damage.")
    elif isinstance(outcome, SkillOutcome):
        if outcome.backfired:
            lines.append(f"{outcome.skill_name} backfires! You take {outcome.backfire_damage} damage.")
        elif not outcome.success_level.succeeded:
            lines.append(f"Your {outcome.skill_name} fizzles.")
        elif outcome.gamble_won is False:
            lines.append(f"{outcome.skill_name} turns on you. You are {outcome.status_applied}.")
        elif outcome.enemy_name is not None:
            lines.append(f"{outcome.skill_name} hits the {outcome.enemy_name} for {outcome.amount_applied} damage.")
            if outcome.defeated:
                lines.append(f"The {outcome.enemy_name} is defeated! (+{outcome.xp_gained} XP)")
        else:
            lines.append(f"You cast {outcome.skill_name}.")
    elif isinstance(outcome, ItemOutcome):
        if outcome.success_level.succeeded:
            lines.append(f"You use the {outcome.item_name}.")
        else:
            lines.append(f"You fumble the {outcome.item_name}; it does nothing.")
        if outcome.gamble_won is False:
            lines.append(f"Something goes wrong. You are {outcome.status_applied}.")
    elif isinstance(outcome, HarvestOutcome):
        what = outcome.part_name or outcome.target_name
        if outcome.loot:
            lines.append(f"You harvest the {what}: {_loot_text(outcome.loot)}.")
        else:
            lines.append(f"You work at the {what} but find nothing useful.")
        if outcome.all_parts_depleted:
            lines.append(f"The {outcome.target_name} has nothing left to give.")
    elif isinstance(outcome, CraftOutcome):
        if outcome.crafted:
            lines.append(f"You craft {outcome.crafted.quantity} {outcome.crafted.name}.")
        else:
            lines.append(f"Your attempt at {outcome.recipe_name} falls apart.")
    elif isinstance(outcome, MoveOutcome):
        lines.append(f"You head {outcome.direction} into the {outcome.terrain}.")
        if outcome.encountered:
            lines.append(f"A {outcome.encountered} is here.")
    elif isinstance(outcome, RestOutcome):
        lines.append(f"You rest. (+{outcome.stamina_restored} stamina, +{outcome.hp_restored} hp)")
    elif isinstance(outcome, FusionOutcome):
        lines.append(outcome.narrative)
    elif isinstance(outcome, GenericOutcome) and outcome.message:
        lines.append(outcome.message)

    if getattr(outcome, "loot", None) and not isinstance(outcome, HarvestOutcome):
        lines.append(f"You collect {_loot_text(outcome.loot)}.")
    if getattr(outcome, "leveled_up", False):
        lines.append(f"You reached level {outcome.player_after.level}!")
    return lines


def _audio(outcome) -> list:
    cues = []
    if isinstance(outcome, CombatOutcome):
        cues.append(AudioCue("attack_miss" if outcome.damage_dealt == 0 else "attack_hit"))
        if outcome.defeated:
            cues.append(AudioCue("enemy_defeated"))
    elif isinstance(outcome, SkillOutcome):
        cues.append(AudioCue("skill_backfire" if outcome.backfired else "skill_cast"))
    elif isinstance(outcome, ItemOutcome):
        cues.append(AudioCue("item_use"))
    elif isinstance(outcome, HarvestOutcome):
        cues.append(AudioCue("harvest"))
    elif isinstance(outcome, CraftOutcome):
        cues.append(AudioCue("craft_success" if outcome.crafted else "craft_fail"))
    elif isinstance(outcome, MoveOutcome):
        cues.append(AudioCue("footstep", volume=0.5))
    elif isinstance(outcome, GenericOutcome) and outcome.kind == "build":
        cues.append(AudioCue("build"))
    if getattr(outcome, "leveled_up", False):
        cues.append(AudioCue("level_up"))
    return cues


def _telemetry(outcome) -> list:
    level = getattr(outcome, "success_level", None)
    events = [TelemetryEvent("ACTION_RESOLVED", {
        "kind": outcome.kind,
        "target": outcome.target_id,
        "success_level": level.value if level is not None else None,
    })]

    damage = 0
    if isinstance(outcome, CombatOutcome):
        damage = outcome.damage_dealt
    elif isinstance(outcome, SkillOutcome):
        events.append(TelemetryEvent("SKILL_CAST", {"skill": outcome.skill_name}))
        if outcome.enemy_name is not None:
            damage = outcome.amount_applied
    if damage:
        events.append(TelemetryEvent("DAMAGE_DEALT", {"amount": damage}))

    if getattr(outcome, "defeated", False):
        events.append(TelemetryEvent("CREATURE_DEFEATED", {
            "creature_type": outcome.enemy_type,
            "name": outcome.enemy_name,
        }))

    if isinstance(outcome, ItemOutcome):
        events.append(TelemetryEvent("ITEM_USED", {"name": outcome.item_name}))
    elif isinstance(outcome, HarvestOutcome):
        events.append(TelemetryEvent("HARVESTED", {
            "target": outcome.target_name,
            "part": outcome.part_name,
        }))
    elif isinstance(outcome, CraftOutcome) and outcome.crafted:
        events.append(TelemetryEvent("CRAFTED", {
            "item": outcome.crafted.name,
            "quantity": outcome.crafted.quantity,
        }))
    elif isinstance(outcome, MoveOutcome):
        events.append(TelemetryEvent("MOVED", {"to": outcome.to_key}))
    elif isinstance(outcome, RestOutcome):
        events.append(TelemetryEvent("RESTED", {}))
    elif isinstance(outcome, GenericOutcome) and outcome.kind == "build":
        events.append(TelemetryEvent("STRUCTURE_BUILT", {"name": outcome.target_id}))

    for drop in getattr(outcome, "loot", ()):
        events.append(TelemetryEvent("ITEM_COLLECTED", {"name": drop.name, "quantity": drop.quantity}))
    return events


def generate_effects(outcome) -> list:
    """Pure, order-preserving effect generation for one outcome."""
    effects = _stat_deltas(outcome)
    effects.extend(NarrativeLine(text) for text in describe_outcome(outcome))
    effects.extend(_audio(outcome))
    effects.extend(_telemetry(outcome))
    effects.append(QuestEvaluationTrigger(outcome.kind))
    # stable sort keeps per-kind order
    return sorted(effects, key=lambda e: EFFECT_ORDER.index(e.kind))


def quest_effects(quests, statistics) -> list:
    """Follow-on batch for quests/achievements completed by the last batch."""
    effects = []
    for completion in quests.evaluate(statistics):
        if completion.kind == "quest":
            text, cue, event = f"Quest complete: {completion.title}", "quest_complete", "QUEST_COMPLETED"
        else:
            text, cue, event = f"Achievement unlocked: {completion.title}", "achievement", "ACHIEVEMENT_UNLOCKED"
        effects.append(NarrativeLine(text, entry_kind="system"))
        effects.append(AudioCue(cue))
        effects.append(TelemetryEvent(event, {"id": completion.id}))
    return effects


# =============================================================================
# Execution
# =============================================================================

@dataclass
class ExecutionReport:
    applied: list = field(default_factory=list)
    failures: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    follow_on: list = field(default_factory=list)

    @property
    def applied_count(self) -> int:
        return len(self.applied)

    def count(self, effect_type) -> int:
        return sum(1 for e in self.applied if isinstance(e, effect_type))


class EffectExecutor:
    """Applies effects through sinks keyed by effect kind.

    A failing sink is logged and skipped; the rest of the batch still runs.
    """

    def __init__(self, sinks: dict, quest_evaluator: Optional[Callable[[], list]] = None):
        self.sinks = sinks
        self.quest_evaluator = quest_evaluator

    def _apply(self, effect, report: ExecutionReport) -> None:
        sink = self.sinks.get(effect.kind)
        if sink is None:
            report.skipped.append(effect)
            return
        try:
            sink(effect)
            report.applied.append(effect)
        except Exception as e:
            logger.exception("Effect %s failed to apply", effect.kind)
            report.failures.append((effect, str(e)))

    def execute(self, effects) -> ExecutionReport:
        report = ExecutionReport()
        triggered = False
        for effect in effects:
            if isinstance(effect, QuestEvaluationTrigger):
                triggered = True
                continue
            self._apply(effect, report)

        if triggered and self.quest_evaluator is not None:
            try:
                follow_on = self.quest_evaluator()
            except Exception:
                logger.exception("Quest evaluation failed")
                follow_on = []
            for effect in follow_on:
                self._apply(effect, report)
            report.follow_on = list(follow_on)
        return report


class StateSink:
    """Stat sink: commits StatDelta snapshots onto the GameState."""

    def __init__(self, state: GameState, on_game_over: Optional[Callable[[], None]] = None):
        self.state = state
        self.on_game_over = on_game_over

    def __call__(self, effect: StatDelta) -> None:
        if effect.target == "player":
            if self.state.commit_player(effect.snapshot) and self.on_game_over:
                self.on_game_over()
        elif effect.target == "creature":
            chunk = self.state.world.get_chunk(effect.chunk_key)
            if chunk is None:
                raise KeyError(f"No chunk at {effect.chunk_key}")
            self.state.world.put_chunk(replace(chunk, enemy=effect.snapshot))
        elif effect.target == "chunk":
            self.state.world.put_chunk(effect.snapshot)
        elif effect.target == "position":
            self.state.position = tuple(effect.snapshot)
        else:
            raise ValueError(f"Unknown stat delta target: {effect.target}")


class AudioCueBuffer:
    """Records audio cue decisions for the presentation layer to play."""

    def __init__(self, muted: bool = False):
        self.muted = muted
        self.cues: list[AudioCue] = []

    def __call__(self, effect: AudioCue) -> None:
        if not self.muted:
            self.cues.append(effect)

    def drain(self) -> list[AudioCue]:
        cues, self.cues = self.cues, []
        return cues


class EffectBridge:
    """Dedup claim, then generate and execute."""

    def __init__(self, guard: DeduplicationGuard, executor: EffectExecutor):
        self.guard = guard
        self.executor = executor
        self.last_report: Optional[ExecutionReport] = None

    def commit(self, token: DedupToken, outcome) -> bool:
        """False means a duplicate: nothing was generated or applied."""
        if not self.guard.claim(token):
            return False
        self.apply(outcome)
        return True

    def apply(self, outcome) -> ExecutionReport:
        """Generate and execute without claiming; the caller holds the token."""
        self.last_report = self.executor.execute(generate_effects(outcome))
        return self.last_report
