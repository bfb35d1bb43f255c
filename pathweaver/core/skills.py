"""
Skill and item outcome calculators.

Both share the success multiplier table and the effect-type handlers below.
The success roll gates whether an effect fires; GAMBLE_EFFECT then flips its
own coin to pick between restoration and a curse.
"""

import random
from dataclasses import replace
from typing import Optional, Union

from .balance_config import BalanceConfig
from .dice import SuccessLevel, apply_multiplier, round_half_up, success_multiplier
from .loot import add_loot, grant_experience, roll_experience, roll_loot
from .models import (
    ActorState,
    Creature,
    EffectSpec,
    Environment,
    ItemOutcome,
    Rejection,
    SkillOutcome,
    StatusEffect,
    adjust_inventory,
    clamp,
)

HEAL = "HEAL"
DAMAGE = "DAMAGE"
RESTORE_STAMINA = "RESTORE_STAMINA"
RESTORE_MANA = "RESTORE_MANA"
RESTORE_HUNGER = "RESTORE_HUNGER"
APPLY_STATUS_EFFECT = "APPLY_STATUS_EFFECT"
GAMBLE_EFFECT = "GAMBLE_EFFECT"


def add_status(actor: ActorState, status: StatusEffect) -> ActorState:
    """Apply a status effect, refreshing any existing one of the same name."""
    effects = tuple(e for e in actor.status_effects if e.name != status.name)
    return replace(actor, status_effects=effects + (status,))


def _restore(actor: ActorState, stat: str, amount: int) -> tuple[ActorState, int]:
    current = getattr(actor, stat)
    cap = getattr(actor, f"max_{stat}")
    new_value = clamp(current + amount, 0, max(cap, current))
    return replace(actor, **{stat: new_value}), new_value - current


def apply_effect(actor: ActorState, spec: EffectSpec, multiplier: float,
                 rng: random.Random, config: BalanceConfig) -> tuple:
    """Apply one self-targeted effect.

    Returns (actor, amount_applied, status_applied, gamble_won). Amounts are
    what actually landed after caps.
    """
    amount = apply_multiplier(max(0, spec.amount), multiplier)
    effect_type = spec.effect_type

    if effect_type == HEAL:
        actor, applied = _restore(actor, "hp", amount)
        return actor, applied, None, None
    if effect_type == RESTORE_STAMINA:
        actor, applied = _restore(actor, "stamina", amount)
        return actor, applied, None, None
    if effect_type == RESTORE_MANA:
        actor, applied = _restore(actor, "mana", amount)
        return actor, applied, None, None
    if effect_type == RESTORE_HUNGER:
        hunger = max(0, actor.hunger - amount)
        return replace(actor, hunger=hunger), actor.hunger - hunger, None, None
    if effect_type == APPLY_STATUS_EFFECT:
        name = spec.status or "blessed"
        status = StatusEffect(
            name=name,
            duration=spec.duration,
            hp_per_tick=spec.hp_per_tick,
            stamina_per_tick=spec.stamina_per_tick,
        )
        return add_status(actor, status), spec.duration, name, None
    if effect_type == GAMBLE_EFFECT:
        return _gamble(actor, amount, rng, config)

    # Unknown tags are carried but have no local handler
    return actor, 0, None, None


def _gamble(actor: ActorState, amount: int, rng: random.Random,
            config: BalanceConfig) -> tuple:
    skill_config = config.skills
    if rng.random() < skill_config.gamble_chance:
        total = 0
        for stat in ("hp", "stamina", "mana"):
            actor, applied = _restore(actor, stat, amount)
            total += applied
        return actor, total, None, True

    curse = StatusEffect(
        name=skill_config.gamble_status,
        duration=skill_config.gamble_status_duration,
        hp_per_tick=skill_config.gamble_status_hp_per_tick,
    )
    return add_status(actor, curse), 0, curse.name, False


def validate_skill(actor: ActorState, skill_name: str,
                   target: Optional[Creature] = None) -> Optional[Rejection]:
    """Preconditions checked before any roll is made."""
    skill = actor.skill(skill_name)
    if skill is None:
        return Rejection("unknown_skill", f"You don't know the skill '{skill_name}'.")
    if actor.mana < skill.mana_cost:
        return Rejection(
            "insufficient_mana",
            f"Not enough mana for {skill.name} ({actor.mana}/{skill.mana_cost}).",
        )
    if skill.effect.effect_type == DAMAGE and target is None:
        return Rejection("no_target", f"There is nothing to target with {skill.name}.")
    return None


def calculate_skill(
    actor: ActorState,
    target: Optional[Creature],
    level: SuccessLevel,
    environment: Environment,
    rng: random.Random,
    config: Optional[BalanceConfig] = None,
    *,
    skill_name: str,
    catalog: Optional[dict] = None,
) -> Union[SkillOutcome, Rejection]:
    """Resolve a skill cast. Mana is spent on every resolved cast."""
    rejection = validate_skill(actor, skill_name, target)
    if rejection:
        return rejection

    config = config or BalanceConfig()
    skill = actor.skill(skill_name)
    spec = skill.effect

    player = replace(actor, mana=actor.mana - skill.mana_cost)
    fields = dict(
        actor_id=actor.id,
        target_id=target.id if target is not None else actor.id,
        skill_name=skill.name,
        effect_type=spec.effect_type,
        success_level=level,
        mana_spent=skill.mana_cost,
        player_before=actor,
        chunk_key=environment.chunk_key,
    )
    if target is not None and spec.effect_type == DAMAGE:
        fields.update(
            target_after=target,
            enemy_name=target.name,
            enemy_type=target.creature_type,
            enemy_hp_before=target.hp,
            enemy_hp_after=target.hp,
        )

    if level == SuccessLevel.CRITICAL_FAILURE:
        backfire = round_half_up(spec.amount * config.skills.backfire_ratio)
        player = replace(player, hp=max(0, player.hp - backfire))
        return SkillOutcome(amount_applied=0, player_after=player,
                            backfired=True, backfire_damage=backfire, **fields)

    if level == SuccessLevel.FAILURE:
        return SkillOutcome(amount_applied=0, player_after=player, **fields)

    multiplier = success_multiplier(level, config)

    if spec.effect_type == DAMAGE:
        return _resolve_damage(player, target, spec, multiplier, rng, config,
                               catalog, fields)

    player, applied, status, gamble_won = apply_effect(player, spec, multiplier, rng, config)
    return SkillOutcome(
        amount_applied=applied,
        player_after=player,
        status_applied=status,
        gamble_won=gamble_won,
        **fields,
    )


def _resolve_damage(player, target, spec, multiplier, rng, config, catalog, fields):
    raw = spec.amount + round_half_up(player.magic_attack * config.skills.magic_attack_ratio)
    damage = apply_multiplier(raw, multiplier)
    enemy_hp_after = max(0, target.hp - damage)
    defeated = target.hp - damage <= 0

    if spec.heal_ratio > 0 and damage > 0:
        player, _ = _restore(player, "hp", round_half_up(damage * spec.heal_ratio))

    loot = ()
    xp = 0
    leveled_up = False
    target_after = None
    if defeated:
        loot = roll_loot(target.loot, rng)
        xp = roll_experience(target.level, rng, config)
        player = add_loot(player, loot, catalog)
        player, leveled_up = grant_experience(player, xp)
    else:
        target_after = replace(target, hp=enemy_hp_after)

    fields = dict(fields, target_after=target_after, enemy_hp_after=enemy_hp_after)
    return SkillOutcome(
        amount_applied=damage,
        player_after=player,
        defeated=defeated,
        loot=loot,
        xp_gained=xp,
        leveled_up=leveled_up,
        **fields,
    )


def validate_item_use(actor: ActorState, item_name: str) -> Optional[Rejection]:
    item = actor.item(item_name)
    if item is None or item.quantity <= 0:
        return Rejection("missing_item", f"You don't have any {item_name}.")
    if not item.effects:
        return Rejection("no_effect", f"{item_name} can't be used like that.")
    return None


def calculate_item_use(
    actor: ActorState,
    target: Optional[Creature],
    level: SuccessLevel,
    environment: Environment,
    rng: random.Random,
    config: Optional[BalanceConfig] = None,
    *,
    item_name: str,
) -> Union[ItemOutcome, Rejection]:
    """Use a consumable. The item is consumed whenever it has effects."""
    rejection = validate_item_use(actor, item_name)
    if rejection:
        return rejection

    config = config or BalanceConfig()
    item = actor.item(item_name)
    player = replace(actor, inventory=adjust_inventory(actor.inventory, item_name, -1))

    applied = []
    status_applied = None
    gamble_won = None
    if level.succeeded:
        multiplier = success_multiplier(level, config)
        for spec in item.effects:
            if spec.effect_type == DAMAGE:
                continue
            player, amount, status, won = apply_effect(player, spec, multiplier, rng, config)
            applied.append((spec.effect_type, amount))
            status_applied = status or status_applied
            if won is not None:
                gamble_won = won
    else:
        applied = [(spec.effect_type, 0) for spec in item.effects]

    return ItemOutcome(
        actor_id=actor.id,
        target_id=item_name,
        item_name=item_name,
        success_level=level,
        applied=tuple(applied),
        consumed=True,
        player_before=actor,
        player_after=player,
        gamble_won=gamble_won,
        status_applied=status_applied,
    )
