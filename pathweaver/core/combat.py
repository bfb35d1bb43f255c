"""
Combat outcome calculator.

Pure: takes snapshots, returns a CombatOutcome or a Rejection. Nothing here
touches game state, the narrative log or the dedup guard.
"""

import random
from dataclasses import replace
from typing import Optional, Union

from .balance_config import BalanceConfig
from .dice import SuccessLevel, round_half_up, success_multiplier
from .loot import add_loot, grant_experience, roll_experience, roll_loot
from .models import ActorState, CombatOutcome, Creature, Environment, Rejection


def environment_multiplier(environment: Environment,
                           config: Optional[BalanceConfig] = None) -> float:
    """Product of independent environment penalties."""
    env_config = (config or BalanceConfig()).environment
    multiplier = 1.0
    if environment.light_level < env_config.darkness_threshold:
        multiplier *= env_config.darkness_penalty
    if environment.moisture > env_config.wet_threshold:
        multiplier *= env_config.wet_penalty
    return multiplier


def should_flee(target: Creature, level: SuccessLevel) -> bool:
    """Passive creatures always flee; small ones flee a critical hit."""
    if target.behavior == "passive":
        return True
    return level == SuccessLevel.CRITICAL_SUCCESS and target.size == "small"


def calculate_combat(
    actor: ActorState,
    target: Optional[Creature],
    level: SuccessLevel,
    environment: Environment,
    rng: random.Random,
    config: Optional[BalanceConfig] = None,
    catalog: Optional[dict] = None,
) -> Union[CombatOutcome, Rejection]:
    """Resolve one attack against the creature in the current chunk."""
    if target is None:
        return Rejection("no_target", "There is nothing here to attack.")

    config = config or BalanceConfig()

    base_damage = max(config.min_damage, actor.attack_power)
    env_mult = environment_multiplier(environment, config)
    multiplier = success_multiplier(level, config)
    if multiplier == 0:
        damage = 0
    else:
        damage = round_half_up(base_damage * env_mult * multiplier)

    enemy_hp_after = max(0, target.hp - damage)
    defeated = target.hp - damage <= 0

    player_after = actor
    target_after = None
    fled = False
    damage_taken = 0
    loot = ()
    xp = 0
    leveled_up = False

    if defeated:
        loot = roll_loot(target.loot, rng)
        xp = roll_experience(target.level, rng, config)
        player_after = add_loot(player_after, loot, catalog)
        player_after, leveled_up = grant_experience(player_after, xp)
    elif should_flee(target, level):
        fled = True
    else:
        damage_taken = target.damage
        player_after = replace(player_after, hp=max(0, player_after.hp - damage_taken))
        target_after = replace(target, hp=enemy_hp_after)

    return CombatOutcome(
        actor_id=actor.id,
        target_id=target.id,
        chunk_key=environment.chunk_key,
        success_level=level,
        enemy_name=target.name,
        enemy_type=target.creature_type,
        damage_dealt=damage,
        damage_taken=damage_taken,
        environment_multiplier=env_mult,
        enemy_hp_before=target.hp,
        enemy_hp_after=enemy_hp_after,
        player_before=actor,
        player_after=player_after,
        target_after=target_after,
        defeated=defeated,
        fled=fled,
        loot=loot,
        xp_gained=xp,
        leveled_up=leveled_up,
    )
