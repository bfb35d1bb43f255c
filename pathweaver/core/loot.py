"""
Loot and experience rolls shared by combat, skills and harvest.
"""

import random
from dataclasses import replace
from typing import Optional

from .balance_config import BalanceConfig
from .dice import apply_multiplier
from .models import ActorState, LootDrop, adjust_inventory


def roll_loot(entries, rng: random.Random, multiplier: float = 1.0) -> tuple:
    """Roll a loot table.

    Every entry gets an independent Bernoulli trial against its chance; a hit
    yields a quantity uniform in [min_qty, max_qty], scaled by multiplier.
    """
    drops = []
    for entry in entries:
        if rng.random() < entry.chance:
            low = min(entry.min_qty, entry.max_qty)
            high = max(entry.min_qty, entry.max_qty)
            quantity = rng.randint(low, high)
            if multiplier != 1.0:
                quantity = max(1, apply_multiplier(quantity, multiplier))
            drops.append(LootDrop(name=entry.name, quantity=quantity))
    return tuple(drops)


def roll_experience(level: int, rng: random.Random,
                    config: Optional[BalanceConfig] = None) -> int:
    """XP for defeating a creature of the given level."""
    config = config or BalanceConfig()
    return round(level * config.xp_per_level + rng.random() * config.xp_random_bonus)


def experience_to_next(level: int) -> int:
    return level * 100


def grant_experience(actor: ActorState, xp: int) -> tuple[ActorState, bool]:
    """Add XP and apply any level-ups. Returns (actor, leveled_up)."""
    experience = actor.experience + xp
    level = actor.level
    max_hp = actor.max_hp
    attack = actor.attack
    leveled_up = False
    while experience >= experience_to_next(level):
        experience -= experience_to_next(level)
        level += 1
        max_hp += 5
        attack += 1
        leveled_up = True

    updated = replace(
        actor,
        experience=experience,
        level=level,
        max_hp=max_hp,
        attack=attack,
        hp=min(actor.hp + (max_hp - actor.max_hp), max_hp),
    )
    return updated, leveled_up


def add_loot(actor: ActorState, drops, catalog: Optional[dict] = None) -> ActorState:
    """Put loot drops into the actor's inventory.

    catalog maps item names to InventoryItem templates so that drops keep
    their effects and equipment stats.
    """
    catalog = catalog or {}
    inventory = actor.inventory
    for drop in drops:
        inventory = adjust_inventory(inventory, drop.name, drop.quantity,
                                     template=catalog.get(drop.name))
    return replace(actor, inventory=inventory)
