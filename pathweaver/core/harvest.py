"""
Harvest outcome calculator.

Two loot models:
- part-based: take one unit of a named part, roll that part's own table.
  The creature stays in the chunk even when every part is spent; removal is
  done by the plant tick.
- whole-target: roll the flat harvestable table once and remove the target.
"""

import random
from dataclasses import replace
from typing import Optional, Union

from .balance_config import BalanceConfig
from .dice import SuccessLevel, success_multiplier
from .loot import add_loot, roll_loot
from .models import ActorState, Creature, Environment, HarvestOutcome, Rejection


def _loot_for(level: SuccessLevel, entries, rng, config):
    # Failed work still costs stamina but finds nothing
    if not level.succeeded:
        return ()
    return roll_loot(entries, rng, success_multiplier(level, config))


def validate_harvest(actor: ActorState, target: Optional[Creature],
                     part_name: Optional[str] = None,
                     config: Optional[BalanceConfig] = None) -> Optional[Rejection]:
    """Everything that can stop a harvest before the roll."""
    config = config or BalanceConfig()
    if target is None:
        return Rejection("no_target", "There is nothing here to harvest.")

    if part_name and target.parts:
        part = target.part(part_name)
        if part is None:
            return Rejection("unknown_part", f"{target.name} has no {part_name}.")
        if part.current_qty <= 0:
            return Rejection("part_exhausted", f"The {part_name} of {target.name} is picked clean.")
        if actor.stamina < part.stamina_cost:
            return Rejection("insufficient_stamina", "You are too tired to harvest.")
        if not actor.has_tool(part.required_tool):
            return Rejection("missing_tool", f"You need a {part.required_tool} for that.")
        return None

    if target.harvestable is not None:
        tool = target.harvestable.required_tool
        if not actor.has_tool(tool):
            return Rejection("missing_tool", f"You need a {tool} to harvest {target.name}.")
        if actor.stamina < config.harvest_stamina_cost:
            return Rejection("insufficient_stamina", "You are too tired to harvest.")
        return None

    if target.parts:
        return Rejection("part_required", f"Choose which part of {target.name} to harvest.")
    return Rejection("not_harvestable", f"{target.name} can't be harvested.")


def calculate_harvest(
    actor: ActorState,
    target: Optional[Creature],
    level: SuccessLevel,
    environment: Environment,
    rng: random.Random,
    config: Optional[BalanceConfig] = None,
    *,
    part_name: Optional[str] = None,
    catalog: Optional[dict] = None,
) -> Union[HarvestOutcome, Rejection]:
    config = config or BalanceConfig()
    rejection = validate_harvest(actor, target, part_name, config)
    if rejection:
        return rejection

    if part_name and target.parts:
        part = target.part(part_name)
        loot = _loot_for(level, part.loot, rng, config)
        parts = tuple(
            replace(p, current_qty=p.current_qty - 1) if p.name == part_name else p
            for p in target.parts
        )
        target_after = replace(target, parts=parts)
        player = replace(actor, stamina=actor.stamina - part.stamina_cost)
        player = add_loot(player, loot, catalog)
        return HarvestOutcome(
            actor_id=actor.id,
            target_id=target.id,
            chunk_key=environment.chunk_key,
            target_name=target.name,
            success_level=level,
            stamina_spent=part.stamina_cost,
            player_before=actor,
            player_after=player,
            target_after=target_after,
            part_name=part_name,
            loot=loot,
            all_parts_depleted=target_after.all_parts_depleted,
            target_removed=False,
        )

    loot = _loot_for(level, target.harvestable.loot, rng, config)
    cost = config.harvest_stamina_cost
    player = replace(actor, stamina=actor.stamina - cost)
    player = add_loot(player, loot, catalog)
    return HarvestOutcome(
        actor_id=actor.id,
        target_id=target.id,
        chunk_key=environment.chunk_key,
        target_name=target.name,
        success_level=level,
        stamina_spent=cost,
        player_before=actor,
        player_after=player,
        target_after=None,
        loot=loot,
        target_removed=True,
    )
