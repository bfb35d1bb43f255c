"""
Calculators for the simpler turn-advancing actions: move, rest, craft, build,
equip, unequip, drop and wait.

Same contract as combat/skills/harvest: snapshots in, an outcome or a
Rejection out, no mutation.
"""

import random
from dataclasses import replace
from typing import Optional, Union

from .balance_config import BalanceConfig
from .dice import SuccessLevel, apply_multiplier, success_multiplier
from .models import (
    ActorState,
    Blueprint,
    Chunk,
    CraftOutcome,
    GenericOutcome,
    LootDrop,
    MoveOutcome,
    Recipe,
    Rejection,
    RestOutcome,
    adjust_inventory,
    clamp,
)


DIRECTION_OFFSETS = {
    "north": (0, 1),
    "south": (0, -1),
    "east": (1, 0),
    "west": (-1, 0),
    "northeast": (1, 1),
    "northwest": (-1, 1),
    "southeast": (1, -1),
    "southwest": (-1, -1),
}


def _missing(actor: ActorState, requirements) -> list:
    return [
        f"{name} x{qty}" for name, qty in requirements
        if actor.item_count(name) < qty
    ]


def calculate_move(actor: ActorState, origin: Chunk, destination: Optional[Chunk],
                   direction: str) -> Union[MoveOutcome, Rejection]:
    if direction not in DIRECTION_OFFSETS:
        return Rejection("unknown_direction", f"You can't go {direction}.")
    if destination is None:
        return Rejection("no_chunk", "The way is blocked by the edge of the world.")
    if not destination.passable:
        return Rejection("impassable", f"The {destination.terrain} is impassable.")

    return MoveOutcome(
        actor_id=actor.id,
        target_id=destination.key,
        direction=direction,
        from_key=origin.key,
        to_key=destination.key,
        position_after=(destination.x, destination.y),
        terrain=destination.terrain,
        player_before=actor,
        player_after=actor,
        encountered=destination.enemy.name if destination.enemy else None,
    )


def calculate_rest(actor: ActorState, chunk: Optional[Chunk],
                   config: Optional[BalanceConfig] = None) -> Union[RestOutcome, Rejection]:
    config = config or BalanceConfig()
    if chunk is not None and chunk.enemy is not None and chunk.enemy.behavior != "passive":
        return Rejection("enemy_nearby", f"You can't rest with {chunk.enemy.name} nearby.")

    survival = config.survival
    stamina = clamp(actor.stamina + survival.rest_stamina, 0, actor.max_stamina)
    hp = clamp(actor.hp + survival.rest_hp, 0, actor.max_hp)
    player = replace(actor, stamina=stamina, hp=hp)
    return RestOutcome(
        actor_id=actor.id,
        target_id=actor.id,
        stamina_restored=stamina - actor.stamina,
        hp_restored=hp - actor.hp,
        player_before=actor,
        player_after=player,
    )


def validate_craft(actor: ActorState, recipe: Optional[Recipe]) -> Optional[Rejection]:
    if recipe is None:
        return Rejection("unknown_recipe", "You don't know how to make that.")
    missing = _missing(actor, recipe.ingredients)
    if missing:
        return Rejection("missing_ingredients", f"Missing ingredients: {', '.join(missing)}.")
    if not actor.has_tool(recipe.required_tool):
        return Rejection("missing_tool", f"You need a {recipe.required_tool} to craft that.")
    return None


def calculate_craft(actor: ActorState, recipe: Optional[Recipe], level: SuccessLevel,
                    rng: Optional[random.Random] = None,
                    config: Optional[BalanceConfig] = None) -> Union[CraftOutcome, Rejection]:
    """Ingredients are used up on every attempt; failures produce nothing."""
    rejection = validate_craft(actor, recipe)
    if rejection:
        return rejection

    inventory = actor.inventory
    for name, qty in recipe.ingredients:
        inventory = adjust_inventory(inventory, name, -qty)

    crafted = None
    if level.succeeded:
        quantity = max(1, apply_multiplier(recipe.result.quantity,
                                           success_multiplier(level, config)))
        crafted = LootDrop(recipe.result.name, quantity)
        inventory = adjust_inventory(inventory, crafted.name, quantity, template=recipe.result)

    return CraftOutcome(
        actor_id=actor.id,
        target_id=recipe.name,
        recipe_name=recipe.name,
        success_level=level,
        crafted=crafted,
        ingredients_used=tuple(recipe.ingredients),
        player_before=actor,
        player_after=replace(actor, inventory=inventory),
    )


def calculate_build(actor: ActorState, chunk: Optional[Chunk],
                    blueprint: Optional[Blueprint]) -> Union[GenericOutcome, Rejection]:
    if chunk is None:
        return Rejection("no_chunk", "There is nowhere to build here.")
    if blueprint is None:
        return Rejection("unknown_structure", "You don't know how to build that.")
    if blueprint.name in chunk.structures:
        return Rejection("already_built", f"There is already a {blueprint.name} here.")
    missing = _missing(actor, blueprint.materials)
    if missing:
        return Rejection("missing_materials", f"Missing materials: {', '.join(missing)}.")
    if actor.stamina < blueprint.stamina_cost:
        return Rejection("insufficient_stamina", "You are too tired to build.")

    inventory = actor.inventory
    for name, qty in blueprint.materials:
        inventory = adjust_inventory(inventory, name, -qty)
    player = replace(actor, inventory=inventory, stamina=actor.stamina - blueprint.stamina_cost)
    return GenericOutcome(
        kind="build",
        actor_id=actor.id,
        target_id=blueprint.name,
        message=f"You build a {blueprint.name}.",
        player_before=actor,
        player_after=player,
        chunk_after=replace(chunk, structures=chunk.structures + (blueprint.name,)),
    )


def calculate_equip(actor: ActorState, item_name: str) -> Union[GenericOutcome, Rejection]:
    item = actor.item(item_name)
    if item is None:
        return Rejection("missing_item", f"You don't have any {item_name}.")
    if not item.slot:
        return Rejection("not_equippable", f"{item_name} can't be equipped.")

    inventory = adjust_inventory(actor.inventory, item_name, -1)
    previous = actor.equipped(item.slot)
    if previous is not None:
        inventory = adjust_inventory(inventory, previous.name, 1, template=previous)
    equipment = tuple(pair for pair in actor.equipment if pair[0] != item.slot)
    equipment += ((item.slot, replace(item, quantity=1)),)

    return GenericOutcome(
        kind="equip",
        actor_id=actor.id,
        target_id=item_name,
        message=f"You equip the {item_name}.",
        player_before=actor,
        player_after=replace(actor, inventory=inventory, equipment=equipment),
    )


def calculate_unequip(actor: ActorState, slot: str) -> Union[GenericOutcome, Rejection]:
    item = actor.equipped(slot)
    if item is None:
        return Rejection("nothing_equipped", f"Nothing is equipped in {slot}.")
    equipment = tuple(pair for pair in actor.equipment if pair[0] != slot)
    inventory = adjust_inventory(actor.inventory, item.name, 1, template=item)
    return GenericOutcome(
        kind="unequip",
        actor_id=actor.id,
        target_id=slot,
        message=f"You put away the {item.name}.",
        player_before=actor,
        player_after=replace(actor, inventory=inventory, equipment=equipment),
    )


def calculate_drop(actor: ActorState, chunk: Optional[Chunk], item_name: str,
                   quantity: int = 1) -> Union[GenericOutcome, Rejection]:
    item = actor.item(item_name)
    if item is None or quantity <= 0 or item.quantity < quantity:
        return Rejection("missing_item", f"You don't have {quantity} {item_name}.")
    if chunk is None:
        return Rejection("no_chunk", "There is nowhere to drop that.")

    inventory = adjust_inventory(actor.inventory, item_name, -quantity)
    ground = adjust_inventory(chunk.items, item_name, quantity, template=item)
    return GenericOutcome(
        kind="drop",
        actor_id=actor.id,
        target_id=item_name,
        message=f"You drop {quantity} {item_name}.",
        player_before=actor,
        player_after=replace(actor, inventory=inventory),
        chunk_after=replace(chunk, items=ground),
    )


def calculate_wait(actor: ActorState) -> GenericOutcome:
    return GenericOutcome(
        kind="wait",
        actor_id=actor.id,
        target_id=actor.id,
        message="You wait and watch the world go by.",
        player_before=actor,
        player_after=actor,
    )
