"""
Factory functions for creating test actors, items and creatures.

These build frozen snapshots; use world.py to place creatures in chunks.
"""

from typing import Optional

from pathweaver.core.models import (
    ActorState,
    Creature,
    EffectSpec,
    HarvestTable,
    InventoryItem,
    LootEntry,
    PlantPart,
    Skill,
)


def make_item(name: str, quantity: int = 1, **overrides) -> InventoryItem:
    return InventoryItem(name=name, quantity=quantity, **overrides)


def make_potion(name: str = "Healing Potion", amount: int = 20, quantity: int = 1) -> InventoryItem:
    """A consumable with a single HEAL effect."""
    return InventoryItem(
        name=name,
        quantity=quantity,
        effects=(EffectSpec("HEAL", amount=amount),),
    )


def make_skill(name: str = "Fireball", effect_type: str = "DAMAGE", amount: int = 10,
               mana_cost: int = 10, **effect_kwargs) -> Skill:
    return Skill(name=name, mana_cost=mana_cost,
                 effect=EffectSpec(effect_type, amount=amount, **effect_kwargs))


def make_player(
    id: str = "player",
    name: str = "Test Player",
    inventory: Optional[tuple] = None,
    skills: Optional[tuple] = None,
    **overrides
) -> ActorState:
    """
    Create a player snapshot.

    Args:
        id: Actor ID (default: "player")
        name: Character name
        inventory: Items carried (default: empty)
        skills: Known skills (default: empty)
        **overrides: Any other ActorState field

    Returns:
        Frozen ActorState
    """
    return ActorState(
        id=id,
        name=name,
        inventory=tuple(inventory or ()),
        skills=tuple(skills or ()),
        **overrides
    )


def make_creature(
    id: str = "wolf-1",
    name: str = "Wolf",
    hp: int = 20,
    damage: int = 4,
    behavior: str = "aggressive",
    size: str = "medium",
    loot: Optional[tuple] = None,
    **overrides
) -> Creature:
    """Create a hostile creature with an optional loot table."""
    return Creature(
        id=id,
        name=name,
        creature_type=overrides.pop("creature_type", "wolf"),
        hp=hp,
        max_hp=overrides.pop("max_hp", hp),
        damage=damage,
        behavior=behavior,
        size=size,
        loot=tuple(loot) if loot is not None else (LootEntry("Wolf Pelt", 0.5, 1, 2),),
        **overrides
    )


def make_plant(
    id: str = "bush-1",
    name: str = "Berry Bush",
    parts: Optional[tuple] = None,
) -> Creature:
    """Create a part-based harvestable plant."""
    if parts is None:
        parts = (
            PlantPart("berries", current_qty=2, max_qty=3,
                      loot=(LootEntry("Berries", 1.0, 1, 3),)),
            PlantPart("leaves", current_qty=1, max_qty=2,
                      loot=(LootEntry("Leaf", 1.0, 1, 1),)),
        )
    return Creature(
        id=id,
        name=name,
        creature_type="plant",
        hp=5,
        max_hp=5,
        damage=0,
        behavior="immobile",
        size="small",
        loot=(),
        parts=tuple(parts),
    )


def make_tree(id: str = "tree-1", name: str = "Oak Tree",
              required_tool: Optional[str] = "Axe") -> Creature:
    """Create a whole-target harvestable."""
    return Creature(
        id=id,
        name=name,
        creature_type="tree",
        hp=50,
        max_hp=50,
        damage=0,
        behavior="immobile",
        size="large",
        harvestable=HarvestTable(
            loot=(LootEntry("Wood", 1.0, 2, 4),),
            required_tool=required_tool,
        ),
    )
