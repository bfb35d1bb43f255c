"""
Core data model.

Snapshots handed to the outcome calculators are frozen dataclasses; the
calculators return new values via dataclasses.replace. GameState is the one
long-lived mutable aggregate and is only written by the turn advancer and the
effect sinks it owns.
"""

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Optional

from .dice import SuccessLevel


# =============================================================================
# Actors and inventory
# =============================================================================

@dataclass(frozen=True)
class EffectSpec:
    """One effect carried by an item or skill.

    effect_type is an open tag: HEAL, DAMAGE, RESTORE_STAMINA, RESTORE_MANA,
    RESTORE_HUNGER, APPLY_STATUS_EFFECT, GAMBLE_EFFECT.
    """
    effect_type: str
    amount: int = 0
    status: Optional[str] = None
    duration: int = 0
    hp_per_tick: int = 0
    stamina_per_tick: int = 0
    heal_ratio: float = 0.0


@dataclass(frozen=True)
class StatusEffect:
    """Timed condition ticked by the advancer."""
    name: str
    duration: int
    hp_per_tick: int = 0
    stamina_per_tick: int = 0


@dataclass(frozen=True)
class InventoryItem:
    name: str
    quantity: int = 1
    effects: tuple = ()
    slot: Optional[str] = None
    attack_bonus: int = 0
    defense_bonus: int = 0
    is_tool: bool = False


@dataclass(frozen=True)
class Skill:
    name: str
    mana_cost: int
    effect: EffectSpec
    description: str = ""


@dataclass(frozen=True)
class ActorState:
    """Read-only snapshot of the player."""
    id: str
    name: str
    hp: int = 100
    max_hp: int = 100
    stamina: int = 100
    max_stamina: int = 100
    mana: int = 50
    max_mana: int = 50
    hunger: int = 0
    attack: int = 10
    defense: int = 0
    magic_attack: int = 0
    level: int = 1
    experience: int = 0
    status_effects: tuple = ()
    inventory: tuple = ()
    skills: tuple = ()
    equipment: tuple = ()

    @property
    def attack_power(self) -> int:
        return self.attack + sum(item.attack_bonus for _, item in self.equipment)

    @property
    def is_dead(self) -> bool:
        return self.hp <= 0

    def item(self, name: str) -> Optional[InventoryItem]:
        for entry in self.inventory:
            if entry.name == name:
                return entry
        return None

    def item_count(self, name: str) -> int:
        entry = self.item(name)
        return entry.quantity if entry else 0

    def skill(self, name: str) -> Optional[Skill]:
        for entry in self.skills:
            if entry.name == name:
                return entry
        return None

    def equipped(self, slot: str) -> Optional[InventoryItem]:
        for equipped_slot, item in self.equipment:
            if equipped_slot == slot:
                return item
        return None

    def has_tool(self, tool: Optional[str]) -> bool:
        """True when no tool is needed, or it is carried or equipped."""
        if not tool:
            return True
        if self.item_count(tool) > 0:
            return True
        return any(item.name == tool for _, item in self.equipment)

    def has_status(self, name: str) -> bool:
        return any(effect.name == name for effect in self.status_effects)


def adjust_inventory(inventory: tuple, name: str, delta: int,
                     template: Optional[InventoryItem] = None) -> tuple:
    """Return a new inventory with name's quantity moved by delta.

    Entries reaching zero are removed. New entries copy template when given.
    """
    items = []
    found = False
    for entry in inventory:
        if entry.name == name:
            found = True
            quantity = entry.quantity + delta
            if quantity > 0:
                items.append(replace(entry, quantity=quantity))
        else:
            items.append(entry)

    if not found and delta > 0:
        if template is not None:
            items.append(replace(template, quantity=delta))
        else:
            items.append(InventoryItem(name=name, quantity=delta))
    return tuple(items)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# =============================================================================
# World
# =============================================================================

@dataclass(frozen=True)
class LootEntry:
    name: str
    chance: float
    min_qty: int = 1
    max_qty: int = 3


@dataclass(frozen=True)
class LootDrop:
    name: str
    quantity: int


@dataclass(frozen=True)
class HarvestTable:
    """Whole-target harvest: roll once, remove the target."""
    loot: tuple = ()
    required_tool: Optional[str] = None


@dataclass(frozen=True)
class PlantPart:
    name: str
    current_qty: int
    max_qty: int
    stamina_cost: int = 5
    loot: tuple = ()
    required_tool: Optional[str] = None


@dataclass(frozen=True)
class Creature:
    """Enemy or plant occupying a chunk."""
    id: str
    name: str
    creature_type: str = "beast"
    hp: int = 10
    max_hp: int = 10
    damage: int = 2
    level: int = 1
    behavior: str = "aggressive"
    size: str = "medium"
    loot: tuple = ()
    harvestable: Optional[HarvestTable] = None
    parts: tuple = ()

    def part(self, name: str) -> Optional[PlantPart]:
        for entry in self.parts:
            if entry.name == name:
                return entry
        return None

    @property
    def all_parts_depleted(self) -> bool:
        return bool(self.parts) and all(p.current_qty <= 0 for p in self.parts)


@dataclass(frozen=True)
class Chunk:
    x: int
    y: int
    terrain: str = "grassland"
    light_level: int = 5
    moisture: int = 5
    temperature: int = 20
    enemy: Optional[Creature] = None
    items: tuple = ()
    structures: tuple = ()
    passable: bool = True

    @property
    def key(self) -> str:
        return f"{self.x},{self.y}"


@dataclass(frozen=True)
class Environment:
    """Ambient conditions the calculators read from the current chunk."""
    chunk_key: str = "0,0"
    light_level: int = 5
    moisture: int = 5
    temperature: int = 20

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> "Environment":
        return cls(
            chunk_key=chunk.key,
            light_level=chunk.light_level,
            moisture=chunk.moisture,
            temperature=chunk.temperature,
        )


@dataclass(frozen=True)
class Recipe:
    """Crafting recipe supplied by the item catalog.

    ingredients is a tuple of (item name, quantity) pairs.
    """
    name: str
    result: InventoryItem
    ingredients: tuple = ()
    required_tool: Optional[str] = None


@dataclass(frozen=True)
class Blueprint:
    """Buildable structure; materials as (item name, quantity) pairs."""
    name: str
    materials: tuple = ()
    stamina_cost: int = 10


# =============================================================================
# Outcomes
# =============================================================================

@dataclass(frozen=True)
class Rejection:
    """Precondition failure. Carries no state change."""
    reason: str
    message: str


@dataclass(frozen=True)
class CombatOutcome:
    kind: ClassVar[str] = "attack"

    actor_id: str
    target_id: str
    chunk_key: str
    success_level: SuccessLevel
    enemy_name: str
    enemy_type: str
    damage_dealt: int
    damage_taken: int
    environment_multiplier: float
    enemy_hp_before: int
    enemy_hp_after: int
    player_before: ActorState
    player_after: ActorState
    target_after: Optional[Creature]
    defeated: bool = False
    fled: bool = False
    loot: tuple = ()
    xp_gained: int = 0
    leveled_up: bool = False

    @property
    def player_hp_before(self) -> int:
        return self.player_before.hp

    @property
    def player_hp_after(self) -> int:
        return self.player_after.hp


@dataclass(frozen=True)
class SkillOutcome:
    kind: ClassVar[str] = "skill"

    actor_id: str
    target_id: str
    skill_name: str
    effect_type: str
    success_level: SuccessLevel
    mana_spent: int
    amount_applied: int
    player_before: ActorState
    player_after: ActorState
    chunk_key: Optional[str] = None
    target_after: Optional[Creature] = None
    enemy_name: Optional[str] = None
    enemy_type: Optional[str] = None
    enemy_hp_before: Optional[int] = None
    enemy_hp_after: Optional[int] = None
    defeated: bool = False
    backfired: bool = False
    backfire_damage: int = 0
    gamble_won: Optional[bool] = None
    status_applied: Optional[str] = None
    loot: tuple = ()
    xp_gained: int = 0
    leveled_up: bool = False


@dataclass(frozen=True)
class ItemOutcome:
    kind: ClassVar[str] = "use_item"

    actor_id: str
    target_id: str
    item_name: str
    success_level: SuccessLevel
    applied: tuple
    consumed: bool
    player_before: ActorState
    player_after: ActorState
    gamble_won: Optional[bool] = None
    status_applied: Optional[str] = None


@dataclass(frozen=True)
class HarvestOutcome:
    kind: ClassVar[str] = "harvest"

    actor_id: str
    target_id: str
    chunk_key: str
    target_name: str
    success_level: SuccessLevel
    stamina_spent: int
    player_before: ActorState
    player_after: ActorState
    target_after: Optional[Creature]
    part_name: Optional[str] = None
    loot: tuple = ()
    all_parts_depleted: bool = False
    target_removed: bool = False


@dataclass(frozen=True)
class CraftOutcome:
    kind: ClassVar[str] = "craft"

    actor_id: str
    target_id: str
    recipe_name: str
    success_level: SuccessLevel
    crafted: Optional[LootDrop]
    ingredients_used: tuple
    player_before: ActorState
    player_after: ActorState


@dataclass(frozen=True)
class MoveOutcome:
    kind: ClassVar[str] = "move"

    actor_id: str
    target_id: str
    direction: str
    from_key: str
    to_key: str
    position_after: tuple
    terrain: str
    player_before: ActorState
    player_after: ActorState
    encountered: Optional[str] = None


@dataclass(frozen=True)
class RestOutcome:
    kind: ClassVar[str] = "rest"

    actor_id: str
    target_id: str
    stamina_restored: int
    hp_restored: int
    player_before: ActorState
    player_after: ActorState


@dataclass(frozen=True)
class FusionOutcome:
    kind: ClassVar[str] = "fuse"

    actor_id: str
    target_id: str
    items_used: tuple
    result_item: Optional[InventoryItem]
    narrative: str
    player_before: ActorState
    player_after: ActorState


@dataclass(frozen=True)
class GenericOutcome:
    """Equip, unequip, drop, build and wait."""
    kind: str
    actor_id: str
    target_id: str
    message: str
    player_before: ActorState
    player_after: ActorState
    chunk_after: Optional[Chunk] = None


# =============================================================================
# Clock and aggregate state
# =============================================================================

@dataclass(frozen=True)
class GameClock:
    game_time: int = 360
    day: int = 1
    turn: int = 0


@dataclass
class GameState:
    """Long-lived game aggregate.

    world is a ChunkStore; statistics and quests are the session's
    Statistics and QuestBook.
    """
    player: ActorState
    world: Any
    statistics: Any = None
    quests: Any = None
    clock: GameClock = field(default_factory=GameClock)
    position: tuple = (0, 0)
    weather: str = "clear"
    custom_items: dict = field(default_factory=dict)
    game_over: bool = False

    @property
    def position_key(self) -> str:
        return f"{self.position[0]},{self.position[1]}"

    def current_chunk(self) -> Optional[Chunk]:
        return self.world.get_chunk(self.position_key)

    def commit_player(self, player: ActorState) -> bool:
        """Store a new player snapshot. Returns True if this commit ended the game."""
        self.player = player
        if player.is_dead and not self.game_over:
            self.game_over = True
            return True
        return False
