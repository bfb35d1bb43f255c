"""
Per-tick rules and the simulation engines the advancer drives.

Engines are owned services: the session creates them, hands them to the
TurnAdvancer, and calls reset() when play returns to the menu.
"""

import logging
import random
from dataclasses import dataclass, replace
from typing import Optional

from .balance_config import BalanceConfig
from .models import ActorState, Creature, GameClock, GameState, clamp
from .world import chunk_key

logger = logging.getLogger(__name__)


def process_tick_effects(player: ActorState,
                         config: Optional[BalanceConfig] = None) -> tuple[ActorState, list]:
    """Status effects and hunger for one tick, as a single player update."""
    survival = (config or BalanceConfig()).survival
    messages = []
    hp = player.hp
    stamina = player.stamina

    remaining = []
    for effect in player.status_effects:
        hp += effect.hp_per_tick
        stamina += effect.stamina_per_tick
        if effect.hp_per_tick < 0:
            messages.append(f"You lose {-effect.hp_per_tick} hp to {effect.name}.")
        elif effect.hp_per_tick > 0:
            messages.append(f"{effect.name.capitalize()} restores {effect.hp_per_tick} hp.")
        duration = effect.duration - 1
        if duration > 0:
            remaining.append(replace(effect, duration=duration))
        else:
            messages.append(f"The {effect.name} effect wears off.")

    hunger = min(survival.max_stat, player.hunger + survival.hunger_per_tick)
    if hunger >= survival.starvation_threshold:
        hp -= survival.starvation_damage
        messages.append(f"You are starving! (-{survival.starvation_damage} hp)")
    else:
        stamina += survival.stamina_regen_per_tick

    updated = replace(
        player,
        hp=clamp(hp, 0, player.max_hp),
        stamina=clamp(stamina, 0, player.max_stamina),
        hunger=hunger,
        status_effects=tuple(remaining),
    )
    return updated, messages


def _nearby_keys(position: tuple) -> list[str]:
    x, y = position
    keys = [chunk_key(x, y)]
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            if dx or dy:
                keys.append(chunk_key(x + dx, y + dy))
    return keys


# =============================================================================
# Weather
# =============================================================================

WEATHER_STATES = ("clear", "cloudy", "rain", "storm", "fog")

WEATHER_MESSAGES = {
    "clear": "The sky clears.",
    "cloudy": "Clouds gather overhead.",
    "rain": "Rain begins to fall.",
    "storm": "A storm rolls in.",
    "fog": "A thick fog settles around you.",
}


class WeatherEngine:
    """Rolls for a weather change every change_every turns."""

    def __init__(self, rng: Optional[random.Random] = None, change_every: int = 8,
                 change_chance: float = 0.5):
        self.rng = rng or random.Random()
        self.change_every = change_every
        self.change_chance = change_chance

    def simulate(self, state: GameState, clock: GameClock) -> list:
        if self.change_every <= 0 or clock.turn % self.change_every != 0:
            return []
        if self.rng.random() >= self.change_chance:
            return []
        options = [w for w in WEATHER_STATES if w != state.weather]
        state.weather = self.rng.choice(options)
        logger.debug("Weather changed to %s on turn %d", state.weather, clock.turn)
        return [WEATHER_MESSAGES[state.weather]]

    def reset(self) -> None:
        pass


# =============================================================================
# Plants
# =============================================================================

class PlantEngine:
    """Regrows plant parts and removes plants with nothing left.

    Only chunks around the player are simulated.
    """

    def __init__(self, rng: Optional[random.Random] = None, regrow_every: int = 4,
                 regrow_chance: float = 0.5):
        self.rng = rng or random.Random()
        self.regrow_every = regrow_every
        self.regrow_chance = regrow_chance
        self._ticks = 0

    def simulate(self, state: GameState) -> list:
        self._ticks += 1
        regrow = self.regrow_every > 0 and self._ticks % self.regrow_every == 0
        messages = []
        here = state.position_key

        for key in _nearby_keys(state.position):
            chunk = state.world.get_chunk(key)
            if chunk is None or chunk.enemy is None or not chunk.enemy.parts:
                continue
            plant = chunk.enemy
            if plant.all_parts_depleted:
                state.world.put_chunk(replace(chunk, enemy=None))
                if key == here:
                    messages.append(f"The {plant.name} withers away.")
                continue
            if regrow:
                grown = self._regrow(plant)
                if grown is not plant:
                    state.world.put_chunk(replace(chunk, enemy=grown))
        return messages

    def _regrow(self, plant: Creature) -> Creature:
        parts = []
        changed = False
        for part in plant.parts:
            if part.current_qty < part.max_qty and self.rng.random() < self.regrow_chance:
                parts.append(replace(part, current_qty=part.current_qty + 1))
                changed = True
            else:
                parts.append(part)
        return replace(plant, parts=tuple(parts)) if changed else plant

    def reset(self) -> None:
        self._ticks = 0


# =============================================================================
# Creatures
# =============================================================================

@dataclass(frozen=True)
class CreatureUpdate:
    """Creature action computed on one tick and committed on the next."""
    message: str
    player_damage: int = 0
    creature: Optional[Creature] = None
    from_key: Optional[str] = None
    to_key: Optional[str] = None


class CreatureEngine:
    """Aggressive creatures near the player close in and attack.

    simulate() returns this tick's messages and buffers CreatureUpdates; the
    advancer commits them at the start of its next pass.
    """

    def __init__(self, rng: Optional[random.Random] = None, attack_chance: float = 0.5,
                 approach_chance: float = 0.25):
        self.rng = rng or random.Random()
        self.attack_chance = attack_chance
        self.approach_chance = approach_chance
        self._pending: list[CreatureUpdate] = []

    def simulate(self, state: GameState) -> list:
        messages = []
        here = state.current_chunk()
        if here is None:
            return messages

        enemy = here.enemy
        if enemy is not None and self._is_hostile(enemy):
            if self.rng.random() < self.attack_chance:
                messages.append(f"The {enemy.name} readies an attack.")
                self._pending.append(CreatureUpdate(
                    message=f"The {enemy.name} attacks you for {enemy.damage} damage.",
                    player_damage=enemy.damage,
                    creature=enemy,
                ))
            return messages

        if enemy is None:
            for key in _nearby_keys(state.position)[1:]:
                chunk = state.world.get_chunk(key)
                if chunk is None or chunk.enemy is None or not self._is_hostile(chunk.enemy):
                    continue
                if self.rng.random() < self.approach_chance:
                    messages.append("You hear something moving nearby.")
                    self._pending.append(CreatureUpdate(
                        message=f"A {chunk.enemy.name} approaches.",
                        creature=chunk.enemy,
                        from_key=key,
                        to_key=here.key,
                    ))
                    break
        return messages

    @staticmethod
    def _is_hostile(creature: Creature) -> bool:
        return creature.behavior == "aggressive" and creature.hp > 0 and not creature.parts

    def drain_pending(self) -> list:
        pending, self._pending = self._pending, []
        return pending

    def reset(self) -> None:
        self._pending = []
