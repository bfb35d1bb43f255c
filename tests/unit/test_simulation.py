"""
Tests for per-tick rules and the simulation engines.
"""

from pathweaver.core.models import GameClock, PlantPart, StatusEffect
from pathweaver.core.simulation import (
    WEATHER_MESSAGES,
    CreatureEngine,
    PlantEngine,
    WeatherEngine,
    process_tick_effects,
)
from tests.fixtures import (
    ScriptedRandom,
    make_chunk,
    make_creature,
    make_plant,
    make_player,
    make_state,
    make_world,
)


class TestTickEffects:
    """Tests for process_tick_effects()."""

    def test_hunger_and_regen(self):
        player, messages = process_tick_effects(make_player(stamina=50, hunger=10))
        assert player.hunger == 11
        assert player.stamina == 51
        assert messages == []

    def test_poison_ticks_and_expires(self):
        poison = StatusEffect("poison", duration=2, hp_per_tick=-3)
        player = make_player(status_effects=(poison,))

        player, messages = process_tick_effects(player)
        assert player.hp == 97
        assert player.status_effects[0].duration == 1
        assert messages == ["You lose 3 hp to poison."]

        player, messages = process_tick_effects(player)
        assert player.hp == 94
        assert player.status_effects == ()
        assert "The poison effect wears off." in messages

    def test_regeneration_status(self):
        regen = StatusEffect("regeneration", duration=3, hp_per_tick=2)
        player, messages = process_tick_effects(make_player(hp=90, status_effects=(regen,)))
        assert player.hp == 92
        assert messages == ["Regeneration restores 2 hp."]

    def test_starvation(self):
        player, messages = process_tick_effects(make_player(hunger=99, stamina=50))
        assert player.hunger == 100
        assert player.hp == 98
        assert player.stamina == 50
        assert messages == ["You are starving! (-2 hp)"]

    def test_hp_clamped(self):
        poison = StatusEffect("poison", duration=5, hp_per_tick=-10)
        player, _ = process_tick_effects(make_player(hp=4, status_effects=(poison,)))
        assert player.hp == 0


class TestWeatherEngine:
    """Tests for WeatherEngine."""

    def test_changes_on_interval(self):
        state = make_state()
        engine = WeatherEngine(ScriptedRandom(floats=[0.1]), change_every=8)
        messages = engine.simulate(state, GameClock(turn=8))
        assert state.weather == "cloudy"
        assert messages == [WEATHER_MESSAGES["cloudy"]]

    def test_quiet_between_intervals(self):
        state = make_state()
        engine = WeatherEngine(ScriptedRandom(floats=[0.1]), change_every=8)
        assert engine.simulate(state, GameClock(turn=3)) == []
        assert state.weather == "clear"

    def test_failed_roll(self):
        state = make_state()
        engine = WeatherEngine(ScriptedRandom(floats=[0.9]))
        assert engine.simulate(state, GameClock(turn=8)) == []


class TestPlantEngine:
    """Tests for PlantEngine."""

    def test_depleted_plant_withers(self):
        plant = make_plant(parts=(PlantPart("root", 0, 1),))
        state = make_state(world=make_world(center_enemy=plant))
        messages = PlantEngine(ScriptedRandom()).simulate(state)
        assert messages == ["The Berry Bush withers away."]
        assert state.current_chunk().enemy is None

    def test_regrows_on_interval(self):
        plant = make_plant(parts=(PlantPart("berries", 1, 3),))
        state = make_state(world=make_world(center_enemy=plant))
        engine = PlantEngine(ScriptedRandom(floats=[0.0]), regrow_every=2)
        engine.simulate(state)
        assert state.current_chunk().enemy.part("berries").current_qty == 1
        engine.simulate(state)
        assert state.current_chunk().enemy.part("berries").current_qty == 2

    def test_remote_removal_is_silent(self):
        plant = make_plant(parts=(PlantPart("root", 0, 1),))
        world = make_world()
        world.put_chunk(make_chunk(1, 0, enemy=plant))
        state = make_state(world=world)
        assert PlantEngine(ScriptedRandom()).simulate(state) == []
        assert world.get_chunk("1,0").enemy is None


class TestCreatureEngine:
    """Tests for CreatureEngine."""

    def test_attack_is_buffered(self):
        """The warning comes now, the hit on the next pass."""
        state = make_state(world=make_world(center_enemy=make_creature()))
        engine = CreatureEngine(ScriptedRandom(floats=[0.0]))
        assert engine.simulate(state) == ["The Wolf readies an attack."]
        pending = engine.drain_pending()
        assert len(pending) == 1
        assert pending[0].player_damage == 4
        assert pending[0].message == "The Wolf attacks you for 4 damage."
        assert engine.drain_pending() == []

    def test_passive_creature_ignored(self):
        state = make_state(world=make_world(center_enemy=make_creature(behavior="passive")))
        engine = CreatureEngine(ScriptedRandom(floats=[0.0]))
        assert engine.simulate(state) == []
        assert engine.drain_pending() == []

    def test_neighbour_approaches(self):
        world = make_world()
        world.put_chunk(make_chunk(1, 0, enemy=make_creature()))
        state = make_state(world=world)
        engine = CreatureEngine(ScriptedRandom(floats=[0.0]))
        assert engine.simulate(state) == ["You hear something moving nearby."]
        update = engine.drain_pending()[0]
        assert (update.from_key, update.to_key) == ("1,0", "0,0")

    def test_reset(self):
        state = make_state(world=make_world(center_enemy=make_creature()))
        engine = CreatureEngine(ScriptedRandom(floats=[0.0]))
        engine.simulate(state)
        engine.reset()
        assert engine.drain_pending() == []
