"""
Integration tests for synchronous session flows.

Each test drives GameSession the way the UI would and checks state, log and
turn counter together.
"""

import random

import pytest

from pathweaver.config import GameSettings
from pathweaver.core.actions import DIRECTION_OFFSETS
from pathweaver.core.advancer import GAME_OVER_MESSAGE
from pathweaver.core.models import Rejection
from pathweaver.core.quests import Objective, Quest, QuestBook
from pathweaver.core.session import GameSession
from pathweaver.core.simulation import CreatureEngine, PlantEngine, WeatherEngine
from tests.fixtures import (
    ScriptedRandom,
    make_chunk,
    make_creature,
    make_plant,
    make_player,
    make_potion,
    make_skill,
    make_state,
    make_world,
)


def make_session(state, **settings):
    settings.setdefault("move_throttle_ms", 0)
    return GameSession(state, settings=GameSettings(**settings), rng=ScriptedRandom())


class TestAttackFlow:
    """Attack from dice roll to committed state."""

    def test_great_success_hit(self, combat_session):
        combat_session.rng.ints = [17]
        outcome = combat_session.attack(turn=0)

        state = combat_session.state
        assert outcome.damage_dealt == 15
        assert state.player.hp == 96
        assert state.current_chunk().enemy.hp == 5
        assert state.clock.turn == 1
        assert combat_session.queue.log.texts()[:2] == [
            "You hit the Wolf for 15 damage.",
            "The Wolf strikes back for 4 damage.",
        ]

    def test_double_fire_applies_once(self, combat_session):
        """A second handler call carrying the same turn is a silent no-op."""
        combat_session.rng.ints = [17]
        assert combat_session.attack(turn=0) is not None
        assert combat_session.attack(turn=0) is None

        state = combat_session.state
        assert state.player.hp == 96
        assert state.current_chunk().enemy.hp == 5
        assert state.clock.turn == 1
        assert state.statistics.get("damage_dealt") == 15

    def test_rejection_changes_nothing(self, session):
        before = session.state.player
        result = session.attack(turn=0)

        assert isinstance(result, Rejection)
        assert result.reason == "no_target"
        assert session.state.player is before
        assert session.state.clock.turn == 0
        assert session.guard.current_turn == 0
        assert session.queue.log.texts() == ["There is nothing here to attack."]

    def test_kill_completes_quest(self):
        quests = QuestBook(quests=[Quest("thin_pack", "Thin the Pack", Objective("kills", 1, "wolf"))])
        state = make_state(world=make_world(center_enemy=make_creature()), quests=quests)
        session = make_session(state)
        session.rng.ints = [20]

        outcome = session.attack(turn=0)

        assert outcome.defeated
        assert state.current_chunk().enemy is None
        assert state.player.item_count("Wolf Pelt") == 1
        assert state.statistics.get("kills", "wolf") == 1
        assert quests.completed == ["thin_pack"]
        texts = session.queue.log.texts()
        assert texts[:4] == [
            "You hit the Wolf for 20 damage.",
            "The Wolf is defeated! (+10 XP)",
            "You collect 1 Wolf Pelt.",
            "Quest complete: Thin the Pack",
        ]
        cues = [cue.cue for cue in session.audio.drain()]
        assert "enemy_defeated" in cues
        assert "quest_complete" in cues


class TestGameOver:
    """The fatal action's lines come before the game over line."""

    @pytest.fixture
    def doomed(self):
        state = make_state(player=make_player(hp=4),
                           world=make_world(center_enemy=make_creature(damage=4)))
        return make_session(state)

    def test_fatal_counterattack(self, doomed):
        outcome = doomed.attack(turn=0)

        assert outcome.damage_dealt == 0
        assert doomed.state.game_over
        assert doomed.queue.log.texts()[-3:] == [
            "You swing at the Wolf and miss.",
            "The Wolf strikes back for 4 damage.",
            GAME_OVER_MESSAGE,
        ]

    def test_everything_locked_after(self, doomed):
        doomed.attack(turn=0)
        turn = doomed.state.clock.turn

        assert doomed.attack(turn=turn) is None
        assert doomed.move("north", turn=turn) is None
        assert doomed.on_key("w", now=10_000) is None
        assert doomed.pass_time() is None
        assert doomed.state.clock.turn == turn
        assert doomed.queue.log.texts().count(GAME_OVER_MESSAGE) == 1


class TestMovement:
    """Movement and the key throttle."""

    def test_move(self, session):
        outcome = session.move("north", turn=0)
        assert outcome.to_key == "0,1"
        assert session.state.position == DIRECTION_OFFSETS["north"]
        assert session.state.clock.turn == 1
        assert session.queue.log.texts()[0] == "You head north into the grassland."
        assert session.state.statistics.get("moves") == 1

    def test_edge_of_world(self, session):
        session.move("north", turn=0)
        result = session.move("north", turn=1)
        assert isinstance(result, Rejection)
        assert result.reason == "no_chunk"
        assert session.state.position == (0, 1)
        assert session.state.clock.turn == 1

    def test_encounter_line(self):
        world = make_world()
        world.put_chunk(make_chunk(1, 0, enemy=make_creature()))
        session = make_session(make_state(world=world))
        session.move("east", turn=0)
        assert session.queue.log.texts()[:2] == ["You head east into the grassland.", "A Wolf is here."]

    def test_key_presses_throttled(self, state):
        session = make_session(state, move_throttle_ms=300)
        assert session.on_key("w", now=0) is not None
        assert session.on_key("d", now=100) is None
        assert session.on_key("d", now=299) is None
        assert session.on_key("d", now=300) is not None
        assert session.state.position == (1, 1)
        assert session.state.clock.turn == 2

    def test_can_emit_move(self, state):
        session = make_session(state, move_throttle_ms=300)
        assert session.can_emit_move(now=0)
        session.on_key("w", now=0)
        assert not session.can_emit_move(now=150)
        assert session.can_emit_move(now=300)

    def test_unmapped_key(self, session):
        assert session.on_key("x", now=0) is None
        assert session.state.clock.turn == 0

    def test_no_moves_while_animating(self, session):
        session.animating = True
        assert session.on_key("w", now=0) is None
        session.animating = False
        assert session.on_key("w", now=0) is not None


class TestSkillAndItemFlow:
    def test_fireball(self):
        player = make_player(skills=(make_skill(),))
        state = make_state(player=player, world=make_world(center_enemy=make_creature()))
        session = make_session(state)
        session.rng.ints = [12]

        outcome = session.use_skill("Fireball", turn=0)

        assert outcome.amount_applied == 10
        assert state.player.mana == 40
        assert state.current_chunk().enemy.hp == 10
        assert state.statistics.get("skills_cast", "Fireball") == 1
        assert session.queue.log.texts()[0] == "Fireball hits the Wolf for 10 damage."

    def test_unknown_skill_rejected_before_roll(self, session):
        session.rng.ints = [20]
        result = session.use_skill("Fireball", turn=0)
        assert result.reason == "unknown_skill"
        assert session.rng.ints == [20]
        assert session.last_roll is None

    def test_potion(self):
        session = make_session(make_state(player=make_player(hp=50, inventory=(make_potion(),))))
        session.rng.ints = [12]

        session.use_item("Healing Potion", turn=0)

        assert session.state.player.hp == 70
        assert session.state.player.item_count("Healing Potion") == 0
        assert session.state.statistics.get("items_used", "Healing Potion") == 1

    def test_potion_double_fire_drinks_once(self):
        player = make_player(hp=50, inventory=(make_potion(quantity=2),))
        session = make_session(make_state(player=player))
        session.rng.ints = [12, 12]

        assert session.use_item("Healing Potion", turn=0) is not None
        assert session.use_item("Healing Potion", turn=0) is None

        assert session.state.player.hp == 70
        assert session.state.player.item_count("Healing Potion") == 1
        assert session.state.statistics.get("items_used", "Healing Potion") == 1
        assert session.state.clock.turn == 1
        assert session.rng.ints == [12]

    def test_turn_is_required(self, session):
        with pytest.raises(TypeError):
            session.use_item("Healing Potion")
        with pytest.raises(TypeError):
            session.wait()


class TestHarvestFlow:
    def test_part_harvest(self):
        state = make_state(world=make_world(center_enemy=make_plant()))
        session = make_session(state)
        session.rng.ints = [12]

        outcome = session.harvest("berries", turn=0)

        assert outcome.loot[0].name == "Berries"
        assert state.player.item_count("Berries") == 1
        assert state.player.stamina == 96
        assert state.current_chunk().enemy.part("berries").current_qty == 1
        assert state.statistics.get("harvests", "Berry Bush") == 1
        assert state.statistics.get("items_collected", "Berries") == 1
        assert session.queue.log.texts()[0] == "You harvest the berries: 1 Berries."

    def test_part_required(self):
        session = make_session(make_state(world=make_world(center_enemy=make_plant())))
        result = session.harvest(turn=0)
        assert result.reason == "part_required"
        assert session.state.clock.turn == 0


class TestSessionLifecycle:
    def test_rest_and_wait_advance(self, session):
        session.rest(turn=0)
        session.wait(turn=1)
        assert session.state.clock.turn == 2

    def test_pass_time(self, session):
        report = session.pass_time()
        assert report.turn == 1
        assert session.state.player.hunger == 1

    def test_return_to_menu(self, combat_session):
        combat_session.rng.ints = [17]
        combat_session.attack(turn=0)
        combat_session.return_to_menu()

        result = combat_session.attack(turn=1)
        assert result.reason == "not_ready"
        assert combat_session.pass_time() is None
        assert combat_session.audio.drain() == []

    def test_snapshot(self, session):
        session.move("north", turn=0)
        snapshot = session.snapshot()
        assert set(snapshot) == {
            "player", "position", "clock", "weather", "narrative",
            "statistics", "busy", "game_over",
        }
        assert snapshot["clock"]["turn"] == 1
        assert snapshot["clock"]["period"] == "dawn"
        assert snapshot["player"]["hp"] == 100
        assert snapshot["statistics"]["moves"] == 1


class TestDeterminism:
    """Identically seeded sessions tell the same story."""

    SCRIPT = [
        lambda s: s.attack(turn=s.state.clock.turn),
        lambda s: s.attack(turn=s.state.clock.turn),
        lambda s: s.wait(turn=s.state.clock.turn),
        lambda s: s.pass_time(),
        lambda s: s.move("east", turn=s.state.clock.turn),
        lambda s: s.rest(turn=s.state.clock.turn),
        lambda s: s.attack(turn=s.state.clock.turn),
    ]

    def play(self, seed):
        state = make_state(world=make_world(center_enemy=make_creature()))
        session = GameSession(
            state,
            settings=GameSettings(move_throttle_ms=0),
            rng=random.Random(seed),
            weather=WeatherEngine(random.Random(seed), change_every=1),
            plants=PlantEngine(random.Random(seed)),
            creatures=CreatureEngine(random.Random(seed)),
        )
        for step in self.SCRIPT:
            step(session)
        return session

    def test_same_seed_same_log(self):
        first, second = self.play(7), self.play(7)
        assert first.queue.log.texts() == second.queue.log.texts()
        assert first.state.player == second.state.player
        assert first.state.weather == second.state.weather
        assert first.state.clock == second.state.clock
