"""
Turn/Tick Advancer.

One pass per resolved player action, in a fixed order:
1. commit creature updates buffered by the previous pass
2. advance the clock
3. status effects and hunger, as one player update
4. weather
5. plants, then creatures (their effects land on the next pass)
6. flush the narrative queue once

The dedup guard moves to the new turn at the end of the pass.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from .balance_config import BalanceConfig
from .clock_config import ClockConfig
from .dedup import DeduplicationGuard
from .models import ActorState, GameClock, GameState
from .narrative_queue import NarrativeQueue
from .simulation import process_tick_effects

logger = logging.getLogger(__name__)

GAME_OVER_MESSAGE = "You have fallen. Your journey ends here."


@dataclass
class TurnReport:
    """What one advancer pass did."""
    turn: int
    day: int
    game_time: int
    period: str
    creature_messages: list = field(default_factory=list)
    tick_messages: list = field(default_factory=list)
    weather_messages: list = field(default_factory=list)
    simulation_messages: list = field(default_factory=list)
    flushed: int = 0
    game_over: bool = False

    @property
    def messages(self) -> list:
        return (self.creature_messages + self.tick_messages
                + self.weather_messages + self.simulation_messages)

    def to_dict(self) -> dict:
        return {
            "turn": self.turn,
            "day": self.day,
            "game_time": self.game_time,
            "period": self.period,
            "messages": self.messages,
            "game_over": self.game_over,
        }


class TurnAdvancer:
    def __init__(
        self,
        state: GameState,
        queue: NarrativeQueue,
        guard: DeduplicationGuard,
        weather=None,
        plants=None,
        creatures=None,
        clock_config: Optional[ClockConfig] = None,
        balance: Optional[BalanceConfig] = None,
        on_stage: Optional[Callable[[str], None]] = None,
    ):
        self.state = state
        self.queue = queue
        self.guard = guard
        self.weather = weather
        self.plants = plants
        self.creatures = creatures
        self.clock_config = clock_config or ClockConfig()
        self.balance = balance or BalanceConfig()
        self.on_stage = on_stage

    def _notify(self, stage: str):
        if self.on_stage:
            self.on_stage(stage)

    def commit_player(self, player: ActorState) -> None:
        """Store a player snapshot; announce game over the first time hp hits 0."""
        if self.state.commit_player(player):
            logger.info("Game over on turn %d", self.state.clock.turn)
            self.queue.enqueue(GAME_OVER_MESSAGE, kind="system")

    def advance(self, player: Optional[ActorState] = None) -> TurnReport:
        if player is not None:
            self.commit_player(player)

        self._notify("creatures")
        creature_messages = self._apply_pending_creatures()

        self._notify("clock")
        old_period = self.clock_config.period_for(self.state.clock.game_time)
        clock = self._advance_clock()
        period = self.clock_config.period_for(clock.game_time)

        tick_messages = []
        if period != old_period:
            tick_messages.append(f"It is now {period.replace('_', ' ')}.")
        weather_messages = []
        simulation_messages = []

        if not self.state.game_over:
            self._notify("ticks")
            updated, messages = process_tick_effects(self.state.player, self.balance)
            tick_messages.extend(messages)
            self._enqueue_all(tick_messages, "system")
            self.commit_player(updated)
        else:
            self._enqueue_all(tick_messages, "system")

        if not self.state.game_over:
            self._notify("weather")
            if self.weather is not None:
                weather_messages = list(self.weather.simulate(self.state, clock))
            self._enqueue_all(weather_messages, "narrative")

            self._notify("simulation")
            if self.plants is not None:
                simulation_messages.extend(self.plants.simulate(self.state))
            if self.creatures is not None:
                simulation_messages.extend(self.creatures.simulate(self.state))
            self._enqueue_all(simulation_messages, "narrative")

        self._notify("flush")
        flushed = self.queue.flush()
        self.guard.begin_turn(clock.turn)

        logger.debug("Turn %d done (day %d, %s), %d entries flushed",
                     clock.turn, clock.day, period, flushed)
        return TurnReport(
            turn=clock.turn,
            day=clock.day,
            game_time=clock.game_time,
            period=period,
            creature_messages=creature_messages,
            tick_messages=tick_messages,
            weather_messages=weather_messages,
            simulation_messages=simulation_messages,
            flushed=flushed,
            game_over=self.state.game_over,
        )

    def _enqueue_all(self, messages: list, kind: str) -> None:
        for text in messages:
            self.queue.enqueue(text, kind=kind)

    def _advance_clock(self) -> GameClock:
        clock = self.state.clock
        game_time, day = self.clock_config.advance(clock.game_time, clock.day)
        self.state.clock = GameClock(game_time=game_time, day=day, turn=clock.turn + 1)
        if day != clock.day:
            logger.info("Day %d begins", day)
        return self.state.clock

    def _apply_pending_creatures(self) -> list:
        if self.creatures is None or self.state.game_over:
            return []

        messages = []
        world = self.state.world
        for update in self.creatures.drain_pending():
            if update.from_key and update.to_key:
                source = world.get_chunk(update.from_key)
                target = world.get_chunk(update.to_key)
                if (source is None or target is None or target.enemy is not None
                        or source.enemy is None or source.enemy.id != update.creature.id):
                    continue
                world.put_chunk(replace(source, enemy=None))
                world.put_chunk(replace(target, enemy=source.enemy))
                messages.append(update.message)
                self.queue.enqueue(update.message, kind="narrative")
                continue

            if update.player_damage:
                here = self.state.current_chunk()
                # The attacker must still be standing with the player
                if here is None or here.enemy is None or here.enemy.id != update.creature.id:
                    continue
                player = self.state.player
                messages.append(update.message)
                self.queue.enqueue(update.message, kind="narrative")
                self.commit_player(replace(player, hp=max(0, player.hp - update.player_damage)))
                if self.state.game_over:
                    break
                continue

            messages.append(update.message)
            self.queue.enqueue(update.message, kind="narrative")
        return messages

    def reset(self) -> None:
        for engine in (self.weather, self.plants, self.creatures):
            if engine is not None:
                engine.reset()
