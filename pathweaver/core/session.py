"""
Game session - the UI-facing handler surface.

One method per player action. Each handler:
1. checks the ready / busy / game-over guards
2. validates preconditions (a Rejection here changes nothing)
3. rolls dice where the action needs it
4. runs the outcome calculator
5. commits through the effect bridge (duplicates are silent no-ops)
6. runs one turn advancer pass

Handlers return the outcome, a Rejection, or None for a suppressed action.
The async handlers talk to the remote narrative service and fall back to the
offline narrator when it fails.
"""

import enum
import logging
import random
import uuid
from dataclasses import asdict, dataclass, replace
from typing import Optional

from ..config import GameSettings
from ..narrative.gateway import NarrativeGateway, gateway_from_settings, schema_for
from ..narrative.offline import offline_fusion, offline_narrative, offline_quest_hint
from .actions import (
    DIRECTION_OFFSETS,
    calculate_build,
    calculate_craft,
    calculate_drop,
    calculate_equip,
    calculate_move,
    calculate_rest,
    calculate_unequip,
    calculate_wait,
    validate_craft,
)
from .advancer import GAME_OVER_MESSAGE, TurnAdvancer, TurnReport
from .balance_config import load_balance_config
from .clock_config import load_clock_config
from .combat import calculate_combat
from .dedup import DedupToken, DeduplicationGuard
from .dice import DiceRoll, SuccessLevel, roll, success_level
from .effect_bridge import (
    AudioCueBuffer,
    EffectBridge,
    EffectExecutor,
    StateSink,
    quest_effects,
    token_for,
)
from .harvest import calculate_harvest, validate_harvest
from .models import (
    ActorState,
    EffectSpec,
    Environment,
    FusionOutcome,
    GameState,
    GenericOutcome,
    InventoryItem,
    Rejection,
    adjust_inventory,
    clamp,
)
from .narrative_queue import NarrativeLog, NarrativeQueue
from .quests import QuestBook, default_achievements
from .skills import calculate_item_use, calculate_skill, validate_item_use, validate_skill
from .statistics import Statistics
from .throttle import MoveThrottle, direction_for_key, monotonic_ms

logger = logging.getLogger(__name__)

OFFLINE_NOTICE = "The storyteller is unreachable. Continuing offline."
PLACEHOLDER_TEXT = "..."


class StaleResponsePolicy(enum.Enum):
    """What to do with a remote response whose turn has already passed.

    APPLY merges the response onto the snapshot captured when the request was
    sent and commits it, even if that overwrites newer local changes.
    REJECT_STALE drops the state change but still shows the narrative.
    """
    APPLY = "apply"
    REJECT_STALE = "reject_stale"


@dataclass
class RemoteResult:
    """Result of an async handler."""
    narrative: str
    entry_id: Optional[str] = None
    offline: bool = False
    stale: bool = False
    applied: bool = False
    roll: Optional[DiceRoll] = None
    success_level: Optional[SuccessLevel] = None
    hint: Optional[str] = None
    item: Optional[InventoryItem] = None


def item_from_dict(data: dict) -> InventoryItem:
    """Build an item defined by the remote service."""
    effects = tuple(
        EffectSpec(
            effect_type=e["effect_type"],
            amount=e.get("amount", 0),
            status=e.get("status"),
            duration=e.get("duration", 0),
        )
        for e in data.get("effects", [])
    )
    return InventoryItem(
        name=data["name"],
        quantity=1,
        effects=effects,
        slot=data.get("slot"),
        attack_bonus=data.get("attack_bonus", 0),
        defense_bonus=data.get("defense_bonus", 0),
    )


def apply_state_delta(player: ActorState, delta: dict,
                      catalog: Optional[dict] = None) -> ActorState:
    """Merge a remote state_delta (relative changes) onto a player snapshot."""
    catalog = catalog or {}
    updated = replace(
        player,
        hp=clamp(player.hp + delta.get("hp", 0), 0, player.max_hp),
        stamina=clamp(player.stamina + delta.get("stamina", 0), 0, player.max_stamina),
        mana=clamp(player.mana + delta.get("mana", 0), 0, player.max_mana),
        hunger=max(0, player.hunger + delta.get("hunger", 0)),
    )
    inventory = updated.inventory
    for entry in delta.get("items", []):
        inventory = adjust_inventory(inventory, entry["name"], entry["quantity"],
                                     template=catalog.get(entry["name"]))
    return replace(updated, inventory=inventory)


class GameSession:
    def __init__(
        self,
        state: GameState,
        settings: Optional[GameSettings] = None,
        gateway: Optional[NarrativeGateway] = None,
        rng: Optional[random.Random] = None,
        recipes: Optional[dict] = None,
        blueprints: Optional[dict] = None,
        weather=None,
        plants=None,
        creatures=None,
        clock=monotonic_ms,
    ):
        self.state = state
        self.settings = settings or GameSettings()
        self.gateway = gateway if gateway is not None else gateway_from_settings(self.settings)
        self.rng = rng or random.Random()
        self.recipes = recipes or {}
        self.blueprints = blueprints or {}

        rules = self.settings.rules_json()
        self.balance = load_balance_config(rules)
        self.clock_config = load_clock_config(rules)
        self.stale_policy = StaleResponsePolicy(self.settings.stale_response_policy)

        if state.statistics is None:
            state.statistics = Statistics()
        if state.quests is None:
            state.quests = QuestBook(achievements=default_achievements())

        self.queue = NarrativeQueue(NarrativeLog(self.settings.narrative_log_limit))
        self.guard = DeduplicationGuard(state.clock.turn, self.settings.dedup_max_entries)
        self.throttle = MoveThrottle(self.settings.move_throttle_ms, clock)
        self.audio = AudioCueBuffer()

        sinks = {
            "stat_delta": StateSink(state, on_game_over=self._announce_game_over),
            "narrative": self._narrative_sink,
            "audio": self.audio,
            "telemetry": self._telemetry_sink,
        }
        self.executor = EffectExecutor(
            sinks, quest_evaluator=lambda: quest_effects(state.quests, state.statistics)
        )
        self.bridge = EffectBridge(self.guard, self.executor)
        self.advancer = TurnAdvancer(
            state, self.queue, self.guard,
            weather=weather, plants=plants, creatures=creatures,
            clock_config=self.clock_config, balance=self.balance,
        )

        self.ready = True
        self.busy = False
        self.animating = False
        self.last_roll: Optional[DiceRoll] = None
        self.last_report: Optional[TurnReport] = None
        self._game_over_pending = False
        logger.info("Session started for %s (dice %s)", state.player.name, self.settings.dice_type)

    # =========================================================================
    # Sinks
    # =========================================================================

    def _narrative_sink(self, effect) -> None:
        self.queue.enqueue(effect.text, kind=effect.entry_kind,
                           entry_id=effect.entry_id, animation=effect.animation)

    def _telemetry_sink(self, effect) -> None:
        self.state.statistics.apply(effect)

    def _announce_game_over(self) -> None:
        # _commit queues the announcement once the batch is applied
        self._game_over_pending = True

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _blocked(self) -> Optional[Rejection]:
        """Not-ready and busy guard. Game over is checked by the caller."""
        if not self.ready:
            return Rejection("not_ready", "The game is still loading.")
        if self.busy:
            return Rejection("busy", "Please wait for the story to catch up.")
        return None

    def _reject(self, rejection: Rejection) -> Rejection:
        self.queue.enqueue(rejection.message, kind="system")
        self.queue.flush()
        return rejection

    def _roll(self) -> SuccessLevel:
        self.last_roll = roll(self.settings.dice_type, self.rng, self.balance)
        return success_level(self.last_roll.value, self.settings.dice_type, self.balance)

    def _environment(self) -> Environment:
        chunk = self.state.current_chunk()
        if chunk is None:
            return Environment(chunk_key=self.state.position_key)
        return Environment.from_chunk(chunk)

    def _commit(self, result, turn: int, claimed: bool = False):
        """Apply an outcome and run one advancer pass.

        claimed means the caller already holds the dedup token for this action.
        """
        if result is None:
            return None
        if isinstance(result, Rejection):
            return self._reject(result)

        if claimed:
            self.bridge.apply(result)
        elif not self.bridge.commit(token_for(result, turn), result):
            return None
        if self._game_over_pending:
            self._game_over_pending = False
            logger.info("Game over on turn %d", self.state.clock.turn)
            self.queue.enqueue(GAME_OVER_MESSAGE, kind="system")
        self.last_report = self.advancer.advance()
        return result

    def _fired_late(self, turn: int) -> bool:
        if turn != self.state.clock.turn:
            logger.debug("Ignoring handler fired for turn %d (now %d)", turn, self.state.clock.turn)
            return True
        return False

    def _run(self, resolve, turn: int):
        """Guard, resolve and commit one synchronous action.

        turn is the turn the caller saw when the action was triggered; a
        second fire of the same trigger arrives after that turn has passed.
        """
        if self.state.game_over or self._fired_late(turn):
            return None
        blocked = self._blocked()
        if blocked:
            return blocked
        return self._commit(resolve(), turn)

    @property
    def catalog(self) -> dict:
        return self.state.custom_items

    # =========================================================================
    # Movement
    # =========================================================================

    def can_emit_move(self, now: Optional[float] = None) -> bool:
        return not self.state.game_over and self.throttle.can_emit(now)

    def on_key(self, key: str, now: Optional[float] = None):
        """Throttled movement from a key press."""
        direction = direction_for_key(key)
        if direction is None:
            return None
        intent = self.throttle.try_emit(direction, now, locked=self.state.game_over,
                                        animating=self.animating)
        if intent is None:
            return None
        return self.move(intent.direction, turn=self.state.clock.turn)

    def move(self, direction: str, *, turn: int):
        def resolve():
            origin = self.state.current_chunk()
            if origin is None:
                return Rejection("no_chunk", "You are nowhere.")
            dx, dy = DIRECTION_OFFSETS.get(direction, (0, 0))
            x, y = self.state.position
            destination = self.state.world.get_chunk(self.state.world.chunk_key(x + dx, y + dy))
            return calculate_move(self.state.player, origin, destination, direction)
        return self._run(resolve, turn)

    # =========================================================================
    # Rolled actions
    # =========================================================================

    def attack(self, *, turn: int):
        def resolve():
            chunk = self.state.current_chunk()
            enemy = chunk.enemy if chunk else None
            if enemy is None:
                return Rejection("no_target", "There is nothing here to attack.")
            level = self._roll()
            return calculate_combat(self.state.player, enemy, level, self._environment(),
                                    self.rng, self.balance, self.catalog)
        return self._run(resolve, turn)

    def use_skill(self, skill_name: str, *, turn: int):
        def resolve():
            chunk = self.state.current_chunk()
            enemy = chunk.enemy if chunk else None
            rejection = validate_skill(self.state.player, skill_name, enemy)
            if rejection:
                return rejection
            level = self._roll()
            return calculate_skill(self.state.player, enemy, level, self._environment(),
                                   self.rng, self.balance, skill_name=skill_name,
                                   catalog=self.catalog)
        return self._run(resolve, turn)

    def use_item(self, item_name: str, *, turn: int):
        def resolve():
            rejection = validate_item_use(self.state.player, item_name)
            if rejection:
                return rejection
            level = self._roll()
            return calculate_item_use(self.state.player, None, level, self._environment(),
                                      self.rng, self.balance, item_name=item_name)
        return self._run(resolve, turn)

    def harvest(self, part_name: Optional[str] = None, *, turn: int):
        def resolve():
            chunk = self.state.current_chunk()
            target = chunk.enemy if chunk else None
            rejection = validate_harvest(self.state.player, target, part_name, self.balance)
            if rejection:
                return rejection
            level = self._roll()
            return calculate_harvest(self.state.player, target, level, self._environment(),
                                     self.rng, self.balance, part_name=part_name,
                                     catalog=self.catalog)
        return self._run(resolve, turn)

    def craft(self, recipe_name: str, *, turn: int):
        def resolve():
            recipe = self.recipes.get(recipe_name)
            rejection = validate_craft(self.state.player, recipe)
            if rejection:
                return rejection
            level = self._roll()
            return calculate_craft(self.state.player, recipe, level, self.rng, self.balance)
        return self._run(resolve, turn)

    # =========================================================================
    # Unrolled actions
    # =========================================================================

    def build(self, structure_name: str, *, turn: int):
        return self._run(lambda: calculate_build(
            self.state.player, self.state.current_chunk(), self.blueprints.get(structure_name)
        ), turn)

    def rest(self, *, turn: int):
        return self._run(lambda: calculate_rest(
            self.state.player, self.state.current_chunk(), self.balance
        ), turn)

    def equip(self, item_name: str, *, turn: int):
        return self._run(lambda: calculate_equip(self.state.player, item_name), turn)

    def unequip(self, slot: str, *, turn: int):
        return self._run(lambda: calculate_unequip(self.state.player, slot), turn)

    def drop(self, item_name: str, quantity: int = 1, *, turn: int):
        return self._run(lambda: calculate_drop(
            self.state.player, self.state.current_chunk(), item_name, quantity
        ), turn)

    def wait(self, *, turn: int):
        return self._run(lambda: calculate_wait(self.state.player), turn)

    def pass_time(self) -> Optional[TurnReport]:
        """Advance the world one tick with no player action (idle timer).

        Not blocked by busy: the world keeps moving while a remote request is
        in flight.
        """
        if self.state.game_over or not self.ready:
            return None
        self.last_report = self.advancer.advance()
        return self.last_report

    def return_to_menu(self) -> None:
        """End play: reset the owned simulation services and transient state."""
        self.advancer.reset()
        self.throttle.reset()
        self.guard.begin_turn(self.state.clock.turn)
        self.queue.clear()
        self.audio.drain()
        self.ready = False
        logger.info("Returned to menu on turn %d", self.state.clock.turn)

    def snapshot(self) -> dict:
        """Read-only view for rendering."""
        clock = self.state.clock
        return {
            "player": asdict(self.state.player),
            "position": self.state.position,
            "clock": {
                "game_time": clock.game_time,
                "day": clock.day,
                "turn": clock.turn,
                "period": self.clock_config.period_for(clock.game_time),
            },
            "weather": self.state.weather,
            "narrative": self.queue.log.tail(10),
            "statistics": self.state.statistics.to_dict(),
            "busy": self.busy,
            "game_over": self.state.game_over,
        }

    # =========================================================================
    # Remote services
    # =========================================================================

    def _player_payload(self, player: ActorState) -> dict:
        return asdict(player)

    def _chunk_payload(self) -> Optional[dict]:
        chunk = self.state.current_chunk()
        return asdict(chunk) if chunk else None

    def _is_stale(self, captured_turn: int) -> bool:
        return self.state.clock.turn != captured_turn

    async def _call(self, service: str, payload: dict) -> Optional[dict]:
        """Call a service; None means use the offline path."""
        if self.gateway is None:
            return None
        self.busy = True
        try:
            response = await self.gateway.request(service, payload, schema_for(service))
            return response.content
        except Exception as e:
            logger.warning("%s service failed, falling back offline: %s", service, e)
            return None
        finally:
            self.busy = False

    async def narrate_action(self, action: str, *, turn: int):
        """Free-form action narrated by the remote service.

        A placeholder entry is shown at once and replaced by the final text.
        """
        if self.state.game_over:
            return None
        token = DedupToken("narrate", self.state.player.id, action, turn)
        if self._fired_late(turn) or self.guard.is_claimed(token):
            return None
        blocked = self._blocked()
        if blocked:
            return blocked
        self.guard.claim(token)

        captured_turn = turn
        captured_player = self.state.player
        level = self._roll()
        dice = self.last_roll

        entry_id = uuid.uuid4().hex
        self.queue.enqueue(PLACEHOLDER_TEXT, kind="narrative", entry_id=entry_id)
        self.queue.flush()

        payload = {
            "action": action,
            "player": self._player_payload(captured_player),
            "chunk": self._chunk_payload(),
            "recent_narrative": self.queue.log.tail(5),
            "dice": {"type": dice.die_type, "value": dice.value, "range": list(dice.range)},
            "success_level": level.value,
            "style": {"length": self.settings.narrative_length,
                      "language": self.settings.language},
        }
        content = await self._call("narrative", payload)

        result = RemoteResult(narrative="", entry_id=entry_id, roll=dice, success_level=level)
        if content is None:
            result.offline = True
            result.narrative = offline_narrative(action, level, self.state.current_chunk(),
                                                 self.settings.narrative_length,
                                                 seed=captured_turn)
            self.queue.enqueue(result.narrative, kind="narrative", entry_id=entry_id)
            self.queue.enqueue(OFFLINE_NOTICE, kind="system")
            player_after = captured_player
        else:
            result.narrative = content["narrative"]
            self.queue.enqueue(result.narrative, kind="narrative", entry_id=entry_id,
                               animation=content.get("animation"))
            if content.get("system_message"):
                self.queue.enqueue(content["system_message"], kind="system")
            player_after = self._merge_remote(content, captured_player, captured_turn, result)

        if self.state.game_over:
            result.applied = False
            self.queue.flush()
            return result

        outcome = GenericOutcome(
            kind="narrate",
            actor_id=captured_player.id,
            target_id=action,
            message="",
            player_before=self.state.player,
            player_after=player_after if result.applied else self.state.player,
        )
        # the response lands on whatever turn is current now
        if self._commit(outcome, self.state.clock.turn, claimed=True) is None:
            result.applied = False
            self.queue.flush()
        return result

    def _merge_remote(self, content: dict, captured_player: ActorState,
                      captured_turn: int, result: RemoteResult) -> ActorState:
        delta = content.get("state_delta")
        new_item = content.get("new_item")
        if not delta and not new_item:
            return captured_player

        result.stale = self._is_stale(captured_turn)
        if result.stale and self.stale_policy == StaleResponsePolicy.REJECT_STALE:
            logger.info("Dropping stale state change from turn %d (now %d)",
                        captured_turn, self.state.clock.turn)
            return captured_player

        player = captured_player
        if new_item:
            item = item_from_dict(new_item)
            self.state.custom_items[item.name] = item
            player = replace(player, inventory=adjust_inventory(
                player.inventory, item.name, 1, template=item))
            result.item = item
        if delta:
            player = apply_state_delta(player, delta, self.catalog)
        result.applied = True
        return player

    async def request_quest_hint(self, quest_id: str):
        """Ask for a hint toward an active quest. Does not advance the turn."""
        if self.state.game_over:
            return None
        blocked = self._blocked()
        if blocked:
            return blocked
        quest = self.state.quests.get(quest_id)
        if quest is None:
            return self._reject(Rejection("unknown_quest", "You have no such quest."))

        current, target = self.state.quests.progress(quest_id, self.state.statistics)
        payload = {
            "quest": {"id": quest.id, "title": quest.title, "description": quest.description,
                      "progress": current, "target": target},
            "player": self._player_payload(self.state.player),
            "recent_narrative": self.queue.log.tail(5),
        }
        content = await self._call("quest_hint", payload)
        offline = content is None
        if offline:
            content = offline_quest_hint(quest.title)
            self.queue.enqueue(OFFLINE_NOTICE, kind="system")

        self.queue.enqueue(content["narrative"], kind="monologue")
        if content.get("hint"):
            self.queue.enqueue(content["hint"], kind="system")
        self.queue.flush()
        return RemoteResult(narrative=content["narrative"], offline=offline,
                            hint=content.get("hint"))

    async def fuse_items(self, item_names: list, *, turn: int):
        """Fuse two or more carried items into a new one defined remotely."""
        if self.state.game_over:
            return None
        names = list(item_names)
        token = DedupToken("fuse", self.state.player.id, "+".join(sorted(names)), turn)
        if self._fired_late(turn) or self.guard.is_claimed(token):
            return None
        blocked = self._blocked()
        if blocked:
            return blocked

        if len(names) < 2:
            return self._reject(Rejection("too_few_items", "Choose at least two items to fuse."))
        for name in names:
            if self.state.player.item_count(name) < names.count(name):
                return self._reject(Rejection("missing_item", f"You don't have any {name}."))
        self.guard.claim(token)

        captured_turn = turn
        captured_player = self.state.player
        payload = {
            "items": names,
            "player": self._player_payload(captured_player),
            "chunk": self._chunk_payload(),
        }
        content = await self._call("fusion", payload)

        result = RemoteResult(narrative="")
        if content is None:
            result.offline = True
            content = offline_fusion(names)
            self.queue.enqueue(OFFLINE_NOTICE, kind="system")
        result.narrative = content["narrative"]

        player_after = self.state.player
        item = None
        if content.get("result_item"):
            result.stale = self._is_stale(captured_turn)
            if result.stale and self.stale_policy == StaleResponsePolicy.REJECT_STALE:
                logger.info("Dropping stale fusion result from turn %d", captured_turn)
            else:
                item = item_from_dict(content["result_item"])
                self.state.custom_items[item.name] = item
                inventory = captured_player.inventory
                for name in names:
                    inventory = adjust_inventory(inventory, name, -1)
                inventory = adjust_inventory(inventory, item.name, 1, template=item)
                player_after = replace(captured_player, inventory=inventory)
                result.item = item
                result.applied = True

        if self.state.game_over:
            result.applied = False
            self.queue.flush()
            return result

        outcome = FusionOutcome(
            actor_id=captured_player.id,
            target_id="+".join(sorted(names)),
            items_used=tuple(names) if item else (),
            result_item=item,
            narrative=result.narrative,
            player_before=self.state.player,
            player_after=player_after,
        )
        if self._commit(outcome, self.state.clock.turn, claimed=True) is None:
            result.applied = False
            result.item = None
            self.queue.flush()
        return result
