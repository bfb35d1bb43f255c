"""Test fixtures for pathweaver tests."""

from .entities import make_item, make_potion, make_skill, make_player, make_creature, make_plant, make_tree
from .world import make_chunk, make_world
from .state import ScriptedRandom, make_state

__all__ = [
    "make_item",
    "make_potion",
    "make_skill",
    "make_player",
    "make_creature",
    "make_plant",
    "make_tree",
    "make_chunk",
    "make_world",
    "ScriptedRandom",
    "make_state",
]
