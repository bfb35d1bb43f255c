"""
Shared pytest fixtures for all tests.
"""

import pytest
from pathlib import Path

# Add the project root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from pathweaver.config import GameSettings
from pathweaver.core.balance_config import BalanceConfig
from pathweaver.core.dedup import DeduplicationGuard
from pathweaver.core.narrative_queue import NarrativeQueue
from pathweaver.core.session import GameSession
from pathweaver.narrative.gateway import MockNarrativeGateway
from tests.fixtures import (
    ScriptedRandom,
    make_creature,
    make_player,
    make_state,
    make_world,
)


# =============================================================================
# Config Fixtures
# =============================================================================

@pytest.fixture
def balance():
    """Shipped balance defaults."""
    return BalanceConfig()


@pytest.fixture
def settings():
    """Default game settings with a zero throttle window."""
    return GameSettings(move_throttle_ms=0)


# =============================================================================
# State Fixtures
# =============================================================================

@pytest.fixture
def player():
    """Player with attack 10 and full stats."""
    return make_player()


@pytest.fixture
def wolf():
    """Aggressive medium creature with 20 hp."""
    return make_creature()


@pytest.fixture
def world():
    """3x3 world with nothing in it."""
    return make_world()


@pytest.fixture
def state(world):
    """GameState at the centre of an empty world."""
    return make_state(world=world)


@pytest.fixture
def combat_state(wolf):
    """GameState with a wolf in the player's chunk."""
    return make_state(world=make_world(center_enemy=wolf))


# =============================================================================
# Component Fixtures
# =============================================================================

@pytest.fixture
def queue():
    """Empty narrative queue with a 200-entry log."""
    return NarrativeQueue()


@pytest.fixture
def guard():
    """Dedup guard at turn 0."""
    return DeduplicationGuard()


@pytest.fixture
def mock_gateway():
    """Mock narrative gateway for testing without network calls."""
    return MockNarrativeGateway()


@pytest.fixture
def scripted_rng():
    """Lowest value on every die, 0.0 on every float."""
    return ScriptedRandom()


@pytest.fixture
def session(state, settings):
    """Session over an empty world, no remote gateway."""
    return GameSession(state, settings=settings, rng=ScriptedRandom())


@pytest.fixture
def combat_session(combat_state, settings):
    """Session with a wolf in the player's chunk."""
    return GameSession(combat_state, settings=settings, rng=ScriptedRandom())
