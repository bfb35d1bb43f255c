"""
Tests for the harvest outcome calculator.
"""

from pathweaver.core.dice import SuccessLevel
from pathweaver.core.harvest import calculate_harvest
from pathweaver.core.models import Environment, HarvestOutcome, LootDrop, PlantPart, Rejection
from tests.fixtures import ScriptedRandom, make_creature, make_item, make_plant, make_player, make_tree


def harvest(player, target, level=SuccessLevel.SUCCESS, part=None, rng=None):
    return calculate_harvest(player, target, level, Environment(), rng or ScriptedRandom(),
                             part_name=part)


class TestPartHarvest:
    """Tests for part-based harvesting."""

    def test_success_takes_one_unit(self):
        outcome = harvest(make_player(), make_plant(), part="berries",
                          rng=ScriptedRandom(ints=[3]))
        assert isinstance(outcome, HarvestOutcome)
        assert outcome.loot == (LootDrop("Berries", 3),)
        assert outcome.player_after.item_count("Berries") == 3
        assert outcome.player_after.stamina == 95
        assert outcome.target_after.part("berries").current_qty == 1
        assert not outcome.target_removed

    def test_great_success_scales_quantity(self):
        outcome = harvest(make_player(), make_plant(), SuccessLevel.GREAT_SUCCESS,
                          part="berries", rng=ScriptedRandom(ints=[3]))
        assert outcome.loot == (LootDrop("Berries", 5),)

    def test_failure_costs_but_finds_nothing(self):
        outcome = harvest(make_player(), make_plant(), SuccessLevel.FAILURE, part="berries")
        assert outcome.loot == ()
        assert outcome.player_after.stamina == 95
        assert outcome.target_after.part("berries").current_qty == 1

    def test_other_parts_untouched(self):
        outcome = harvest(make_player(), make_plant(), part="leaves")
        assert outcome.target_after.part("leaves").current_qty == 0
        assert outcome.target_after.part("berries").current_qty == 2
        assert not outcome.all_parts_depleted

    def test_last_part_reports_depleted(self):
        """Depletion is reported; the plant stays for the plant tick to remove."""
        plant = make_plant(parts=(PlantPart("root", 1, 1),))
        outcome = harvest(make_player(), plant, part="root")
        assert outcome.all_parts_depleted
        assert outcome.target_after is not None
        assert not outcome.target_removed

    def test_unknown_part(self):
        assert harvest(make_player(), make_plant(), part="bark").reason == "unknown_part"

    def test_exhausted_part(self):
        plant = make_plant(parts=(PlantPart("root", 0, 1),))
        assert harvest(make_player(), plant, part="root").reason == "part_exhausted"

    def test_insufficient_stamina(self):
        result = harvest(make_player(stamina=3), make_plant(), part="berries")
        assert result.reason == "insufficient_stamina"

    def test_part_tool(self):
        plant = make_plant(parts=(PlantPart("resin", 1, 1, required_tool="Knife"),))
        assert harvest(make_player(), plant, part="resin").reason == "missing_tool"
        player = make_player(inventory=(make_item("Knife", is_tool=True),))
        assert isinstance(harvest(player, plant, part="resin"), HarvestOutcome)

    def test_part_required(self):
        assert harvest(make_player(), make_plant()).reason == "part_required"


class TestWholeTargetHarvest:
    """Tests for flat harvestable tables."""

    def test_tree_needs_axe(self):
        result = harvest(make_player(), make_tree())
        assert isinstance(result, Rejection)
        assert result.reason == "missing_tool"

    def test_tree_with_axe(self):
        player = make_player(inventory=(make_item("Axe", is_tool=True),))
        outcome = harvest(player, make_tree())
        assert outcome.loot == (LootDrop("Wood", 2),)
        assert outcome.target_removed
        assert outcome.target_after is None
        assert outcome.player_after.stamina == 95
        assert outcome.player_after.item_count("Axe") == 1

    def test_equipped_tool_counts(self):
        axe = make_item("Axe", slot="hand", is_tool=True)
        player = make_player(equipment=(("hand", axe),))
        assert isinstance(harvest(player, make_tree()), HarvestOutcome)

    def test_failure_removes_target_without_loot(self):
        player = make_player(inventory=(make_item("Axe"),))
        outcome = harvest(player, make_tree(), SuccessLevel.CRITICAL_FAILURE)
        assert outcome.loot == ()
        assert outcome.target_removed


class TestHarvestRejections:
    def test_no_target(self):
        assert harvest(make_player(), None).reason == "no_target"

    def test_creature_not_harvestable(self):
        assert harvest(make_player(), make_creature()).reason == "not_harvestable"
