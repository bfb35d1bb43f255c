"""
Tests for dice rolls and success resolution.
"""

import random

import pytest

from pathweaver.core.balance_config import BalanceConfig, load_balance_config
from pathweaver.core.dice import (
    SuccessLevel,
    apply_multiplier,
    roll,
    round_half_up,
    success_level,
    success_multiplier,
)


class TestRoll:
    """Tests for roll()."""

    @pytest.mark.parametrize("die_type,low,high", [
        ("d20", 1, 20),
        ("d12", 1, 12),
        ("2d6", 2, 12),
    ])
    def test_roll_stays_in_range(self, die_type, low, high):
        """Rolls never leave the die's range."""
        rng = random.Random(7)
        for _ in range(200):
            result = roll(die_type, rng)
            assert low <= result.value <= high
            assert result.range == (low, high)
            assert result.die_type == die_type

    def test_2d6_sums_two_dice(self):
        """2d6 is the sum of two d6 rolls."""
        rng = random.Random(3)
        expected = random.Random(3)
        result = roll("2d6", rng)
        assert result.value == expected.randint(1, 6) + expected.randint(1, 6)

    def test_unknown_die_still_rolls(self):
        """Unknown dice roll a d20 instead of raising."""
        result = roll("d3x", random.Random(1))
        assert 1 <= result.value <= 20


class TestSuccessLevel:
    """Tests for band lookup."""

    @pytest.mark.parametrize("value,expected", [
        (1, SuccessLevel.CRITICAL_FAILURE),
        (2, SuccessLevel.FAILURE),
        (8, SuccessLevel.FAILURE),
        (9, SuccessLevel.SUCCESS),
        (16, SuccessLevel.SUCCESS),
        (17, SuccessLevel.GREAT_SUCCESS),
        (19, SuccessLevel.GREAT_SUCCESS),
        (20, SuccessLevel.CRITICAL_SUCCESS),
    ])
    def test_d20_bands(self, value, expected):
        """d20 values map onto the default bands."""
        assert success_level(value, "d20") == expected

    def test_d12_bands(self):
        """d12 band edges."""
        assert success_level(1, "d12") == SuccessLevel.CRITICAL_FAILURE
        assert success_level(5, "d12") == SuccessLevel.FAILURE
        assert success_level(6, "d12") == SuccessLevel.SUCCESS
        assert success_level(11, "d12") == SuccessLevel.GREAT_SUCCESS
        assert success_level(12, "d12") == SuccessLevel.CRITICAL_SUCCESS

    def test_2d6_bands(self):
        """2d6 band edges."""
        assert success_level(2, "2d6") == SuccessLevel.CRITICAL_FAILURE
        assert success_level(3, "2d6") == SuccessLevel.FAILURE
        assert success_level(9, "2d6") == SuccessLevel.SUCCESS
        assert success_level(10, "2d6") == SuccessLevel.GREAT_SUCCESS
        assert success_level(12, "2d6") == SuccessLevel.CRITICAL_SUCCESS

    def test_unknown_die_is_failure(self, caplog):
        """Unknown die types degrade to FAILURE with a warning."""
        assert success_level(20, "d100") == SuccessLevel.FAILURE
        assert "No dice bands" in caplog.text

    def test_out_of_range_value_is_failure(self):
        """Values outside every band are FAILURE."""
        assert success_level(25, "d20") == SuccessLevel.FAILURE
        assert success_level(0, "d20") == SuccessLevel.FAILURE

    def test_pure_function_of_value(self):
        """Same value and die always give the same level."""
        results = {success_level(v, "d20") for v in [13] * 50}
        assert results == {SuccessLevel.SUCCESS}

    def test_custom_bands(self):
        """Configured bands override the defaults."""
        config = load_balance_config({"balance_rules": {"dice_bands": {"d20": {
            "critical_failure": [1, 2],
            "failure": [3, 10],
            "success": [11, 15],
            "great_success": [16, 18],
            "critical_success": [19, 20],
        }}}})
        assert success_level(2, "d20", config) == SuccessLevel.CRITICAL_FAILURE
        assert success_level(19, "d20", config) == SuccessLevel.CRITICAL_SUCCESS


class TestMultipliers:
    """Tests for multipliers and rounding."""

    def test_default_multipliers(self):
        """Shipped multipliers: 0, 0, 1.0, 1.5, 2.0."""
        values = [success_multiplier(level) for level in SuccessLevel]
        assert values == [0.0, 0.0, 1.0, 1.5, 2.0]

    def test_multipliers_monotonic(self):
        """Better levels never have a smaller multiplier."""
        values = [success_multiplier(level) for level in SuccessLevel]
        assert values == sorted(values)

    def test_levels_are_ordered(self):
        """SuccessLevel compares by favorability."""
        assert SuccessLevel.CRITICAL_FAILURE < SuccessLevel.FAILURE < SuccessLevel.SUCCESS
        assert SuccessLevel.GREAT_SUCCESS < SuccessLevel.CRITICAL_SUCCESS
        assert SuccessLevel.SUCCESS.succeeded
        assert not SuccessLevel.FAILURE.succeeded

    @pytest.mark.parametrize("base,multiplier,expected", [
        (10, 1.5, 15),
        (10, 2.0, 20),
        (10 * 0.8, 2.0, 16),
        (5, 0.5, 3),
        (7, 0.0, 0),
        (0, 2.0, 0),
    ])
    def test_apply_multiplier(self, base, multiplier, expected):
        """apply_multiplier rounds the scaled amount."""
        assert apply_multiplier(base, multiplier) == expected

    def test_apply_multiplier_rejects_negative(self):
        """Negative inputs are a programming error."""
        with pytest.raises(ValueError):
            apply_multiplier(-1, 1.0)

    def test_round_half_up(self):
        """Halves round up, float noise is absorbed."""
        assert round_half_up(2.5) == 3
        assert round_half_up(10 * 0.8 * 2.0) == 16
        assert round_half_up(10 * 0.9 * 1.5) == 14

    def test_hardcore_multipliers(self):
        """A custom table flows through success_multiplier."""
        config = load_balance_config({"balance_rules": {"success_multipliers": {"great_success": 1.25}}})
        assert success_multiplier(SuccessLevel.GREAT_SUCCESS, config) == 1.25
        assert success_multiplier(SuccessLevel.CRITICAL_SUCCESS, BalanceConfig()) == 2.0
