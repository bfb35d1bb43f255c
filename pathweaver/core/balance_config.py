"""
Balance configuration framework.

Config-driven tuning for dice resolution and the outcome calculators. Games
define balance_rules in their settings to override dice bands, success
multipliers, environment penalties and per-tick survival rates.

Without balance_rules, the defaults below are used. They match the shipped
game: d20 bands, darkness and dampness penalties, 15-minute ticks.

Follows the same pattern as ClockConfig: dataclasses loaded from settings YAML.
"""

from dataclasses import dataclass, field
from typing import Optional


SUCCESS_LEVEL_NAMES = (
    "critical_failure",
    "failure",
    "success",
    "great_success",
    "critical_success",
)


def _default_dice_bands() -> dict:
    return {
        "d20": {
            "critical_failure": [1, 1],
            "failure": [2, 8],
            "success": [9, 16],
            "great_success": [17, 19],
            "critical_success": [20, 20],
        },
        "d12": {
            "critical_failure": [1, 1],
            "failure": [2, 5],
            "success": [6, 9],
            "great_success": [10, 11],
            "critical_success": [12, 12],
        },
        "2d6": {
            "critical_failure": [2, 2],
            "failure": [3, 5],
            "success": [6, 9],
            "great_success": [10, 11],
            "critical_success": [12, 12],
        },
    }


def _default_success_multipliers() -> dict:
    return {
        "critical_failure": 0.0,
        "failure": 0.0,
        "success": 1.0,
        "great_success": 1.5,
        "critical_success": 2.0,
    }


@dataclass
class EnvironmentConfig:
    """Combat penalties from the chunk the fight happens in.

    Penalties are independent and compose multiplicatively.
    """
    darkness_threshold: int = -3
    darkness_penalty: float = 0.8
    wet_threshold: int = 8
    wet_penalty: float = 0.9


@dataclass
class SurvivalConfig:
    """Per-tick player upkeep applied by the turn advancer."""
    max_stat: int = 100
    hunger_per_tick: int = 1
    starvation_threshold: int = 100
    starvation_damage: int = 2
    stamina_regen_per_tick: int = 1
    rest_stamina: int = 20
    rest_hp: int = 5


@dataclass
class SkillConfig:
    """Skill and item tuning."""
    backfire_ratio: float = 0.5
    magic_attack_ratio: float = 0.5
    gamble_chance: float = 0.5
    gamble_status: str = "cursed"
    gamble_status_duration: int = 3
    gamble_status_hp_per_tick: int = -3


@dataclass
class BalanceConfig:
    """Complete balance configuration.

    With no arguments, returns the shipped defaults.
    """
    name: str = "default"
    dice_bands: dict = field(default_factory=_default_dice_bands)
    success_multipliers: dict = field(default_factory=_default_success_multipliers)
    min_damage: int = 1
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    survival: SurvivalConfig = field(default_factory=SurvivalConfig)
    skills: SkillConfig = field(default_factory=SkillConfig)
    harvest_stamina_cost: int = 5
    loot_min_qty: int = 1
    loot_max_qty: int = 3
    xp_per_level: int = 10
    xp_random_bonus: int = 20

    def bands_for(self, die_type: str) -> Optional[dict]:
        """Band table for a die type, or None when the die is unknown."""
        return self.dice_bands.get(die_type)

    def die_range(self, die_type: str) -> Optional[tuple[int, int]]:
        """(lowest, highest) value covered by a die's bands."""
        bands = self.bands_for(die_type)
        if not bands:
            return None
        lows = [lo for lo, _ in bands.values()]
        highs = [hi for _, hi in bands.values()]
        return (min(lows), max(highs))

    def multiplier_for(self, level_name: str) -> float:
        return float(self.success_multipliers.get(level_name, 0.0))


def _validate_bands(die_type: str, bands: dict) -> None:
    """Bands must name all five levels and tile the range without gaps."""
    missing = [name for name in SUCCESS_LEVEL_NAMES if name not in bands]
    if missing:
        raise ValueError(f"Dice bands for {die_type} missing levels: {missing}")

    expected_low = None
    for name in SUCCESS_LEVEL_NAMES:
        lo, hi = bands[name]
        if lo > hi:
            raise ValueError(f"Dice band {die_type}.{name} is inverted: {lo}>{hi}")
        if expected_low is not None and lo != expected_low:
            raise ValueError(
                f"Dice bands for {die_type} are not contiguous at {name} "
                f"(expected {expected_low}, got {lo})"
            )
        expected_low = hi + 1


def _validate_multipliers(multipliers: dict) -> None:
    """Multipliers must not decrease as outcomes get more favorable."""
    previous = None
    for name in SUCCESS_LEVEL_NAMES:
        value = multipliers.get(name)
        if value is None:
            raise ValueError(f"Success multiplier missing for {name}")
        if value < 0:
            raise ValueError(f"Success multiplier for {name} is negative")
        if previous is not None and value < previous:
            raise ValueError(f"Success multipliers decrease at {name}")
        previous = value


def load_balance_config(settings_json: dict) -> BalanceConfig:
    """Load BalanceConfig from a settings dict.

    Returns the default config when settings_json has no balance_rules.
    Partial rules are merged over the defaults section by section.
    """
    if not settings_json:
        return BalanceConfig()

    rules = settings_json.get("balance_rules", {})
    if not rules:
        return BalanceConfig()

    defaults = BalanceConfig()

    dice_bands = dict(defaults.dice_bands)
    for die_type, bands in rules.get("dice_bands", {}).items():
        dice_bands[die_type] = {name: list(bounds) for name, bounds in bands.items()}
    for die_type, bands in dice_bands.items():
        _validate_bands(die_type, bands)

    multipliers = dict(defaults.success_multipliers)
    multipliers.update(rules.get("success_multipliers", {}))
    _validate_multipliers(multipliers)

    env_data = rules.get("environment", {})
    environment = EnvironmentConfig(
        darkness_threshold=env_data.get("darkness_threshold", -3),
        darkness_penalty=env_data.get("darkness_penalty", 0.8),
        wet_threshold=env_data.get("wet_threshold", 8),
        wet_penalty=env_data.get("wet_penalty", 0.9),
    )

    surv_data = rules.get("survival", {})
    survival = SurvivalConfig(
        max_stat=surv_data.get("max_stat", 100),
        hunger_per_tick=surv_data.get("hunger_per_tick", 1),
        starvation_threshold=surv_data.get("starvation_threshold", 100),
        starvation_damage=surv_data.get("starvation_damage", 2),
        stamina_regen_per_tick=surv_data.get("stamina_regen_per_tick", 1),
        rest_stamina=surv_data.get("rest_stamina", 20),
        rest_hp=surv_data.get("rest_hp", 5),
    )

    skill_data = rules.get("skills", {})
    skills = SkillConfig(
        backfire_ratio=skill_data.get("backfire_ratio", 0.5),
        magic_attack_ratio=skill_data.get("magic_attack_ratio", 0.5),
        gamble_chance=skill_data.get("gamble_chance", 0.5),
        gamble_status=skill_data.get("gamble_status", "cursed"),
        gamble_status_duration=skill_data.get("gamble_status_duration", 3),
        gamble_status_hp_per_tick=skill_data.get("gamble_status_hp_per_tick", -3),
    )

    loot_data = rules.get("loot", {})

    return BalanceConfig(
        name=rules.get("name", "custom"),
        dice_bands=dice_bands,
        success_multipliers=multipliers,
        min_damage=rules.get("min_damage", 1),
        environment=environment,
        survival=survival,
        skills=skills,
        harvest_stamina_cost=rules.get("harvest_stamina_cost", 5),
        loot_min_qty=loot_data.get("min_qty", 1),
        loot_max_qty=loot_data.get("max_qty", 3),
        xp_per_level=rules.get("xp_per_level", 10),
        xp_random_bonus=rules.get("xp_random_bonus", 20),
    )


# --- Presets ---

def hardcore_balance_rules() -> dict:
    """Return balance_rules for a harsher survival mode.

    Put this in settings under "balance_rules".
    """
    return {
        "name": "hardcore",
        "success_multipliers": {
            "great_success": 1.25,
            "critical_success": 1.75,
        },
        "environment": {
            "darkness_penalty": 0.6,
            "wet_penalty": 0.8,
        },
        "survival": {
            "hunger_per_tick": 2,
            "starvation_threshold": 80,
            "starvation_damage": 5,
            "stamina_regen_per_tick": 0,
        },
        "skills": {
            "backfire_ratio": 1.0,
        },
    }
