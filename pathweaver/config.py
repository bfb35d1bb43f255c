"""
Configuration management for Pathweaver.

Handles the user config directory, narrative-service credentials, and loading
game settings from YAML.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


STALE_POLICIES = ("apply", "reject_stale")
DICE_TYPES = ("d20", "d12", "2d6")
NARRATIVE_PROVIDERS = ("offline", "http", "claude", "mock")


def get_config_dir() -> Path:
    """Get the configuration directory, creating it if needed."""
    # Use XDG_CONFIG_HOME if set, otherwise ~/.config
    config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    config_dir = Path(config_home) / "pathweaver"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict:
    """Load configuration from disk."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path) as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            logger.warning("Ignoring unreadable config file %s", config_path)
            return {}
    return {}


def save_config(config: dict) -> None:
    """Save configuration to disk."""
    config_path = get_config_path()
    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)
    # Secure the file (owner read/write only)
    os.chmod(config_path, 0o600)


def get_api_key() -> Optional[str]:
    """
    Get the narrative service API key from environment or config.

    Priority:
    1. PATHWEAVER_NARRATIVE_API_KEY environment variable
    2. ANTHROPIC_API_KEY environment variable
    3. Stored config file
    """
    for var in ("PATHWEAVER_NARRATIVE_API_KEY", "ANTHROPIC_API_KEY"):
        env_key = os.environ.get(var)
        if env_key:
            return env_key

    config = load_config()
    return config.get("narrative_api_key")


def set_api_key(api_key: str) -> None:
    """Store the API key in config."""
    config = load_config()
    config["narrative_api_key"] = api_key
    save_config(config)


def clear_api_key() -> None:
    """Remove the stored API key."""
    config = load_config()
    config.pop("narrative_api_key", None)
    save_config(config)


@dataclass
class GameSettings:
    """Player-facing settings that shape resolution and pacing.

    balance and clock hold the raw rule dicts; they are resolved into
    BalanceConfig / ClockConfig by their own loaders.
    """
    dice_type: str = "d20"
    move_throttle_ms: int = 300
    narrative_log_limit: int = 200
    narrative_length: str = "medium"
    language: str = "en"
    narrative_provider: str = "offline"
    narrative_url: str = "http://localhost:8787"
    narrative_timeout: float = 30.0
    stale_response_policy: str = "apply"
    dedup_max_entries: int = 100
    clock: dict = field(default_factory=dict)
    balance_rules: dict = field(default_factory=dict)

    def rules_json(self) -> dict:
        """Settings shaped for load_clock_config / load_balance_config."""
        return {"clock": self.clock, "balance_rules": self.balance_rules}


def settings_from_dict(data: dict) -> GameSettings:
    """Build GameSettings from a parsed settings document."""
    if not data:
        return GameSettings()

    dice_type = data.get("dice_type", "d20")
    if dice_type not in DICE_TYPES:
        # Unknown dice still resolve (as failures); flag it early.
        logger.warning("Unknown dice_type %r in settings", dice_type)

    policy = data.get("stale_response_policy", "apply")
    if policy not in STALE_POLICIES:
        raise ValueError(
            f"stale_response_policy must be one of {STALE_POLICIES}, got {policy!r}"
        )

    throttle = data.get("move_throttle_ms", 300)
    if throttle < 0:
        raise ValueError(f"move_throttle_ms must be >= 0, got {throttle}")

    provider = data.get("narrative_provider", "offline")
    if provider not in NARRATIVE_PROVIDERS:
        raise ValueError(
            f"narrative_provider must be one of {NARRATIVE_PROVIDERS}, got {provider!r}"
        )

    return GameSettings(
        dice_type=dice_type,
        move_throttle_ms=throttle,
        narrative_log_limit=data.get("narrative_log_limit", 200),
        narrative_length=data.get("narrative_length", "medium"),
        language=data.get("language", "en"),
        narrative_provider=provider,
        narrative_url=data.get("narrative_url", "http://localhost:8787"),
        narrative_timeout=data.get("narrative_timeout", 30.0),
        stale_response_policy=policy,
        dedup_max_entries=data.get("dedup_max_entries", 100),
        clock=data.get("clock", {}) or {},
        balance_rules=data.get("balance_rules", {}) or {},
    )


def load_settings(path: Optional[Path] = None) -> GameSettings:
    """
    Load game settings from a YAML file.

    Falls back to settings.yaml in the config directory, then to defaults.
    """
    settings_path = Path(path) if path else get_config_dir() / "settings.yaml"
    if not settings_path.exists():
        if path:
            raise FileNotFoundError(f"Settings file not found: {settings_path}")
        return GameSettings()

    with open(settings_path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid settings file {settings_path}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {settings_path} must contain a mapping")

    logger.info("Loaded settings from %s", settings_path)
    return settings_from_dict(data)
