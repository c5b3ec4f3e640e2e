"""
Configuration schema and loading for the context engine.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

# Dynaconf keys that are loader bookkeeping, not settings
_INTERNAL_KEYS = frozenset({"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"})


class LoggingSettings(BaseModel):
    """Structured logging configuration.

    Example YAML:
        logging:
          level: DEBUG
          json_output: true
    """

    model_config = {"frozen": True}

    level: str = Field(default="INFO", description="Stdlib log level name")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v!r}")
        return level


class WeftSettings(BaseModel):
    """Engine-wide settings.

    Example YAML:
        history_limit: 5000
        enforce_pure_strategies: true
        warn_on_late_edges: false
        logging:
          level: INFO
    """

    model_config = {"frozen": True, "extra": "forbid"}

    history_limit: int = Field(
        default=1000,
        gt=0,
        description="Maximum entries retained in the branch recorder's state-history log",
    )
    enforce_pure_strategies: bool = Field(
        default=True,
        description="Reject context mutation from inside custom merge strategies",
    )
    warn_on_late_edges: bool = Field(
        default=True,
        description="Log edges recorded after a token's final merge at WARNING (else DEBUG)",
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: Path) -> WeftSettings:
    """Load settings from a YAML/TOML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (WEFT_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: WEFT_LOGGING__LEVEL for nested keys.

    Args:
        config_path: Path to configuration file

    Returns:
        Validated WeftSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="WEFT",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    raw_config: dict[str, Any] = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in _INTERNAL_KEYS}
    if isinstance(raw_config.get("logging"), dict):
        raw_config["logging"] = {k.lower(): v for k, v in raw_config["logging"].items()}

    return WeftSettings(**raw_config)
