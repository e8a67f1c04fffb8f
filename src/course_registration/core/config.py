"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

from .enums import EventStoreBackend
from .errors import ConfigError

MAX_UNITS_PER_TERM = 20
MIN_UNITS_PER_TERM = 12


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class RegistrationPolicyConfig(BaseModel):
    max_units_per_term: int = Field(default=MAX_UNITS_PER_TERM, gt=0)
    min_units_per_term: int = Field(default=MIN_UNITS_PER_TERM, ge=0)
    # Reject appends whose expected stream version is stale
    optimistic_concurrency: bool = False


class EventStoreConfig(BaseModel):
    backend: EventStoreBackend = EventStoreBackend.MEMORY
    path: str = "data/events.jsonl"  # Only used by the jsonl backend


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    registration: RegistrationPolicyConfig = Field(
        default_factory=RegistrationPolicyConfig
    )
    event_store: EventStoreConfig = Field(default_factory=EventStoreConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "REGISTRATION_", "env_nested_delimiter": "__"}

    @model_validator(mode="after")
    def _check_unit_bounds(self) -> Settings:
        policy = self.registration
        if policy.min_units_per_term > policy.max_units_per_term:
            raise ValueError(
                "min_units_per_term cannot exceed max_units_per_term "
                f"({policy.min_units_per_term} > {policy.max_units_per_term})"
            )
        return self


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        import tomli

        with open(path, "rb") as f:
            data = tomli.load(f)

    if overrides:
        data.update(overrides)

    return Settings(**data)
