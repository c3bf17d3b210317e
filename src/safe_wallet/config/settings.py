"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``SAFEWALLET_``, nested via ``__``)
2. YAML config file (``SAFEWALLET_CONFIG_PATH`` env var or ``from_yaml``)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class OutputOrder(enum.StrEnum):
    """Order in which the network lists unspent outputs."""

    ASC = "ASC"
    DESC = "DESC"


class LogLevel(enum.StrEnum):
    """Root log level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class APIConfig(BaseSettings):
    """Network API settings."""

    model_config = SettingsConfigDict(
        env_prefix="SAFEWALLET_API__",
        case_sensitive=False,
    )

    url: str = "https://api.mixin.one"
    token: str = Field(default="", description="Static bearer token, if no signer is injected")
    timeout: float = Field(default=30.0, description="Per-attempt HTTP timeout in seconds")
    deadline: float = Field(default=60.0, description="Overall deadline per call, retries included")
    max_retries: int = Field(default=2, ge=0)
    retry_delay: float = Field(default=1.0, ge=0.0)
    user_agent: str = "py-safe/0.1"


class OutputsConfig(BaseSettings):
    """Unspent output listing settings."""

    model_config = SettingsConfigDict(
        env_prefix="SAFEWALLET_OUTPUTS__",
        case_sensitive=False,
    )

    page_limit: int = Field(default=500, ge=1, le=500)
    order: OutputOrder = Field(
        default=OutputOrder.ASC,
        description="Listing order; selection accumulates outputs in this order",
    )


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(
        env_prefix="SAFEWALLET_LOGGING__",
        case_sensitive=False,
    )

    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``SAFEWALLET_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="SAFEWALLET_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""

    api: APIConfig = Field(default_factory=APIConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
