"""
config/settings.py — brew-maintainer Runtime Settings

Merges config.yaml (defaults/structure) with environment variables.
Pydantic-powered — all fields are validated and typed.

  - BrewConfig rejects an empty binary and a negative upgrade timeout
  - LoggingConfig validates the level name and upper-cases it
  - validate_all() performs full startup validation and raises ConfigError
    with a clear, human-readable message listing every problem found
  - load_settings() respects BREW_MAINTAINER_CONFIG env var as a fallback
    when no explicit config_path argument is given

Environment overrides use the BREW_MAINTAINER_ prefix with "__" between
nesting levels, e.g. BREW_MAINTAINER_BREW__UPGRADE_TIMEOUT_SECONDS=600.
"""

from __future__ import annotations

import os
import shutil
import threading as _threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from brew_maintainer.observability.logger import DEFAULT_LOG_FILE, default_log_dir, get_logger

log = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(Exception):
    """Raised by validate_all() when one or more config problems are found."""


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_UPGRADE_TIMEOUT_SECONDS = 5 * 60


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class BrewConfig(BaseModel):
    binary: str = "brew"
    upgrade_timeout_seconds: float = DEFAULT_UPGRADE_TIMEOUT_SECONDS

    @field_validator("binary")
    @classmethod
    def _non_empty_binary(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("brew.binary must not be empty")
        return v.strip()

    @field_validator("upgrade_timeout_seconds")
    @classmethod
    def _non_negative_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("brew.upgrade_timeout_seconds must be >= 0")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: Optional[str] = None            # None = Homebrew var/log
    file_name: str = DEFAULT_LOG_FILE
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = True
    json_format: Optional[bool] = None       # None = auto-detect from tty

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper

    @field_validator("max_file_size_mb", "backup_count")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("logging.max_file_size_mb and logging.backup_count must be >= 1")
        return v


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    brew-maintainer runtime settings.

    Priority (highest to lowest):
      1. Init values: config.yaml sections and CLI overrides, as merged by
         load_settings (merged key by key with the env)
      2. Environment variables
      3. .env file
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="BREW_MAINTAINER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    brew: BrewConfig = Field(default_factory=BrewConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("brew", mode="before")
    @classmethod
    def _coerce_brew(cls, v: Any) -> Any:
        return BrewConfig(**v) if isinstance(v, dict) else v

    @field_validator("logging", mode="before")
    @classmethod
    def _coerce_logging(cls, v: Any) -> Any:
        return LoggingConfig(**v) if isinstance(v, dict) else v

    # -- Convenience properties ----------------------------------------------

    @property
    def brew_binary(self) -> str:
        return self.brew.binary

    @property
    def upgrade_timeout_seconds(self) -> float:
        return self.brew.upgrade_timeout_seconds

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        if self.logging.log_dir:
            return Path(self.logging.log_dir).expanduser()
        return default_log_dir()

    @property
    def log_max_bytes(self) -> int:
        return self.logging.max_file_size_mb * 1024 * 1024

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Pydantic field validators catch type/value errors at parse time; this
        method catches problems that only show up against the running host
        (binary missing from PATH, a log_dir that is a regular file). A zero
        upgrade timeout is legal and only logged as a warning.
        """
        errors: list[str] = []

        # ── brew binary resolves ─────────────────────────────────────────────
        binary = self.brew.binary
        if os.sep in binary:
            if not Path(binary).expanduser().is_file():
                errors.append(f"brew.binary '{binary}' does not exist.")
        elif shutil.which(binary, path=os.environ.get("PATH")) is None:
            errors.append(
                f"brew.binary '{binary}' was not found on PATH. "
                f"Install Homebrew or set brew.binary to its full path."
            )

        # ── log_dir, when set, must not be an existing non-directory ─────────
        if self.logging.log_dir:
            log_dir = self.log_dir
            if log_dir.exists() and not log_dir.is_dir():
                errors.append(f"logging.log_dir '{log_dir}' exists but is not a directory.")

        # ── A zero timeout expires every upgrade right after spawn ───────────
        if self.brew.upgrade_timeout_seconds == 0:
            log.warning(
                "config.upgrade_timeout_zero",
                detail="every upgrade will time out right after it starts",
            )

        # ── Report all errors together ───────────────────────────────────────
        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nbrew-maintainer startup failed — {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your environment "
                f"and rerun.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
_singleton_lock = _threading.RLock()

_KNOWN_SECTIONS = {"brew", "logging"}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path with this priority:
      1. Explicit config_path argument (from --config CLI flag)
      2. BREW_MAINTAINER_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("BREW_MAINTAINER_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def _merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(
    config_path: str | Path | None = None,
    overrides: Optional[dict[str, Any]] = None,
) -> Settings:
    """
    Load settings by merging config.yaml with environment variables.

    Config path resolution order:
      1. config_path argument       (--config CLI flag)
      2. BREW_MAINTAINER_CONFIG env var
      3. config/config.yaml         (default)

    overrides is a nested dict of section values (from CLI flags) applied
    on top of the YAML file, e.g. {"brew": {"binary": "/opt/homebrew/bin/brew"}}.
    """
    global _singleton
    resolved_path = _resolve_config_path(config_path)
    yaml_data = _load_yaml(resolved_path)

    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}
    if overrides:
        init_kwargs = _merge(init_kwargs, overrides)

    instance = Settings(**init_kwargs)
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """
    Return the global Settings singleton, loading it from the default
    config path on first use. Guarded by _singleton_lock.
    """
    global _singleton
    if _singleton is not None:
        return _singleton
    with _singleton_lock:
        if _singleton is None:
            load_settings()
        return _singleton  # type: ignore[return-value]
