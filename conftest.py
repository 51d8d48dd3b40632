"""
Test conftest — isolate BREW_MAINTAINER_* environment variables so that
settings tests are not affected by a developer's shell or CI environment.
"""
import os

import pytest


@pytest.fixture(autouse=True)
def _clear_brew_maintainer_env(monkeypatch):
    """Remove BREW_MAINTAINER_* env vars for every test so Settings() sees
    only what the test provides. Also disables .env file loading so a local
    .env does not leak into tests, and drops the cached settings singleton."""
    for var in list(os.environ):
        if var.upper().startswith("BREW_MAINTAINER_"):
            monkeypatch.delenv(var, raising=False)

    import brew_maintainer.config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_prefix="BREW_MAINTAINER_",
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
    monkeypatch.setattr(settings_module, "_singleton", None)
