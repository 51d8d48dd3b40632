"""
tests/unit/test_command.py — BrewCommand Descriptor Tests

Covers argv rendering for every kind, env pass-through, immutability and
value equality.
"""

from __future__ import annotations

import dataclasses

import pytest

from brew_maintainer.brew.command import BrewCommand, CommandKind

_ENVS = {"HOME": "/Users/tester", "PATH": "/opt/homebrew/bin:/usr/bin"}


class TestToArgs:
    def test_update(self):
        assert BrewCommand.update(_ENVS).to_args() == ["update"]

    def test_outdated(self):
        assert BrewCommand.outdated(_ENVS).to_args() == ["outdated", "--json"]

    def test_upgrade(self):
        assert BrewCommand.upgrade("wget", _ENVS).to_args() == ["upgrade", "wget"]

    def test_cleanup(self):
        assert BrewCommand.cleanup(_ENVS).to_args() == ["cleanup"]

    def test_upgrade_name_is_not_quoted(self):
        args = BrewCommand.upgrade("homebrew/cask/font-fira code", _ENVS).to_args()
        assert args == ["upgrade", "homebrew/cask/font-fira code"]

    @pytest.mark.parametrize("cmd", [
        BrewCommand.update(_ENVS),
        BrewCommand.outdated(_ENVS),
        BrewCommand.upgrade("node", _ENVS),
        BrewCommand.cleanup(_ENVS),
    ])
    def test_first_arg_is_subcommand_and_no_empty_args(self, cmd):
        args = cmd.to_args()
        assert args[0] in {"update", "outdated", "upgrade", "cleanup"}
        assert all(args)

    def test_rendering_is_deterministic(self):
        a = BrewCommand.upgrade("python@3.12", _ENVS)
        b = BrewCommand.upgrade("python@3.12", dict(_ENVS))
        assert a.to_args() == b.to_args() == a.to_args()

    def test_str(self):
        assert str(BrewCommand.outdated(_ENVS)) == "brew outdated --json"


class TestToEnv:
    def test_env_returned_verbatim(self):
        assert BrewCommand.cleanup(_ENVS).to_env() == _ENVS

    def test_empty_env(self):
        assert BrewCommand.update({}).to_env() == {}

    def test_env_is_copied_on_construction(self):
        envs = {"HOME": "/a"}
        cmd = BrewCommand.update(envs)
        envs["HOME"] = "/b"
        assert cmd.to_env() == {"HOME": "/a"}

    def test_to_env_returns_a_fresh_dict(self):
        cmd = BrewCommand.update(_ENVS)
        cmd.to_env()["PATH"] = "/tampered"
        assert cmd.to_env()["PATH"] == _ENVS["PATH"]


class TestImmutability:
    def test_fields_are_frozen(self):
        cmd = BrewCommand.upgrade("wget", _ENVS)
        with pytest.raises(dataclasses.FrozenInstanceError):
            cmd.package_name = "curl"  # type: ignore[misc]

    def test_envs_mapping_is_read_only(self):
        cmd = BrewCommand.update(_ENVS)
        with pytest.raises(TypeError):
            cmd.envs["HOME"] = "/elsewhere"  # type: ignore[index]

    def test_equality_and_hash(self):
        a = BrewCommand.upgrade("wget", _ENVS)
        b = BrewCommand.upgrade("wget", dict(_ENVS))
        assert a == b
        assert hash(a) == hash(b)
        assert a != BrewCommand.upgrade("curl", _ENVS)
        assert a.kind is CommandKind.UPGRADE
