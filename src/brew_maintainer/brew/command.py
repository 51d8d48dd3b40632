"""
brew/command.py — Brew Command Descriptors

A BrewCommand names one brew invocation and the environment it runs with.
It is immutable and knows how to render itself to argv and env; the
executor decides how the process is actually run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class CommandKind(str, Enum):
    UPDATE   = "update"
    OUTDATED = "outdated"
    UPGRADE  = "upgrade"
    CLEANUP  = "cleanup"


@dataclass(frozen=True)
class BrewCommand:
    """
    One brew invocation.

    Use the named constructors rather than building instances directly:
        BrewCommand.update(envs)
        BrewCommand.upgrade("wget", envs)

    package_name is only meaningful for UPGRADE and is passed through to
    argv as-is (no quoting, one argument slot).
    """
    kind: CommandKind
    envs: Mapping[str, str] = field(default_factory=dict)
    package_name: Optional[str] = None

    def __post_init__(self) -> None:
        # Freeze the env mapping so the descriptor cannot change after creation
        object.__setattr__(self, "envs", MappingProxyType(dict(self.envs)))

    # ── Named constructors ───────────────────────────────────────────────────

    @classmethod
    def update(cls, envs: Mapping[str, str]) -> "BrewCommand":
        return cls(CommandKind.UPDATE, envs)

    @classmethod
    def outdated(cls, envs: Mapping[str, str]) -> "BrewCommand":
        return cls(CommandKind.OUTDATED, envs)

    @classmethod
    def upgrade(cls, package_name: str, envs: Mapping[str, str]) -> "BrewCommand":
        return cls(CommandKind.UPGRADE, envs, package_name=package_name)

    @classmethod
    def cleanup(cls, envs: Mapping[str, str]) -> "BrewCommand":
        return cls(CommandKind.CLEANUP, envs)

    # ── Rendering ────────────────────────────────────────────────────────────

    def to_args(self) -> list[str]:
        if self.kind is CommandKind.OUTDATED:
            return ["outdated", "--json"]
        if self.kind is CommandKind.UPGRADE:
            return ["upgrade", self.package_name or ""]
        return [self.kind.value]

    def to_env(self) -> dict[str, str]:
        return dict(self.envs)

    def __str__(self) -> str:
        return "brew " + " ".join(self.to_args())

    def __hash__(self) -> int:
        return hash((self.kind, self.package_name, tuple(sorted(self.envs.items()))))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BrewCommand):
            return NotImplemented
        return (
            self.kind is other.kind
            and self.package_name == other.package_name
            and dict(self.envs) == dict(other.envs)
        )
