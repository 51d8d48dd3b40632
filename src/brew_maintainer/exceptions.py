"""
exceptions.py — brew-maintainer Unified Error Hierarchy

Every layer raises typed subclasses of BrewMaintainerError — never bare
Exception. The supervisor raises one of the three BrewError kinds; the
orchestrator wraps fatal phase failures in MaintenanceError.

Import from here, not from individual modules:
    from brew_maintainer.exceptions import InputRequestedError, MaintenanceError

Hierarchy:
    BrewMaintainerError
    ├── BrewError
    │   ├── ExecutionFailedError
    │   │   └── OutdatedDecodeError
    │   ├── InputRequestedError
    │   └── CommandTimeoutError
    └── MaintenanceError
"""

from __future__ import annotations


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class BrewMaintainerError(Exception):
    """Base class for all brew-maintainer exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Supervisor layer
# ─────────────────────────────────────────────────────────────────────────────

class BrewError(BrewMaintainerError):
    """Base for every failure kind of a brew invocation."""

    kind: str = "brew_error"


class ExecutionFailedError(BrewError):
    """
    The command could not be run to a successful end.

    Covers spawn failures, non-zero exits, undecodable stdout, wait errors
    and a closed event channel. `message` carries the detail (stderr text
    for a failed blocking call).
    """

    kind = "execution_failed"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message or "Error executing the brew command")


class OutdatedDecodeError(ExecutionFailedError):
    """`brew outdated --json` produced a document that could not be parsed."""

    kind = "outdated_decode"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"error on parsing the outdated report: {detail}")


class InputRequestedError(BrewError):
    """The child printed a line that looks like an interactive prompt."""

    kind = "input_requested"

    def __init__(self, line: str = "") -> None:
        self.line = line
        super().__init__("Input request cannot be fulfilled")


class CommandTimeoutError(BrewError):
    """The child did not exit within the configured timeout."""

    kind = "timeout"

    def __init__(self, timeout_seconds: float = 0.0) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Command takes more than the timeout requested ({timeout_seconds:g}s)"
        )


# ─────────────────────────────────────────────────────────────────────────────
# Orchestrator layer
# ─────────────────────────────────────────────────────────────────────────────

class MaintenanceError(BrewMaintainerError):
    """A fatal maintenance phase failed. The BrewError is chained as __cause__."""

    def __init__(self, phase: str, description: str) -> None:
        self.phase = phase
        self.description = description
        super().__init__(description)


__all__ = [
    "BrewMaintainerError",
    # Supervisor
    "BrewError",
    "ExecutionFailedError",
    "OutdatedDecodeError",
    "InputRequestedError",
    "CommandTimeoutError",
    # Orchestrator
    "MaintenanceError",
]
