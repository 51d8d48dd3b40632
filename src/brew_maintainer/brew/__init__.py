"""
brew/ — Brew Invocation Layer

Public API:
    from brew_maintainer.brew import BrewCommand, BrewExecutor, parse_outdated

Component overview:
    BrewCommand         Immutable descriptor of one brew invocation
    BrewExecutor        Process supervisor (blocking and supervised contracts)
    is_interactive_prompt  Prompt heuristic applied to every output line
    parse_outdated      Decoder for `brew outdated --json`
"""

from brew_maintainer.brew.command import BrewCommand, CommandKind
from brew_maintainer.brew.executor import BrewExecutor, CommandExecutor
from brew_maintainer.brew.outdated import OutdatedPackages, Package, parse_outdated
from brew_maintainer.brew.prompts import PROMPT_PATTERNS, is_interactive_prompt

__all__ = [
    "BrewCommand",
    "CommandKind",
    "BrewExecutor",
    "CommandExecutor",
    "OutdatedPackages",
    "Package",
    "parse_outdated",
    "PROMPT_PATTERNS",
    "is_interactive_prompt",
]
