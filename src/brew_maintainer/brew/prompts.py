"""
brew/prompts.py — Interactive Prompt Detection

A line of child output that contains any of the patterns below means brew
is waiting for a human. The check is a plain case-insensitive substring
match; false positives are preferred to a hung unattended run.
"""

from __future__ import annotations

PROMPT_PATTERNS: tuple[str, ...] = (
    "y/n",
    "(y/n)",
    "[y/n]",
    "yes/no",
    "(yes/no)",
    "[yes/no]",
    "press enter",
    "continue?",
    "proceed?",
    "password:",
    "passphrase:",
    "are you sure",
    "do you want",
    "would you like",
)


def is_interactive_prompt(line: str) -> bool:
    lowered = line.lower()
    return any(pattern in lowered for pattern in PROMPT_PATTERNS)
