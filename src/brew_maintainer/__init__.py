"""
brew_maintainer — Unattended Homebrew maintenance

One pass refreshes the index, finds outdated packages, upgrades each one
under a time budget and cleans up. Any brew invocation that asks for
human input is killed rather than left hanging.
"""

__version__ = "0.3.0"
