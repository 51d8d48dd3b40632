"""Allow `python -m brew_maintainer` to run one maintenance pass."""

from brew_maintainer.main import cli

cli()
