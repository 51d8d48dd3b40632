"""
main.py — brew-maintainer Entry Point

Usage:
    brew-maintainer                              # one pass, default settings
    brew-maintainer --log-level DEBUG            # verbose logging
    brew-maintainer --upgrade-timeout 600        # 10 minutes per package
    brew-maintainer --config path/to/config.yaml
    python -m brew_maintainer

Exit codes:
    0  update, outdated and cleanup succeeded (individual upgrades may have failed)
    1  a fatal phase failed, or the configuration is invalid
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from typing import Any, Optional


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="brew-maintainer",
        description="Unattended Homebrew maintenance: update, upgrade, cleanup",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $BREW_MAINTAINER_CONFIG or config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override log level from config",
    )
    parser.add_argument(
        "--upgrade-timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Per-package upgrade time budget (default: 300)",
    )
    parser.add_argument(
        "--brew-binary",
        default=None,
        help="brew executable to run (default: 'brew' resolved from PATH)",
    )
    parser.add_argument(
        "--no-summary",
        action="store_true",
        default=False,
        help="Do not print the summary table at the end of the pass",
    )
    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    brew: dict[str, Any] = {}
    if args.brew_binary is not None:
        brew["binary"] = args.brew_binary
    if args.upgrade_timeout is not None:
        brew["upgrade_timeout_seconds"] = args.upgrade_timeout
    return {"brew": brew} if brew else {}


def bootstrap(args: argparse.Namespace):
    """
    Load config, validate it fully, and set up logging.
    Returns (settings, log) ready for use.

    Exits with code 1 (after printing a clear message) if:
      - config.yaml has invalid values (Pydantic ValidationError)
      - host-level problems are found (ConfigError from validate_all())
    """
    import yaml
    from pydantic import ValidationError

    from brew_maintainer.config.settings import ConfigError, load_settings
    from brew_maintainer.observability.logger import get_logger, setup_logging

    # -- Load and parse -------------------------------------------------------
    try:
        settings = load_settings(args.config, overrides=_cli_overrides(args))
    except ValidationError as exc:
        problems = "\n".join(
            f"  • {'.'.join(str(p) for p in e['loc']) or '?'}: {e['msg']}"
            for e in exc.errors()
        )
        print(
            f"\n❌  Config validation failed:\n\n{problems}\n\n"
            f"    Fix config/config.yaml, your environment or the CLI flags and rerun.\n",
            file=sys.stderr,
        )
        sys.exit(1)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(
            f"\n❌  Failed to load config: {type(exc).__name__}: {exc}\n",
            file=sys.stderr,
        )
        sys.exit(1)

    # -- Logging --------------------------------------------------------------
    # CLI --log-level flag overrides config.yaml
    setup_logging(
        level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        file_name=settings.logging.file_name,
        json_format=settings.logging.json_format,
        console_output=settings.logging.console_output,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.logging.backup_count,
    )
    log = get_logger("brew_maintainer.main")

    # -- Host-level validation ------------------------------------------------
    try:
        settings.validate_all()
    except ConfigError as exc:
        log.error("maintainer.config_invalid", error=str(exc).strip())
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    return settings, log


async def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    settings, log = bootstrap(args)

    from rich.console import Console

    from brew_maintainer import __version__
    from brew_maintainer.brew.executor import BrewExecutor
    from brew_maintainer.exceptions import MaintenanceError
    from brew_maintainer.maintenance.maintainer import BrewMaintainer, run_maintenance
    from brew_maintainer.maintenance.report import render_report

    log.info(
        "maintainer.starting",
        version=__version__,
        brew_binary=settings.brew_binary,
        upgrade_timeout_seconds=settings.upgrade_timeout_seconds,
    )

    maintainer = BrewMaintainer(BrewExecutor(settings.brew_binary))
    t_start = time.monotonic()
    try:
        report = await run_maintenance(
            maintainer,
            upgrade_timeout_seconds=settings.upgrade_timeout_seconds,
        )
    except MaintenanceError as exc:
        log.error(
            "maintainer.finished",
            success=False,
            phase=exc.phase,
            error=f"❌ {exc.description}: {exc.__cause__}",
            duration_s=round(time.monotonic() - t_start, 2),
        )
        print(f"\n❌  {exc.description.capitalize()}: {exc.__cause__}\n", file=sys.stderr)
        return 1

    log.info(
        "maintainer.finished",
        success=True,
        outdated=len(report.outdated),
        failed=[p.name for p in report.failed_packages],
        duration_s=round(time.monotonic() - t_start, 2),
    )
    if not args.no_summary:
        render_report(report, Console(stderr=True))
    return 0


def cli() -> None:
    """Console-script entry point."""
    sys.exit(asyncio.run(main()))
