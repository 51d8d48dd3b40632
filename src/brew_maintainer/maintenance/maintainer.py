"""
maintenance/maintainer.py — Brew Maintenance Orchestrator

Runs one maintenance pass in four strictly sequential phases:

    1. update    brew update            fatal on error
    2. outdated  brew outdated --json   fatal on error (incl. unparsable JSON)
    3. upgrade   brew upgrade <name>    per package, tolerated on error
    4. cleanup   brew cleanup           fatal on error

A fatal phase raises MaintenanceError with the BrewError chained. Phase 3
never raises; packages whose upgrade failed for any reason (non-zero exit,
prompt, timeout) are collected and returned in the report.

Usage:
    maintainer = BrewMaintainer(BrewExecutor())
    report = await run_maintenance(maintainer, upgrade_timeout_seconds=300)
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from brew_maintainer.brew.command import BrewCommand
from brew_maintainer.brew.executor import CommandExecutor
from brew_maintainer.brew.outdated import OutdatedPackages, Package, parse_outdated
from brew_maintainer.config.settings import DEFAULT_UPGRADE_TIMEOUT_SECONDS
from brew_maintainer.exceptions import BrewError, MaintenanceError
from brew_maintainer.observability.logger import bind_run, clear_run, get_logger

log = get_logger(__name__)


class Phase(str, Enum):
    UPDATE   = "update"
    OUTDATED = "outdated"
    UPGRADE  = "upgrade"
    CLEANUP  = "cleanup"


class PhaseStatus(str, Enum):
    STARTED = "started"
    DONE    = "done"
    FAILED  = "failed"


# Human-readable descriptions used when a fatal phase aborts the run
_FAILURE_DESCRIPTIONS: dict[Phase, str] = {
    Phase.UPDATE:   "failed to update reference repositories",
    Phase.OUTDATED: "failed in finding outdated packages",
    Phase.CLEANUP:  "failed to cleanup",
}


@dataclass(frozen=True)
class PhaseEvent:
    """Progress notification emitted at each phase boundary."""
    phase: Phase
    status: PhaseStatus
    duration_ms: float = 0.0
    detail: str = ""


ProgressCallback = Callable[[PhaseEvent], None]


@dataclass(frozen=True)
class FailedUpgrade:
    package: Package
    reason: str            # BrewError.kind
    message: str


@dataclass
class MaintenanceReport:
    """Outcome of one completed pass (phases 1, 2 and 4 succeeded)."""
    run_id: str
    outdated: OutdatedPackages = field(default_factory=OutdatedPackages)
    failed_upgrades: list[FailedUpgrade] = field(default_factory=list)
    phase_durations_ms: dict[str, float] = field(default_factory=dict)

    @property
    def failed_packages(self) -> list[Package]:
        return [f.package for f in self.failed_upgrades]

    @property
    def upgraded_count(self) -> int:
        return len(self.outdated) - len(self.failed_upgrades)


class BrewMaintainer:
    """
    The four maintenance operations on top of a CommandExecutor.

    Every command is built with a fresh executor.envs() so the environment
    a phase sees is always the one the executor chooses to forward.
    """

    def __init__(self, executor: CommandExecutor) -> None:
        self._executor = executor

    async def update_reference_repositories(self) -> str:
        return await self._executor.execute(BrewCommand.update(self._executor.envs()))

    async def find_outdated_packages(self) -> OutdatedPackages:
        raw = await self._executor.execute(BrewCommand.outdated(self._executor.envs()))
        return parse_outdated(raw)

    async def upgrade_packages_with_timeout(
        self,
        outdated: OutdatedPackages,
        timeout_seconds: float = DEFAULT_UPGRADE_TIMEOUT_SECONDS,
    ) -> list[FailedUpgrade]:
        """
        Upgrade each package in turn, formulae first. One child at a time.
        Returns the packages that failed; never raises BrewError.
        """
        failed: list[FailedUpgrade] = []
        for package in outdated.iter_packages():
            cmd = BrewCommand.upgrade(package.name, self._executor.envs())
            try:
                await self._executor.execute_with_timeout(cmd, timeout_seconds)
            except BrewError as exc:
                log.warning(
                    "maintenance.upgrade.failed",
                    package=package.name,
                    reason=exc.kind,
                    error=str(exc),
                )
                failed.append(FailedUpgrade(package=package, reason=exc.kind, message=str(exc)))
            else:
                log.info("maintenance.upgrade.done", package=package.name)
        return failed

    async def cleanup(self) -> str:
        return await self._executor.execute(BrewCommand.cleanup(self._executor.envs()))


# ─────────────────────────────────────────────────────────────────────────────
# One full pass
# ─────────────────────────────────────────────────────────────────────────────

async def run_maintenance(
    maintainer: BrewMaintainer,
    upgrade_timeout_seconds: float = DEFAULT_UPGRADE_TIMEOUT_SECONDS,
    on_progress: Optional[ProgressCallback] = None,
    run_id: Optional[str] = None,
) -> MaintenanceReport:
    """
    Run update → outdated → upgrade → cleanup.

    Raises MaintenanceError (cause chained) when update, outdated or cleanup
    fails; later phases are not attempted. Upgrade failures only show up in
    the returned report.
    """
    report = MaintenanceReport(run_id=run_id or uuid.uuid4().hex[:12])
    bind_run(report.run_id)
    log.info("maintenance.start", upgrade_timeout_seconds=upgrade_timeout_seconds)

    def _emit(event: PhaseEvent) -> None:
        if on_progress is not None:
            on_progress(event)

    async def _fatal_phase(phase: Phase, call):
        _emit(PhaseEvent(phase, PhaseStatus.STARTED))
        t_start = time.monotonic()
        try:
            result = await call()
        except BrewError as exc:
            duration_ms = (time.monotonic() - t_start) * 1000
            description = _FAILURE_DESCRIPTIONS[phase]
            log.error(
                "maintenance.phase.failed",
                phase=phase.value,
                description=description,
                reason=exc.kind,
                error=str(exc),
            )
            _emit(PhaseEvent(phase, PhaseStatus.FAILED, duration_ms, str(exc)))
            raise MaintenanceError(phase.value, description) from exc
        duration_ms = (time.monotonic() - t_start) * 1000
        report.phase_durations_ms[phase.value] = round(duration_ms, 1)
        _emit(PhaseEvent(phase, PhaseStatus.DONE, duration_ms))
        return result

    try:
        output = await _fatal_phase(Phase.UPDATE, maintainer.update_reference_repositories)
        log.info("maintenance.phase.done", phase=Phase.UPDATE.value, output=output.strip())

        report.outdated = await _fatal_phase(Phase.OUTDATED, maintainer.find_outdated_packages)
        log.info(
            "maintenance.phase.done",
            phase=Phase.OUTDATED.value,
            formulae=len(report.outdated.formulae),
            casks=len(report.outdated.casks),
            packages=str(report.outdated),
        )

        # Phase 3 is tolerant: failures are recorded, not raised
        _emit(PhaseEvent(Phase.UPGRADE, PhaseStatus.STARTED))
        t_start = time.monotonic()
        report.failed_upgrades = await maintainer.upgrade_packages_with_timeout(
            report.outdated, upgrade_timeout_seconds,
        )
        duration_ms = (time.monotonic() - t_start) * 1000
        report.phase_durations_ms[Phase.UPGRADE.value] = round(duration_ms, 1)
        log.info(
            "maintenance.phase.done",
            phase=Phase.UPGRADE.value,
            attempted=len(report.outdated),
            failed=[p.name for p in report.failed_packages],
        )
        _emit(PhaseEvent(
            Phase.UPGRADE,
            PhaseStatus.DONE,
            duration_ms,
            detail=", ".join(p.name for p in report.failed_packages),
        ))

        output = await _fatal_phase(Phase.CLEANUP, maintainer.cleanup)
        log.info("maintenance.phase.done", phase=Phase.CLEANUP.value, output=output.strip())

        log.info(
            "maintenance.done",
            outdated=len(report.outdated),
            failed=len(report.failed_upgrades),
        )
        return report
    finally:
        clear_run()
