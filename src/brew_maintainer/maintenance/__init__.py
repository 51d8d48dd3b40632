"""
maintenance/ — Maintenance pass orchestration and reporting
"""

from brew_maintainer.maintenance.maintainer import (
    BrewMaintainer,
    FailedUpgrade,
    MaintenanceReport,
    Phase,
    PhaseEvent,
    PhaseStatus,
    run_maintenance,
)

__all__ = [
    "BrewMaintainer",
    "FailedUpgrade",
    "MaintenanceReport",
    "Phase",
    "PhaseEvent",
    "PhaseStatus",
    "run_maintenance",
]
