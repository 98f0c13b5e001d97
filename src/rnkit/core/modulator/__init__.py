"""Installation orchestration: plan, apply and remove capabilities."""
from .batch import BatchResult, run_batch
from .bootstrap import initialize_project
from .conflicts import detect_conflicts
from .context import ModulatorContext
from .engine import CAPABILITY_KINDS, Modulator
from .plan import (
    INSTALL,
    INSTALL_PHASES,
    REMOVE,
    REMOVE_PHASES,
    Conflict,
    DependencyPlan,
    ModulatorPlan,
    ModulatorResult,
    PhaseResult,
)

__all__ = [
    "BatchResult",
    "CAPABILITY_KINDS",
    "Conflict",
    "DependencyPlan",
    "INSTALL",
    "INSTALL_PHASES",
    "Modulator",
    "ModulatorContext",
    "ModulatorPlan",
    "ModulatorResult",
    "PhaseResult",
    "REMOVE",
    "REMOVE_PHASES",
    "detect_conflicts",
    "initialize_project",
    "run_batch",
]
