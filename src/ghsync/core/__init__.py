"""Repository state detection and convergence engine."""

from .engine import ConvergenceEngine, InvalidInputError, PlanComputation, build_create_request, build_engine
from .executor import Executor
from .models import (
    ActionPlan,
    ActionStep,
    CreateRequest,
    ErrorKind,
    RepositoryState,
    StepKind,
    SyncError,
    SyncResult,
    Visibility,
)
from .planner import ConvergencePlanner

__all__ = [
    "ActionPlan",
    "ActionStep",
    "ConvergenceEngine",
    "ConvergencePlanner",
    "CreateRequest",
    "ErrorKind",
    "Executor",
    "InvalidInputError",
    "PlanComputation",
    "RepositoryState",
    "StepKind",
    "SyncError",
    "SyncResult",
    "Visibility",
    "build_create_request",
    "build_engine",
]
