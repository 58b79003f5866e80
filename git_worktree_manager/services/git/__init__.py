"""Git-related services for git-worktree-manager."""

from .executor import GitExecutor, ExecutionResult
from .reader import RepositoryReader
from .safety import SafetyGate, Clearance, GateState
from . import porcelain, validation

__all__ = [
    "GitExecutor",
    "ExecutionResult",
    "RepositoryReader",
    "SafetyGate",
    "Clearance",
    "GateState",
    "porcelain",
    "validation",
]
