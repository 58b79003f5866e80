"""Configuration handling for git-worktree-manager"""

import os
from dataclasses import dataclass, field, fields
from typing import Optional

GIT_EXECUTABLE_ENV = "GIT_WORKTREE_MANAGER_GIT"
UNTRACKED_MODES = ["all", "normal", "no"]


@dataclass(frozen=True)
class Config:
    """Configuration for git-worktree-manager with validation.

    Frozen so one instance can be shared by every worker thread.
    """

    # External tool
    git_executable: str = field(default_factory=lambda: os.environ.get(GIT_EXECUTABLE_ENV, "git"))
    command_timeout: Optional[float] = None  # Seconds, None = wait until done or cancelled
    terminate_grace_period: float = 5.0  # Seconds between terminate and kill on cancel

    # Status scanning
    status_untracked_files: str = "all"  # Recurse into untracked directories
    dirty_check_untracked_files: str = "normal"  # Bounded: stop at untracked directories

    # Execution
    workers: Optional[int] = None  # Background pool size (None = auto-detect)
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_git_executable()
        self._validate_command_timeout()
        self._validate_grace_period()
        self._validate_untracked_modes()
        self._validate_workers()

    def _validate_git_executable(self):
        """Validate git_executable is not empty."""
        if not self.git_executable or not self.git_executable.strip():
            raise ValueError("git_executable cannot be empty")
        object.__setattr__(self, "git_executable", self.git_executable.strip())

    def _validate_command_timeout(self):
        """Validate command_timeout is positive when set."""
        if self.command_timeout is not None and self.command_timeout <= 0:
            raise ValueError(f"command_timeout must be positive, got {self.command_timeout}")

    def _validate_grace_period(self):
        """Validate terminate_grace_period is not negative."""
        if self.terminate_grace_period < 0:
            raise ValueError(
                f"terminate_grace_period cannot be negative, got {self.terminate_grace_period}"
            )

    def _validate_untracked_modes(self):
        """Validate untracked-file modes are ones git understands."""
        for name in ("status_untracked_files", "dirty_check_untracked_files"):
            value = getattr(self, name)
            if value not in UNTRACKED_MODES:
                raise ValueError(f"{name} must be one of {UNTRACKED_MODES}, got '{value}'")

    def _validate_workers(self):
        """Validate workers is positive when set."""
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
