"""Branch model"""
from dataclasses import dataclass, asdict


@dataclass
class BranchInfo:
    """A local or remote-tracking branch as git reports it."""
    name: str  # "feature" or "origin/feature"
    is_remote: bool
    is_current: bool

    def to_dict(self) -> dict:
        return asdict(self)
