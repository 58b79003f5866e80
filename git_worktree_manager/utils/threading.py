"""Threading utilities for sizing the background worker pool."""

import os
import sys
from typing import Dict, Any, Optional


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with free-threading enabled.

    Returns:
        True if running on Python 3.13+ with the GIL disabled
    """
    is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
    return is_gil_enabled is not None and not is_gil_enabled()


def get_optimal_worker_count(user_specified: Optional[int] = None) -> int:
    """Calculate the worker count for background git operations.

    Git operations are subprocess and I/O bound, so the pool is sized above
    the CPU count.

    Args:
        user_specified: User-specified worker count, if provided

    Returns:
        Number of workers for the operation pool
    """
    if user_specified is not None and user_specified > 0:
        return user_specified

    cpu_count = os.cpu_count() or 1

    if is_free_threading_enabled():
        return min(64, cpu_count * 2)

    # CPU_count + 4 is a good heuristic for I/O-bound work
    return min(32, cpu_count + 4)


def get_threading_info() -> Dict[str, Any]:
    """Get information about the threading configuration for debug output."""
    return {
        "free_threading": is_free_threading_enabled(),
        "cpu_count": os.cpu_count() or 1,
        "optimal_workers": get_optimal_worker_count(),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }
