"""Serializable command entry points.

Each operation is reachable by name with keyword parameters and answers with
a JSON-safe payload::

    {"ok": True, "data": ...}
    {"ok": False, "error": {"kind": ..., "message": ..., "details": {...}}}

Long-running operations can be submitted to a background worker pool and
cancelled by id.
"""

import inspect
import threading
import uuid
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Union

from git_worktree_manager.config import Config
from git_worktree_manager.core import WorktreeManager
from git_worktree_manager.exceptions import (
    InvalidArgumentError,
    OperationCancelledError,
    WorktreeManagerError,
)
from git_worktree_manager.utils.logging import get_logger
from git_worktree_manager.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)

# Operations whose subprocess is terminated when their cancel event is set
CANCELLABLE_OPERATIONS = frozenset({"git_fetch", "git_pull", "git_push"})


def _serialize(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def success_payload(data: Any = None) -> dict:
    return {"ok": True, "data": _serialize(data)}


def error_payload(error: WorktreeManagerError) -> dict:
    return {"ok": False, "error": error.to_dict()}


@dataclass
class OperationHandle:
    """A submitted operation."""

    operation_id: str
    name: str
    future: Future = field(repr=False)

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> dict:
        """Wait for the payload. A cancelled, never-started operation reports Cancelled."""
        try:
            return self.future.result(timeout)
        except CancelledError:
            return error_payload(OperationCancelledError(self.name))


class CommandDispatcher:
    """Maps operation names to WorktreeManager calls."""

    def __init__(self, manager: Optional[WorktreeManager] = None, config: Union[Config, dict, None] = None):
        """Initialize the dispatcher.

        Args:
            manager: Manager to delegate to; built from ``config`` when omitted
            config: Configuration used for the manager and the worker pool size
        """
        self.manager = manager or WorktreeManager(config)
        self.config = self.manager.config

        self._handlers: Dict[str, Callable[..., Any]] = {
            "open_repository": self.manager.open_repository,
            "validate_repo": self.manager.validate_repository,
            "list_worktrees": self.manager.list_worktrees,
            "add_worktree": self.manager.add_worktree,
            "remove_worktree": self.manager.remove_worktree,
            "lock_worktree": self.manager.lock_worktree,
            "unlock_worktree": self.manager.unlock_worktree,
            "prune_worktrees": self._prune_worktrees,
            "list_branches": self.manager.list_branches,
            "checkout_branch": self.manager.checkout_branch,
            "git_status": self.manager.status,
            "git_fetch": self.manager.fetch,
            "git_pull": self.manager.pull,
            "git_push": self.manager.push,
            "git_commit": self.manager.commit,
            "git_stage": self.manager.stage,
            "git_unstage": self.manager.unstage,
        }

        self._lock = threading.Lock()
        self._pool: Optional[ThreadPoolExecutor] = None
        self._inflight: Dict[str, Tuple[Future, threading.Event]] = {}
        self._closed = False

    def _prune_worktrees(self, repo_path: str) -> None:
        self.manager.prune_worktrees(repo_path)

    @property
    def operations(self):
        return sorted(self._handlers)

    def dispatch(self, name: str, **params) -> dict:
        """Run an operation synchronously and return its payload."""
        return self._run(name, params, cancel_event=None)

    def _run(self, name: str, params: dict, cancel_event: Optional[threading.Event]) -> dict:
        try:
            handler = self._resolve(name)
            if name in CANCELLABLE_OPERATIONS:
                params = dict(params, cancel_event=cancel_event)
            try:
                inspect.signature(handler).bind(**params)
            except TypeError as e:
                raise InvalidArgumentError(f"Invalid parameters for {name}: {e}") from e

            logger.debug(f"Dispatching {name}")
            return success_payload(handler(**params))
        except WorktreeManagerError as e:
            logger.debug(f"{name} failed: {e.kind}: {e.message}")
            return error_payload(e)

    def _resolve(self, name: str) -> Callable[..., Any]:
        handler = self._handlers.get(name)
        if handler is None:
            raise InvalidArgumentError(f"Unknown operation: {name}", {"operation": name})
        return handler

    # ------------------------------------------------------------------
    # Background execution
    # ------------------------------------------------------------------

    def submit(self, name: str, **params) -> OperationHandle:
        """Run an operation on the worker pool.

        Returns:
            OperationHandle whose ``result()`` is the operation's payload
        """
        operation_id = uuid.uuid4().hex
        cancel_event = threading.Event()

        with self._lock:
            if self._closed:
                raise RuntimeError("CommandDispatcher has been shut down")
            if self._pool is None:
                workers = get_optimal_worker_count(self.config.get("workers"))
                logger.debug(f"Starting worker pool with {workers} workers")
                self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="worktree-op")
            future = self._pool.submit(self._run, name, params, cancel_event)
            self._inflight[operation_id] = (future, cancel_event)

        future.add_done_callback(lambda _: self._forget(operation_id))
        logger.debug(f"Submitted {name} as {operation_id}")
        return OperationHandle(operation_id, name, future)

    def _forget(self, operation_id: str) -> None:
        with self._lock:
            self._inflight.pop(operation_id, None)

    def cancel(self, operation_id: str) -> bool:
        """Request cancellation of a submitted operation.

        Queued operations never start. A running fetch, pull or push has its
        git process terminated and reports Cancelled; other running
        operations finish normally.

        Returns:
            False if the operation is unknown or already finished
        """
        with self._lock:
            entry = self._inflight.get(operation_id)
        if entry is None:
            return False

        future, cancel_event = entry
        future.cancel()
        cancel_event.set()
        logger.info(f"Cancellation requested for {operation_id}")
        return True

    def shutdown(self, cancel_pending: bool = True) -> None:
        with self._lock:
            self._closed = True
            pool, self._pool = self._pool, None
            events = [event for _, event in self._inflight.values()]

        if cancel_pending:
            for event in events:
                event.set()
        if pool is not None:
            pool.shutdown(wait=True, cancel_futures=cancel_pending)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
