"""Debounced, eventually-consistent synchronization with the remote store."""

from .policy import FailurePolicy, LogAndContinuePolicy, RetryPolicy, WriteResult, build_policy
from .debounce import DebounceScheduler
from .coordinator import LoadResult, SyncCoordinator

__all__ = [
    "FailurePolicy",
    "LogAndContinuePolicy",
    "RetryPolicy",
    "WriteResult",
    "build_policy",
    "DebounceScheduler",
    "LoadResult",
    "SyncCoordinator"
]
