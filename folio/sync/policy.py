"""
Write failure policies for Folio.

Remote writes go through a policy that turns exceptions into a ``WriteResult``.
The default logs and carries on, trusting the local cache until the next
successful round-trip; a retrying policy can be swapped in from configuration
without touching the sync coordinator.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple

from ..config import ConfigManager, config as default_config


Key = Tuple[str, str]
Operation = Callable[[], Awaitable[None]]


@dataclass
class WriteResult:
    """
    Outcome of one remote write.
    """
    key: Key
    ok: bool
    error: Optional[Exception] = None
    attempts: int = 0
    dropped: bool = False


class FailurePolicy(ABC):
    """
    Strategy for running a remote write and absorbing its failures.
    """

    @abstractmethod
    async def execute(self, key: Key, description: str, operation: Operation) -> WriteResult:
        """
        Run a write operation.

        Args:
            key: (scope, entity id) the write belongs to
            description: Human-readable name of the write for logs
            operation: Coroutine factory performing the write

        Returns:
            The result; failures are reported here and never raised
        """
        pass


class LogAndContinuePolicy(FailurePolicy):
    """
    Run the write once; log a failure and move on.
    """

    async def execute(self, key: Key, description: str, operation: Operation) -> WriteResult:
        try:
            await operation()
            return WriteResult(key=key, ok=True, attempts=1)
        except Exception as e:
            logging.error(f"Failed to {description}: {e}")
            return WriteResult(key=key, ok=False, error=e, attempts=1)


class RetryPolicy(FailurePolicy):
    """
    Retry failed writes with exponential backoff before giving up.
    """

    def __init__(self, max_retries: int = 3, backoff_ms: int = 500):
        """
        Initialize the retry policy.

        Args:
            max_retries: Retries after the first attempt
            backoff_ms: Delay before the first retry; doubled for every further retry
        """
        self.max_retries = max_retries
        self.backoff_ms = backoff_ms

    async def execute(self, key: Key, description: str, operation: Operation) -> WriteResult:
        attempt = 0
        while True:
            attempt += 1
            try:
                await operation()
                return WriteResult(key=key, ok=True, attempts=attempt)
            except Exception as e:
                if attempt > self.max_retries:
                    logging.error(f"Failed to {description} after {attempt} attempts: {e}")
                    return WriteResult(key=key, ok=False, error=e, attempts=attempt)

                delay_ms = self.backoff_ms * (2 ** (attempt - 1))
                logging.warning(f"Failed to {description} (attempt {attempt}), retrying in {delay_ms} ms: {e}")
                await asyncio.sleep(delay_ms / 1000)


def build_policy(settings: Optional[ConfigManager] = None) -> FailurePolicy:
    """
    Create the failure policy named by ``sync.failure_policy``.

    Args:
        settings: Configuration to read (defaults to the global config)

    Returns:
        The configured policy; unknown names fall back to log-and-continue
    """
    settings = settings or default_config
    name = settings.get("sync.failure_policy", "log")

    if name == "retry":
        return RetryPolicy(
            max_retries=int(settings.get("sync.max_retries", 3)),
            backoff_ms=int(settings.get("sync.retry_backoff_ms", 500))
        )
    if name != "log":
        logging.warning(f"Unknown failure policy '{name}', using log-and-continue")
    return LogAndContinuePolicy()
