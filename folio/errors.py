"""
Error types for Folio.

Missing pages and blocks are never errors: edit operations treat them as
no-ops. Only capacity violations are surfaced synchronously; persistence
failures are raised by the backends and absorbed by the sync failure policy.
"""


class FolioError(Exception):
    """Base class for all Folio errors."""


class CapacityExceededError(FolioError):
    """
    Raised when a block insertion would exceed the per-page block ceiling.

    The message is meant to be shown to the user as-is.
    """

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Page limit reached ({limit} blocks). Please split this into multiple "
            f"pages to ensure performance and reliability."
        )


class PersistenceError(FolioError):
    """Raised by persistence backends when a remote read or write fails."""
