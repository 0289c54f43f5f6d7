"""
Undo/redo history for Folio.

Every committed edit is recorded as a whole-collection snapshot. Snapshots are
compared structurally through their canonical JSON form, since edit
operations always return new collections and reference equality would
record no-op edits.
"""

import json
import logging
from collections import deque
from typing import Deque, List, Optional, Sequence, Tuple

from ..models import Page


Snapshot = Tuple[Page, ...]


def serialize_pages(pages: Sequence[Page]) -> str:
    """
    Produce the canonical JSON form of a page collection.

    Args:
        pages: The page collection

    Returns:
        JSON with sorted keys, stable across equal collections
    """
    return json.dumps(
        [page.model_dump(mode="json") for page in pages],
        sort_keys=True,
        ensure_ascii=True
    )


def pages_equal(left: Sequence[Page], right: Sequence[Page]) -> bool:
    """Return True if two collections hold structurally equal pages in the same order."""
    if len(left) != len(right):
        return False
    return serialize_pages(left) == serialize_pages(right)


class HistoryManager:
    """
    Bounded linear undo/redo stacks of page collection snapshots.
    """

    def __init__(self, limit: int = 50):
        """
        Initialize the history manager.

        Args:
            limit: Maximum number of undo snapshots kept; oldest dropped first
        """
        if limit < 1:
            raise ValueError(f"History limit must be positive, got {limit}")
        self.limit = limit
        self._undo: Deque[Snapshot] = deque(maxlen=limit)
        self._redo: List[Snapshot] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def record(self, old: Sequence[Page], new: Sequence[Page]) -> bool:
        """
        Record a transition from ``old`` to ``new``.

        Args:
            old: Collection before the edit
            new: Collection after the edit

        Returns:
            True if the edit changed anything and was recorded
        """
        if pages_equal(old, new):
            return False

        self._undo.append(tuple(old))
        self._redo.clear()
        return True

    def undo(self, current: Sequence[Page]) -> Optional[List[Page]]:
        """
        Step back one edit.

        Args:
            current: The collection currently shown

        Returns:
            The restored collection, or None if there is nothing to undo
        """
        if not self._undo:
            return None

        previous = self._undo.pop()
        self._redo.append(tuple(current))
        logging.debug(f"Undo: {len(self._undo)} undo / {len(self._redo)} redo snapshots left")
        return list(previous)

    def redo(self, current: Sequence[Page]) -> Optional[List[Page]]:
        """
        Re-apply the most recently undone edit.

        Args:
            current: The collection currently shown

        Returns:
            The restored collection, or None if there is nothing to redo
        """
        if not self._redo:
            return None

        following = self._redo.pop()
        self._undo.append(tuple(current))
        logging.debug(f"Redo: {len(self._undo)} undo / {len(self._redo)} redo snapshots left")
        return list(following)

    def clear(self) -> None:
        """Forget all history, e.g. after the workspace is reloaded from the remote store."""
        self._undo.clear()
        self._redo.clear()
