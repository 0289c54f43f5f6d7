"""
In-memory persistence for Folio.

A dict-backed document store for tests, demos and the CLI's scratch mode. It
records every write so callers can check exactly what reached the "remote"
side, and can be told to fail to exercise the failure policies.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from ..errors import PersistenceError
from ..models import Page, UserProfile
from .base import BasePersistence


class InMemoryPersistence(BasePersistence):
    """
    Document store that keeps wire-format documents in memory.
    """

    def __init__(self):
        """Initialize an empty store."""
        self._pages: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._profiles: Dict[str, Dict[str, Any]] = {}
        # (operation, scope, page_id) for every successful write
        self.writes: List[Tuple[str, str, str]] = []
        self.saved_pages: List[Page] = []
        self.fail_operations: Set[str] = set()
        self.fail_page_ids: Set[str] = set()

    def _check(self, operation: str, page_id: Optional[str] = None) -> None:
        if operation in self.fail_operations or (page_id and page_id in self.fail_page_ids):
            raise PersistenceError(f"Simulated {operation} failure for {page_id or 'scope'}")

    def seed(self, scope: str, pages: List[Page]) -> None:
        """Store pages directly, without recording writes."""
        bucket = self._pages.setdefault(scope, {})
        for page in pages:
            bucket[page.id] = page.to_wire()

    def stored_page(self, scope: str, page_id: str) -> Optional[Page]:
        data = self._pages.get(scope, {}).get(page_id)
        return Page.from_wire(data) if data else None

    def stored_ids(self, scope: str) -> List[str]:
        return list(self._pages.get(scope, {}).keys())

    async def fetch_pages(self, scope: str) -> List[Page]:
        self._check("fetch_pages")
        return [Page.from_wire(data) for data in self._pages.get(scope, {}).values()]

    async def save_page(self, scope: str, page: Page) -> None:
        self._check("save_page", page.id)
        self._pages.setdefault(scope, {})[page.id] = page.to_wire()
        self.writes.append(("save_page", scope, page.id))
        self.saved_pages.append(page)
        logging.debug(f"Stored page {page.id} in memory for {scope}")

    async def save_page_metadata(self, scope: str, page_id: str, updates: Dict[str, Any]) -> None:
        self._check("save_page_metadata", page_id)
        bucket = self._pages.setdefault(scope, {})
        bucket[page_id] = {**bucket.get(page_id, {"id": page_id}), **updates}
        self.writes.append(("save_page_metadata", scope, page_id))

    async def delete_page(self, scope: str, page_id: str) -> None:
        self._check("delete_page", page_id)
        self._pages.get(scope, {}).pop(page_id, None)
        self.writes.append(("delete_page", scope, page_id))

    async def fetch_profile(self, scope: str) -> Optional[UserProfile]:
        self._check("fetch_profile")
        data = self._profiles.get(scope)
        return UserProfile.model_validate(data) if data else None

    async def save_profile(self, scope: str, profile: UserProfile) -> None:
        self._check("save_profile")
        self._profiles[scope] = {**self._profiles.get(scope, {}), **profile.to_wire()}
        self.writes.append(("save_profile", scope, profile.id))
