"""
Base persistence interface for Folio.

This module defines the abstract remote document store that the sync
coordinator writes to. Debouncing, caching and failure handling live above
this interface; backends just read and write.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import Page, UserProfile


class BasePersistence(ABC):
    """
    Abstract base class for all remote document stores.

    ``scope`` identifies the workspace (or user) the data belongs to. Every
    method may raise ``PersistenceError``.
    """

    @abstractmethod
    async def fetch_pages(self, scope: str) -> List[Page]:
        """
        Retrieve every page stored for a workspace.

        Args:
            scope: Workspace identifier

        Returns:
            List of pages, empty for a workspace that was never persisted
        """
        pass

    @abstractmethod
    async def save_page(self, scope: str, page: Page) -> None:
        """
        Write a full page, replacing any stored version.

        Args:
            scope: Workspace identifier
            page: The page to store
        """
        pass

    @abstractmethod
    async def save_page_metadata(self, scope: str, page_id: str, updates: Dict[str, Any]) -> None:
        """
        Merge a partial update (wire field names) into a stored page.

        Args:
            scope: Workspace identifier
            page_id: Page to update
            updates: Fields to merge, e.g. {"isFavorite": True}
        """
        pass

    @abstractmethod
    async def delete_page(self, scope: str, page_id: str) -> None:
        """
        Remove a stored page. Deleting a missing page is not an error.

        Args:
            scope: Workspace identifier
            page_id: Page to delete
        """
        pass

    @abstractmethod
    async def fetch_profile(self, scope: str) -> Optional[UserProfile]:
        """
        Retrieve the profile stored for a user.

        Args:
            scope: User identifier

        Returns:
            The profile, or None if none was stored
        """
        pass

    @abstractmethod
    async def save_profile(self, scope: str, profile: UserProfile) -> None:
        """
        Store a user profile.

        Args:
            scope: User identifier
            profile: The profile to store
        """
        pass

    async def close(self) -> None:
        """Release any connection held by the backend."""
        pass
