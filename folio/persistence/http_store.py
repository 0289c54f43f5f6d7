"""
HTTP document store for Folio.

This module talks to a REST document service that stores one JSON document
per page under ``/workspaces/{scope}/pages/{page_id}`` and one profile per
user under ``/users/{scope}``.
"""

import httpx
import logging
from typing import Any, Dict, List, Optional

from ..errors import PersistenceError
from ..models import Page, UserProfile
from .base import BasePersistence


class HttpPersistence(BasePersistence):
    """
    Reads and writes workspace documents over HTTP.
    """

    def __init__(self, base_url: str, timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the HTTP store.

        Args:
            base_url: Root URL of the document service
            timeout: Request timeout in seconds
            client: Optional pre-configured client (tests pass one with a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, allow_missing: bool = False,
                       **kwargs: Any) -> httpx.Response:
        """
        Send a request and translate transport and status errors.

        Raises:
            PersistenceError: If the request fails or the service answers with an error status
        """
        try:
            response = await self.client.request(method, path, **kwargs)
            if not (allow_missing and response.status_code == 404):
                response.raise_for_status()
            return response

        except httpx.RequestError as e:
            raise PersistenceError(f"Failed to reach document service: {e}") from e
        except httpx.HTTPStatusError as e:
            raise PersistenceError(f"Document service request failed: {e}") from e

    async def fetch_pages(self, scope: str) -> List[Page]:
        response = await self._request("GET", f"/workspaces/{scope}/pages", allow_missing=True)
        if response.status_code == 404:
            return []

        payload = response.json()
        documents = payload.get("pages", []) if isinstance(payload, dict) else payload
        pages = []
        for document in documents:
            try:
                pages.append(Page.from_wire(document))
            except ValueError as e:
                logging.warning(f"Skipping unreadable page document in {scope}: {e}")
        return pages

    async def save_page(self, scope: str, page: Page) -> None:
        await self._request("PUT", f"/workspaces/{scope}/pages/{page.id}", json=page.to_wire())

    async def save_page_metadata(self, scope: str, page_id: str, updates: Dict[str, Any]) -> None:
        await self._request("PATCH", f"/workspaces/{scope}/pages/{page_id}", json=updates)

    async def delete_page(self, scope: str, page_id: str) -> None:
        await self._request("DELETE", f"/workspaces/{scope}/pages/{page_id}", allow_missing=True)

    async def fetch_profile(self, scope: str) -> Optional[UserProfile]:
        response = await self._request("GET", f"/users/{scope}", allow_missing=True)
        if response.status_code == 404:
            return None
        return UserProfile.model_validate(response.json())

    async def save_profile(self, scope: str, profile: UserProfile) -> None:
        await self._request("PATCH", f"/users/{scope}", json=profile.to_wire())
