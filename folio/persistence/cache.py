"""
Local cache for Folio.

A synchronous, file-backed cache of the workspace so the editor can show the
last known state immediately at load time and survive a reload before the
remote write lands. Entries are keyed by entity kind and scope, one JSON file
per key.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, List, Optional

from ..models import Page, UserProfile


PAGES_KIND = "pages"
PROFILE_KIND = "user_profile"


class LocalCache:
    """
    Stores workspace pages and profiles as JSON files in a directory.
    """

    def __init__(self, cache_dir: str = ".folio_cache"):
        """
        Initialize the local cache.

        Args:
            cache_dir: Directory holding the cache files (created on first write)
        """
        self.cache_dir = Path(cache_dir)

    def _path(self, kind: str, scope: str) -> Path:
        safe_scope = re.sub(r"[^A-Za-z0-9_.-]", "_", scope)
        return self.cache_dir / f"{kind}_{safe_scope}.json"

    def read(self, kind: str, scope: str) -> Optional[Any]:
        """
        Read a cache entry.

        Args:
            kind: Entity kind, e.g. "pages"
            scope: Workspace or user identifier

        Returns:
            The decoded entry, or None if missing or unreadable
        """
        path = self._path(kind, scope)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logging.warning(f"Could not load cache entry {path.name}: {e}")
            return None

    def write(self, kind: str, scope: str, data: Any) -> None:
        """
        Write a cache entry, replacing the previous one.

        Args:
            kind: Entity kind, e.g. "pages"
            scope: Workspace or user identifier
            data: JSON-serializable value
        """
        path = self._path(kind, scope)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False)
            tmp_path.replace(path)
        except IOError as e:
            logging.error(f"Failed to write cache entry {path.name}: {e}")

    def clear(self, kind: str, scope: str) -> None:
        """Remove a cache entry if present."""
        self._path(kind, scope).unlink(missing_ok=True)

    def has_pages(self, scope: str) -> bool:
        return self._path(PAGES_KIND, scope).exists()

    def read_pages(self, scope: str) -> List[Page]:
        """
        Read the cached page collection of a workspace.

        Entries that no longer validate are skipped.
        """
        documents = self.read(PAGES_KIND, scope) or []
        pages = []
        for document in documents:
            try:
                pages.append(Page.from_wire(document))
            except ValueError as e:
                logging.warning(f"Dropping unreadable cached page in {scope}: {e}")
        return pages

    def write_pages(self, scope: str, pages: Iterable[Page]) -> None:
        """Replace the cached page collection of a workspace."""
        self.write(PAGES_KIND, scope, [page.to_wire() for page in pages])

    def upsert_page(self, scope: str, page: Page) -> None:
        """Replace one cached page, appending it if it is not cached yet."""
        pages = self.read_pages(scope)
        for index, cached in enumerate(pages):
            if cached.id == page.id:
                pages[index] = page
                break
        else:
            pages.append(page)
        self.write_pages(scope, pages)

    def remove_pages(self, scope: str, page_ids: Iterable[str]) -> None:
        """Drop pages from the cached collection."""
        doomed = set(page_ids)
        self.write_pages(scope, [page for page in self.read_pages(scope) if page.id not in doomed])

    def read_profile(self, scope: str) -> Optional[UserProfile]:
        data = self.read(PROFILE_KIND, scope)
        if not data:
            return None
        try:
            return UserProfile.model_validate(data)
        except ValueError as e:
            logging.warning(f"Dropping unreadable cached profile for {scope}: {e}")
            return None

    def write_profile(self, scope: str, profile: UserProfile) -> None:
        self.write(PROFILE_KIND, scope, profile.to_wire())
