"""
Sync coordinator for Folio.

Observes committed page collection changes and turns them into remote writes:
the local cache is updated synchronously on every commit, content edits are
debounced per page, and structural changes (creation, deletion, metadata) are
written immediately. Also reconciles the cache with the remote store when a
workspace is loaded.

Save status follows ``saved -> unsaved -> saving -> saved`` per page. Status
returns to ``saved`` once a write finishes, whether or not it succeeded: a
failed write is logged by the failure policy and the cache stays the source of
truth until the next successful round-trip.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..config import ConfigManager, config as default_config
from ..models import Page, SaveStatus, UserProfile
from ..persistence import BasePersistence, LocalCache
from ..seed import create_starter_pages
from .debounce import DebounceScheduler
from .policy import FailurePolicy, Key, WriteResult, build_policy


# Wire fields that can be written without resending the page content
METADATA_FIELDS = frozenset({"isFavorite", "isExpanded", "childIds", "parentId", "icon", "coverImage"})

StatusListener = Callable[[str, SaveStatus], None]


@dataclass
class LoadResult:
    """
    Outcome of loading a workspace.

    ``source`` is "remote" when the remote store answered with pages, "cache"
    when the cached copy was kept, and "seed" for a brand-new workspace.
    """
    pages: List[Page]
    source: str
    profile: Optional[UserProfile] = None
    writes: List[WriteResult] = field(default_factory=list)


def _comparable(page: Page) -> Dict[str, Any]:
    document = page.to_wire()
    document.pop("updatedAt", None)
    return document


class SyncCoordinator:
    """
    Schedules persistence of one workspace's pages and tracks their save status.
    """

    def __init__(self, scope: str, persistence: BasePersistence,
                 cache: Optional[LocalCache] = None,
                 settings: Optional[ConfigManager] = None,
                 policy: Optional[FailurePolicy] = None,
                 scheduler: Optional[DebounceScheduler] = None):
        """
        Initialize the sync coordinator.

        Args:
            scope: Workspace identifier used for remote keys and cache keys
            persistence: Remote document store
            cache: Local cache (no caching when None)
            settings: Configuration (defaults to the global config)
            policy: Failure policy (defaults to the one named in the configuration)
            scheduler: Debounce scheduler, shared between workspaces if desired
        """
        settings = settings or default_config
        self.scope = scope
        self.persistence = persistence
        self.cache = cache
        self.debounce_ms = settings.debounce_ms
        self.flush_on_close = settings.flush_on_close
        self.policy = policy or build_policy(settings)
        self.scheduler = scheduler or DebounceScheduler()
        self._status: Dict[str, SaveStatus] = {}
        self._listeners: List[StatusListener] = []

    def key(self, page_id: str) -> Key:
        return (self.scope, page_id)

    # Save status

    def status(self, page_id: Optional[str]) -> SaveStatus:
        """Return the save status of a page; unknown pages count as saved."""
        if page_id is None:
            return SaveStatus.SAVED
        return self._status.get(page_id, SaveStatus.SAVED)

    def add_status_listener(self, listener: StatusListener) -> None:
        """Register a callback invoked with (page_id, status) on every status change."""
        self._listeners.append(listener)

    def _set_status(self, page_id: str, status: SaveStatus) -> None:
        if self._status.get(page_id, SaveStatus.SAVED) == status:
            return
        self._status[page_id] = status
        for listener in self._listeners:
            listener(page_id, status)

    def _settle(self, page_id: str) -> None:
        # A newer edit may already be waiting; it keeps the page unsaved
        if not self.scheduler.pending(self.key(page_id)):
            self._set_status(page_id, SaveStatus.SAVED)

    # Cache

    def cache_pages(self, pages: Sequence[Page]) -> None:
        """Write the whole collection to the local cache."""
        if self.cache is not None:
            self.cache.write_pages(self.scope, pages)

    # Remote writes

    async def _write_page(self, page: Page) -> WriteResult:
        self._set_status(page.id, SaveStatus.SAVING)
        stamped = page.model_copy(update={"updated_at": datetime.now()})
        result = await self.policy.execute(
            self.key(page.id),
            f"save page {page.id} in {self.scope}",
            lambda: self.persistence.save_page(self.scope, stamped)
        )
        self._settle(page.id)
        return result

    async def _write_metadata(self, page_id: str, updates: Dict[str, Any]) -> WriteResult:
        updates = {**updates, "updatedAt": datetime.now().isoformat()}
        return await self.policy.execute(
            self.key(page_id),
            f"save metadata of page {page_id} in {self.scope}",
            lambda: self.persistence.save_page_metadata(self.scope, page_id, updates)
        )

    async def _remove_page(self, page_id: str) -> WriteResult:
        return await self.policy.execute(
            self.key(page_id),
            f"delete page {page_id} from {self.scope}",
            lambda: self.persistence.delete_page(self.scope, page_id)
        )

    def save_page(self, page: Page, debounce_ms: Optional[int] = None,
                  update_cache: bool = True) -> asyncio.Future:
        """
        Schedule a full write of a page.

        A write already pending for the page is superseded and the debounce
        window restarts. A positive delay marks the page unsaved until the
        write lands.

        Args:
            page: The page snapshot to write
            debounce_ms: Quiet period; None uses the configured window, 0 writes immediately
            update_cache: Also upsert the page into the local cache

        Returns:
            Future resolved with the WriteResult once the write has run
        """
        delay = self.debounce_ms if debounce_ms is None else debounce_ms
        if update_cache and self.cache is not None:
            self.cache.upsert_page(self.scope, page)
        if delay > 0:
            self._set_status(page.id, SaveStatus.UNSAVED)
        return self.scheduler.schedule(self.key(page.id), delay, lambda: self._write_page(page))

    def save_metadata(self, page: Page, fields: Iterable[str]) -> asyncio.Future:
        """
        Write changed metadata fields of a page immediately.

        When a content write is still pending for the page, the full page is
        written instead so the pending content is not lost.

        Args:
            page: Latest snapshot of the page
            fields: Changed wire field names

        Returns:
            Future resolved with the WriteResult
        """
        if self.scheduler.pending(self.key(page.id)):
            return self.save_page(page, 0, update_cache=False)

        document = page.to_wire()
        updates = {name: document.get(name) for name in fields}
        return self.scheduler.schedule(self.key(page.id), 0, lambda: self._write_metadata(page.id, updates))

    def delete_pages(self, page_ids: Iterable[str], update_cache: bool = True) -> List[asyncio.Future]:
        """
        Delete pages remotely, each immediately and independently.

        Pending writes for the pages are dropped first. A failure for one page
        does not stop the others and nothing is rolled back; the remote store
        catches up on a later fetch.

        Args:
            page_ids: Pages to delete
            update_cache: Also remove the pages from the local cache

        Returns:
            One future per delete
        """
        page_ids = list(page_ids)
        if update_cache and self.cache is not None:
            self.cache.remove_pages(self.scope, page_ids)

        futures = []
        for page_id in page_ids:
            self.scheduler.cancel(self.key(page_id))
            self._status.pop(page_id, None)
            futures.append(self.scheduler.schedule(
                self.key(page_id), 0, lambda page_id=page_id: self._remove_page(page_id)
            ))
        return futures

    def persist_transition(self, old: Sequence[Page], new: Sequence[Page],
                           debounce_ms: Optional[int] = None) -> List[asyncio.Future]:
        """
        Persist a committed change of the page collection.

        The cache is rewritten right away. Then, page by page: removed pages
        are deleted, added pages are written immediately, pages whose content
        changed are written after the debounce window, and pages where only
        metadata changed get an immediate metadata write.

        Args:
            old: Collection before the commit
            new: Collection after the commit
            debounce_ms: Window for content changes; None uses the configured window

        Returns:
            Futures for every scheduled write
        """
        self.cache_pages(new)

        old_by_id = {page.id: page for page in old}
        new_ids = {page.id for page in new}
        futures: List[asyncio.Future] = []

        removed = [page.id for page in old if page.id not in new_ids]
        if removed:
            futures.extend(self.delete_pages(removed, update_cache=False))

        for page in new:
            previous = old_by_id.get(page.id)
            if previous is None:
                futures.append(self.save_page(page, 0, update_cache=False))
                continue

            before, after = _comparable(previous), _comparable(page)
            if before == after:
                continue

            changed = {name for name in before.keys() | after.keys() if before.get(name) != after.get(name)}
            if changed <= METADATA_FIELDS:
                futures.append(self.save_metadata(page, changed))
            else:
                futures.append(self.save_page(page, debounce_ms, update_cache=False))

        return futures

    async def save_now(self, page: Page) -> bool:
        """
        Write a page immediately, as for a manual "save now".

        Only allowed while the page is unsaved; a page that is saved or
        already saving is left alone.

        Args:
            page: Latest snapshot of the page

        Returns:
            True if a write was performed
        """
        if self.status(page.id) != SaveStatus.UNSAVED:
            return False

        self._set_status(page.id, SaveStatus.SAVING)
        await self.save_page(page, 0, update_cache=False)
        return True

    async def save_profile(self, profile: UserProfile) -> WriteResult:
        """Cache and store the user profile."""
        if self.cache is not None:
            self.cache.write_profile(self.scope, profile)
        return await self.policy.execute(
            self.key(f"profile:{profile.id}"),
            f"save profile for {self.scope}",
            lambda: self.persistence.save_profile(self.scope, profile)
        )

    # Load and teardown

    async def load(self, on_cached: Optional[Callable[[List[Page]], None]] = None) -> LoadResult:
        """
        Load the workspace: cache first, then the remote store.

        Cached pages are handed to ``on_cached`` immediately for display. The
        remote pages and profile are then fetched together. A non-empty remote
        result is authoritative and rewrites the cache. When both are empty
        the starter set is seeded and written immediately. A failed fetch
        keeps the cached pages.

        Args:
            on_cached: Callback receiving the cached pages before the fetch

        Returns:
            The pages to use and where they came from
        """
        cached = self.cache.read_pages(self.scope) if self.cache is not None else []
        cached_profile = self.cache.read_profile(self.scope) if self.cache is not None else None
        if cached and on_cached is not None:
            on_cached(cached)

        logging.info(f"Loading workspace {self.scope} ({len(cached)} cached pages)")
        fetched_pages, fetched_profile = await asyncio.gather(
            self.persistence.fetch_pages(self.scope),
            self.persistence.fetch_profile(self.scope),
            return_exceptions=True
        )

        profile = cached_profile
        if isinstance(fetched_profile, Exception):
            logging.error(f"Failed to fetch profile for {self.scope}: {fetched_profile}")
        elif fetched_profile is not None:
            profile = fetched_profile
            if self.cache is not None:
                self.cache.write_profile(self.scope, fetched_profile)

        if isinstance(fetched_pages, Exception):
            logging.error(f"Failed to fetch pages for {self.scope}, keeping cached copy: {fetched_pages}")
            return LoadResult(pages=cached, source="cache", profile=profile)

        if fetched_pages:
            logging.info(f"Fetched {len(fetched_pages)} pages for {self.scope}")
            self.cache_pages(fetched_pages)
            return LoadResult(pages=list(fetched_pages), source="remote", profile=profile)

        if cached:
            return LoadResult(pages=cached, source="cache", profile=profile)

        logging.info(f"Workspace {self.scope} is empty, seeding starter pages")
        starter = create_starter_pages()
        self.cache_pages(starter)
        writes = await asyncio.gather(*[self.save_page(page, 0, update_cache=False) for page in starter])
        return LoadResult(pages=starter, source="seed", profile=profile, writes=list(writes))

    def has_pending_writes(self) -> bool:
        return bool(self.scheduler.pending_keys(self.scope))

    async def close(self, flush: Optional[bool] = None) -> None:
        """
        Settle every pending write of the workspace before teardown.

        Args:
            flush: Write pending edits now (True) or drop them (False);
                None uses ``sync.flush_on_close``
        """
        flush = self.flush_on_close if flush is None else flush
        if flush:
            results = await self.scheduler.flush(scope=self.scope)
            logging.info(f"Flushed {len(results)} pending writes for {self.scope}")
        else:
            dropped = self.scheduler.cancel_all(self.scope)
            if dropped:
                logging.warning(f"Dropped {dropped} pending writes for {self.scope}")
        await self.scheduler.drain()
