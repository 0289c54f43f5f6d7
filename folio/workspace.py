"""
Workspace session for Folio.

The session owns the document store of one open workspace. Every mutation runs
an edit operation on the current page collection, records the transition in
the history, swaps the new collection in, and hands the transition to the sync
coordinator. Nothing else writes to the store.
"""

import asyncio
import logging
from typing import Any, Callable, Iterable, List, Optional, Sequence, Set, Tuple

from .config import ConfigManager, config as default_config
from .editing import blocks as block_ops
from .editing import operations as ops
from .editing.blocks import CapacityState
from .editing.history import HistoryManager
from .errors import CapacityExceededError
from .models import (
    Block,
    BlockType,
    DEFAULT_TITLE,
    DocumentStore,
    PAGE_REFERENCE_TYPES,
    Page,
    SaveStatus,
    UserProfile,
    new_block
)
from .persistence import BasePersistence, LocalCache
from .sync import LoadResult, SyncCoordinator


PageListener = Callable[[str], None]
ChangeListener = Callable[[Tuple[Page, ...]], None]


def _embedded_pages(blocks: Iterable[Block]) -> Set[str]:
    """Ids of the sub-pages embedded by Page blocks."""
    return {block.page_id for block in blocks if block.type == BlockType.PAGE and block.page_id}


class WorkspaceSession:
    """
    Explicitly owned editing session over one workspace's pages.
    """

    def __init__(self, scope: str, sync: Optional[SyncCoordinator] = None,
                 settings: Optional[ConfigManager] = None,
                 pages: Optional[Iterable[Page]] = None):
        """
        Initialize the session.

        Args:
            scope: Workspace identifier
            sync: Sync coordinator; without one the session only edits in memory
            settings: Configuration (defaults to the global config)
            pages: Initial page collection
        """
        settings = settings or default_config
        self.scope = scope
        self.sync = sync
        self.store = DocumentStore(pages=list(pages or []))
        self.history = HistoryManager(settings.history_limit)
        self.debounce_ms = settings.debounce_ms
        self.max_blocks = settings.max_blocks
        self.warn_blocks = settings.warn_blocks
        self.profile: Optional[UserProfile] = None
        self._select_listeners: List[PageListener] = []
        self._cleared_listeners: List[Callable[[], None]] = []
        self._change_listeners: List[ChangeListener] = []

    @classmethod
    def open(cls, scope: str, persistence: BasePersistence,
             cache: Optional[LocalCache] = None,
             settings: Optional[ConfigManager] = None) -> "WorkspaceSession":
        """
        Create a session synchronized with a persistence backend.

        Call ``load()`` afterwards to fill it.
        """
        settings = settings or default_config
        sync = SyncCoordinator(scope, persistence, cache=cache, settings=settings)
        return cls(scope, sync=sync, settings=settings)

    # Read-only views

    @property
    def pages(self) -> Tuple[Page, ...]:
        return tuple(self.store.pages)

    @property
    def active_page_id(self) -> Optional[str]:
        return self.store.active_page_id

    @property
    def active_page(self) -> Optional[Page]:
        return self.store.active_page

    def get_page(self, page_id: str) -> Optional[Page]:
        return self.store.get(page_id)

    @property
    def save_status(self) -> SaveStatus:
        """Save status of the active page."""
        if self.sync is None:
            return SaveStatus.SAVED
        return self.sync.status(self.store.active_page_id)

    @property
    def capacity_state(self) -> CapacityState:
        """Block count advisory for the active page."""
        page = self.active_page
        if page is None:
            return CapacityState.OK
        return block_ops.capacity_state(page.blocks, self.max_blocks, self.warn_blocks)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def breadcrumbs(self, page_id: Optional[str] = None) -> List[Page]:
        """Root-to-page chain of ``page_id`` (the active page by default)."""
        return ops.breadcrumbs(self.store.pages, page_id or self.store.active_page_id)

    # Listeners

    def on_page_selected(self, listener: PageListener) -> None:
        """Register a callback receiving the id of every newly selected page."""
        self._select_listeners.append(listener)

    def on_active_cleared(self, listener: Callable[[], None]) -> None:
        """Register a callback for when the active page is deleted out from under the editor."""
        self._cleared_listeners.append(listener)

    def on_change(self, listener: ChangeListener) -> None:
        """Register a callback receiving the page collection after every change."""
        self._change_listeners.append(listener)

    # Navigation

    def select_page(self, page_id: str) -> bool:
        """
        Make a page the active page.

        Args:
            page_id: Page to open

        Returns:
            True if the page exists and is now active
        """
        if self.store.get(page_id) is None:
            return False
        self.store.active_page_id = page_id
        for listener in self._select_listeners:
            listener(page_id)
        return True

    def _clear_active_if(self, page_ids: Iterable[str]) -> None:
        if self.store.active_page_id not in set(page_ids):
            return
        logging.info(f"Active page {self.store.active_page_id} was deleted, clearing selection")
        self.store.active_page_id = None
        for listener in self._cleared_listeners:
            listener()

    def _defer_clear_active(self, page_ids: List[str]) -> None:
        # Runs after the current transition has fully committed
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._clear_active_if(page_ids)
            return
        loop.call_soon(self._clear_active_if, page_ids)

    # Commit path

    def _apply(self, pages: Sequence[Page]) -> None:
        self.store.pages = list(pages)
        snapshot = self.pages
        for listener in self._change_listeners:
            listener(snapshot)

    def _commit(self, pages: Sequence[Page]) -> bool:
        old = self.store.pages
        if not self.history.record(old, pages):
            return False
        self._apply(pages)
        if self.sync is not None:
            self.sync.persist_transition(old, self.store.pages, self.debounce_ms)
        return True

    def _restore(self, pages: Sequence[Page]) -> None:
        old = self.store.pages
        self._apply(pages)
        if self.sync is not None:
            self.sync.persist_transition(old, self.store.pages, self.debounce_ms)
        if self.store.active_page_id is not None and self.store.get(self.store.active_page_id) is None:
            self._defer_clear_active([self.store.active_page_id])

    # Page tree operations

    def add_page(self, parent_id: Optional[str] = None, page_id: Optional[str] = None,
                 navigate: bool = True) -> str:
        """
        Create an untitled page, optionally nested under ``parent_id``.

        Args:
            parent_id: Parent page; unknown parents create a root page
            page_id: Identifier to use (generated when omitted)
            navigate: Select the new page afterwards

        Returns:
            The new page's id
        """
        pages, new_id = ops.add_page(self.store.pages, parent_id, page_id)
        self._commit(pages)
        logging.info(f"Created page {new_id} under {parent_id or 'workspace root'}")
        if navigate:
            self.select_page(new_id)
        return new_id

    def delete_page(self, page_id: str) -> List[str]:
        """
        Delete a page and its whole subtree.

        If the active page is among the deleted ones, the selection is cleared
        on the next loop iteration and ``on_active_cleared`` listeners fire.

        Args:
            page_id: Page to delete

        Returns:
            Ids of every deleted page; empty if the page was not found
        """
        doomed = ops.collect_descendants(self.store.pages, page_id)
        if not doomed:
            return []

        self._commit(ops.delete_page(self.store.pages, page_id))
        logging.info(f"Deleted page {page_id} and {len(doomed) - 1} descendants")
        if self.store.active_page_id in doomed:
            self._defer_clear_active(doomed)
        return doomed

    def toggle_favorite(self, page_id: str) -> bool:
        return self._commit(ops.toggle_favorite(self.store.pages, page_id))

    def toggle_expand(self, page_id: str) -> bool:
        return self._commit(ops.toggle_expand(self.store.pages, page_id))

    def replace_blocks(self, blocks: Sequence[Block]) -> bool:
        """
        Replace the active page's blocks.

        Page blocks missing from the new list take their sub-pages (and those
        pages' descendants) with them, in the same undoable commit.

        Args:
            blocks: The page's new block list

        Returns:
            True if anything changed
        """
        page = self.active_page
        if page is None:
            return False

        dropped = _embedded_pages(page.blocks) - _embedded_pages(blocks)
        pages = self.store.pages
        doomed: List[str] = []
        for page_id in sorted(dropped):
            doomed.extend(ops.collect_descendants(pages, page_id))
            pages = ops.delete_page(pages, page_id)

        committed = self._commit(ops.replace_blocks(pages, page.id, blocks))
        if committed and doomed:
            logging.info(f"Removed {len(doomed)} sub-pages along with their blocks on page {page.id}")
            if self.store.active_page_id in doomed:
                self._defer_clear_active(doomed)
        return committed

    # Block editing on the active page

    def insert_block(self, index: int, block_type: BlockType = BlockType.TEXT,
                     content: str = "", **fields: Any) -> Optional[Block]:
        """
        Insert a new block after position ``index`` on the active page.

        Page and PageLink blocks are created with ``convert_to_page`` and
        ``link_page`` instead.

        Returns:
            The new block, or None without an active page

        Raises:
            CapacityExceededError: If the page is at its block ceiling
        """
        page = self.active_page
        if page is None:
            return None
        if block_type in PAGE_REFERENCE_TYPES:
            raise ValueError("Use convert_to_page or link_page for page blocks")

        block = new_block(block_type, content, **fields)
        try:
            blocks = block_ops.insert_block(page.blocks, index, block, self.max_blocks)
        except CapacityExceededError as e:
            logging.warning(f"Refused block insertion on page {page.id}: {e}")
            raise

        self.replace_blocks(blocks)
        return block

    def update_block(self, block_id: str, **updates: Any) -> bool:
        """
        Update fields of a block on the active page.

        Converting a Page block to another type deletes the page it embedded.

        Returns:
            True if anything changed
        """
        page = self.active_page
        if page is None:
            return False
        existing = block_ops.find_block(page.blocks, block_id)
        if existing is None:
            return False
        return self.replace_blocks(block_ops.update_block(page.blocks, block_id, **updates))

    def remove_block(self, block_id: str) -> bool:
        """
        Remove a block from the active page.

        Removing a Page block deletes the page it embedded. The last block of a
        page cannot be removed.

        Returns:
            True if anything changed
        """
        page = self.active_page
        if page is None:
            return False
        existing = block_ops.find_block(page.blocks, block_id)
        if existing is None or len(page.blocks) <= 1:
            return False
        return self.replace_blocks(block_ops.remove_block(page.blocks, block_id))

    def convert_to_page(self, block_id: str, navigate: bool = True) -> Optional[str]:
        """
        Turn a block into an embedded sub-page of the active page.

        A new child page is created, the block points at it, and the new page
        is opened.

        Args:
            block_id: Block on the active page to convert
            navigate: Select the new page afterwards (default True)

        Returns:
            The new page's id, or None if the block was not found
        """
        page = self.active_page
        if page is None:
            return None
        existing = block_ops.find_block(page.blocks, block_id)
        if existing is None:
            return None

        pages, new_id = ops.add_page(self.store.pages, page.id)
        blocks = block_ops.update_block(page.blocks, block_id, type=BlockType.PAGE,
                                        content=DEFAULT_TITLE, page_id=new_id)
        if existing.type == BlockType.PAGE and existing.page_id:
            pages = ops.delete_page(pages, existing.page_id)
        self._commit(ops.replace_blocks(pages, page.id, blocks))

        if navigate:
            self.select_page(new_id)
        return new_id

    def link_page(self, block_id: str, target_id: str) -> bool:
        """
        Turn a block into a link to an existing page, showing its title.

        Returns:
            True if anything changed
        """
        page = self.active_page
        target = self.store.get(target_id)
        if page is None or target is None:
            return False
        existing = block_ops.find_block(page.blocks, block_id)
        if existing is None:
            return False

        blocks = block_ops.update_block(page.blocks, block_id, type=BlockType.PAGE_LINK,
                                        content=target.title, page_id=target.id)
        return self.replace_blocks(blocks)

    # History

    def undo(self) -> bool:
        """Step back one committed edit; False if there is nothing to undo."""
        restored = self.history.undo(self.store.pages)
        if restored is None:
            return False
        self._restore(restored)
        return True

    def redo(self) -> bool:
        """Re-apply the last undone edit; False if there is nothing to redo."""
        restored = self.history.redo(self.store.pages)
        if restored is None:
            return False
        self._restore(restored)
        return True

    # Persistence

    async def save_now(self) -> bool:
        """
        Write the active page immediately if it has unsaved edits.

        Returns:
            True if a write was performed
        """
        page = self.active_page
        if page is None or self.sync is None:
            return False
        return await self.sync.save_now(page)

    def _show_cached(self, pages: List[Page]) -> None:
        self._apply(pages)
        self._ensure_active()

    def _ensure_active(self) -> None:
        if self.store.get(self.store.active_page_id) is None:
            self.store.active_page_id = self.store.pages[0].id if self.store.pages else None

    async def load(self) -> LoadResult:
        """
        Fill the session from the local cache, then the remote store.

        History starts empty after loading.

        Raises:
            RuntimeError: If the session has no sync coordinator
        """
        if self.sync is None:
            raise RuntimeError("Workspace session has no sync coordinator to load from")

        result = await self.sync.load(on_cached=self._show_cached)
        self._apply(result.pages)
        self._ensure_active()
        self.profile = result.profile
        self.history.clear()
        logging.info(f"Workspace {self.scope} ready with {len(result.pages)} pages from {result.source}")
        return result

    async def close(self, flush: Optional[bool] = None) -> None:
        """Settle pending writes before the session is discarded."""
        if self.sync is not None:
            await self.sync.close(flush)
