"""
Page tree edit operations for Folio.

Every operation takes the current page collection and returns a new list,
never mutating its input. Operations given an unknown page id return the input
unchanged: concurrent edits may race against deletes, and a missing page is
not worth surfacing.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..models import Block, BlockType, DEFAULT_TITLE, Page


def find_page(pages: Iterable[Page], page_id: Optional[str]) -> Optional[Page]:
    """Return the page with ``page_id`` or None."""
    if page_id is None:
        return None
    for page in pages:
        if page.id == page_id:
            return page
    return None


def derive_title(blocks: Sequence[Block]) -> str:
    """
    Derive a page title from its blocks.

    The first Heading1 block names the page when its trimmed content is
    non-empty; anything else yields "Untitled".

    Args:
        blocks: The page's blocks

    Returns:
        The title, never empty
    """
    for block in blocks:
        if block.type == BlockType.HEADING1:
            return block.content if block.content.strip() else DEFAULT_TITLE
    return DEFAULT_TITLE


def add_page(pages: Sequence[Page], parent_id: Optional[str],
             new_id: Optional[str] = None) -> Tuple[List[Page], str]:
    """
    Append a new, untitled page.

    The page starts with a single Heading1 block reading "Untitled". When
    ``parent_id`` names an existing page, the new id is appended to that
    page's children and the parent is expanded. A ``parent_id`` that matches
    no page creates the new page as a root.

    Args:
        pages: Current page collection
        parent_id: Parent page, or None for a root page
        new_id: Identifier for the new page (generated when omitted)

    Returns:
        Tuple of the new page collection and the new page's id
    """
    new_id = new_id or str(uuid.uuid4())
    parent = find_page(pages, parent_id)

    new_page = Page(
        id=new_id,
        title=DEFAULT_TITLE,
        updated_at=datetime.now(),
        blocks=[Block(id=str(uuid.uuid4()), type=BlockType.HEADING1, content=DEFAULT_TITLE)],
        parent_id=parent.id if parent else None,
        child_ids=[],
        is_favorite=False,
        is_expanded=True
    )

    updated = []
    for page in pages:
        if parent is not None and page.id == parent.id:
            page = page.model_copy(update={
                "is_expanded": True,
                "child_ids": [*page.child_ids, new_id]
            })
        updated.append(page)
    updated.append(new_page)

    return updated, new_id


def collect_descendants(pages: Sequence[Page], page_id: str) -> List[str]:
    """
    Collect a page and its entire subtree.

    Walks ``child_ids`` depth-first with an explicit stack, so deep trees do
    not hit the recursion limit. Child ids that name no page are skipped, and
    every page is visited at most once.

    Args:
        pages: Current page collection
        page_id: Root of the subtree

    Returns:
        Ids in depth-first order starting with ``page_id``; empty if unknown
    """
    by_id = {page.id: page for page in pages}
    if page_id not in by_id:
        return []

    collected: List[str] = []
    seen: Set[str] = set()
    stack = [page_id]

    while stack:
        current = stack.pop()
        if current in seen or current not in by_id:
            continue
        seen.add(current)
        collected.append(current)
        # Reversed so children are visited in their stored order
        stack.extend(reversed(by_id[current].child_ids))

    return collected


def delete_page(pages: Sequence[Page], page_id: str) -> List[Page]:
    """
    Delete a page together with its whole subtree.

    The page is also removed from its former parent's children. No other page
    is altered.

    Args:
        pages: Current page collection
        page_id: Page to delete

    Returns:
        The new page collection
    """
    doomed = set(collect_descendants(pages, page_id))
    if not doomed:
        return list(pages)

    target = find_page(pages, page_id)
    parent_id = target.parent_id if target else None

    updated = []
    for page in pages:
        if page.id in doomed:
            continue
        if page.id == parent_id:
            page = page.model_copy(update={
                "child_ids": [cid for cid in page.child_ids if cid != page_id]
            })
        updated.append(page)

    return updated


def _toggle(pages: Sequence[Page], page_id: str, field: str) -> List[Page]:
    return [
        page.model_copy(update={field: not getattr(page, field)}) if page.id == page_id else page
        for page in pages
    ]


def toggle_favorite(pages: Sequence[Page], page_id: str) -> List[Page]:
    """Flip ``is_favorite`` on the matching page."""
    return _toggle(pages, page_id, "is_favorite")


def toggle_expand(pages: Sequence[Page], page_id: str) -> List[Page]:
    """Flip ``is_expanded`` on the matching page."""
    return _toggle(pages, page_id, "is_expanded")


def replace_blocks(pages: Sequence[Page], active_id: str,
                   new_blocks: Sequence[Block]) -> List[Page]:
    """
    Replace the blocks of the active page.

    The active page's title is re-derived from its first Heading1 block, and
    every Page/PageLink block elsewhere that points at the active page has its
    content rewritten to the new title so embeds and links never show a stale
    name. Pages without such references are returned untouched.

    This scans every block of every page. That is fine for personal
    workspaces; a larger store would want a reverse index keyed by page_id.

    Args:
        pages: Current page collection
        active_id: Page being edited
        new_blocks: The page's new block list

    Returns:
        The new page collection
    """
    if find_page(pages, active_id) is None:
        return list(pages)

    new_blocks = list(new_blocks)
    title = derive_title(new_blocks)
    if not new_blocks:
        new_blocks = [Block(id=str(uuid.uuid4()), type=BlockType.HEADING1, content=title)]

    updated = []
    for page in pages:
        if page.id == active_id:
            page = page.model_copy(update={"blocks": new_blocks, "title": title})
        elif any(block.references(active_id) for block in page.blocks):
            page = page.model_copy(update={
                "blocks": [
                    block.model_copy(update={"content": title}) if block.references(active_id) else block
                    for block in page.blocks
                ]
            })
        updated.append(page)

    return updated


def referencing_pages(pages: Sequence[Page], page_id: str) -> List[Page]:
    """Return the pages holding a Page or PageLink block that points at ``page_id``."""
    return [
        page for page in pages
        if page.id != page_id and any(block.references(page_id) for block in page.blocks)
    ]


def breadcrumbs(pages: Sequence[Page], page_id: Optional[str]) -> List[Page]:
    """
    Walk the parent chain of a page.

    Args:
        pages: Current page collection
        page_id: Page to start from

    Returns:
        Pages from the root down to ``page_id``; empty if unknown
    """
    by_id = {page.id: page for page in pages}
    chain: List[Page] = []
    seen: Set[str] = set()
    current = by_id.get(page_id) if page_id else None

    while current is not None and current.id not in seen:
        seen.add(current.id)
        chain.append(current)
        current = by_id.get(current.parent_id) if current.parent_id else None

    chain.reverse()
    return chain
