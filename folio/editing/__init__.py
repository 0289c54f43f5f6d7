"""Pure edit operations and history for the page tree."""

from .operations import (
    add_page,
    breadcrumbs,
    collect_descendants,
    delete_page,
    derive_title,
    find_page,
    referencing_pages,
    replace_blocks,
    toggle_expand,
    toggle_favorite
)
from .blocks import CapacityState, capacity_state, insert_block, remove_block, update_block
from .history import HistoryManager, pages_equal, serialize_pages

__all__ = [
    "add_page",
    "breadcrumbs",
    "collect_descendants",
    "delete_page",
    "derive_title",
    "find_page",
    "referencing_pages",
    "replace_blocks",
    "toggle_expand",
    "toggle_favorite",
    "CapacityState",
    "capacity_state",
    "insert_block",
    "remove_block",
    "update_block",
    "HistoryManager",
    "pages_equal",
    "serialize_pages"
]
