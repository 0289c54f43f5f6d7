"""Data models for Folio."""

from .blocks import Block, BlockType, PAGE_REFERENCE_TYPES, new_block
from .pages import DEFAULT_TITLE, DocumentStore, Page, SaveStatus, UserProfile

__all__ = [
    "Block",
    "BlockType",
    "PAGE_REFERENCE_TYPES",
    "new_block",
    "DEFAULT_TITLE",
    "DocumentStore",
    "Page",
    "SaveStatus",
    "UserProfile"
]
