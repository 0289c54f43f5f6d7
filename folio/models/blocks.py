"""
Block models for Folio.

A block is the content unit of a page: a typed, ordered element carrying
displayable text plus a handful of type-specific optional fields.
"""

import uuid
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class BlockType(str, Enum):
    """The kinds of blocks the editing surface can produce."""

    TEXT = "text"
    HEADING1 = "h1"
    HEADING2 = "h2"
    HEADING3 = "h3"
    HEADING4 = "h4"
    HEADING5 = "h5"
    TODO = "todo"
    BULLET = "bullet"
    NUMBER = "number"
    QUOTE = "quote"
    DIVIDER = "divider"
    TOGGLE = "toggle"
    CODE = "code"
    CALLOUT = "callout"
    IMAGE = "image"
    FILE = "file"
    PAGE = "page"
    PAGE_LINK = "page-link"


# Block types that point at another page through ``page_id``
PAGE_REFERENCE_TYPES = frozenset({BlockType.PAGE, BlockType.PAGE_LINK})


class Block(BaseModel):
    """
    A single typed content unit within a page.

    ``page_id`` is set if and only if the block is a Page or PageLink block.
    Blocks are immutable; edits produce new instances.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(
        ...,
        description="Unique identifier of the block"
    )

    type: BlockType = Field(
        default=BlockType.TEXT,
        description="The kind of block"
    )

    content: str = Field(
        default="",
        description="Displayable text; may carry inline markup from the editing surface"
    )

    checked: Optional[bool] = Field(
        default=None,
        description="Completion state for Todo blocks"
    )

    is_open: Optional[bool] = Field(
        default=None,
        description="Disclosure state for Toggle blocks"
    )

    language: Optional[str] = Field(
        default=None,
        description="Syntax language for Code blocks"
    )

    url: Optional[str] = Field(
        default=None,
        description="Source URL for Image and File blocks"
    )

    caption: Optional[str] = Field(
        default=None,
        description="Caption for Image and File blocks"
    )

    page_id: Optional[str] = Field(
        default=None,
        description="Referenced page for Page and PageLink blocks"
    )

    @model_validator(mode="after")
    def _check_page_reference(self) -> "Block":
        if self.type in PAGE_REFERENCE_TYPES and not self.page_id:
            raise ValueError(f"{self.type.value} block '{self.id}' requires a page_id")
        if self.type not in PAGE_REFERENCE_TYPES and self.page_id is not None:
            raise ValueError(f"{self.type.value} block '{self.id}' cannot carry a page_id")
        return self

    @property
    def is_page_reference(self) -> bool:
        return self.type in PAGE_REFERENCE_TYPES

    def references(self, page_id: str) -> bool:
        """Return True if this is a Page/PageLink block pointing at ``page_id``."""
        return self.is_page_reference and self.page_id == page_id

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the camelCase document format, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def new_block(block_type: BlockType = BlockType.TEXT, content: str = "",
              page_id: Optional[str] = None, **fields: Any) -> Block:
    """
    Create a block with a fresh identifier.

    Args:
        block_type: Type of the new block
        content: Initial text content
        page_id: Referenced page, required for Page and PageLink blocks
        **fields: Any other optional block fields

    Returns:
        The new block
    """
    if block_type == BlockType.TODO:
        fields.setdefault("checked", False)
    return Block(
        id=str(uuid.uuid4()),
        type=block_type,
        content=content,
        page_id=page_id,
        **fields
    )
