"""
Page models for Folio.

This module defines the page record, the per-workspace document store that
owns the page collection, the user profile carried alongside it, and the
save status exposed to the UI.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .blocks import Block, BlockType


DEFAULT_TITLE = "Untitled"


class SaveStatus(str, Enum):
    """Persistence lifecycle of a page as shown to the user."""

    SAVED = "saved"
    UNSAVED = "unsaved"
    SAVING = "saving"


class Page(BaseModel):
    """
    A titled document made of an ordered block list, placed in a
    parent/child hierarchy.

    Pages are immutable; edit operations return updated copies.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(
        ...,
        description="Unique identifier of the page"
    )

    title: str = Field(
        default=DEFAULT_TITLE,
        description="Page title, derived from the first Heading1 block"
    )

    blocks: List[Block] = Field(
        default_factory=list,
        description="Ordered content blocks; never empty"
    )

    updated_at: datetime = Field(
        default_factory=datetime.now,
        description="When the page was last written"
    )

    parent_id: Optional[str] = Field(
        default=None,
        description="Parent page, or None for a root page"
    )

    child_ids: List[str] = Field(
        default_factory=list,
        description="Ordered identifiers of the child pages"
    )

    is_favorite: bool = Field(
        default=False,
        description="Whether the page is pinned to favorites"
    )

    is_expanded: bool = Field(
        default=False,
        description="Whether the page's children are shown in the tree"
    )

    icon: Optional[str] = None

    cover_image: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _seed_blocks(cls, data: Any) -> Any:
        # Degenerate documents get a single heading carrying the title
        if isinstance(data, dict) and not data.get("blocks"):
            data = dict(data)
            data["blocks"] = [{
                "id": str(uuid.uuid4()),
                "type": BlockType.HEADING1.value,
                "content": (data.get("title") or "").strip() or DEFAULT_TITLE,
            }]
        return data

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        return value if value.strip() else DEFAULT_TITLE

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the camelCase document format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "Page":
        """Build a page from its stored document representation."""
        return cls.model_validate(data)


class UserProfile(BaseModel):
    """
    Per-user settings stored next to the workspace.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(
        ...,
        description="Identifier of the user the profile belongs to"
    )

    email: Optional[str] = None

    display_name: Optional[str] = None

    photo_url: Optional[str] = Field(default=None, alias="photoURL")

    dark_mode: Optional[bool] = None

    workspace_ids: List[str] = Field(
        default_factory=list,
        description="Workspaces the user belongs to"
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DocumentStore(BaseModel):
    """
    The in-memory page collection of one open workspace.

    Page order is creation order and carries no meaning. The store is owned by
    a single workspace session and replaced wholesale on every committed edit.
    """

    pages: List[Page] = Field(
        default_factory=list,
        description="All pages of the workspace in creation order"
    )

    active_page_id: Optional[str] = Field(
        default=None,
        description="The page currently open in the editor"
    )

    def get(self, page_id: Optional[str]) -> Optional[Page]:
        if page_id is None:
            return None
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    @property
    def active_page(self) -> Optional[Page]:
        return self.get(self.active_page_id)
