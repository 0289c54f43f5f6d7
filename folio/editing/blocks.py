"""
Block list editing for Folio.

Transforms over a single page's block list as driven by the editing surface.
Cross-page effects (deleting the page behind a Page block) are the session's
job; these functions only report what they touched.
"""

from enum import Enum
from typing import Any, List, Optional, Sequence

from ..errors import CapacityExceededError
from ..models import Block, BlockType, PAGE_REFERENCE_TYPES


class CapacityState(str, Enum):
    """Block count advisory for a page."""

    OK = "ok"
    WARNING = "warning"
    FULL = "full"


def capacity_state(blocks: Sequence[Block], max_blocks: int, warn_blocks: int) -> CapacityState:
    """
    Classify a block list against the soft and hard limits.

    Args:
        blocks: The page's blocks
        max_blocks: Hard ceiling; insertion is refused at this count
        warn_blocks: Soft threshold; editing continues but the UI warns

    Returns:
        The capacity state
    """
    count = len(blocks)
    if count >= max_blocks:
        return CapacityState.FULL
    if count >= warn_blocks:
        return CapacityState.WARNING
    return CapacityState.OK


def find_block(blocks: Sequence[Block], block_id: str) -> Optional[Block]:
    for block in blocks:
        if block.id == block_id:
            return block
    return None


def insert_block(blocks: Sequence[Block], index: int, block: Block, max_blocks: int) -> List[Block]:
    """
    Insert a block after position ``index``.

    Args:
        blocks: The page's blocks
        index: Position of the block the new one follows; -1 inserts first
        block: The block to insert
        max_blocks: Hard ceiling for the page

    Returns:
        The new block list

    Raises:
        CapacityExceededError: If the page already holds ``max_blocks`` blocks
    """
    if len(blocks) >= max_blocks:
        raise CapacityExceededError(max_blocks)

    updated = list(blocks)
    position = max(0, min(index + 1, len(updated)))
    updated.insert(position, block)
    return updated


def update_block(blocks: Sequence[Block], block_id: str, **updates: Any) -> List[Block]:
    """
    Merge field updates into one block.

    The merged block is validated again, so a Page/PageLink conversion must
    carry a ``page_id``. Converting away from a page reference drops the
    stale ``page_id``.

    Args:
        blocks: The page's blocks
        block_id: Block to update
        **updates: Field values to set

    Returns:
        The new block list; unchanged if the block is not found
    """
    updated = []
    for block in blocks:
        if block.id == block_id:
            data = block.model_dump()
            data.update(updates)
            data["type"] = BlockType(data["type"])
            if data["type"] not in PAGE_REFERENCE_TYPES and "page_id" not in updates:
                data["page_id"] = None
            block = Block.model_validate(data)
        updated.append(block)
    return updated


def remove_block(blocks: Sequence[Block], block_id: str) -> List[Block]:
    """
    Remove a block. A page always keeps its last block.

    Args:
        blocks: The page's blocks
        block_id: Block to remove

    Returns:
        The new block list
    """
    if len(blocks) <= 1:
        return list(blocks)
    return [block for block in blocks if block.id != block_id]
