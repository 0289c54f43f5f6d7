"""
Starter documents for Folio.

A brand-new workspace, with nothing in the local cache and nothing in the
remote store, is seeded with these pages so the editor never opens empty.
"""

from datetime import datetime
from typing import List

from .models import Block, BlockType, Page


def create_starter_pages() -> List[Page]:
    """
    Create the built-in starter document set.

    Returns:
        Two root pages: a project hub and a favorited reading list
    """
    now = datetime.now()
    pages = []

    # Page 1: Project hub with headings and goals
    pages.append(Page(
        id="1",
        title="Project Phoenix",
        updated_at=now,
        blocks=[
            Block(id="b1", type=BlockType.HEADING1, content="Project Phoenix Overview"),
            Block(id="b2", type=BlockType.TEXT,
                  content="This is the main hub for our new initiative. "
                          "The goal is to revolutionize personal productivity."),
            Block(id="b3", type=BlockType.HEADING2, content="Q4 Goals"),
            Block(id="b4", type=BlockType.TODO, content="Launch MVP by November", checked=False),
            Block(id="b5", type=BlockType.TODO, content="Secure initial funding", checked=True)
        ],
        parent_id=None,
        child_ids=[],
        is_favorite=False,
        is_expanded=True
    ))

    # Page 2: Reading list, pinned to favorites
    pages.append(Page(
        id="2",
        title="Reading List",
        updated_at=now,
        blocks=[
            Block(id="r1", type=BlockType.HEADING1, content="Books to Read"),
            Block(id="r2", type=BlockType.TODO, content="Atomic Habits", checked=True),
            Block(id="r3", type=BlockType.TODO, content="The Psychology of Money", checked=False)
        ],
        parent_id=None,
        child_ids=[],
        is_favorite=True,
        is_expanded=False
    ))

    return pages
