"""
Tests for the workspace session: navigation, page and block editing,
undo/redo and persistence through the sync coordinator.
"""

import asyncio
import shutil
import tempfile
import unittest
from pathlib import Path

from folio.config import ConfigManager
from folio.editing import CapacityState
from folio.errors import CapacityExceededError
from folio.models import Block, BlockType, SaveStatus
from folio.persistence import InMemoryPersistence, LocalCache
from folio.seed import create_starter_pages
from folio.workspace import WorkspaceSession


SETTINGS = """
sync:
  debounce_ms: 50
history:
  limit: 50
editor:
  max_blocks: 8
  warn_blocks: 6
"""


def make_settings(directory):
    path = Path(directory) / "config.yaml"
    path.write_text(SETTINGS)
    return ConfigManager(str(path))


class TestWorkspaceEditing(unittest.TestCase):
    """Test in-memory editing without a sync coordinator."""

    def setUp(self):
        """Set up a session over the starter pages."""
        self.temp_dir = tempfile.mkdtemp()
        self.session = WorkspaceSession("ws", settings=make_settings(self.temp_dir),
                                        pages=create_starter_pages())
        self.session.select_page("1")

    def tearDown(self):
        """Clean up the settings directory."""
        shutil.rmtree(self.temp_dir)

    def test_views(self):
        self.assertEqual(len(self.session.pages), 2)
        self.assertIsInstance(self.session.pages, tuple)
        self.assertEqual(self.session.active_page_id, "1")
        self.assertEqual(self.session.active_page.title, "Project Phoenix")
        self.assertEqual(self.session.save_status, SaveStatus.SAVED)
        self.assertEqual(self.session.capacity_state, CapacityState.OK)

    def test_select_page(self):
        selected = []
        self.session.on_page_selected(selected.append)

        self.assertTrue(self.session.select_page("2"))
        self.assertFalse(self.session.select_page("missing"))

        self.assertEqual(selected, ["2"])
        self.assertEqual(self.session.active_page_id, "2")

    def test_add_page_navigates(self):
        new_id = self.session.add_page("1")

        self.assertEqual(self.session.active_page_id, new_id)
        self.assertEqual(self.session.get_page("1").child_ids, [new_id])
        self.assertEqual([page.id for page in self.session.breadcrumbs()], ["1", new_id])

        other = self.session.add_page(navigate=False)
        self.assertEqual(self.session.active_page_id, new_id)
        self.assertIsNone(self.session.get_page(other).parent_id)

    def test_delete_active_page_clears_selection(self):
        """Without a running loop the selection is cleared right away."""
        cleared = []
        self.session.on_active_cleared(lambda: cleared.append(True))
        child = self.session.add_page("1")

        deleted = self.session.delete_page("1")

        self.assertEqual(deleted, ["1", child])
        self.assertIsNone(self.session.active_page_id)
        self.assertEqual(cleared, [True])
        self.assertEqual([page.id for page in self.session.pages], ["2"])

    def test_delete_unknown_page(self):
        self.assertEqual(self.session.delete_page("missing"), [])
        self.assertFalse(self.session.can_undo)

    def test_toggles(self):
        self.assertTrue(self.session.toggle_favorite("1"))
        self.assertTrue(self.session.get_page("1").is_favorite)
        self.assertTrue(self.session.toggle_expand("2"))
        self.assertTrue(self.session.get_page("2").is_expanded)
        self.assertFalse(self.session.toggle_favorite("missing"))

    def test_replace_blocks_renames_page(self):
        self.session.replace_blocks([Block(id="h", type=BlockType.HEADING1, content="Project Firebird")])

        self.assertEqual(self.session.active_page.title, "Project Firebird")

    def test_undo_and_redo(self):
        original = self.session.pages
        self.session.toggle_favorite("1")
        edited = self.session.pages

        self.assertTrue(self.session.undo())
        self.assertEqual(self.session.pages, original)
        self.assertTrue(self.session.redo())
        self.assertEqual(self.session.pages, edited)
        self.assertFalse(self.session.redo())

    def test_undo_of_added_page_clears_selection(self):
        self.session.add_page()

        self.session.undo()

        self.assertEqual(len(self.session.pages), 2)
        self.assertIsNone(self.session.active_page_id)

    def test_change_listeners(self):
        changes = []
        self.session.on_change(changes.append)

        self.session.toggle_expand("1")

        self.assertEqual(len(changes), 1)
        self.assertEqual(changes[0], self.session.pages)


class TestBlockEditing(unittest.TestCase):
    """Test block-level editing on the active page."""

    def setUp(self):
        """Set up a session over the starter pages with page 1 open."""
        self.temp_dir = tempfile.mkdtemp()
        self.session = WorkspaceSession("ws", settings=make_settings(self.temp_dir),
                                        pages=create_starter_pages())
        self.session.select_page("1")

    def tearDown(self):
        """Clean up the settings directory."""
        shutil.rmtree(self.temp_dir)

    def test_insert_block(self):
        block = self.session.insert_block(0, BlockType.TODO, "Hire a designer")

        blocks = self.session.active_page.blocks
        self.assertEqual(blocks[1].id, block.id)
        self.assertFalse(blocks[1].checked)

    def test_insert_page_blocks_directly_is_refused(self):
        with self.assertRaises(ValueError):
            self.session.insert_block(0, BlockType.PAGE)

    def test_capacity_limits(self):
        """Page 1 holds five blocks; the warning starts at six and the ceiling is eight."""
        self.session.insert_block(4)
        self.assertEqual(self.session.capacity_state, CapacityState.WARNING)

        self.session.insert_block(5)
        self.session.insert_block(6)
        self.assertEqual(self.session.capacity_state, CapacityState.FULL)

        with self.assertLogs(level="WARNING"):
            with self.assertRaises(CapacityExceededError):
                self.session.insert_block(7)
        self.assertEqual(len(self.session.active_page.blocks), 8)

    def test_update_block(self):
        self.assertTrue(self.session.update_block("b4", checked=True))
        self.assertTrue(self.session.active_page.blocks[3].checked)
        self.assertFalse(self.session.update_block("missing", checked=True))

    def test_remove_block(self):
        self.assertTrue(self.session.remove_block("b2"))
        self.assertEqual([b.id for b in self.session.active_page.blocks], ["b1", "b3", "b4", "b5"])

    def test_convert_to_page(self):
        new_id = self.session.convert_to_page("b2", navigate=False)

        block = self.session.active_page.blocks[1]
        self.assertEqual(block.type, BlockType.PAGE)
        self.assertEqual(block.page_id, new_id)
        self.assertEqual(block.content, "Untitled")
        self.assertEqual(self.session.get_page("1").child_ids, [new_id])
        self.assertEqual(self.session.get_page(new_id).parent_id, "1")
        self.assertEqual(self.session.active_page_id, "1")

    def test_convert_to_page_opens_new_page(self):
        selected = []
        self.session.on_page_selected(selected.append)

        new_id = self.session.convert_to_page("b2")

        self.assertEqual(self.session.active_page_id, new_id)
        self.assertEqual(selected, [new_id])
        self.assertEqual(self.session.get_page("1").blocks[1].page_id, new_id)
        self.assertEqual([page.id for page in self.session.breadcrumbs()], ["1", new_id])

    def test_converting_page_block_away_deletes_sub_page(self):
        new_id = self.session.convert_to_page("b2", navigate=False)

        self.session.update_block("b2", type=BlockType.TEXT, content="Back to text")

        self.assertIsNone(self.session.get_page(new_id))
        self.assertEqual(self.session.get_page("1").child_ids, [])
        self.assertIsNone(self.session.active_page.blocks[1].page_id)

    def test_removing_page_block_deletes_sub_page(self):
        new_id = self.session.convert_to_page("b2")
        grandchild = self.session.add_page(new_id, navigate=False)
        self.session.select_page("1")

        self.session.remove_block("b2")

        self.assertIsNone(self.session.get_page(new_id))
        self.assertIsNone(self.session.get_page(grandchild))

    def test_sub_page_delete_is_one_undo_step(self):
        new_id = self.session.convert_to_page("b2", navigate=False)
        self.session.remove_block("b2")

        self.session.undo()

        self.assertIsNotNone(self.session.get_page(new_id))
        self.assertEqual(self.session.active_page.blocks[1].page_id, new_id)

    def test_replace_blocks_without_page_block_deletes_sub_page(self):
        new_id = self.session.convert_to_page("b2", navigate=False)
        grandchild = self.session.add_page(new_id, navigate=False)
        blocks = [block for block in self.session.active_page.blocks if block.id != "b2"]

        with self.assertLogs(level="INFO"):
            self.assertTrue(self.session.replace_blocks(blocks))

        self.assertIsNone(self.session.get_page(new_id))
        self.assertIsNone(self.session.get_page(grandchild))
        self.assertEqual(self.session.get_page("1").child_ids, [])
        self.assertEqual([b.id for b in self.session.active_page.blocks], ["b1", "b3", "b4", "b5"])

        self.session.undo()

        self.assertEqual(self.session.get_page("1").child_ids, [new_id])
        self.assertEqual(self.session.get_page(new_id).child_ids, [grandchild])
        self.assertEqual(self.session.active_page.blocks[1].page_id, new_id)

    def test_replace_blocks_keeping_page_block_keeps_sub_page(self):
        new_id = self.session.convert_to_page("b2", navigate=False)
        blocks = list(reversed(self.session.active_page.blocks))

        self.session.replace_blocks(blocks)

        self.assertIsNotNone(self.session.get_page(new_id))
        self.assertEqual(self.session.get_page("1").child_ids, [new_id])

    def test_link_page_follows_renames(self):
        self.assertTrue(self.session.link_page("b2", "2"))
        link = self.session.active_page.blocks[1]
        self.assertEqual(link.type, BlockType.PAGE_LINK)
        self.assertEqual(link.content, "Reading List")

        self.session.select_page("2")
        self.session.update_block("r1", content="Books for 2025")

        self.assertEqual(self.session.get_page("1").blocks[1].content, "Books for 2025")
        self.assertEqual(self.session.get_page("2").title, "Books for 2025")

    def test_link_to_missing_page(self):
        self.assertFalse(self.session.link_page("b2", "missing"))


class TestSyncedWorkspace(unittest.IsolatedAsyncioTestCase):
    """Test a session wired to an in-memory store and a file cache."""

    def setUp(self):
        """Set up the store, cache and session."""
        self.temp_dir = tempfile.mkdtemp()
        self.persistence = InMemoryPersistence()
        self.cache = LocalCache(str(Path(self.temp_dir) / "cache"))
        self.session = WorkspaceSession.open("ws", self.persistence, cache=self.cache,
                                             settings=make_settings(self.temp_dir))

    def tearDown(self):
        """Clean up the cache directory."""
        shutil.rmtree(self.temp_dir)

    async def settle(self):
        """Let immediate writes land."""
        await asyncio.sleep(0.01)
        await self.session.sync.scheduler.drain()

    async def test_load_seeds_and_selects_first_page(self):
        result = await self.session.load()

        self.assertEqual(result.source, "seed")
        self.assertEqual(self.session.active_page_id, "1")
        self.assertFalse(self.session.can_undo)
        self.assertEqual(self.persistence.stored_ids("ws"), ["1", "2"])

    async def test_load_shows_cache_then_remote(self):
        self.cache.write_pages("ws", create_starter_pages()[:1])
        self.persistence.seed("ws", create_starter_pages())
        snapshots = []
        self.session.on_change(lambda pages: snapshots.append([page.id for page in pages]))

        await self.session.load()

        self.assertEqual(snapshots, [["1"], ["1", "2"]])
        self.assertEqual(self.session.active_page_id, "1")

    async def test_rapid_edits_write_once(self):
        await self.session.load()
        self.persistence.writes.clear()

        for title in ("P", "Ph", "Phx"):
            self.session.update_block("b1", content=title)
        self.assertEqual(self.session.save_status, SaveStatus.UNSAVED)

        await asyncio.sleep(0.2)
        await self.session.sync.scheduler.drain()

        self.assertEqual(self.persistence.writes, [("save_page", "ws", "1")])
        self.assertEqual(self.persistence.stored_page("ws", "1").title, "Phx")
        self.assertEqual(self.session.save_status, SaveStatus.SAVED)

    async def test_save_now(self):
        await self.session.load()
        self.assertFalse(await self.session.save_now())

        self.session.update_block("b2", content="Updated plan")

        self.assertTrue(await self.session.save_now())
        self.assertEqual(self.session.save_status, SaveStatus.SAVED)
        self.assertEqual(self.persistence.stored_page("ws", "1").blocks[1].content, "Updated plan")

    async def test_delete_active_page_clears_on_next_iteration(self):
        await self.session.load()
        cleared = []
        self.session.on_active_cleared(lambda: cleared.append(self.session.active_page_id))

        self.session.delete_page("1")
        self.assertEqual(self.session.active_page_id, "1")

        await self.settle()

        self.assertEqual(cleared, [None])
        self.assertEqual(self.persistence.stored_ids("ws"), ["2"])
        self.assertEqual([page.id for page in self.cache.read_pages("ws")], ["2"])

    async def test_undo_is_persisted(self):
        await self.session.load()
        new_id = self.session.add_page("2", navigate=False)
        await self.settle()
        self.assertIn(new_id, self.persistence.stored_ids("ws"))

        self.session.undo()
        await self.settle()

        self.assertNotIn(new_id, self.persistence.stored_ids("ws"))
        self.assertEqual(self.persistence.stored_page("ws", "2").child_ids, [])

    async def test_close_flushes_edits(self):
        await self.session.load()
        self.session.update_block("b2", content="Last words")

        await self.session.close()

        self.assertEqual(self.persistence.stored_page("ws", "1").blocks[1].content, "Last words")


if __name__ == '__main__':
    unittest.main(verbosity=2)
