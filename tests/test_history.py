"""
Tests for the undo/redo history manager.
"""

import unittest
from datetime import datetime

from folio.editing import HistoryManager, add_page, pages_equal, serialize_pages, toggle_favorite
from folio.models import Block, BlockType, Page


STAMP = datetime(2024, 1, 1, 9, 30)


def snapshot(label):
    return [Page(id="p", title=label, updated_at=STAMP,
                 blocks=[Block(id="h", type=BlockType.HEADING1, content=label)])]


class TestHistoryManager(unittest.TestCase):
    """Test undo/redo bookkeeping."""

    def setUp(self):
        """Set up an empty history."""
        self.history = HistoryManager()
        self.before = snapshot("before")
        self.after = snapshot("after")

    def test_undo_restores_exact_prior_collection(self):
        self.assertTrue(self.history.record(self.before, self.after))

        restored = self.history.undo(self.after)

        self.assertEqual(restored, self.before)
        self.assertTrue(self.history.can_redo)
        self.assertFalse(self.history.can_undo)

    def test_redo_restores_exact_post_edit_collection(self):
        self.history.record(self.before, self.after)
        restored = self.history.undo(self.after)

        redone = self.history.redo(restored)

        self.assertEqual(redone, self.after)
        self.assertTrue(self.history.can_undo)
        self.assertFalse(self.history.can_redo)

    def test_empty_stacks_are_noops(self):
        self.assertIsNone(self.history.undo(self.before))
        self.assertIsNone(self.history.redo(self.before))
        self.assertEqual(self.history.undo_depth, 0)
        self.assertEqual(self.history.redo_depth, 0)

    def test_structural_noop_is_not_recorded(self):
        """A collection rebuilt with equal contents is not an edit."""
        pages, _ = add_page([], None, "p1")
        round_trip = toggle_favorite(toggle_favorite(pages, "p1"), "p1")

        self.assertIsNot(round_trip, pages)
        self.assertFalse(self.history.record(pages, round_trip))
        self.assertFalse(self.history.can_undo)

    def test_new_edit_clears_redo(self):
        self.history.record(self.before, self.after)
        self.history.undo(self.after)

        self.history.record(self.before, snapshot("branch"))

        self.assertFalse(self.history.can_redo)

    def test_undo_stack_is_bounded(self):
        """Only the most recent 50 edits can be undone."""
        states = [snapshot(f"state {i}") for i in range(61)]
        for old, new in zip(states, states[1:]):
            self.history.record(old, new)

        self.assertEqual(self.history.undo_depth, 50)

        current = states[-1]
        for _ in range(50):
            current = self.history.undo(current)

        self.assertEqual(current, states[10])
        self.assertIsNone(self.history.undo(current))
        self.assertEqual(self.history.redo_depth, 50)

    def test_custom_limit(self):
        history = HistoryManager(limit=2)
        for i in range(5):
            history.record(snapshot(str(i)), snapshot(str(i + 1)))

        self.assertEqual(history.undo_depth, 2)

        with self.assertRaises(ValueError):
            HistoryManager(limit=0)

    def test_clear(self):
        self.history.record(self.before, self.after)
        self.history.clear()

        self.assertFalse(self.history.can_undo)
        self.assertFalse(self.history.can_redo)


class TestStructuralEquality(unittest.TestCase):
    """Test canonical serialization of page collections."""

    def test_equal_collections(self):
        self.assertTrue(pages_equal(snapshot("x"), snapshot("x")))
        self.assertFalse(pages_equal(snapshot("x"), snapshot("y")))
        self.assertFalse(pages_equal(snapshot("x"), []))

    def test_order_matters(self):
        a, b = snapshot("a")[0].model_copy(update={"id": "a"}), snapshot("b")[0].model_copy(update={"id": "b"})

        self.assertFalse(pages_equal([a, b], [b, a]))
        self.assertEqual(serialize_pages([a, b]), serialize_pages([a, b]))


if __name__ == '__main__':
    unittest.main(verbosity=2)
