from __future__ import annotations

import unittest

from docgen.config import RenderConfig
from docgen.errors import OversizedBlockError
from docgen.flow import PageFlowController
from docgen.model import Document, DocumentKind, DocumentMetadata, LineOp


def _document() -> Document:
    return Document(kind=DocumentKind.MARKDOWN, metadata=DocumentMetadata(title="flow"))


class TestPageFlowController(unittest.TestCase):
    def setUp(self) -> None:
        self.config = RenderConfig()

    def test_letter_geometry(self) -> None:
        flow = PageFlowController(_document(), self.config)
        self.assertEqual((flow.top, flow.bottom, flow.left, flow.right), (54, 738, 54, 558))
        self.assertEqual(flow.remaining, 684)
        self.assertTrue(flow.at_page_top)

    def test_auto_pagination_starts_new_page(self) -> None:
        doc = _document()
        flow = PageFlowController(doc, self.config, "auto")
        self.assertTrue(flow.ensure_space(100))
        flow.advance(600)
        self.assertTrue(flow.ensure_space(100))
        self.assertEqual(doc.page_count, 2)
        self.assertEqual(flow.cursor.page_index, 1)
        self.assertEqual(flow.cursor.y, 54)

    def test_manual_pagination_clips_instead_of_breaking(self) -> None:
        doc = _document()
        flow = PageFlowController(doc, self.config, "manual")
        flow.advance(680)
        self.assertFalse(flow.ensure_space(10))
        self.assertFalse(flow.ensure_space(10))
        self.assertEqual(doc.page_count, 1)
        self.assertEqual(doc.clipped_writes, 2)

    def test_oversized_requirement_raises_without_adding_pages(self) -> None:
        doc = _document()
        flow = PageFlowController(doc, self.config, "auto")
        with self.assertRaises(OversizedBlockError) as ctx:
            flow.ensure_space(700)
        self.assertEqual(doc.page_count, 1)
        self.assertEqual(ctx.exception.available, 684)

    def test_advance_past_bottom_is_a_caller_bug(self) -> None:
        flow = PageFlowController(_document(), self.config)
        with self.assertRaises(RuntimeError):
            flow.advance(700)

    def test_skip_clamps_at_bottom(self) -> None:
        flow = PageFlowController(_document(), self.config)
        flow.skip(5000)
        self.assertEqual(flow.cursor.y, flow.bottom)

    def test_new_page_callbacks_skip_first_page(self) -> None:
        doc = _document()
        flow = PageFlowController(doc, self.config)
        calls: list[int] = []

        def header(f: PageFlowController) -> None:
            calls.append(f.cursor.page_index)
            f.advance(20)

        flow.on_new_page(header)
        flow.force_page_break()
        flow.force_page_break()
        self.assertEqual(calls, [1, 2])
        self.assertEqual(flow.cursor.y, 74)

    def test_closed_pages_are_frozen(self) -> None:
        doc = _document()
        flow = PageFlowController(doc, self.config)
        flow.draw(LineOp(54, 60, 558, 60))
        flow.force_page_break()
        first = doc.pages[0]
        self.assertIsInstance(first.operations, tuple)
        with self.assertRaises(RuntimeError):
            first.draw(LineOp(0, 0, 1, 1))

    def test_unknown_pagination_mode_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PageFlowController(_document(), self.config, "sometimes")


if __name__ == "__main__":
    unittest.main()
