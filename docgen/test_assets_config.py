from __future__ import annotations

import json
import os
import tempfile
import unittest
from io import BytesIO
from pathlib import Path
from unittest import mock

from PIL import Image

from docgen import assets
from docgen import blocks as b
from docgen.config import BusinessInfo, RenderConfig, load_business_info, load_render_config
from docgen.errors import AssetMissing
from docgen.model import Document, DocumentKind, DocumentMetadata, ImageOp, TextOp
from docgen.renderer import LOGO_IMAGE_NAME, BlockRenderer


def _png(width: int = 120, height: int = 60) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), (20, 40, 60)).save(buffer, format="PNG")
    return buffer.getvalue()


class TestAssets(unittest.TestCase):
    def setUp(self) -> None:
        assets.reset_assets()
        self.addCleanup(assets.reset_assets)
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def test_missing_custom_font_falls_back_to_helvetica(self) -> None:
        with mock.patch.dict(os.environ, {"PDF_FONT_REGULAR": str(Path(self.tmp.name) / "nope.ttf")}):
            fonts = assets.get_fonts()
        self.assertEqual((fonts.regular, fonts.bold, fonts.embedded), ("Helvetica", "Helvetica-Bold", False))

    def test_missing_logo_is_none(self) -> None:
        with mock.patch.object(assets, "LOGO_CANDIDATES", []), mock.patch.dict(os.environ, {"PDF_LOGO_PATH": ""}):
            self.assertIsNone(assets.get_logo_bytes())

    def test_logo_read_once_and_validated(self) -> None:
        path = Path(self.tmp.name) / "logo.png"
        path.write_bytes(_png())
        with mock.patch.dict(os.environ, {"PDF_LOGO_PATH": str(path)}):
            first = assets.get_logo_bytes()
            path.write_bytes(b"changed on disk")
            second = assets.get_logo_bytes()
        self.assertIs(first, second)
        self.assertEqual(assets.validate_image(first), (120, 60))

    def test_corrupt_logo_rejected(self) -> None:
        with self.assertRaises(AssetMissing):
            assets.validate_image(b"not an image")

    def test_header_embeds_logo_scaled_to_height(self) -> None:
        doc = Document(kind=DocumentKind.INVOICE, metadata=DocumentMetadata(title="logo"))
        renderer = BlockRenderer(doc, RenderConfig(), fonts=assets.FontSet(), business=BusinessInfo(), logo=_png())
        renderer.render([b.BrandHeader("INVOICE")])
        images = [op for op in doc.pages[0].operations if isinstance(op, ImageOp)]
        self.assertEqual(len(images), 1)
        self.assertEqual((images[0].width, images[0].height), (120.0, 60.0))
        self.assertIn(LOGO_IMAGE_NAME, doc.images)

    def test_unreadable_logo_is_skipped(self) -> None:
        doc = Document(kind=DocumentKind.INVOICE, metadata=DocumentMetadata(title="logo"))
        renderer = BlockRenderer(doc, RenderConfig(), fonts=assets.FontSet(), business=BusinessInfo(), logo=b"junk")
        renderer.render([b.BrandHeader("INVOICE")])
        self.assertFalse(any(isinstance(op, ImageOp) for op in doc.pages[0].operations))
        self.assertEqual(doc.images, {})

    def test_centered_header_puts_logo_over_business_lines(self) -> None:
        doc = Document(kind=DocumentKind.MARKDOWN, metadata=DocumentMetadata(title="notes"))
        renderer = BlockRenderer(doc, RenderConfig(), fonts=assets.FontSet(), business=BusinessInfo(), logo=_png())
        renderer.render([b.BrandHeader(centered=True), b.Paragraph("body")])
        ops = doc.pages[0].operations
        images = [op for op in ops if isinstance(op, ImageOp)]
        self.assertEqual(len(images), 1)
        self.assertEqual((images[0].x, images[0].width, images[0].height), (281.0, 50.0, 25.0))
        texts = [op for op in ops if isinstance(op, TextOp)]
        name = next(op for op in texts if op.text == BusinessInfo().name)
        self.assertEqual((name.x, name.align), (306.0, "center"))
        self.assertGreater(name.y, images[0].y + images[0].height)
        body = next(op for op in texts if op.text == "body")
        self.assertGreater(body.y, name.y)

    def test_centered_header_without_logo_keeps_text(self) -> None:
        doc = Document(kind=DocumentKind.MARKDOWN, metadata=DocumentMetadata(title="notes"))
        renderer = BlockRenderer(doc, RenderConfig(), fonts=assets.FontSet(), business=BusinessInfo(), logo=None)
        renderer.render([b.BrandHeader(centered=True)])
        ops = doc.pages[0].operations
        self.assertFalse(any(isinstance(op, ImageOp) for op in ops))
        texts = [op.text for op in ops if isinstance(op, TextOp)]
        self.assertEqual(texts[:4], BusinessInfo().header_lines())


class TestConfig(unittest.TestCase):
    def _write(self, payload) -> Path:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        path = Path(tmp.name) / "layout.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_defaults_are_letter_with_half_inch_margins(self) -> None:
        config = RenderConfig()
        self.assertEqual((config.page_width, config.page_height), (612.0, 792.0))
        self.assertEqual((config.content_width, config.writable_height), (504.0, 684.0))
        self.assertEqual(config.line_height(10), 13.0)
        self.assertEqual(config.heading_size(9), 10.0)

    def test_file_values_and_env_override(self) -> None:
        path = self._write({"base_font_size": 11, "markdown_pagination": "auto", "unknown": 1})
        with mock.patch.dict(os.environ, {"PDF_PAGE_SIZE": "A4"}):
            config = load_render_config(path)
        self.assertEqual(config.base_font_size, 11)
        self.assertEqual(config.markdown_pagination, "auto")
        self.assertEqual(config.page_size, "A4")

    def test_invalid_file_falls_back_to_defaults(self) -> None:
        path = self._write({"base_font_size": -3})
        with mock.patch.dict(os.environ, {"PDF_PAGE_SIZE": ""}):
            self.assertEqual(load_render_config(path), RenderConfig())

    def test_business_env_and_zelle_fallback(self) -> None:
        env = {"BUSINESS_NAME": "Acme Web", "BUSINESS_EMAIL": "hi@acme.test", "BUSINESS_ZELLE_EMAIL": ""}
        with mock.patch.dict(os.environ, env):
            info = load_business_info()
        self.assertEqual(info.name, "Acme Web")
        self.assertEqual(info.zelle_email, "hi@acme.test")
        self.assertIn("Acme Web", info.footer_line())


if __name__ == "__main__":
    unittest.main()
