from __future__ import annotations

import importlib.util
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import pytest

from docgen.cache_manager import DocumentCache
from docgen.config import BusinessInfo, RenderConfig
from docgen.errors import InputValidationError, OversizedBlockError, SerializationError
from docgen.model import DocumentKind
from docgen.pdf_service import invalidate_document, markdown_to_pdf, render_document

INVOICE = {
    "invoiceNumber": "INV-2001",
    "issuedDate": "2026-03-01",
    "clientName": "Ada Lovelace",
    "clientEmail": "ada@example.com",
    "lineItems": [{"description": "Website build", "quantity": 1, "rate": 2500}],
}

CHECKLIST = """# Launch Checklist

- [x] Domain purchased
- [ ] Analytics configured
"""


class TestRenderDocument(unittest.TestCase):
    def setUp(self) -> None:
        self.cache = DocumentCache(ttl_seconds=300, max_entries=10)
        self.business = BusinessInfo()
        self.config = RenderConfig()

    def _render(self, kind, data, **kwargs):
        kwargs.setdefault("cache", self.cache)
        return render_document(kind, data, config=self.config, business=self.business, **kwargs)

    def test_invoice_renders_single_page(self) -> None:
        result = self._render("invoice", INVOICE, source_id="7", last_modified=1767225600000)
        self.assertTrue(result.pdf.startswith(b"%PDF-"))
        self.assertFalse(result.cache_hit)
        self.assertEqual(result.page_count, 1)
        self.assertEqual(str(result.cache_key), "invoice:7:1767225600000")

    def test_identical_input_gives_identical_bytes(self) -> None:
        first = self._render(DocumentKind.INVOICE, INVOICE, use_cache=False)
        second = self._render(DocumentKind.INVOICE, INVOICE, use_cache=False)
        self.assertEqual(first.pdf, second.pdf)
        self.assertIsNone(first.cache_key)
        self.assertEqual(len(self.cache), 0)

    def test_cache_hit_returns_same_bytes(self) -> None:
        first = self._render("invoice", INVOICE, source_id="7", last_modified="2026-03-01T00:00:00Z")
        second = self._render("invoice", INVOICE, source_id="7", last_modified="2026-03-01T00:00:00Z")
        self.assertFalse(first.cache_hit)
        self.assertTrue(second.cache_hit)
        self.assertEqual(first.pdf, second.pdf)
        self.assertEqual(second.page_count, first.page_count)

        newer = self._render("invoice", INVOICE, source_id="7", last_modified="2026-03-02T00:00:00Z")
        self.assertFalse(newer.cache_hit)

    def test_invalidate_forces_rerender(self) -> None:
        self._render("invoice", INVOICE, source_id="7", last_modified=1)
        self.assertEqual(invalidate_document("invoice", "7", cache=self.cache), 1)
        again = self._render("invoice", INVOICE, source_id="7", last_modified=1)
        self.assertFalse(again.cache_hit)

    def test_markdown_without_id_is_keyed_by_content(self) -> None:
        first = markdown_to_pdf("# Notes\n\nhello", config=self.config, business=self.business, cache=self.cache)
        second = markdown_to_pdf("# Notes\n\nhello", config=self.config, business=self.business, cache=self.cache)
        changed = markdown_to_pdf("# Notes\n\nbye", config=self.config, business=self.business, cache=self.cache)
        self.assertTrue(second.cache_hit)
        self.assertFalse(changed.cache_hit)
        self.assertNotEqual(first.cache_key.source_id, changed.cache_key.source_id)

    def test_page_breaks_produce_pages(self) -> None:
        text = "page one\n<!-- pagebreak -->\npage two\n<!-- pagebreak -->\npage three"
        result = markdown_to_pdf(text, config=self.config, business=self.business, cache=self.cache)
        self.assertEqual(result.page_count, 3)
        cached = markdown_to_pdf(text, config=self.config, business=self.business, cache=self.cache)
        self.assertTrue(cached.cache_hit)
        self.assertEqual(cached.page_count, 3)

    def test_markdown_key_follows_page_setup_and_business(self) -> None:
        letter = markdown_to_pdf("# Notes\n\nhello", config=self.config, business=self.business, cache=self.cache)
        a4 = markdown_to_pdf(
            "# Notes\n\nhello",
            config=RenderConfig(page_size="A4"),
            business=self.business,
            cache=self.cache,
        )
        self.assertFalse(a4.cache_hit)
        self.assertNotEqual(letter.pdf, a4.pdf)
        self.assertNotEqual(letter.cache_key, a4.cache_key)

        renamed = markdown_to_pdf(
            "# Notes\n\nhello",
            config=self.config,
            business=BusinessInfo(name="Other Studio"),
            cache=self.cache,
        )
        self.assertFalse(renamed.cache_hit)
        again = markdown_to_pdf("# Notes\n\nhello", config=self.config, business=self.business, cache=self.cache)
        self.assertTrue(again.cache_hit)
        self.assertEqual(again.pdf, letter.pdf)

    def test_clipped_writes_reported_and_cached(self) -> None:
        text = "\n\n".join(f"paragraph {i} " + "filler words " * 30 for i in range(40))
        result = markdown_to_pdf(text, config=self.config, business=self.business, cache=self.cache)
        self.assertFalse(result.cache_hit)
        self.assertEqual(result.page_count, 1)
        self.assertGreater(result.clipped_writes, 0)

        cached = markdown_to_pdf(text, config=self.config, business=self.business, cache=self.cache)
        self.assertTrue(cached.cache_hit)
        self.assertEqual(cached.clipped_writes, result.clipped_writes)

        short = markdown_to_pdf("just one line", config=self.config, business=self.business, cache=self.cache)
        self.assertEqual(short.clipped_writes, 0)

    def test_validation_error_carries_kind_and_id(self) -> None:
        with self.assertRaises(InputValidationError) as ctx:
            self._render("invoice", {"invoiceNumber": "X"}, source_id="9")
        self.assertEqual(ctx.exception.document_kind, "invoice")
        self.assertEqual(ctx.exception.source_id, "9")
        self.assertIn("[invoice:9]", str(ctx.exception))

    def test_unknown_kind_and_bad_timestamp(self) -> None:
        with self.assertRaises(InputValidationError):
            self._render("receipt", {})
        with self.assertRaises(InputValidationError):
            self._render("invoice", INVOICE, source_id="1", last_modified="not a date")

    def test_oversized_block_propagates(self) -> None:
        tall = {"description": "x", "rate": 1, "details": ["detail"] * 80}
        data = dict(INVOICE, lineItems=[tall])
        with self.assertRaises(OversizedBlockError) as ctx:
            self._render("invoice", data, source_id="3")
        self.assertEqual(ctx.exception.source_id, "3")
        self.assertEqual(len(self.cache), 0)

    def test_serialization_failure_is_not_cached(self) -> None:
        with mock.patch("docgen.pdf_service.serialize", side_effect=SerializationError("writer broke")):
            with self.assertRaises(SerializationError) as ctx:
                self._render("invoice", INVOICE, source_id="5", last_modified=1)
        self.assertEqual(ctx.exception.document_kind, "invoice")
        self.assertEqual(len(self.cache), 0)

    def test_broken_cache_falls_back_to_rendering(self) -> None:
        broken = mock.Mock(spec=DocumentCache)
        broken.get.side_effect = RuntimeError("cache down")
        broken.put.side_effect = RuntimeError("cache down")
        result = self._render("invoice", INVOICE, source_id="5", last_modified=1, cache=broken)
        self.assertFalse(result.cache_hit)
        self.assertTrue(result.pdf.startswith(b"%PDF-"))


@pytest.mark.skipif(importlib.util.find_spec("pypdf") is None, reason="pypdf not installed")
class TestRenderedPdf(unittest.TestCase):
    def setUp(self) -> None:
        self.cache = DocumentCache(ttl_seconds=300, max_entries=10)

    def _markdown(self, text: str):
        return markdown_to_pdf(text, config=RenderConfig(), business=BusinessInfo(), cache=self.cache)

    def test_invoice_text_and_metadata(self) -> None:
        from docgen.pdf_output_scanner import count_pages, extract_pdf_text, read_metadata

        result = render_document("invoice", INVOICE, business=BusinessInfo(), config=RenderConfig(), cache=self.cache)
        self.assertEqual(count_pages(result.pdf), 1)
        text = extract_pdf_text(result.pdf)
        self.assertIn("TOTAL:", text)
        self.assertIn("$2,500.00", text)
        meta = read_metadata(result.pdf)
        self.assertEqual(meta["Title"], "Invoice INV-2001")
        self.assertEqual(meta["Subject"], "Invoice")

    def test_page_count_matches_reader(self) -> None:
        from docgen.pdf_output_scanner import count_pages, extract_page_texts

        result = self._markdown("alpha\n<!-- pagebreak -->\nbravo\n<!-- pagebreak -->\ncharlie")
        self.assertEqual(count_pages(result.pdf), 3)
        pages = extract_page_texts(result.pdf)
        self.assertIn("alpha", pages[0])
        self.assertIn("bravo", pages[1])
        self.assertIn("charlie", pages[2])
        self.assertIn("Page 3 of 3", pages[2])

    def test_markdown_cli_writes_pdf(self) -> None:
        from docgen.pdf_output_scanner import count_pages
        from scripts.markdown_to_pdf import main

        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "notes.md"
            source.write_text("# Notes\n\none\n<!-- pagebreak -->\ntwo\n", encoding="utf-8")
            self.assertEqual(main([str(source), "--pagination", "auto"]), 0)
            output = source.with_suffix(".pdf")
            self.assertEqual(count_pages(output), 2)
            self.assertEqual(main([str(Path(tmp) / "missing.md")]), 1)

    def test_checkbox_state_survives_round_trip(self) -> None:
        from docgen.pdf_output_scanner import list_form_fields

        fields = list_form_fields(self._markdown(CHECKLIST).pdf)
        self.assertEqual(sorted(fields), ["checkbox_1", "checkbox_2"])
        self.assertEqual(fields["checkbox_1"]["type"], "/Btn")
        self.assertEqual(fields["checkbox_1"]["value"], "/Yes")
        self.assertIn(fields["checkbox_2"]["value"], ("/Off", ""))

    def test_unsigned_contract_has_signature_fields(self) -> None:
        from docgen.pdf_output_scanner import extract_pdf_text, list_form_fields

        result = render_document(
            "contract",
            {"projectName": "Bakery Site", "clientName": "Grace", "status": "sent"},
            business=BusinessInfo(),
            config=RenderConfig(),
            cache=self.cache,
        )
        fields = list_form_fields(result.pdf)
        self.assertEqual(sorted(fields), ["field_1", "field_2"])
        self.assertTrue(all(field["type"] == "/Tx" for field in fields.values()))
        self.assertIn("CONTRACT AGREEMENT", extract_pdf_text(result.pdf))


if __name__ == "__main__":
    unittest.main()
