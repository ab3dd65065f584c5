from __future__ import annotations

import unittest

from docgen import blocks as b
from docgen.markdown_parser import clean_inline, count_page_breaks, parse_markdown


SAMPLE = """# Website Agreement

## Scope

Intro paragraph with a [link](https://example.com) and `code`.

- First item
  - Nested *item*
- [x] Accept terms
- [ ] Subscribe

| Feature | Basic | Pro |
|---------|:-----:|----:|
| Hosting | ✓ | ✓ |
| Support | email |

**Timeline:** Four to six weeks
**Payment Schedule**

---

<!-- pagebreak -->

**Signature:** ____________
**Printed Name:** ____________
**Date:** ________
"""


class TestMarkdownParser(unittest.TestCase):
    def setUp(self) -> None:
        self.blocks = parse_markdown(SAMPLE)

    def test_block_sequence(self) -> None:
        kinds = [type(block).__name__ for block in self.blocks]
        self.assertEqual(
            kinds,
            [
                "Heading",
                "Heading",
                "Paragraph",
                "BulletItem",
                "BulletItem",
                "SignatureLine",
                "SignatureLine",
                "Table",
                "LabelValue",
                "Heading",
                "Divider",
                "ManualPageBreak",
                "SignatureLine",
                "SignatureLine",
                "SignatureLine",
            ],
        )

    def test_headings(self) -> None:
        h1, h2 = self.blocks[0], self.blocks[1]
        self.assertEqual((h1.level, h1.text, h1.align), (1, "Website Agreement", "center"))
        self.assertEqual((h2.level, h2.text), (2, "Scope"))
        self.assertEqual(self.blocks[9], b.Heading(4, "Payment Schedule"))

    def test_inline_cleanup(self) -> None:
        self.assertEqual(self.blocks[2].text, "Intro paragraph with a link and code.")
        self.assertEqual(clean_inline("keep **bold** drop *italic*"), "keep **bold** drop italic")

    def test_bullet_nesting(self) -> None:
        self.assertEqual(self.blocks[3], b.BulletItem("First item", depth=0))
        self.assertEqual(self.blocks[4], b.BulletItem("Nested item", depth=1))

    def test_checkboxes(self) -> None:
        accept, subscribe = self.blocks[5], self.blocks[6]
        self.assertEqual((accept.label, accept.field_kind, accept.checked), ("Accept terms", b.FieldKind.CHECKBOX, True))
        self.assertEqual((subscribe.label, subscribe.checked), ("Subscribe", False))

    def test_table_alignment_and_padding(self) -> None:
        table = self.blocks[7]
        self.assertEqual(table.header, ("Feature", "Basic", "Pro"))
        self.assertEqual(table.alignments, ("left", "center", "right"))
        self.assertEqual(table.rows, (("Hosting", "✓", "✓"), ("Support", "email", "")))

    def test_label_value(self) -> None:
        self.assertEqual(self.blocks[8], b.LabelValue("Timeline", "Four to six weeks"))

    def test_signature_fields(self) -> None:
        kinds = [(block.label, block.field_kind) for block in self.blocks[-3:]]
        self.assertEqual(
            kinds,
            [
                ("Signature:", b.FieldKind.TEXT),
                ("Printed Name:", b.FieldKind.NONE),
                ("Date:", b.FieldKind.DATE),
            ],
        )

    def test_client_signature_variant(self) -> None:
        blocks = parse_markdown("**Client Signature:** ________")
        self.assertEqual(blocks, [b.SignatureLine("Client Signature:", b.FieldKind.TEXT)])

    def test_wide_rows_truncated_and_table_closes_at_eof(self) -> None:
        blocks = parse_markdown("| A | B |\n|---|---|\n| 1 | 2 | 3 |")
        self.assertEqual(blocks, [b.Table(header=("A", "B"), rows=(("1", "2"),), alignments=("left", "left"), repeat_header=True)])

    def test_page_break_count(self) -> None:
        text = "one\n<!-- pagebreak -->\ntwo\n<!-- pagebreak -->\nthree"
        self.assertEqual(count_page_breaks(text), 2)
        self.assertEqual(sum(isinstance(x, b.ManualPageBreak) for x in parse_markdown(text)), 2)

    def test_empty_source(self) -> None:
        self.assertEqual(parse_markdown(""), [])


if __name__ == "__main__":
    unittest.main()
