"""Constrained markdown dialect -> Blocks.

Line oriented. Two states: DEFAULT and IN_TABLE. A table ends at the first
line that is not a pipe row; everything else is decided per line.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from docgen import blocks as b

PAGE_BREAK_MARKER = "<!-- pagebreak -->"
MAX_BULLET_DEPTH = 3

_HEADING_RE = re.compile(r"^(#{1,4})\s+(.*)$")
_CHECKBOX_RE = re.compile(r"^[-*]\s+\[([ xX])\]\s+(.*)$")
_BULLET_RE = re.compile(r"^[-*]\s+(.*)$")
_SIGNATURE_RE = re.compile(r"^\*\*(Client\s+)?Signature:\*\*\s*_*\s*$", re.IGNORECASE)
_FIELD_RE = re.compile(r"^\*\*(Printed Name|Date):\*\*\s*_*\s*$", re.IGNORECASE)
_STANDALONE_BOLD_RE = re.compile(r"^\*\*([^*:]+)\*\*$")
_LABEL_RE = re.compile(r"^\*\*([^*]+):\*\*\s*(.*)$")
_SEPARATOR_CELL_RE = re.compile(r"^:?-+:?$")
_RULE_RE = re.compile(r"^(-{3,}|\*{3,}|_{3,})$")

_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_CODE_RE = re.compile(r"`([^`]+)`")
_ITALIC_RE = re.compile(r"(?<!\*)\*(?!\*)([^*]+?)(?<!\*)\*(?!\*)")

_FIELD_KINDS = {
    "printed name": b.FieldKind.NONE,
    "date": b.FieldKind.DATE,
}


class ParserState(str, Enum):
    DEFAULT = "default"
    IN_TABLE = "in_table"


def clean_inline(text: str) -> str:
    """Keep **bold**; strip italics and code spans; reduce links to their label."""
    text = _LINK_RE.sub(r"\1", text)
    text = _CODE_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    return text.strip()


def strip_bold(text: str) -> str:
    return clean_inline(text).replace("**", "")


def _split_row(line: str) -> list[str]:
    return [cell.strip() for cell in line.strip()[1:-1].split("|")]


def _is_table_row(line: str) -> bool:
    return len(line) >= 2 and line.startswith("|") and line.endswith("|")


def _alignment(cell: str) -> str:
    if cell.startswith(":") and cell.endswith(":"):
        return "center"
    if cell.endswith(":"):
        return "right"
    return "left"


def _indent_depth(raw_line: str) -> int:
    expanded = raw_line.replace("\t", "  ")
    leading = len(expanded) - len(expanded.lstrip(" "))
    return min(leading // 2, MAX_BULLET_DEPTH)


class _TableBuffer:
    def __init__(self):
        self.header: Optional[list[str]] = None
        self.alignments: list[str] = []
        self.rows: list[list[str]] = []

    def add(self, cells: list[str]) -> None:
        if self.header is None:
            self.header = cells
        elif any(cells) and all(_SEPARATOR_CELL_RE.match(c) for c in cells if c):
            if not self.alignments:
                self.alignments = [_alignment(c) for c in cells]
        else:
            self.rows.append(cells)

    def build(self) -> b.Table:
        header = [strip_bold(c) for c in self.header or []]
        width = len(header)

        def fit(cells: list[str]) -> tuple[str, ...]:
            cells = [strip_bold(c) for c in cells[:width]]
            return tuple(cells + [""] * (width - len(cells)))

        aligns = (self.alignments + ["left"] * width)[:width]
        return b.Table(
            header=tuple(header),
            rows=tuple(fit(row) for row in self.rows),
            alignments=tuple(aligns),
            repeat_header=True,
        )


def parse_markdown(text: str) -> list[b.Block]:
    """Tokenize markdown source into an ordered list of blocks."""
    result: list[b.Block] = []
    state = ParserState.DEFAULT
    table = _TableBuffer()

    for raw_line in (text or "").replace("\r\n", "\n").split("\n"):
        line = raw_line.strip()

        if state is ParserState.IN_TABLE:
            if _is_table_row(line):
                table.add(_split_row(line))
                continue
            result.append(table.build())
            table = _TableBuffer()
            state = ParserState.DEFAULT

        if not line:
            continue

        if line == PAGE_BREAK_MARKER:
            result.append(b.ManualPageBreak())
        elif _is_table_row(line):
            table.add(_split_row(line))
            state = ParserState.IN_TABLE
        elif _RULE_RE.match(line):
            result.append(b.Divider())
        elif heading := _HEADING_RE.match(line):
            level = len(heading.group(1))
            result.append(b.Heading(level, strip_bold(heading.group(2)), align="center" if level == 1 else "left"))
        elif checkbox := _CHECKBOX_RE.match(line):
            result.append(b.SignatureLine(
                label=strip_bold(checkbox.group(2)),
                field_kind=b.FieldKind.CHECKBOX,
                checked=checkbox.group(1) in ("x", "X"),
            ))
        elif bullet := _BULLET_RE.match(line):
            result.append(b.BulletItem(clean_inline(bullet.group(1)), depth=_indent_depth(raw_line)))
        elif signature := _SIGNATURE_RE.match(line):
            label = "Client Signature:" if signature.group(1) else "Signature:"
            result.append(b.SignatureLine(label, b.FieldKind.TEXT))
        elif field := _FIELD_RE.match(line):
            name = field.group(1)
            result.append(b.SignatureLine(f"{name.title()}:", _FIELD_KINDS[name.lower()]))
        elif standalone := _STANDALONE_BOLD_RE.match(line):
            result.append(b.Heading(4, strip_bold(standalone.group(1))))
        elif label := _LABEL_RE.match(line):
            result.append(b.LabelValue(strip_bold(label.group(1)), clean_inline(label.group(2))))
        else:
            result.append(b.Paragraph(clean_inline(line)))

    if state is ParserState.IN_TABLE:
        result.append(table.build())
    return result


def count_page_breaks(text: str) -> int:
    return sum(1 for line in (text or "").splitlines() if line.strip() == PAGE_BREAK_MARKER)
