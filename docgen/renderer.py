"""Block renderer: turns Blocks into draw operations through the flow controller."""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional

from docgen import blocks as b
from docgen.assets import FontSet, validate_image
from docgen.config import BusinessInfo, RenderConfig
from docgen.errors import AssetMissing
from docgen.flow import PageFlowController, PaginationMode
from docgen.layout import column_widths, measure_width, split_runs, wrap_runs, wrap_text
from docgen.model import BLACK, Color, Document, FormField, ImageOp, LineOp, Page, RectOp, TextOp

logger = logging.getLogger("docgen")

TEXT_COLOR: Color = (0.0, 0.0, 0.0)
TITLE_COLOR: Color = (0.15, 0.15, 0.15)
LABEL_COLOR: Color = (0.2, 0.2, 0.2)
SUBTLE_COLOR: Color = (0.3, 0.3, 0.3)
MUTED_COLOR: Color = (0.4, 0.4, 0.4)
FOOTER_COLOR: Color = (0.5, 0.5, 0.5)
RULE_COLOR: Color = (0.7, 0.7, 0.7)
HEADER_FILL: Color = (0.94, 0.94, 0.94)
WATERMARK_COLOR: Color = (0.88, 0.88, 0.88)

LOGO_IMAGE_NAME = "logo"
LOGO_HEIGHT = 60.0
BRAND_HEADER_HEIGHT = 80.0
CENTERED_LOGO_WIDTH = 50.0
CELL_PAD_X = 4.0
CELL_PAD_Y = 3.0
SIGNATURE_ROW_HEIGHT = 28.0
SIGNATURE_LINE_OFFSET = 80.0
CHECKBOX_SIZE = 9.0
CHECKBOX_ROW_HEIGHT = 14.0
FIELD_HEIGHT = 14.0
CHECKMARKS = {"✓", "✔", "[CHECK]"}

_NON_CP1252 = re.compile(r"[^\x00-\xffŒœŠšŸŽžƒˆ˜"
                         r"–—‘’‚“”„†‡•…"
                         r"‰‹›€™]")


def _checkmark_cell(text: str) -> str:
    return "[CHECK]" if text.strip() in CHECKMARKS else text


def baseline(top: float, size: float, line_height: float) -> float:
    """Baseline of a text line whose box starts at `top`."""
    return top + (line_height + size * 0.6) / 2


class BlockRenderer:
    """Renders blocks in order onto the pages of one Document.

    One renderer per render call; it owns the flow controller and the form
    field counters.
    """

    def __init__(
        self,
        document: Document,
        config: RenderConfig,
        *,
        fonts: Optional[FontSet] = None,
        business: Optional[BusinessInfo] = None,
        logo: Optional[bytes] = None,
        pagination: PaginationMode = "auto",
    ):
        self.document = document
        self.config = config
        self.fonts = fonts or FontSet()
        self.business = business or BusinessInfo()
        self.logo = logo
        self.flow = PageFlowController(document, config, pagination)
        self.flow.on_new_page(self._draw_running_header)
        self._checkbox_count = 0
        self._text_field_count = 0
        self._running_header: Optional[str] = None
        self._footer_lines: tuple[str, ...] = ()
        self._watermark: Optional[str] = None
        self._handlers: dict[type, Callable] = {
            b.Heading: self._heading,
            b.Paragraph: self._paragraph,
            b.BulletItem: self._bullet,
            b.Table: self._table,
            b.Divider: self._divider,
            b.SignatureLine: self._signature,
            b.ManualPageBreak: self._page_break,
            b.BrandHeader: self._brand_header,
            b.InfoColumns: self._info_columns,
            b.LabelValue: self._label_value,
            b.Spacer: self._spacer,
            b.RunningHeader: self._set_running_header,
            b.PageFooter: self._set_footer,
            b.Watermark: self._set_watermark,
        }

    # -- public -------------------------------------------------------------
    def render(self, content: Iterable[b.Block]) -> Document:
        for block in content:
            self.render_block(block)
        pages = self.flow.finish()
        self._decorate(pages)
        return self.document

    def render_block(self, block: b.Block) -> None:
        handler = self._handlers.get(type(block))
        if handler is None:
            raise TypeError(f"unsupported block: {type(block).__name__}")
        handler(block)

    # -- helpers ------------------------------------------------------------
    def _clean(self, text: str) -> str:
        text = str(text or "")
        if self.fonts.embedded:
            return text
        return _NON_CP1252.sub("", text)

    def _line_height(self, size: float) -> float:
        return self.config.line_height(size)

    def _text(self, x: float, y: float, text: str, *, bold: bool = False, size: Optional[float] = None,
              color: Color = TEXT_COLOR, align: str = "left") -> None:
        self.flow.draw(TextOp(
            x=round(x, 2),
            y=round(y, 2),
            text=text,
            font=self.fonts.bold if bold else self.fonts.regular,
            size=size or self.config.base_font_size,
            color=color,
            align=align,
        ))

    def _width(self, text: str, bold: bool, size: float) -> float:
        return measure_width(text, self.fonts.bold if bold else self.fonts.regular, size)

    def _draw_runs_line(self, runs, x: float, top: float, size: float, color: Color, line_height: float) -> None:
        y = baseline(top, size, line_height)
        for run in runs:
            self._text(x, y, run.text, bold=run.bold, size=size, color=color)
            x += self._width(run.text, run.bold, size)

    def _flow_runs(self, text: str, x: float, max_width: float, size: float, color: Color,
                   first_prefix: Optional[Callable[[float], None]] = None) -> int:
        """Wrap and draw styled text line by line; returns lines drawn."""
        line_height = self._line_height(size)
        drawn = 0
        words = split_runs(self._clean(text))
        for runs in wrap_runs(words, self.fonts.regular, self.fonts.bold, size, max_width):
            if not self.flow.ensure_space(line_height):
                continue
            top = self.flow.cursor.y
            if drawn == 0 and first_prefix is not None:
                first_prefix(top)
            self._draw_runs_line(runs, x, top, size, color, line_height)
            self.flow.advance(line_height)
            drawn += 1
        return drawn

    # -- content blocks -----------------------------------------------------
    def _heading(self, block: b.Heading) -> None:
        size = self.config.heading_size(block.level)
        line_height = self._line_height(size)
        if not self.flow.at_page_top:
            self.flow.skip(size * (0.7 if block.level <= 2 else 0.5))
        text = self._clean(block.text).replace("**", "")
        for line in wrap_text(text, self.fonts.bold, size, self.flow.content_width):
            if not self.flow.ensure_space(line_height):
                continue
            top = self.flow.cursor.y
            y = baseline(top, size, line_height)
            if block.align == "center":
                self._text(self.config.page_width / 2, y, line, bold=True, size=size, color=TITLE_COLOR, align="center")
            else:
                self._text(self.flow.left, y, line, bold=True, size=size, color=TITLE_COLOR)
            self.flow.advance(line_height)
        self.flow.skip(2 if block.level >= 3 else 4)

    def _paragraph(self, block: b.Paragraph) -> None:
        size = block.size or self.config.base_font_size
        color = MUTED_COLOR if block.muted else TEXT_COLOR
        self._flow_runs(block.text, self.flow.left, self.flow.content_width, size, color)
        self.flow.skip(block.space_after)

    def _bullet(self, block: b.BulletItem) -> None:
        size = block.size or self.config.base_font_size
        color = MUTED_COLOR if block.muted else TEXT_COLOR
        indent = block.depth * self.config.indent_unit
        bullet_x = self.flow.left + indent + 4
        body_x = bullet_x + 10
        line_height = self._line_height(size)

        def draw_bullet(top: float) -> None:
            self._text(bullet_x, baseline(top, size, line_height), "•", size=size, color=color)

        self._flow_runs(block.text, body_x, self.flow.right - body_x, size, color, first_prefix=draw_bullet)
        self.flow.skip(1)

    def _table(self, block: b.Table) -> None:
        count = block.column_count
        if count == 0:
            return
        size = max(self.config.base_font_size - 1, 6)
        line_height = self._line_height(size)
        widths = column_widths(self.flow.content_width, count, block.column_widths)
        aligns = [block.alignments[i] if i < len(block.alignments) else "left" for i in range(count)]

        def normalize(row) -> list[str]:
            cells = [self._clean(_checkmark_cell(str(cell))) for cell in row][:count]
            return cells + [""] * (count - len(cells))

        def layout_row(cells: list[str], bold: bool) -> tuple[list[list[str]], float]:
            font = self.fonts.bold if bold else self.fonts.regular
            wrapped = []
            for text, width in zip(cells, widths):
                if text.strip() in CHECKMARKS:
                    wrapped.append([text.strip()])
                else:
                    inner = max(width - 2 * CELL_PAD_X, 1.0)
                    lines = [line for part in text.split("\n") for line in wrap_text(part, font, size, inner)]
                    wrapped.append(lines or [""])
            height = max(len(lines) for lines in wrapped) * line_height + 2 * CELL_PAD_Y
            return wrapped, height

        # Pass one: measure every row.
        header_lines, header_height = layout_row(normalize(block.header), True)
        body = [layout_row(normalize(row), False) for row in block.rows]

        def draw_row(wrapped: list[list[str]], height: float, header: bool) -> None:
            top = self.flow.cursor.y
            x = self.flow.left
            for lines, width, align in zip(wrapped, widths, aligns):
                self.flow.draw(RectOp(
                    x=round(x, 2), y=round(top, 2), width=round(width, 2), height=round(height, 2),
                    fill=HEADER_FILL if header else None,
                    stroke=BLACK if block.bordered else None,
                ))
                if len(lines) == 1 and lines[0] in CHECKMARKS:
                    self._checkmark(x + width / 2, top + height / 2)
                else:
                    for i, line in enumerate(lines):
                        line_top = top + CELL_PAD_Y + i * line_height
                        y = baseline(line_top, size, line_height)
                        if align == "center":
                            self._text(x + width / 2, y, line, bold=header, size=size, align="center")
                        elif align == "right":
                            self._text(x + width - CELL_PAD_X, y, line, bold=header, size=size, align="right")
                        else:
                            self._text(x + CELL_PAD_X, y, line, bold=header, size=size)
                x += width
            self.flow.advance(height)

        # Pass two: header, then atomic body rows.
        keep_with_first = header_height + (body[0][1] if body else 0.0)
        if keep_with_first > self.config.writable_height:
            keep_with_first = header_height
        if self.flow.ensure_space(keep_with_first):
            draw_row(header_lines, header_height, True)

        for wrapped, height in body:
            page_before = self.flow.cursor.page_index
            if not self.flow.ensure_space(height):
                continue
            new_page = self.flow.cursor.page_index != page_before
            if block.repeat_header and new_page and self.flow.remaining >= header_height + height:
                draw_row(header_lines, header_height, True)
            draw_row(wrapped, height, False)
        self.flow.skip(8)

    def _checkmark(self, cx: float, cy: float) -> None:
        self.flow.draw(LineOp(cx - 4, cy, cx - 1, cy + 3, width=1.5))
        self.flow.draw(LineOp(cx - 1, cy + 3, cx + 5, cy - 4, width=1.5))

    def _divider(self, block: b.Divider) -> None:
        height = self.config.divider_height
        if not self.flow.ensure_space(height):
            return
        if block.rule:
            y = round(self.flow.cursor.y + height / 2, 2)
            self.flow.draw(LineOp(self.flow.left, y, self.flow.right, y, width=1.0, color=RULE_COLOR))
        self.flow.advance(height)

    def _signature(self, block: b.SignatureLine) -> None:
        if block.field_kind == b.FieldKind.CHECKBOX:
            self._checkbox_line(block)
            return

        size = self.config.base_font_size
        if not self.flow.ensure_space(SIGNATURE_ROW_HEIGHT):
            return
        top = self.flow.cursor.y
        text_y = top + SIGNATURE_ROW_HEIGHT - 8
        label = self._clean(block.label)
        self._text(self.flow.left, text_y, label, bold=True, size=size)

        line_x = self.flow.left + max(SIGNATURE_LINE_OFFSET, self._width(label, True, size) + 8)
        line_width = 100.0 if block.field_kind == b.FieldKind.DATE else 200.0
        line_width = min(line_width, self.flow.right - line_x)
        line_y = round(text_y + 2, 2)
        self.flow.draw(LineOp(line_x, line_y, line_x + line_width, line_y, width=0.5))

        if block.field_kind in (b.FieldKind.TEXT, b.FieldKind.DATE):
            self._text_field_count += 1
            self.flow.place_field(FormField(
                kind="text",
                name=f"field_{self._text_field_count}",
                page_index=self.flow.cursor.page_index,
                x=round(line_x, 2),
                y=round(line_y - FIELD_HEIGHT, 2),
                width=round(line_width, 2),
                height=FIELD_HEIGHT,
                tooltip=label.rstrip(":") if block.field_kind == b.FieldKind.TEXT else "date",
                border_width=0.0,
            ))
        self.flow.advance(SIGNATURE_ROW_HEIGHT)

    def _checkbox_line(self, block: b.SignatureLine) -> None:
        size = self.config.base_font_size
        if not self.flow.ensure_space(CHECKBOX_ROW_HEIGHT):
            return
        top = self.flow.cursor.y
        box_x = self.flow.left + 12
        box_top = top + (CHECKBOX_ROW_HEIGHT - CHECKBOX_SIZE) / 2
        self._checkbox_count += 1
        self.flow.place_field(FormField(
            kind="checkbox",
            name=f"checkbox_{self._checkbox_count}",
            page_index=self.flow.cursor.page_index,
            x=round(box_x, 2),
            y=round(box_top, 2),
            width=CHECKBOX_SIZE,
            height=CHECKBOX_SIZE,
            checked=block.checked,
            tooltip=self._clean(block.label)[:80],
            border_width=1.0,
        ))
        label = self._clean(block.label)
        label_x = box_x + CHECKBOX_SIZE + 5
        lines = list(wrap_text(label, self.fonts.regular, size, self.flow.right - label_x)) or [""]
        self._text(label_x, baseline(top, size, CHECKBOX_ROW_HEIGHT), lines[0], size=size)
        self.flow.advance(CHECKBOX_ROW_HEIGHT)
        line_height = self._line_height(size)
        for line in lines[1:]:
            if not self.flow.ensure_space(line_height):
                continue
            self._text(label_x, baseline(self.flow.cursor.y, size, line_height), line, size=size)
            self.flow.advance(line_height)

    def _page_break(self, block: b.ManualPageBreak) -> None:
        self.flow.force_page_break()

    # -- template blocks ----------------------------------------------------
    def _logo_size(self) -> Optional[tuple[int, int]]:
        if not self.logo:
            return None
        try:
            return validate_image(self.logo)
        except AssetMissing as e:
            logger.warning("Logo omitted from header: %s", e)
            return None

    def _draw_logo(self, x: float, y: float, width: float, height: float) -> None:
        self.document.images[LOGO_IMAGE_NAME] = self.logo
        self.flow.draw(ImageOp(LOGO_IMAGE_NAME, x=round(x, 2), y=round(y, 2), width=round(width, 2), height=round(height, 2)))

    def _brand_header(self, block: b.BrandHeader) -> None:
        if block.centered:
            self._centered_brand_header()
            return
        if not self.flow.ensure_space(BRAND_HEADER_HEIGHT):
            return
        top = self.flow.cursor.y
        self._text(self.flow.left, top + 28, self._clean(block.title), bold=True, size=28, color=TITLE_COLOR)

        text_x = self.flow.right - 170
        logo_size = self._logo_size()
        if logo_size:
            width_px, height_px = logo_size
            logo_width = width_px / height_px * LOGO_HEIGHT
            self._draw_logo(text_x - 12 - logo_width, top, logo_width, LOGO_HEIGHT)

        name, owner, tagline, contact = [self._clean(line) for line in self.business.header_lines()]
        self._text(text_x, top + 12, name, bold=True, size=14, color=(0.1, 0.1, 0.1))
        self._text(text_x, top + 30, owner, size=10, color=LABEL_COLOR)
        self._text(text_x, top + 46, tagline, size=9, color=MUTED_COLOR)
        self._text(text_x, top + 60, contact, size=9, color=MUTED_COLOR)
        self.flow.advance(BRAND_HEADER_HEIGHT)

    def _centered_brand_header(self) -> None:
        """Logo on the centre line, business name and contact lines stacked under it."""
        logo_size = self._logo_size()
        logo_height = 0.0
        if logo_size:
            width_px, height_px = logo_size
            logo_height = height_px / width_px * CENTERED_LOGO_WIDTH
        lines = [self._clean(line) for line in self.business.header_lines()]
        text_height = 18 + (len(lines) - 1) * 13
        height = logo_height + (8 if logo_height else 0) + text_height + 4
        if not self.flow.ensure_space(height):
            return
        top = self.flow.cursor.y
        center = self.config.page_width / 2
        if logo_height:
            self._draw_logo(center - CENTERED_LOGO_WIDTH / 2, top, CENTERED_LOGO_WIDTH, logo_height)
            top += logo_height + 8

        self._text(center, top + 14, lines[0], bold=True, size=14, color=TITLE_COLOR, align="center")
        for i, line in enumerate(lines[1:], start=1):
            self._text(center, top + 14 + i * 13, line, size=9, color=MUTED_COLOR, align="center")
        self.flow.advance(height)

    def _info_columns(self, block: b.InfoColumns) -> None:
        size = self.config.base_font_size
        line_height = self._line_height(size)
        left_width = self.config.page_width / 2 - self.flow.left - 8
        right_x = self.config.page_width / 2 + 36

        left: list[tuple[str, bool]] = []
        for i, raw in enumerate(block.left_lines):
            for line in wrap_text(self._clean(raw), self.fonts.bold if i == 0 else self.fonts.regular, size, left_width):
                left.append((line, i == 0))

        title_height = line_height + 2 if block.left_title else 0.0
        left_height = title_height + len(left) * line_height
        right_title_height = line_height + 2 if block.right_title else 0.0
        right_height = right_title_height + len(block.right_pairs) * (line_height + 1)
        height = max(left_height, right_height) + 10

        if not self.flow.ensure_space(height):
            return
        top = self.flow.cursor.y
        y = top
        if block.left_title:
            self._text(self.flow.left, baseline(y, size + 1, line_height), self._clean(block.left_title),
                       bold=True, size=size + 1, color=LABEL_COLOR)
            y += title_height
        for line, bold in left:
            self._text(self.flow.left, baseline(y, size, line_height), line, bold=bold, size=size,
                       color=TEXT_COLOR if bold else SUBTLE_COLOR)
            y += line_height

        y = top
        if block.right_title:
            self._text(right_x, baseline(y, size + 1, line_height), self._clean(block.right_title),
                       bold=True, size=size + 1, color=LABEL_COLOR)
            y += right_title_height
        for label, value in block.right_pairs:
            row_y = baseline(y, size - 1, line_height)
            self._text(right_x, row_y, self._clean(label), bold=True, size=size - 1, color=SUBTLE_COLOR)
            self._text(self.flow.right, row_y, self._clean(value), size=size - 1, align="right")
            y += line_height + 1
        self.flow.advance(height)

    def _label_value(self, block: b.LabelValue) -> None:
        if block.style == "spread":
            self._spread_row(block)
        else:
            self._inline_label(block)

    def _spread_row(self, block: b.LabelValue) -> None:
        label_size = self.config.base_font_size + (4 if block.emphasis else 0)
        value_size = self.config.base_font_size + (6 if block.emphasis else 0)
        line_height = self._line_height(value_size)
        rule_gap = 8.0 if block.rule_above else 0.0
        if not self.flow.ensure_space(line_height + rule_gap):
            return
        x = self.flow.left + block.indent
        if block.rule_above:
            rule_y = round(self.flow.cursor.y + rule_gap / 2, 2)
            self.flow.draw(LineOp(max(x - 14, self.flow.left), rule_y, self.flow.right, rule_y,
                                  width=block.rule_above, color=LABEL_COLOR if block.emphasis else RULE_COLOR))
            self.flow.advance(rule_gap)
        y = baseline(self.flow.cursor.y, value_size, line_height)
        self._text(x, y, self._clean(block.label), bold=block.emphasis, size=label_size,
                   color=TEXT_COLOR if block.emphasis else SUBTLE_COLOR)
        self._text(self.flow.right, y, self._clean(block.value), bold=block.emphasis, size=value_size, align="right")
        self.flow.advance(line_height)

    def _inline_label(self, block: b.LabelValue) -> None:
        size = self.config.base_font_size
        line_height = self._line_height(size)
        x = self.flow.left + block.indent
        label = f"{self._clean(block.label)}:"
        value = self._clean(block.value).replace("**", "")
        if not value.strip():
            if not self.flow.at_page_top:
                self.flow.skip(8)
            if self.flow.ensure_space(line_height):
                self._text(x, baseline(self.flow.cursor.y, size, line_height), label, bold=True, size=size)
                self.flow.advance(line_height)
            return

        label_width = self._width(f"{label} ", True, size)
        full_width = self.flow.right - x
        first_width = max(full_width - label_width, 1.0)
        words = value.split()
        first = next(wrap_text(value, self.fonts.regular, size, first_width), "")
        rest = " ".join(words[len(first.split()):])
        lines = [first] + list(wrap_text(rest, self.fonts.regular, size, full_width))
        for i, line in enumerate(lines):
            if not self.flow.ensure_space(line_height):
                continue
            y = baseline(self.flow.cursor.y, size, line_height)
            if i == 0:
                self._text(x, y, label, bold=True, size=size)
                self._text(x + label_width, y, line, size=size)
            else:
                self._text(x, y, line, size=size)
            self.flow.advance(line_height)

    def _spacer(self, block: b.Spacer) -> None:
        self.flow.skip(block.height)

    def _set_running_header(self, block: b.RunningHeader) -> None:
        self._running_header = self._clean(block.text) or None

    def _set_footer(self, block: b.PageFooter) -> None:
        self._footer_lines = tuple(self._clean(line) for line in block.lines)

    def _set_watermark(self, block: b.Watermark) -> None:
        self._watermark = self._clean(block.text) or None

    # -- chrome -------------------------------------------------------------
    def _draw_running_header(self, flow: PageFlowController) -> None:
        if not self._running_header:
            return
        size = self.config.base_font_size
        self._text(flow.left, flow.cursor.y + size, self._running_header, size=size, color=MUTED_COLOR)
        flow.advance(size + 10)

    def _decorate(self, pages: list[Page]) -> None:
        total = len(pages)
        for page in pages:
            center = page.width / 2
            if self._watermark:
                page.decorate(TextOp(center, page.height / 2, self._watermark, self.fonts.bold, 72,
                                     color=WATERMARK_COLOR, align="center", rotate=20.0))
            footer_y = page.height - page.margin_bottom + 18
            if self._footer_lines:
                page.decorate(LineOp(page.margin_left, footer_y - 12, page.width - page.margin_right,
                                     footer_y - 12, width=0.5, color=(0.8, 0.8, 0.8)))
            for i, line in enumerate(self._footer_lines):
                page.decorate(TextOp(center, footer_y + i * 10, line, self.fonts.regular, 8 if i else 9,
                                     color=MUTED_COLOR if i == 0 else FOOTER_COLOR, align="center"))
            if self.config.page_numbers and total > 1:
                page.decorate(TextOp(center, page.height - 14, f"Page {page.index + 1} of {total}",
                                     self.fonts.regular, 8, color=FOOTER_COLOR, align="center"))
