"""Document graph -> PDF bytes via the reportlab canvas."""

from __future__ import annotations

import logging
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from docgen.errors import SerializationError
from docgen.model import Document, DrawOp, FormField, ImageOp, LineOp, Page, RectOp, TextOp

logger = logging.getLogger("docgen")

PRODUCER = "docgen (reportlab)"
FIELD_FONT = "Helvetica"


def _fixed_date_formatter(document: Document):
    stamp = document.metadata.created_at

    def formatter(yyyy, mm, dd, hh, m, s):
        return f"D:{stamp:%Y%m%d%H%M%S}+00'00'"

    return formatter


def _draw_text(c: canvas.Canvas, page: Page, op: TextOp) -> None:
    c.saveState()
    c.setFillColorRGB(*op.color)
    c.setFont(op.font, op.size)
    x, y = op.x, page.height - op.y
    if op.rotate:
        c.translate(x, y)
        c.rotate(op.rotate)
        x, y = 0, 0
    if op.align == "center":
        c.drawCentredString(x, y, op.text)
    elif op.align == "right":
        c.drawRightString(x, y, op.text)
    else:
        c.drawString(x, y, op.text)
    c.restoreState()


def _draw_line(c: canvas.Canvas, page: Page, op: LineOp) -> None:
    c.saveState()
    c.setStrokeColorRGB(*op.color)
    c.setLineWidth(op.width)
    c.line(op.x1, page.height - op.y1, op.x2, page.height - op.y2)
    c.restoreState()


def _draw_rect(c: canvas.Canvas, page: Page, op: RectOp) -> None:
    c.saveState()
    if op.fill is not None:
        c.setFillColorRGB(*op.fill)
    if op.stroke is not None:
        c.setStrokeColorRGB(*op.stroke)
        c.setLineWidth(op.line_width)
    c.rect(
        op.x,
        page.height - op.y - op.height,
        op.width,
        op.height,
        stroke=1 if op.stroke is not None else 0,
        fill=1 if op.fill is not None else 0,
    )
    c.restoreState()


def _draw_image(c: canvas.Canvas, page: Page, op: ImageOp, document: Document) -> None:
    data = document.images[op.name]
    c.drawImage(
        ImageReader(BytesIO(data)),
        op.x,
        page.height - op.y - op.height,
        width=op.width,
        height=op.height,
        mask="auto",
    )


def _draw(c: canvas.Canvas, page: Page, op: DrawOp, document: Document) -> None:
    if isinstance(op, TextOp):
        _draw_text(c, page, op)
    elif isinstance(op, LineOp):
        _draw_line(c, page, op)
    elif isinstance(op, RectOp):
        _draw_rect(c, page, op)
    elif isinstance(op, ImageOp):
        _draw_image(c, page, op, document)
    else:
        raise TypeError(f"unknown draw operation: {type(op).__name__}")


def _place_field(c: canvas.Canvas, page: Page, field: FormField) -> None:
    y = page.height - field.y - field.height
    if field.kind == "checkbox":
        c.acroForm.checkbox(
            name=field.name,
            tooltip=field.tooltip or field.name,
            checked=field.checked,
            buttonStyle="check",
            x=field.x,
            y=y,
            size=field.width,
            borderWidth=field.border_width,
            borderColor=colors.black,
            fillColor=colors.white,
            textColor=colors.black,
            forceBorder=True,
        )
    elif field.kind == "text":
        c.acroForm.textfield(
            name=field.name,
            tooltip=field.tooltip or field.name,
            value="",
            x=field.x,
            y=y,
            width=field.width,
            height=field.height,
            borderWidth=field.border_width,
            borderColor=colors.white,
            fillColor=colors.white,
            textColor=colors.black,
            fontName=FIELD_FONT,
            fontSize=10,
        )
    else:
        raise TypeError(f"unknown form field kind: {field.kind!r}")


def serialize(document: Document) -> bytes:
    """Write every page of `document` to PDF bytes.

    Output is byte-identical for identical documents: the canvas runs in
    invariant mode and the Info dates come from the document metadata.
    """
    if not document.pages:
        raise SerializationError("document has no pages", document_kind=document.kind.value)

    meta = document.metadata
    buffer = BytesIO()
    try:
        first = document.pages[0]
        c = canvas.Canvas(buffer, pagesize=(first.width, first.height), invariant=1, pageCompression=1)
        c.setDateFormatter(_fixed_date_formatter(document))
        c.setTitle(meta.title)
        c.setAuthor(meta.author)
        c.setSubject(meta.subject)
        c.setCreator(meta.creator)
        c.setProducer(PRODUCER)
        c.setKeywords(", ".join(meta.keywords))

        for page in document.pages:
            c.setPageSize((page.width, page.height))
            for op in page.decorations:
                if isinstance(op, TextOp) and op.rotate:
                    _draw(c, page, op, document)
            for op in page.operations:
                _draw(c, page, op, document)
            for op in page.decorations:
                if not (isinstance(op, TextOp) and op.rotate):
                    _draw(c, page, op, document)
            for field in page.form_fields:
                _place_field(c, page, field)
            c.showPage()
        c.save()
    except SerializationError:
        raise
    except Exception as e:
        logger.error("PDF serialization failed for %s: %s", meta.title, e)
        raise SerializationError(f"PDF writer failed: {e}", document_kind=document.kind.value) from e
    return buffer.getvalue()
