"""In-memory document graph: documents, pages, draw operations, form fields.

Coordinates are points measured from the top-left corner of the page; the
serializer flips y into PDF space.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

Color = tuple[float, float, float]

BLACK: Color = (0.0, 0.0, 0.0)
WHITE: Color = (1.0, 1.0, 1.0)


class DocumentKind(str, Enum):
    INVOICE = "invoice"
    PROPOSAL = "proposal"
    CONTRACT = "contract"
    INTAKE = "intake"
    MARKDOWN = "markdown"


@dataclass(frozen=True)
class DocumentMetadata:
    title: str
    author: str = ""
    subject: str = ""
    creator: str = ""
    keywords: tuple[str, ...] = ()
    created_at: datetime = datetime(2000, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float  # baseline
    text: str
    font: str
    size: float
    color: Color = BLACK
    align: str = "left"  # left | center | right; x is the anchor
    rotate: float = 0.0


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.5
    color: Color = BLACK


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float  # top edge
    width: float
    height: float
    fill: Optional[Color] = None
    stroke: Optional[Color] = None
    line_width: float = 0.5


@dataclass(frozen=True)
class ImageOp:
    name: str
    x: float
    y: float  # top edge
    width: float
    height: float


DrawOp = Union[TextOp, LineOp, RectOp, ImageOp]


@dataclass(frozen=True)
class FormField:
    kind: str  # checkbox | text
    name: str
    page_index: int
    x: float
    y: float  # top edge
    width: float
    height: float
    checked: bool = False
    tooltip: str = ""
    border_width: float = 0.0


class Page:
    """A fixed-size drawing surface.

    Flow operations are append-only while the page is open and frozen into a
    tuple once flow moves past it. Decorations (footers, page numbers,
    watermarks) are added after flow completes.
    """

    def __init__(self, index: int, width: float, height: float, margins: tuple[float, float, float, float]):
        self.index = index
        self.width = width
        self.height = height
        self.margin_top, self.margin_bottom, self.margin_left, self.margin_right = margins
        self._operations: list[DrawOp] = []
        self.decorations: list[DrawOp] = []
        self.form_fields: list[FormField] = []
        self.closed = False

    @property
    def operations(self) -> tuple[DrawOp, ...]:
        return tuple(self._operations)

    def draw(self, op: DrawOp) -> None:
        if self.closed:
            raise RuntimeError(f"page {self.index} is closed")
        self._operations.append(op)

    def place_field(self, form_field: FormField) -> None:
        if self.closed:
            raise RuntimeError(f"page {self.index} is closed")
        self.form_fields.append(form_field)

    def close(self) -> None:
        if not self.closed:
            self._operations = tuple(self._operations)  # type: ignore[assignment]
            self.closed = True

    def decorate(self, op: DrawOp) -> None:
        self.decorations.append(op)

    @property
    def top_bound(self) -> float:
        return self.margin_top

    @property
    def bottom_bound(self) -> float:
        return self.height - self.margin_bottom


@dataclass
class Document:
    kind: DocumentKind
    metadata: DocumentMetadata
    pages: list[Page] = field(default_factory=list)
    images: dict[str, bytes] = field(default_factory=dict)
    clipped_writes: int = 0

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def form_fields(self) -> list[FormField]:
        return [f for page in self.pages for f in page.form_fields]
