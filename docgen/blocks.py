"""Renderer-agnostic content instructions.

Blocks are immutable and know nothing about page boundaries. Template
assemblers and the markdown parser produce them; the block renderer consumes
them in order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class FieldKind(str, Enum):
    NONE = "none"
    TEXT = "text"
    DATE = "date"
    CHECKBOX = "checkbox"


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    align: str = "left"

    def __post_init__(self):
        if not 1 <= self.level <= 4:
            raise ValueError(f"heading level must be 1-4, got {self.level}")


@dataclass(frozen=True)
class Paragraph:
    text: str
    size: Optional[float] = None
    muted: bool = False
    space_after: float = 4.0


@dataclass(frozen=True)
class BulletItem:
    text: str
    depth: int = 0
    size: Optional[float] = None
    muted: bool = False


@dataclass(frozen=True)
class Table:
    header: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    alignments: tuple[str, ...] = ()
    # Fixed widths in points; None entries share the remaining width equally.
    column_widths: tuple[Optional[float], ...] = ()
    repeat_header: bool = False
    bordered: bool = True

    @property
    def column_count(self) -> int:
        return len(self.header)


@dataclass(frozen=True)
class Divider:
    rule: bool = False


@dataclass(frozen=True)
class SignatureLine:
    label: str
    field_kind: FieldKind = FieldKind.NONE
    checked: bool = False


@dataclass(frozen=True)
class ManualPageBreak:
    pass


@dataclass(frozen=True)
class BrandHeader:
    """Document title with logo and the four-line business info block.

    `centered` stacks the logo above the business lines on the page centre
    line and ignores `title`.
    """

    title: str = ""
    centered: bool = False


@dataclass(frozen=True)
class InfoColumns:
    left_title: str
    left_lines: tuple[str, ...]
    right_pairs: tuple[tuple[str, str], ...] = ()
    right_title: str = ""


@dataclass(frozen=True)
class LabelValue:
    label: str
    value: str
    style: str = "inline"  # inline | spread
    emphasis: bool = False
    indent: float = 0.0
    rule_above: float = 0.0


@dataclass(frozen=True)
class Spacer:
    height: float


@dataclass(frozen=True)
class RunningHeader:
    """Text drawn at the top of every page started after this block."""

    text: str


@dataclass(frozen=True)
class PageFooter:
    lines: tuple[str, ...]


@dataclass(frozen=True)
class Watermark:
    text: str


Block = Union[
    Heading,
    Paragraph,
    BulletItem,
    Table,
    Divider,
    SignatureLine,
    ManualPageBreak,
    BrandHeader,
    InfoColumns,
    LabelValue,
    Spacer,
    RunningHeader,
    PageFooter,
    Watermark,
]
