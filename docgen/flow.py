"""Page flow controller: owns the cursor and decides when content spills."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Literal

from docgen.config import RenderConfig
from docgen.errors import OversizedBlockError
from docgen.model import Document, DrawOp, FormField, Page

logger = logging.getLogger("docgen")

PaginationMode = Literal["auto", "manual"]

_EPSILON = 1e-6


@dataclass
class Cursor:
    page_index: int
    y: float
    font: str = "Helvetica"
    size: float = 10.0


class PageFlowController:
    """Mediates between logical content and physical pages.

    `auto` pagination starts a new page before a write would overflow.
    `manual` pagination only breaks on `force_page_break`; writes that do not
    fit are clipped and counted on the document.
    """

    def __init__(self, document: Document, config: RenderConfig, pagination: PaginationMode = "auto"):
        if pagination not in ("auto", "manual"):
            raise ValueError(f"unknown pagination mode: {pagination!r}")
        self.document = document
        self.config = config
        self.pagination = pagination
        self._new_page_callbacks: list[Callable[["PageFlowController"], None]] = []
        self._clip_logged: set[int] = set()
        self._in_callback = False
        self.cursor = Cursor(page_index=0, y=config.margins.top, size=config.base_font_size)
        self._append_page()

    # -- geometry -----------------------------------------------------------
    @property
    def page(self) -> Page:
        return self.document.pages[self.cursor.page_index]

    @property
    def top(self) -> float:
        return self.config.margins.top

    @property
    def bottom(self) -> float:
        return self.config.page_height - self.config.margins.bottom

    @property
    def left(self) -> float:
        return self.config.margins.left

    @property
    def right(self) -> float:
        return self.config.page_width - self.config.margins.right

    @property
    def content_width(self) -> float:
        return self.config.content_width

    @property
    def remaining(self) -> float:
        return self.bottom - self.cursor.y

    @property
    def at_page_top(self) -> bool:
        return self.cursor.y <= self.top + _EPSILON

    # -- page lifecycle -----------------------------------------------------
    def on_new_page(self, callback: Callable[["PageFlowController"], None]) -> None:
        """Register a callback run after every page started past the first.

        Callbacks draw with `draw`/`advance` and must fit in one page.
        """
        self._new_page_callbacks.append(callback)

    def _append_page(self) -> Page:
        margins = self.config.margins
        page = Page(
            index=len(self.document.pages),
            width=self.config.page_width,
            height=self.config.page_height,
            margins=(margins.top, margins.bottom, margins.left, margins.right),
        )
        self.document.pages.append(page)
        self.cursor.page_index = page.index
        self.cursor.y = self.top
        return page

    def _start_new_page(self) -> None:
        self.page.close()
        self._append_page()
        if self._new_page_callbacks and not self._in_callback:
            self._in_callback = True
            try:
                for callback in self._new_page_callbacks:
                    callback(self)
            finally:
                self._in_callback = False

    def force_page_break(self) -> None:
        """Unconditionally close the current page and start a new one."""
        self._start_new_page()

    def ensure_space(self, required: float) -> bool:
        """Make room for `required` points below the cursor.

        Returns False when the write must be skipped (manual pagination,
        page full). Raises OversizedBlockError when nothing this tall can fit
        on any page.
        """
        if required < 0:
            raise ValueError("required height must be non-negative")
        if self.cursor.y + required <= self.bottom + _EPSILON:
            return True

        writable = self.config.writable_height
        if required > writable + _EPSILON:
            logger.warning(
                "Oversized block on page %d: requires %.1fpt, page holds %.1fpt",
                self.cursor.page_index + 1,
                required,
                writable,
            )
            raise OversizedBlockError(
                f"block requires {required:.1f}pt but a page holds at most {writable:.1f}pt",
                required=required,
                available=writable,
            )

        if self.pagination == "manual" or self._in_callback:
            self._clip()
            return False

        self._start_new_page()
        if self.cursor.y + required > self.bottom + _EPSILON:
            # The new-page callbacks consumed the room; one extra page is the cap.
            logger.warning("Block does not fit below running header on page %d", self.cursor.page_index + 1)
            raise OversizedBlockError(
                f"block requires {required:.1f}pt but only {self.remaining:.1f}pt remain after page header",
                required=required,
                available=self.remaining,
            )
        return True

    def _clip(self) -> None:
        self.document.clipped_writes += 1
        if self.cursor.page_index not in self._clip_logged:
            self._clip_logged.add(self.cursor.page_index)
            logger.warning(
                "Content clipped on page %d: manual pagination is active and the page is full",
                self.cursor.page_index + 1,
            )

    def advance(self, consumed: float) -> None:
        """Move the cursor down. Callers must have called `ensure_space` first."""
        if consumed < 0:
            raise ValueError("consumed height must be non-negative")
        if self.cursor.y + consumed > self.bottom + _EPSILON:
            raise RuntimeError(
                f"advance of {consumed:.1f}pt leaves the writable area on page {self.cursor.page_index + 1}"
            )
        self.cursor.y += consumed

    def skip(self, gap: float) -> None:
        """Vertical whitespace: moves down by `gap`, stopping at the bottom bound."""
        self.cursor.y = min(self.cursor.y + max(gap, 0.0), self.bottom)

    # -- drawing ------------------------------------------------------------
    def draw(self, op: DrawOp) -> None:
        self.page.draw(op)

    def place_field(self, form_field: FormField) -> None:
        self.page.place_field(form_field)

    def finish(self) -> list[Page]:
        self.page.close()
        return self.document.pages
