"""Cursor-free layout primitives: text measurement and greedy word wrap."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Iterator, Optional, Sequence

from reportlab.pdfbase import pdfmetrics

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_WHITESPACE_RE = re.compile(r"(\s+)")


@lru_cache(maxsize=8192)
def measure_width(text: str, font: str, size: float) -> float:
    """Width of `text` in points for a registered font at `size`."""
    return pdfmetrics.stringWidth(text, font, size)


def wrap_text(text: str, font: str, size: float, max_width: float) -> Iterator[str]:
    """Greedy word wrap.

    A word wider than `max_width` is emitted alone on its own line; words are
    never hyphenated or truncated.
    """
    line = ""
    for word in text.split():
        if not line:
            line = word
            continue
        candidate = f"{line} {word}"
        if measure_width(candidate, font, size) <= max_width:
            line = candidate
        else:
            yield line
            line = word
    if line:
        yield line


@dataclass(frozen=True)
class Run:
    text: str
    bold: bool = False


def split_runs(text: str) -> list[tuple[Run, ...]]:
    """Split text with `**bold**` markers into words made of styled runs.

    Runs that touch without whitespace (``**Total**:``) stay in one word.
    """
    segments: list[tuple[str, bool]] = []
    cursor = 0
    for match in _BOLD_RE.finditer(text):
        if match.start() > cursor:
            segments.append((text[cursor:match.start()], False))
        segments.append((match.group(1), True))
        cursor = match.end()
    if cursor < len(text):
        segments.append((text[cursor:], False))

    words: list[tuple[Run, ...]] = []
    current: list[Run] = []
    for segment, bold in segments:
        for piece in _WHITESPACE_RE.split(segment):
            if not piece:
                continue
            if piece.isspace():
                if current:
                    words.append(tuple(current))
                    current = []
                continue
            current.append(Run(piece, bold))
    if current:
        words.append(tuple(current))
    return words


def _word_width(word: Sequence[Run], regular: str, bold: str, size: float) -> float:
    return sum(measure_width(run.text, bold if run.bold else regular, size) for run in word)


def _merge_runs(words: Sequence[Sequence[Run]]) -> list[Run]:
    merged: list[Run] = []
    for index, word in enumerate(words):
        pieces = list(word)
        if index:
            pieces.insert(0, Run(" ", pieces[0].bold and merged[-1].bold))
        for run in pieces:
            if merged and merged[-1].bold == run.bold:
                merged[-1] = Run(merged[-1].text + run.text, run.bold)
            else:
                merged.append(run)
    return merged


def wrap_runs(
    words: Iterable[Sequence[Run]],
    regular: str,
    bold: str,
    size: float,
    max_width: float,
) -> Iterator[list[Run]]:
    """Greedy wrap over styled words, same policy as `wrap_text`."""
    space = measure_width(" ", regular, size)
    line: list[Sequence[Run]] = []
    width = 0.0
    for word in words:
        word_width = _word_width(word, regular, bold, size)
        if not line:
            line, width = [word], word_width
            continue
        if width + space + word_width <= max_width:
            line.append(word)
            width += space + word_width
        else:
            yield _merge_runs(line)
            line, width = [word], word_width
    if line:
        yield _merge_runs(line)


def plain_text(runs: Sequence[Run]) -> str:
    return "".join(run.text for run in runs)


def column_widths(total: float, count: int, specs: Sequence[Optional[float]] = ()) -> list[float]:
    """Resolve column widths: fixed entries kept, the rest share what remains."""
    if count <= 0:
        return []
    fixed = [specs[i] if i < len(specs) else None for i in range(count)]
    used = sum(w for w in fixed if w is not None)
    flexible = [i for i, w in enumerate(fixed) if w is None]
    remaining = max(total - used, 0.0)
    share = remaining / len(flexible) if flexible else 0.0
    return [w if w is not None else share for w in fixed]
