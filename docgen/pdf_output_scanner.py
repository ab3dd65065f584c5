from __future__ import annotations

import re
from io import BytesIO
from pathlib import Path
from typing import Iterable, Union

PdfSource = Union[bytes, Path, str]

# Markup that must never leak into rendered output.
FORBIDDEN_PATTERNS = [
    re.compile(r"\*\*[^*\n]+\*\*"),
    re.compile(r"<!--\s*pagebreak\s*-->", re.IGNORECASE),
    re.compile(r"^\s*#{1,4}\s", re.MULTILINE),
    re.compile(r"\[[^\]]+\]\([^)]+\)"),
]


def _reader(source: PdfSource):
    from pypdf import PdfReader

    if isinstance(source, (bytes, bytearray)):
        return PdfReader(BytesIO(source))
    return PdfReader(str(source))


def extract_pdf_text(source: PdfSource) -> str:
    reader = _reader(source)
    return "\n".join((page.extract_text() or "") for page in reader.pages)


def extract_page_texts(source: PdfSource) -> list[str]:
    return [(page.extract_text() or "") for page in _reader(source).pages]


def count_pages(source: PdfSource) -> int:
    return len(_reader(source).pages)


def read_metadata(source: PdfSource) -> dict[str, str]:
    info = _reader(source).metadata or {}
    return {str(k).lstrip("/"): str(v) for k, v in info.items()}


def list_form_fields(source: PdfSource) -> dict[str, dict[str, str]]:
    """Map AcroForm field name -> {"type", "value"} ("/Btn" checkboxes, "/Tx" text)."""
    fields = _reader(source).get_fields() or {}
    found: dict[str, dict[str, str]] = {}
    for name, field in fields.items():
        found[name] = {
            "type": str(field.get("/FT", "")),
            "value": str(field.get("/V", "")),
        }
    return found


def scan_forbidden_patterns(text: str, patterns: Iterable[re.Pattern] = FORBIDDEN_PATTERNS) -> list[dict[str, str]]:
    findings: list[dict[str, str]] = []
    for pattern in patterns:
        for match in pattern.finditer(text or ""):
            start = max(0, match.start() - 32)
            end = min(len(text), match.end() + 32)
            findings.append(
                {
                    "pattern": pattern.pattern,
                    "match": match.group(0),
                    "context": text[start:end].replace("\n", " "),
                }
            )
    return findings
