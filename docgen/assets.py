"""Process-lifetime font and logo loading with graceful degradation."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional

from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from docgen.errors import AssetMissing

logger = logging.getLogger("docgen")

MODULE_DIR = Path(__file__).resolve().parent
REPO_ROOT = MODULE_DIR.parent

LOGO_CANDIDATES = [
    MODULE_DIR / "assets" / "pdf-header-logo.png",
    REPO_ROOT / "assets" / "images" / "avatar_pdf.png",
    REPO_ROOT / "assets" / "images" / "pdf-header-logo.png",
]

STANDARD_FONT_REG = "Helvetica"
STANDARD_FONT_BOLD = "Helvetica-Bold"


@dataclass(frozen=True)
class FontSet:
    regular: str = STANDARD_FONT_REG
    bold: str = STANDARD_FONT_BOLD
    embedded: bool = False


_lock = threading.Lock()
_fonts: Optional[FontSet] = None
_logo_loaded = False
_logo_bytes: Optional[bytes] = None


def _first_existing_path(candidates: list[Path]) -> Optional[Path]:
    for candidate in candidates:
        if candidate.exists() and candidate.is_file():
            return candidate
    return None


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else None


def _register_ttf(alias: str, path: Optional[Path]) -> str:
    if path is None or not path.is_file():
        raise AssetMissing(f"font file not found: {path}")
    try:
        pdfmetrics.registerFont(TTFont(alias, str(path)))
    except Exception as e:
        raise AssetMissing(f"font file unreadable: {path}: {e}") from e
    return alias


def init_fonts() -> FontSet:
    """Register configured TTF fonts, falling back to the standard Helvetica pair."""
    regular_path = _env_path("PDF_FONT_REGULAR")
    if regular_path is None:
        return FontSet()

    try:
        regular = _register_ttf("DocRegular", regular_path)
    except AssetMissing as e:
        logger.warning("Custom font unavailable; using %s: %s", STANDARD_FONT_REG, e)
        return FontSet()

    bold = regular
    try:
        bold = _register_ttf("DocBold", _env_path("PDF_FONT_BOLD"))
    except AssetMissing as e:
        logger.warning("Bold font unavailable; using regular face for bold style: %s", e)

    logger.info("Custom PDF fonts loaded: %s", regular_path)
    return FontSet(regular=regular, bold=bold, embedded=True)


def get_fonts() -> FontSet:
    global _fonts
    with _lock:
        if _fonts is None:
            _fonts = init_fonts()
        return _fonts


def _read_logo() -> bytes:
    explicit = _env_path("PDF_LOGO_PATH")
    candidates = [explicit] + LOGO_CANDIDATES if explicit else LOGO_CANDIDATES
    path = _first_existing_path(candidates)
    if path is None:
        raise AssetMissing(f"no logo found in candidates={[str(c) for c in candidates]}")
    data = path.read_bytes()
    validate_image(data)
    return data


def validate_image(data: bytes) -> tuple[int, int]:
    """Return (width, height) of an embeddable image or raise AssetMissing."""
    try:
        return ImageReader(BytesIO(data)).getSize()
    except Exception as e:
        raise AssetMissing(f"logo is not a readable image: {e}") from e


def get_logo_bytes() -> Optional[bytes]:
    """Logo bytes read once per process; None when the asset is missing."""
    global _logo_loaded, _logo_bytes
    with _lock:
        if not _logo_loaded:
            try:
                _logo_bytes = _read_logo()
            except (AssetMissing, OSError) as e:
                logger.warning("PDF logo unavailable; rendering without it: %s", e)
                _logo_bytes = None
            _logo_loaded = True
        return _logo_bytes


def reset_assets() -> None:
    global _fonts, _logo_loaded, _logo_bytes
    with _lock:
        _fonts = None
        _logo_loaded = False
        _logo_bytes = None
