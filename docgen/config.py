"""Render configuration, business identity and environment loading."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger("docgen")

MODULE_DIR = Path(__file__).resolve().parent
REPO_ROOT = MODULE_DIR.parent

# Existing process env wins over .env files.
load_dotenv(dotenv_path=REPO_ROOT / ".env", override=False)

PAGE_DIMENSIONS: dict[str, tuple[float, float]] = {
    "Letter": (612.0, 792.0),
    "A4": (595.0, 842.0),
}

DEFAULT_LAYOUT_CONFIG_PATH = MODULE_DIR / "pdf_layout_config.json"


class Margins(BaseModel):
    model_config = ConfigDict(frozen=True)

    top: float = Field(54.0, ge=0)
    bottom: float = Field(54.0, ge=0)
    left: float = Field(54.0, ge=0)
    right: float = Field(54.0, ge=0)


class RenderConfig(BaseModel):
    """Page geometry and typography shared by every document kind."""

    model_config = ConfigDict(frozen=True)

    page_size: Literal["Letter", "A4"] = "Letter"
    margins: Margins = Field(default_factory=Margins)
    base_font_size: float = Field(10.0, gt=0)
    heading_font_sizes: tuple[float, float, float, float] = (18.0, 14.0, 11.0, 10.0)
    line_height_ratio: float = Field(1.3, ge=1.0)
    markdown_pagination: Literal["manual", "auto"] = "manual"
    page_numbers: bool = True
    indent_unit: float = Field(12.0, ge=0)
    divider_height: float = Field(14.0, ge=0)

    @field_validator("heading_font_sizes")
    @classmethod
    def _positive_headings(cls, value: tuple[float, float, float, float]):
        if any(size <= 0 for size in value):
            raise ValueError("heading font sizes must be positive")
        return value

    @property
    def page_width(self) -> float:
        return PAGE_DIMENSIONS[self.page_size][0]

    @property
    def page_height(self) -> float:
        return PAGE_DIMENSIONS[self.page_size][1]

    @property
    def content_width(self) -> float:
        return self.page_width - self.margins.left - self.margins.right

    @property
    def writable_height(self) -> float:
        return self.page_height - self.margins.top - self.margins.bottom

    def line_height(self, size: float) -> float:
        return round(size * self.line_height_ratio, 2)

    def heading_size(self, level: int) -> float:
        level = min(max(level, 1), 4)
        return self.heading_font_sizes[level - 1]


class BusinessInfo(BaseModel):
    """Business identity printed in every document header and footer."""

    model_config = ConfigDict(frozen=True)

    name: str = "No Bhad Codes"
    owner: str = "Noelle Bhaduri"
    tagline: str = "Web Development & Design"
    email: str = "nobhaduri@gmail.com"
    website: str = "nobhad.codes"
    zelle_email: str = ""
    venmo_handle: str = ""

    def header_lines(self) -> list[str]:
        return [self.name, self.owner, self.tagline, f"{self.email} | {self.website}"]

    def footer_line(self) -> str:
        return f"{self.name} • {self.owner} • {self.email} • {self.website}"


_BUSINESS_ENV = {
    "name": "BUSINESS_NAME",
    "owner": "BUSINESS_OWNER",
    "tagline": "BUSINESS_TAGLINE",
    "email": "BUSINESS_EMAIL",
    "website": "BUSINESS_WEBSITE",
    "zelle_email": "BUSINESS_ZELLE_EMAIL",
    "venmo_handle": "BUSINESS_VENMO_HANDLE",
}


def load_business_info() -> BusinessInfo:
    """Build a fresh BusinessInfo from environment overrides."""
    values: dict[str, str] = {}
    for field_name, env_name in _BUSINESS_ENV.items():
        raw = os.getenv(env_name, "").strip()
        if raw:
            values[field_name] = raw
    info = BusinessInfo(**values)
    if not info.zelle_email:
        info = info.model_copy(update={"zelle_email": info.email})
    return info


def env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


def cache_ttl_seconds() -> float:
    return env_int("PDF_CACHE_TTL_MS", 300000, minimum=0) / 1000.0


def cache_max_entries() -> int:
    return env_int("PDF_CACHE_MAX_ENTRIES", 100, minimum=1)


def load_render_config(path: Optional[Path] = None) -> RenderConfig:
    """Load layout config JSON over defaults; fall back to defaults on any problem."""
    config_path = path or Path(os.getenv("PDF_LAYOUT_CONFIG", str(DEFAULT_LAYOUT_CONFIG_PATH)))
    values: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                values.update({k: v for k, v in loaded.items() if k in RenderConfig.model_fields})
        except Exception as e:
            logger.warning("PDF layout config load failed. Using defaults: %s", e)
            values = {}

    page_size = os.getenv("PDF_PAGE_SIZE", "").strip()
    if page_size:
        values["page_size"] = page_size

    try:
        return RenderConfig(**values)
    except ValidationError as e:
        logger.warning("PDF layout config invalid. Using defaults: %s", e)
        return RenderConfig()
