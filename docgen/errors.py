"""Error taxonomy for document rendering.

Surfaced to callers: InputValidationError, OversizedBlockError,
SerializationError. Recovered locally (logged, never fatal): AssetMissing,
CacheUnavailable.
"""

from __future__ import annotations

from typing import Any, Optional


class DocumentError(Exception):
    """Base class carrying the document kind/id that failed."""

    def __init__(self, message: str, *, document_kind: Optional[str] = None, source_id: Any = None):
        super().__init__(message)
        self.message = message
        self.document_kind = document_kind
        self.source_id = source_id

    def attach(self, document_kind: Any, source_id: Any) -> "DocumentError":
        if self.document_kind is None and document_kind is not None:
            self.document_kind = getattr(document_kind, "value", document_kind)
        if self.source_id is None:
            self.source_id = source_id
        return self

    def __str__(self) -> str:
        if self.document_kind is None:
            return self.message
        target = self.document_kind
        if self.source_id is not None:
            target = f"{target}:{self.source_id}"
        return f"[{target}] {self.message}"


class InputValidationError(DocumentError):
    """Required template input is missing or malformed."""

    def __init__(self, message: str, *, errors: Optional[list[dict[str, Any]]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []


class AssetMissing(DocumentError):
    """A font or logo file could not be loaded."""


class OversizedBlockError(DocumentError):
    """A single block cannot fit on any page, even alone."""

    def __init__(self, message: str, *, required: float = 0.0, available: float = 0.0, **kwargs):
        super().__init__(message, **kwargs)
        self.required = required
        self.available = available


class SerializationError(DocumentError):
    """The PDF writer failed to produce bytes."""


class CacheUnavailable(DocumentError):
    """The cache backend failed; callers fall back to always rendering."""
