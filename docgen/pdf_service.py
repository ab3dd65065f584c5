"""Render entry point: cache lookup, template assembly, layout, serialization."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from docgen.assets import get_fonts, get_logo_bytes
from docgen.cache_manager import CacheKey, DocumentCache, cache as default_cache, content_digest, make_cache_key, to_epoch_ms
from docgen.config import BusinessInfo, RenderConfig, load_business_info, load_render_config
from docgen.errors import CacheUnavailable, DocumentError, InputValidationError
from docgen.model import Document, DocumentKind
from docgen.records import MarkdownData
from docgen.renderer import BlockRenderer
from docgen.serializer import serialize
from docgen.templates import Record, assemble, build_metadata, validate_record

logger = logging.getLogger("docgen")


@dataclass(frozen=True)
class RenderResult:
    pdf: bytes
    cache_hit: bool
    page_count: int
    cache_key: Optional[CacheKey] = None
    clipped_writes: int = 0


def _metadata_time(last_modified: Any) -> Optional[datetime]:
    millis = to_epoch_ms(last_modified)
    if not millis:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def _cache_key(
    kind: DocumentKind,
    record: Record,
    source_id: Any,
    last_modified: Any,
    config: RenderConfig,
    business: BusinessInfo,
) -> Optional[CacheKey]:
    if source_id is None and isinstance(record, MarkdownData):
        # Anonymous markdown: the digest covers everything that shapes the bytes.
        fingerprint = "\n".join(
            (record.title, record.content, config.model_dump_json(), business.model_dump_json())
        )
        return make_cache_key(kind, content_digest(fingerprint), 0)
    if source_id is None:
        return None
    return make_cache_key(kind, source_id, last_modified)


def build_document(
    kind: DocumentKind,
    record: Record,
    *,
    config: RenderConfig,
    business: BusinessInfo,
    created_at: Optional[datetime] = None,
) -> Document:
    """Lay out `record` into an in-memory Document (no serialization)."""
    document = Document(kind=kind, metadata=build_metadata(kind, record, business, created_at))
    pagination = config.markdown_pagination if kind == DocumentKind.MARKDOWN else "auto"
    renderer = BlockRenderer(
        document,
        config,
        fonts=get_fonts(),
        business=business,
        logo=get_logo_bytes(),
        pagination=pagination,
    )
    return renderer.render(assemble(kind, record, business))


def render_document(
    kind: Union[DocumentKind, str],
    data: Union[Record, Mapping[str, Any], str],
    *,
    source_id: Any = None,
    last_modified: Any = None,
    config: Optional[RenderConfig] = None,
    business: Optional[BusinessInfo] = None,
    cache: Optional[DocumentCache] = None,
    use_cache: bool = True,
) -> RenderResult:
    """Render a document to PDF bytes, reusing cached bytes when the key matches.

    Validation, oversized-block and serialization failures propagate with the
    document kind and id attached. Cache failures fall back to rendering.
    """
    try:
        kind = DocumentKind(kind)
    except ValueError as e:
        raise InputValidationError(f"unknown document kind: {kind!r}", source_id=source_id) from e
    config = config or load_render_config()
    business = business or load_business_info()
    store = default_cache if cache is None else cache

    try:
        record = validate_record(kind, data)
        try:
            key = _cache_key(kind, record, source_id, last_modified, config, business) if use_cache else None
            created_at = _metadata_time(last_modified)
        except (TypeError, ValueError) as e:
            raise InputValidationError(f"unreadable last_modified: {last_modified!r}") from e

        if key is not None:
            try:
                cached = store.get(key)
            except Exception as e:
                logger.warning("PDF cache read failed; rendering fresh: %s", CacheUnavailable(str(e)))
                cached = None
            if cached is not None:
                logger.info("PDF cache HIT %s", key)
                return RenderResult(
                    pdf=cached.pdf,
                    cache_hit=True,
                    page_count=cached.page_count,
                    cache_key=key,
                    clipped_writes=cached.clipped_writes,
                )
            logger.info("PDF cache MISS %s", key)

        document = build_document(kind, record, config=config, business=business, created_at=created_at)
        pdf = serialize(document)
    except DocumentError as e:
        e.attach(kind, source_id)
        logger.error("PDF render failed: %s", e)
        raise

    if key is not None:
        try:
            store.put(key, pdf, page_count=document.page_count, clipped_writes=document.clipped_writes)
        except Exception as e:
            logger.warning("PDF cache write failed; result not cached: %s", CacheUnavailable(str(e)))
    if document.clipped_writes:
        logger.warning("%s rendered with %d clipped writes", document.metadata.title, document.clipped_writes)
    return RenderResult(
        pdf=pdf,
        cache_hit=False,
        page_count=document.page_count,
        cache_key=key,
        clipped_writes=document.clipped_writes,
    )


def invalidate_document(kind: Union[DocumentKind, str], source_id: Any = None, cache: Optional[DocumentCache] = None) -> int:
    store = default_cache if cache is None else cache
    return store.invalidate(DocumentKind(kind), source_id)


def markdown_to_pdf(text: str, *, title: str = "Document", config: Optional[RenderConfig] = None, **kwargs) -> RenderResult:
    return render_document(DocumentKind.MARKDOWN, MarkdownData(title=title, content=text), config=config, **kwargs)
