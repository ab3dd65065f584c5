"""HTTP adapter: thin FastAPI layer over the document render service."""

import logging
import os
from typing import Any, Optional, Union

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from docgen.assets import get_fonts, get_logo_bytes
from docgen.cache_manager import cache
from docgen.config import load_render_config
from docgen.errors import DocumentError, InputValidationError, OversizedBlockError
from docgen.model import DocumentKind
from docgen.pdf_service import invalidate_document, render_document

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s - %(message)s",
)

logger = logging.getLogger("docgen")

get_fonts()

app = FastAPI(title="Document Generation Service")

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RenderRequest(BaseModel):
    data: Union[dict[str, Any], str] = Field(..., description="Record fields, or markdown text for kind=markdown")
    source_id: Optional[str] = Field(None, description="Stable record id used in the cache key")
    last_modified: Optional[Union[int, float, str]] = Field(None, description="Record modification time")
    use_cache: bool = Field(True, description="Bypass the PDF cache when false")


def _filename(kind: DocumentKind, source_id: Optional[str]) -> str:
    safe_id = "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in (source_id or "document"))[:50]
    return f"{kind.value}_{safe_id}.pdf"


# ------------------------------------------------------------------------------
# API endpoints
# ------------------------------------------------------------------------------
@app.get("/health")
def health():
    fonts = get_fonts()
    return {
        "status": "ok",
        "pdf_cache_items": len(cache),
        "pdf_cache_ttl_sec": cache.ttl_seconds,
        "pdf_cache_max_entries": cache.max_entries,
        "pdf_font_reg": fonts.regular,
        "pdf_font_bold": fonts.bold,
        "pdf_logo_available": get_logo_bytes() is not None,
        "page_size": load_render_config().page_size,
    }


@app.post("/pdf/{kind}")
def generate_pdf(kind: DocumentKind, request: RenderRequest, disposition: str = Query("inline")):
    try:
        result = render_document(
            kind,
            request.data,
            source_id=request.source_id,
            last_modified=request.last_modified,
            use_cache=request.use_cache,
        )
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "errors": e.errors}) from e
    except OversizedBlockError as e:
        raise HTTPException(status_code=422, detail={"message": str(e)}) from e
    except DocumentError as e:
        raise HTTPException(status_code=500, detail={"message": str(e)}) from e

    mode = "attachment" if disposition == "attachment" else "inline"
    return Response(
        content=result.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"{mode}; filename={_filename(kind, request.source_id)}",
            "X-PDF-Cache": "HIT" if result.cache_hit else "MISS",
            "X-PDF-Pages": str(result.page_count),
            "X-PDF-Clipped": str(result.clipped_writes),
        },
    )


@app.delete("/pdf/cache/{kind}")
def invalidate_pdf_cache(kind: DocumentKind, source_id: Optional[str] = Query(None)):
    removed = invalidate_document(kind, source_id)
    return {"kind": kind.value, "source_id": source_id, "invalidated": removed}
