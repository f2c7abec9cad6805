"""Rasterise document pages and read their native sizes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import fitz

from .models import PageMetadata, RasterMetadata

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png": "png", ".jpg": "jpeg", ".jpeg": "jpeg"}


@dataclass(frozen=True)
class RenderedPage:
    png: bytes
    raster: RasterMetadata
    page: PageMetadata


def ensure_pdf(document_bytes: bytes, filename: Optional[str] = None) -> bytes:
    """Return PDF bytes, wrapping a scanned image into a one-page PDF."""

    suffix = Path(filename).suffix.lower() if filename else ""
    filetype = IMAGE_SUFFIXES.get(suffix)
    if filetype is None:
        return document_bytes
    with fitz.open(stream=document_bytes, filetype=filetype) as image_doc:
        pdf_bytes = image_doc.convert_to_pdf()
    logger.info("Converted %s image '%s' to a single-page PDF", filetype, filename)
    return pdf_bytes


def page_metadata(document: fitz.Document) -> List[PageMetadata]:
    return [PageMetadata(width=float(page.rect.width), height=float(page.rect.height)) for page in document]


def render_page(pdf_bytes: bytes, page_index: int = 0, dpi: int = 150) -> RenderedPage:
    """Render one page to PNG and capture both coordinate systems' sizes."""

    with fitz.open(stream=pdf_bytes, filetype="pdf") as document:
        if not 0 <= page_index < document.page_count:
            raise IndexError(f"Page {page_index} out of range for a {document.page_count}-page document")
        page = document[page_index]
        pixmap = page.get_pixmap(dpi=dpi)
        rendered = RenderedPage(
            png=pixmap.tobytes("png"),
            raster=RasterMetadata(height=pixmap.height, width=pixmap.width),
            page=PageMetadata(width=float(page.rect.width), height=float(page.rect.height)),
        )
    logger.debug(
        "Rendered page %d at %d dpi: %dx%d px for %.1fx%.1f pt",
        page_index,
        dpi,
        rendered.raster.width,
        rendered.raster.height,
        rendered.page.width,
        rendered.page.height,
    )
    return rendered


def image_metadata(image_bytes: bytes) -> RasterMetadata:
    pixmap = fitz.Pixmap(image_bytes)
    return RasterMetadata(height=pixmap.height, width=pixmap.width)


__all__ = ["RenderedPage", "ensure_pdf", "image_metadata", "page_metadata", "render_page"]
