"""High level orchestration helpers for the detect and fill pipeline."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

import fitz

from .compositor import DocumentCompositor
from .config import Settings
from .detection import FieldDetector, build_detector, detect_fields, fallback_result
from .errors import CompositionFailure
from .fonts import FontAsset, FontResolver, load_font_assets
from .models import DetectionResult, FillRequest, FillResult, PageMetadata
from .placement import plan_fill
from .render import ensure_pdf, page_metadata, render_page
from .storage import ArtifactStore, build_store, new_artifact_name
from .utils import translate_labels

logger = logging.getLogger(__name__)
if not logger.handlers:
    level_name = os.getenv("FORMFILLER_LOG", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.setLevel(level)
    logger.addHandler(handler)

FontLoader = Callable[[], List[FontAsset]]


@dataclass(frozen=True)
class UploadedForm:
    pdf_bytes: bytes
    detection: DetectionResult


def _read_pages(pdf_bytes: bytes) -> List[PageMetadata]:
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as document:
            return page_metadata(document)
    except Exception as exc:
        raise CompositionFailure(f"Could not load document: {exc}") from exc


class FormFillingService:
    """Coordinate render -> detect -> (user input) -> plan -> composite -> store.

    Blocking steps run in worker threads so the event loop serving the request
    stays free. Fields are always processed one after another.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        detector: Optional[FieldDetector] = None,
        store: Optional[ArtifactStore] = None,
        font_loader: Optional[FontLoader] = None,
    ) -> None:
        self._settings = settings or Settings.from_env()
        self._detector = detector
        self._store = store or build_store(self._settings)
        self._font_loader = font_loader or (lambda: load_font_assets(self._settings.font_dir))

    @property
    def detector(self) -> FieldDetector:
        if self._detector is None:
            self._detector = build_detector(self._settings)
        return self._detector

    def _detect_sync(
        self,
        document_bytes: bytes,
        filename: Optional[str],
        page_index: int,
        translate: Optional[Callable[[str], Optional[str]]],
    ) -> UploadedForm:
        pdf_bytes = document_bytes
        try:
            pdf_bytes = ensure_pdf(document_bytes, filename)
            rendered = render_page(pdf_bytes, page_index=page_index, dpi=self._settings.render_dpi)
        except Exception as exc:
            logger.warning("Could not render page %d of '%s': %s", page_index, filename, exc)
            detection = fallback_result()
        else:
            detection = detect_fields(self.detector, rendered.png, rendered.raster)

        fields = detection.fields
        if page_index:
            fields = [replace(item, page=page_index) for item in fields]
        if translate is not None:
            fields = translate_labels(fields, translate)
        if fields is not detection.fields:
            detection = DetectionResult(
                fields=fields,
                raster=detection.raster,
                used_fallback=detection.used_fallback,
            )
        logger.info(
            "Detected %d fields on page %d of '%s'%s",
            len(detection.fields),
            page_index,
            filename or "document",
            " (fallback)" if detection.used_fallback else "",
        )
        return UploadedForm(pdf_bytes=pdf_bytes, detection=detection)

    async def detect(
        self,
        document_bytes: bytes,
        filename: Optional[str] = None,
        *,
        page_index: int = 0,
        translate: Optional[Callable[[str], Optional[str]]] = None,
    ) -> UploadedForm:
        """Render a page and detect its fields. Never raises for detector problems."""

        return await asyncio.to_thread(self._detect_sync, document_bytes, filename, page_index, translate)

    def _compose_sync(self, pdf_bytes: bytes, request: FillRequest):
        pages = _read_pages(pdf_bytes)
        fonts = self._font_loader()
        plan = plan_fill(request, pages, FontResolver(fonts), baseline_offset=self._settings.baseline_offset)
        document = DocumentCompositor(fonts).compose(pdf_bytes, plan.instructions)
        return document, plan

    async def fill(self, pdf_bytes: bytes, request: FillRequest) -> FillResult:
        """Fill, persist and return the document with its download location.

        Raises CompositionFailure or PersistenceFailure; nothing is returned
        unless the document has been stored.
        """

        document, plan = await asyncio.to_thread(self._compose_sync, pdf_bytes, request)
        artifact_name = new_artifact_name()
        location = await asyncio.to_thread(self._store.save, artifact_name, document)
        logger.info("Filled %d fields into %s", len(plan.placed_field_ids), artifact_name)
        return FillResult(
            document_bytes=document,
            download_location=location,
            artifact_name=artifact_name,
            warnings=tuple(plan.warnings),
        )

    async def download_location(self, artifact_name: str) -> str:
        """Issue a fresh download location for a previously filled form."""

        return await asyncio.to_thread(self._store.location_for, artifact_name)


__all__ = ["FormFillingService", "UploadedForm"]
