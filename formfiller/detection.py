"""Detector selection and the never-fail detection boundary."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

from .config import Settings
from .models import DetectionResult, RasterMetadata
from .parser import OcrFieldDetector
from .render import image_metadata
from .utils import FALLBACK_RASTER, fallback_fields
from .vision import VisionFieldDetector

logger = logging.getLogger(__name__)

FieldDetector = Union[OcrFieldDetector, VisionFieldDetector]


class DetectorKind(str, Enum):
    VISION = "vision"
    OCR = "ocr"


def build_detector(settings: Settings, kind: Optional[DetectorKind] = None) -> FieldDetector:
    """Create the configured detector variant."""

    selected = kind or DetectorKind(settings.detector)
    if selected is DetectorKind.OCR:
        return OcrFieldDetector(lang=settings.tesseract_lang)
    return VisionFieldDetector(
        model_name=settings.gemini_model,
        api_key=settings.google_api_key,
        temperature=settings.temperature,
        max_output_tokens=settings.max_output_tokens,
    )


def fallback_result(raster: Optional[RasterMetadata] = None) -> DetectionResult:
    return DetectionResult(fields=fallback_fields(), raster=raster or FALLBACK_RASTER, used_fallback=True)


def detect_fields(
    detector: FieldDetector,
    page_image: bytes,
    raster: Optional[RasterMetadata] = None,
) -> DetectionResult:
    """Run ``detector``; any failure or an empty result yields the fallback set."""

    try:
        if raster is None:
            raster = image_metadata(page_image)
    except Exception as exc:
        logger.warning("Could not read page image size (%s); using fallback fields", exc)
        return fallback_result()

    try:
        result = detector.detect(page_image, raster)
    except Exception as exc:
        logger.exception("Field detection failed: %s", exc)
        return fallback_result(raster)

    if not result.fields:
        logger.warning("No fields detected; using fallback fields")
        return fallback_result(raster)
    return result


__all__ = ["DetectorKind", "FieldDetector", "build_detector", "detect_fields", "fallback_result"]
