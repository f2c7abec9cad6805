"""OCR-based detection of blank fields on a rendered form page."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from io import BytesIO
import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import DetectionFailure
from .models import CoordinateSpace, DetectionResult, FieldDescriptor, RasterMetadata
from .utils import COPULA_PATTERN, clean_label, infer_field_type

logger = logging.getLogger(__name__)

_UNDERSCORE_RUN = re.compile(r"_{2,}")
_COLON_LINE = re.compile(r"^(.+?):\s*$")
# Colon fields have no visible box; assume one starting just past the colon.
COLON_GAP = 10.0
COLON_FIELD_EXTENT = 200.0

PixelBox = Tuple[float, float, float, float]


@dataclass(frozen=True)
class OcrWord:
    text: str
    bbox: PixelBox


@dataclass(frozen=True)
class OcrLine:
    words: Tuple[OcrWord, ...]

    @property
    def text(self) -> str:
        return " ".join(word.text for word in self.words)


Recognizer = Callable[[bytes], Sequence[OcrLine]]


def _is_underscore_run(text: str) -> bool:
    return bool(_UNDERSCORE_RUN.search(text))


def recognize_with_tesseract(image_bytes: bytes, lang: str = "eng") -> List[OcrLine]:
    """Run Tesseract and regroup its word table into lines."""

    import pytesseract
    from PIL import Image

    with Image.open(BytesIO(image_bytes)) as image:
        data = pytesseract.image_to_data(image, lang=lang, output_type=pytesseract.Output.DICT)

    grouped: "OrderedDict[Tuple[int, int, int], List[OcrWord]]" = OrderedDict()
    count = len(data.get("text", []))
    for i in range(count):
        text = (data["text"][i] or "").strip()
        if not text:
            continue
        key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
        left, top = float(data["left"][i]), float(data["top"][i])
        width, height = float(data["width"][i]), float(data["height"][i])
        grouped.setdefault(key, []).append(OcrWord(text=text, bbox=(left, top, left + width, top + height)))
    return [OcrLine(words=tuple(words)) for words in grouped.values()]


def _collect_label(words: Sequence[OcrWord], end_index: int) -> str:
    """Walk backwards from ``end_index`` gathering the words that name a blank.

    Copulas directly in front of the blank are skipped ("name is ____"); the
    walk stops at the next copula or at an earlier blank.
    """

    idx = end_index
    while idx >= 0 and COPULA_PATTERN.match(words[idx].text):
        idx -= 1
    parts: List[str] = []
    while idx >= 0:
        text = words[idx].text
        if COPULA_PATTERN.match(text) or _is_underscore_run(text):
            break
        parts.insert(0, text)
        idx -= 1
    return " ".join(parts).strip()


def _collect_underscore_fields(lines: Sequence[OcrLine], page: int) -> List[FieldDescriptor]:
    fields: List[FieldDescriptor] = []
    for line in lines:
        for word_index, word in enumerate(line.words):
            if not _is_underscore_run(word.text):
                continue
            count = len(fields) + 1
            raw_label = _collect_label(line.words, word_index - 1)
            label = clean_label(raw_label) or f"Field {count}"
            fields.append(
                FieldDescriptor(
                    id=f"field_{count}",
                    label=label,
                    type=infer_field_type(label),
                    rect=word.bbox,
                    space=CoordinateSpace.RASTER,
                    page=page,
                )
            )
    return fields


def _collect_colon_fields(lines: Sequence[OcrLine], page: int) -> List[FieldDescriptor]:
    fields: List[FieldDescriptor] = []
    for line in lines:
        if not line.words:
            continue
        match = _COLON_LINE.match(line.text)
        if not match:
            continue
        label = clean_label(match.group(1)) or f"Field {len(fields) + 1}"
        last = line.words[-1].bbox
        fields.append(
            FieldDescriptor(
                id=f"field_{len(fields) + 1}",
                label=label,
                type=infer_field_type(label),
                rect=(last[2] + COLON_GAP, last[1], last[2] + COLON_FIELD_EXTENT, last[3]),
                space=CoordinateSpace.RASTER,
                page=page,
            )
        )
    return fields


def extract_fields(lines: Sequence[OcrLine], page: int = 0) -> List[FieldDescriptor]:
    """Blank-underscore fields first; colon labels only when there are none."""

    fields = _collect_underscore_fields(lines, page)
    if fields:
        logger.debug("Found %d underscore fields", len(fields))
        return fields
    fields = _collect_colon_fields(lines, page)
    logger.debug("Found %d colon fields", len(fields))
    return fields


class OcrFieldDetector:
    """Derive field boxes from text recognised on the page image."""

    def __init__(self, recognizer: Optional[Recognizer] = None, lang: str = "eng") -> None:
        self._recognizer = recognizer or (lambda image: recognize_with_tesseract(image, lang=lang))

    def detect(self, page_image: bytes, raster: RasterMetadata) -> DetectionResult:
        try:
            lines = self._recognizer(page_image)
        except Exception as exc:
            raise DetectionFailure(f"Text recognition failed: {exc}") from exc
        fields = extract_fields(lines)
        logger.info("[OCR] Detected %d fields", len(fields))
        return DetectionResult(fields=fields, raster=raster)


__all__ = [
    "COLON_FIELD_EXTENT",
    "COLON_GAP",
    "OcrFieldDetector",
    "OcrLine",
    "OcrWord",
    "extract_fields",
    "recognize_with_tesseract",
]
