"""Vision-model field detection using Google Gemini.

The rendered page is sent together with a fixed instruction prompt and the
model is asked for a JSON array of fields. Replies are often wrapped in prose
or code fences, so the first well-formed array in the text is used.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, List, Optional

import google.generativeai as genai

from .errors import DetectionFailure
from .models import CoordinateSpace, DetectionResult, FieldDescriptor, FieldType, RasterMetadata
from .utils import assign_unique_ids, infer_field_type

logger = logging.getLogger(__name__)

FIELD_PROMPT = """You are an expert at analyzing form images and writing a clear question for each field.

1. Detect every form field a user is expected to fill or interact with (text fields, checkboxes,
   radio buttons, dropdowns, signature lines, dates, etc.).
2. For each field return:
   - id: a unique identifier such as "field_1", "field_2", ...
   - label: the field's prompt rewritten as a direct question (e.g. "Name" -> "What is your name?").
     Infer the question from context when the printed label is missing or unclear.
   - type: one of "text", "number", "email", "tel", "date", "checkbox", "radio", "dropdown", "signature".
   - rect: the bounding box [x, y, x2, y2] in pixels of the image, origin at the top-left corner.

The image is {width} pixels wide and {height} pixels high.
List grouped options (checkbox or radio groups) as separate fields with their own boxes.
Only include fields intended for user input.
Return only the JSON array, for example:
[{{"id": "field_1", "label": "What is your name?", "type": "text", "rect": [100, 100, 400, 130]}}]
"""


def configure_gemini(api_key: Optional[str] = None) -> None:
    """Configure Google Gemini API with the provided or environment API key.

    Raises:
        ValueError: If no API key is found.
    """
    key = api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
    if not key:
        raise ValueError(
            "Google API key not found. Set GOOGLE_API_KEY environment variable "
            "or pass api_key parameter."
        )
    genai.configure(api_key=key)


def extract_json_array(text: str) -> List[Any]:
    """Return the first substring of ``text`` that parses as a JSON array."""

    decoder = json.JSONDecoder()
    cleaned = text.replace("```json", "").replace("```", "")
    start = cleaned.find("[")
    while start != -1:
        try:
            payload, _ = decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            start = cleaned.find("[", start + 1)
            continue
        if isinstance(payload, list):
            return payload
        start = cleaned.find("[", start + 1)
    raise ValueError("No JSON array found in model response")


def _parse_required(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "yes", "1")
    return False


def _coerce_field(item: Any, page: int) -> Optional[FieldDescriptor]:
    if not isinstance(item, dict):
        return None
    label = str(item.get("label") or "").strip()
    raw_rect = item.get("rect")
    rect = tuple(raw_rect) if isinstance(raw_rect, (list, tuple)) else ()
    field_type = FieldType.parse(item.get("type")) or infer_field_type(label)
    raw_id = item.get("id")
    return FieldDescriptor(
        id=str(raw_id).strip() if raw_id is not None else "",
        label=label,
        type=field_type,
        rect=rect,
        space=CoordinateSpace.RASTER,
        required=_parse_required(item.get("required")),
        page=page,
    )


def parse_fields(text: str, page: int = 0) -> List[FieldDescriptor]:
    entries = extract_json_array(text)
    fields = [f for f in (_coerce_field(item, page) for item in entries) if f is not None]
    return assign_unique_ids(fields)


class VisionFieldDetector:
    """Ask a multimodal model to list the fields on a page image."""

    def __init__(
        self,
        model: Any = None,
        *,
        model_name: str = "models/gemini-1.5-flash",
        api_key: Optional[str] = None,
        temperature: float = 0.0,
        max_output_tokens: int = 4096,
    ) -> None:
        self._model = model
        self._model_name = model_name
        self._api_key = api_key
        self._generation_config = {"temperature": temperature, "max_output_tokens": max_output_tokens}

    def _get_model(self) -> Any:
        if self._model is None:
            configure_gemini(self._api_key)
            self._model = genai.GenerativeModel(self._model_name, generation_config=self._generation_config)
        return self._model

    def detect(self, page_image: bytes, raster: RasterMetadata) -> DetectionResult:
        prompt = FIELD_PROMPT.format(width=raster.width, height=raster.height)
        try:
            response = self._get_model().generate_content([prompt, {"mime_type": "image/png", "data": page_image}])
            raw_text = response.text
        except Exception as exc:
            raise DetectionFailure(f"Vision model call failed: {exc}") from exc

        logger.debug("[Gemini] Raw field response: %s", raw_text)
        try:
            fields = parse_fields(raw_text)
        except ValueError as exc:
            raise DetectionFailure(f"Could not parse fields from model response: {exc}") from exc
        logger.info("[Gemini] Detected %d fields", len(fields))
        return DetectionResult(fields=fields, raster=raster)


__all__ = [
    "FIELD_PROMPT",
    "VisionFieldDetector",
    "configure_gemini",
    "extract_json_array",
    "parse_fields",
]
