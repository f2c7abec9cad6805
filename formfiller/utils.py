"""Utility helpers for FormFiller."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Set, Tuple

from .models import CoordinateSpace, FieldDescriptor, FieldType, RasterMetadata

logger = logging.getLogger(__name__)

COPULAS = ("is", "are", "was", "were")
COPULA_PATTERN = re.compile(r"^(?:is|are|was|were)$", re.IGNORECASE)
_LEADING_DETERMINER = re.compile(r"^(?:my|the|a|an)\s+", re.IGNORECASE)
_TRAILING_COPULA = re.compile(r"\s+(?:is|are|was|were)\s*$", re.IGNORECASE)
_TRAILING_PUNCTUATION = re.compile(r"[.:,]+$")

# Used when a detector finds nothing or fails. Raster pixels.
FALLBACK_RASTER = RasterMetadata(height=1000, width=800)
_FALLBACK_FIELDS = (
    ("field_1", "Name", FieldType.TEXT, (150.0, 400.0, 350.0, 430.0), True),
    ("field_2", "Age", FieldType.NUMBER, (400.0, 400.0, 450.0, 430.0), False),
)


def clean_label(label: str) -> str:
    cleaned = _LEADING_DETERMINER.sub("", label.strip())
    cleaned = _TRAILING_COPULA.sub("", cleaned)
    cleaned = _TRAILING_PUNCTUATION.sub("", cleaned)
    return cleaned.strip()


def infer_field_type(label: str) -> FieldType:
    name = label.lower()
    if "email" in name:
        return FieldType.EMAIL
    if "phone" in name or "mobile" in name:
        return FieldType.TEL
    if "date" in name or "birth" in name:
        return FieldType.DATE
    if "age" in name or "number" in name:
        return FieldType.NUMBER
    return FieldType.TEXT


def fallback_fields() -> List[FieldDescriptor]:
    return [
        FieldDescriptor(
            id=field_id,
            label=label,
            type=field_type,
            rect=rect,
            space=CoordinateSpace.RASTER,
            required=required,
            page=0,
        )
        for field_id, label, field_type, rect, required in _FALLBACK_FIELDS
    ]


def _next_free_id(taken: Set[str], counter: int) -> Tuple[str, int]:
    while True:
        counter += 1
        candidate = f"field_{counter}"
        if candidate not in taken:
            return candidate, counter


def assign_unique_ids(fields: Iterable[FieldDescriptor]) -> List[FieldDescriptor]:
    """Keep the first occurrence of each id, renumber blanks and repeats."""

    fields_list = list(fields)
    taken: Set[str] = set()
    for item in fields_list:
        if item.id:
            taken.add(item.id)
    seen: Set[str] = set()
    counter = 0
    unique_fields: List[FieldDescriptor] = []
    for item in fields_list:
        if item.id and item.id not in seen:
            seen.add(item.id)
            unique_fields.append(item)
            continue
        new_id, counter = _next_free_id(taken, counter)
        taken.add(new_id)
        seen.add(new_id)
        unique_fields.append(replace(item, id=new_id))
    return unique_fields


def translate_labels(
    fields: Iterable[FieldDescriptor],
    translate: Callable[[str], Optional[str]],
) -> List[FieldDescriptor]:
    """Rewrite labels through ``translate``; a failing label keeps its text."""

    translated: List[FieldDescriptor] = []
    for item in fields:
        try:
            new_label = translate(item.label)
        except Exception as exc:
            logger.warning("Translation failed for field '%s': %s", item.id, exc)
            translated.append(item)
            continue
        if new_label and new_label.strip():
            translated.append(item.with_label(new_label.strip()))
        else:
            translated.append(item)
    return translated


__all__ = [
    "COPULAS",
    "COPULA_PATTERN",
    "FALLBACK_RASTER",
    "assign_unique_ids",
    "clean_label",
    "fallback_fields",
    "infer_field_type",
    "translate_labels",
]
