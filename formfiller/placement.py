"""Sizing and positioning of user values inside detected field boxes."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from .errors import MissingGeometry, UnresolvableFont
from .fonts import FontResolver
from .geometry import is_well_formed_rect, normalize_field, normalize_rect
from .models import (
    CoordinateSpace,
    DrawInstruction,
    FieldDescriptor,
    FillPlan,
    FillRequest,
    FillWarning,
    HighlightInstruction,
    PageMetadata,
    RasterMetadata,
    TextInstruction,
)

logger = logging.getLogger(__name__)

MAX_FONT_SIZE = 14.0
MIN_FONT_SIZE = 6.0
FONT_SIZE_STEP = 0.5
HEIGHT_RATIO = 0.8
HORIZONTAL_PADDING = 4.0
DEFAULT_BASELINE_OFFSET = 7.5


class Measurable(Protocol):
    name: str

    def text_width(self, text: str, size: float) -> float: ...

    def ascent(self, size: float) -> float: ...

    def descent(self, size: float) -> float: ...


def initial_font_size(field_height: float) -> float:
    return max(min(field_height * HEIGHT_RATIO, MAX_FONT_SIZE), MIN_FONT_SIZE)


def fit_font_size(font: Measurable, text: str, field_width: float, field_height: float) -> Tuple[float, float]:
    """Shrink from the initial size until ``text`` fits, never below 6 pt.

    Returns ``(size, text_width)``. A value that still overflows at 6 pt is
    returned at 6 pt.
    """

    size = initial_font_size(field_height)
    text_width = font.text_width(text, size)
    while text_width > field_width - HORIZONTAL_PADDING and size > MIN_FONT_SIZE:
        size = max(size - FONT_SIZE_STEP, MIN_FONT_SIZE)
        text_width = font.text_width(text, size)
    return size, text_width


def place_text(
    field: FieldDescriptor,
    value: str,
    font: Measurable,
    baseline_offset: float = DEFAULT_BASELINE_OFFSET,
) -> List[DrawInstruction]:
    """Plan the highlight and the text run for one page-space field."""

    left, bottom, right, top = normalize_rect(field.rect)
    field_width = right - left
    field_height = top - bottom
    size, text_width = fit_font_size(font, value, field_width, field_height)

    text_x = left + (field_width - text_width) / 2
    # Baseline sits a fixed distance below the box's top edge.
    text_y = top - baseline_offset

    highlight = HighlightInstruction(
        page=field.page,
        rect=(text_x, text_y + font.descent(size), text_x + text_width, text_y + font.ascent(size)),
    )
    text = TextInstruction(
        page=field.page,
        origin=(text_x, text_y),
        text=value,
        font_name=font.name,
        font_size=size,
    )
    return [highlight, text]


def _to_page_field(field: FieldDescriptor, raster: RasterMetadata, pages: Sequence[PageMetadata]) -> FieldDescriptor:
    if not is_well_formed_rect(field.rect):
        raise MissingGeometry(f"Field '{field.id}' has a malformed rect: {field.rect!r}", field_id=field.id)
    if not 0 <= field.page < len(pages):
        raise MissingGeometry(f"Field '{field.id}' refers to missing page {field.page}", field_id=field.id)
    if field.space is CoordinateSpace.RASTER:
        return normalize_field(field, raster, pages[field.page])
    return field


def plan_fill(
    request: FillRequest,
    pages: Sequence[PageMetadata],
    resolver: FontResolver,
    baseline_offset: float = DEFAULT_BASELINE_OFFSET,
) -> FillPlan:
    """Turn a fill request into ordered draw instructions.

    Values are visited in the request's insertion order. Problems with a single
    field are recorded as warnings and that field is skipped.
    """

    plan = FillPlan()
    for field_id, raw_value in request.values.items():
        value = ("" if raw_value is None else str(raw_value)).strip()
        if not value:
            continue
        try:
            field: Optional[FieldDescriptor] = request.field_by_id(field_id)
            if field is None:
                raise MissingGeometry(f"No field descriptor for '{field_id}'", field_id=field_id)
            page_field = _to_page_field(field, request.raster, pages)
            font = resolver.resolve(value)
            if font is None:
                raise UnresolvableFont(f"No embedded font covers the value of '{field_id}'", field_id=field_id)
            plan.instructions.extend(place_text(page_field, value, font, baseline_offset))
            plan.placed_field_ids.append(field_id)
        except (MissingGeometry, UnresolvableFont) as exc:
            logger.warning("Skipping field '%s': %s", field_id, exc)
            plan.warnings.append(FillWarning(field_id=field_id, stage=exc.stage, message=str(exc)))

    logger.info(
        "Planned %d fields (%d skipped, %d instructions)",
        len(plan.placed_field_ids),
        len(plan.warnings),
        len(plan.instructions),
    )
    return plan


__all__ = [
    "DEFAULT_BASELINE_OFFSET",
    "MAX_FONT_SIZE",
    "MIN_FONT_SIZE",
    "fit_font_size",
    "initial_font_size",
    "place_text",
    "plan_fill",
]
