"""Conversion between raster pixel space and document page space.

Raster space has its origin at the top-left corner with y growing downward.
Page space has its origin at the bottom-left corner with y growing upward.
Both axes are scaled independently, then the y axis is flipped.
"""

from __future__ import annotations

import math
from dataclasses import replace
from numbers import Real
from typing import Any, Sequence, Tuple

from .errors import CoordinateSpaceError
from .models import CoordinateSpace, FieldDescriptor, PageMetadata, RasterMetadata, Rect


def is_well_formed_rect(rect: Any) -> bool:
    """True when ``rect`` holds exactly four finite numbers."""

    if not isinstance(rect, (list, tuple)) or len(rect) != 4:
        return False
    for value in rect:
        if isinstance(value, bool) or not isinstance(value, Real):
            return False
        if not math.isfinite(float(value)):
            return False
    return True


def normalize_rect(rect: Sequence[float]) -> Rect:
    """Return ``(left, bottom_or_top, right, top_or_bottom)`` with ordered corners."""

    x0, y0, x1, y1 = (float(v) for v in rect)
    return (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))


def rect_size(rect: Sequence[float]) -> Tuple[float, float]:
    x0, y0, x1, y1 = (float(v) for v in rect)
    return abs(x1 - x0), abs(y1 - y0)


def _scales(raster: RasterMetadata, page: PageMetadata) -> Tuple[float, float]:
    if raster.width <= 0 or raster.height <= 0:
        raise ValueError(f"Raster dimensions must be positive, got {raster.width}x{raster.height}")
    return page.width / raster.width, page.height / raster.height


def to_page_space(rect: Sequence[float], raster: RasterMetadata, page: PageMetadata) -> Rect:
    """Scale a raster rectangle into page units and flip its y axis.

    Corner order is kept as given, so the result usually has ``y1 < y0``.
    """

    scale_x, scale_y = _scales(raster, page)
    x0, y0, x1, y1 = (float(v) for v in rect)
    return (
        x0 * scale_x,
        page.height - y0 * scale_y,
        x1 * scale_x,
        page.height - y1 * scale_y,
    )


def to_raster_space(rect: Sequence[float], raster: RasterMetadata, page: PageMetadata) -> Rect:
    """Inverse of :func:`to_page_space`."""

    scale_x, scale_y = _scales(raster, page)
    x0, y0, x1, y1 = (float(v) for v in rect)
    return (
        x0 / scale_x,
        (page.height - y0) / scale_y,
        x1 / scale_x,
        (page.height - y1) / scale_y,
    )


def normalize_field(field: FieldDescriptor, raster: RasterMetadata, page: PageMetadata) -> FieldDescriptor:
    """Move a raster-tagged descriptor into page space.

    Raises CoordinateSpaceError for descriptors already in page space so a
    rectangle is never flipped twice.
    """

    if field.space is not CoordinateSpace.RASTER:
        raise CoordinateSpaceError(f"Field '{field.id}' is already in {field.space.value} space")
    return replace(field, rect=to_page_space(field.rect, raster, page), space=CoordinateSpace.PAGE)


__all__ = [
    "is_well_formed_rect",
    "normalize_field",
    "normalize_rect",
    "rect_size",
    "to_page_space",
    "to_raster_space",
]
