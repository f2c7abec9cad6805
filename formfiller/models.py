"""Data models for FormFiller."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

Rect = Tuple[float, float, float, float]
RGB = Tuple[float, float, float]

HIGHLIGHT_COLOR: RGB = (1.0, 1.0, 0.4)
TEXT_COLOR: RGB = (0.0, 0.0, 0.0)


class FieldType(str, Enum):
    """Enumeration of supported field types."""

    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    TEL = "tel"
    DATE = "date"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    SIGNATURE = "signature"

    @classmethod
    def parse(cls, raw: Any) -> Optional["FieldType"]:
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        normalized = raw.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


class CoordinateSpace(str, Enum):
    """Which coordinate system a rectangle is expressed in."""

    RASTER = "raster"
    PAGE = "page"


@dataclass(frozen=True)
class RasterMetadata:
    """Pixel size of the rendered page image."""

    height: int
    width: int

    def to_dict(self) -> Dict[str, int]:
        return {"height": self.height, "width": self.width}


@dataclass(frozen=True)
class PageMetadata:
    """Native page size in points."""

    width: float
    height: float


@dataclass(frozen=True)
class FieldDescriptor:
    """One detected interactive region of a form page."""

    id: str
    label: str
    type: FieldType
    rect: Tuple[Any, ...]
    space: CoordinateSpace = CoordinateSpace.RASTER
    required: bool = False
    page: int = 0
    original_label: Optional[str] = None

    def with_label(self, label: str) -> "FieldDescriptor":
        """Return a copy carrying a rewritten label; id and rect are untouched."""

        original = self.original_label if self.original_label is not None else self.label
        return replace(self, label=label, original_label=original)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "rect": list(self.rect),
            "required": self.required,
            "page": self.page,
            "space": self.space.value,
        }
        if self.original_label is not None:
            payload["originalLabel"] = self.original_label
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldDescriptor":
        raw_rect = data.get("rect")
        rect = tuple(raw_rect) if isinstance(raw_rect, (list, tuple)) else ()
        space = data.get("space", CoordinateSpace.RASTER.value)
        try:
            page = int(data.get("page", 0) or 0)
        except (TypeError, ValueError):
            page = 0
        original_label = data.get("originalLabel")
        return cls(
            id=str(data.get("id", "")),
            label=str(data.get("label", "")),
            type=FieldType.parse(data.get("type")) or FieldType.TEXT,
            rect=rect,
            space=CoordinateSpace(space),
            required=bool(data.get("required", False)),
            page=page,
            original_label=str(original_label) if original_label is not None else None,
        )


@dataclass(frozen=True)
class DetectionResult:
    """Fields found on a page plus the raster metadata they are expressed in."""

    fields: List[FieldDescriptor]
    raster: RasterMetadata
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": [f.to_dict() for f in self.fields],
            "imageHeight": self.raster.height,
            "imageWidth": self.raster.width,
        }


@dataclass(frozen=True)
class FillRequest:
    """User values keyed by field id, together with the detection context."""

    fields: Sequence[FieldDescriptor]
    values: Mapping[str, str]
    raster: RasterMetadata

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "FillRequest":
        fields = [FieldDescriptor.from_dict(item) for item in payload.get("fields") or [] if isinstance(item, Mapping)]
        values: Dict[str, str] = {}
        for key, value in (payload.get("values") or {}).items():
            values[str(key)] = "" if value is None else str(value)
        raster_raw = payload.get("rasterMeta") or {}
        raster = RasterMetadata(height=int(raster_raw["height"]), width=int(raster_raw["width"]))
        return cls(fields=fields, values=values, raster=raster)

    def field_by_id(self, field_id: str) -> Optional[FieldDescriptor]:
        for candidate in self.fields:
            if candidate.id == field_id:
                return candidate
        return None


@dataclass(frozen=True)
class HighlightInstruction:
    """Filled rectangle drawn behind a text run. Page space."""

    page: int
    rect: Rect
    color: RGB = HIGHLIGHT_COLOR


@dataclass(frozen=True)
class TextInstruction:
    """A run of text anchored at its baseline origin. Page space."""

    page: int
    origin: Tuple[float, float]
    text: str
    font_name: str
    font_size: float
    color: RGB = TEXT_COLOR


DrawInstruction = Union[HighlightInstruction, TextInstruction]


@dataclass(frozen=True)
class FillWarning:
    """A per-field problem that was skipped rather than raised."""

    field_id: str
    stage: str
    message: str


@dataclass
class FillPlan:
    instructions: List[DrawInstruction] = field(default_factory=list)
    warnings: List[FillWarning] = field(default_factory=list)
    placed_field_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FillResult:
    document_bytes: bytes
    download_location: str
    artifact_name: str
    warnings: Tuple[FillWarning, ...] = ()


__all__ = [
    "CoordinateSpace",
    "DetectionResult",
    "DrawInstruction",
    "FieldDescriptor",
    "FieldType",
    "FillPlan",
    "FillRequest",
    "FillResult",
    "FillWarning",
    "HighlightInstruction",
    "PageMetadata",
    "RasterMetadata",
    "Rect",
    "TextInstruction",
]
