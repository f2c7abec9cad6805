"""Exceptions raised by the form filling engine."""

from __future__ import annotations

from typing import Optional


class FormFillerError(Exception):
    """Base exception for form filling errors."""

    stage = "fill"

    def __init__(self, message: str, *, field_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.field_id = field_id


class DetectionFailure(FormFillerError):
    """A detector backend call or its response parsing failed."""

    stage = "detect"


class MissingGeometry(FormFillerError):
    """A requested field has no descriptor or an unusable rectangle."""

    stage = "geometry"


class UnresolvableFont(FormFillerError):
    """No embedded font covers the script of a value."""

    stage = "font"


class CompositionFailure(FormFillerError):
    """The document could not be loaded, drawn on, or saved."""

    stage = "compose"


class PersistenceFailure(FormFillerError):
    """Uploading the filled document or issuing its location failed."""

    stage = "persist"


class CoordinateSpaceError(ValueError):
    """A rectangle was handed to a transform for the wrong coordinate space."""


__all__ = [
    "CompositionFailure",
    "CoordinateSpaceError",
    "DetectionFailure",
    "FormFillerError",
    "MissingGeometry",
    "PersistenceFailure",
    "UnresolvableFont",
]
