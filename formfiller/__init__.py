"""FormFiller package."""

from .config import Settings
from .compositor import DocumentCompositor
from .detection import DetectorKind, build_detector, detect_fields
from .errors import (
	CompositionFailure,
	CoordinateSpaceError,
	DetectionFailure,
	FormFillerError,
	MissingGeometry,
	PersistenceFailure,
	UnresolvableFont,
)
from .fonts import FONT_PRIORITY, FontAsset, FontResolver, load_font_assets
from .geometry import normalize_field, to_page_space, to_raster_space
from .models import (
	CoordinateSpace,
	DetectionResult,
	FieldDescriptor,
	FieldType,
	FillRequest,
	FillResult,
	FillWarning,
	HighlightInstruction,
	PageMetadata,
	RasterMetadata,
	TextInstruction,
)
from .parser import OcrFieldDetector
from .pipeline import FormFillingService, UploadedForm
from .placement import fit_font_size, plan_fill
from .storage import LocalArtifactStore, S3ArtifactStore
from .vision import VisionFieldDetector

__all__ = [
	"CompositionFailure",
	"CoordinateSpace",
	"CoordinateSpaceError",
	"DetectionFailure",
	"DetectionResult",
	"DetectorKind",
	"DocumentCompositor",
	"FONT_PRIORITY",
	"FieldDescriptor",
	"FieldType",
	"FillRequest",
	"FillResult",
	"FillWarning",
	"FontAsset",
	"FontResolver",
	"FormFillerError",
	"FormFillingService",
	"HighlightInstruction",
	"LocalArtifactStore",
	"MissingGeometry",
	"OcrFieldDetector",
	"PageMetadata",
	"PersistenceFailure",
	"RasterMetadata",
	"S3ArtifactStore",
	"Settings",
	"TextInstruction",
	"UnresolvableFont",
	"UploadedForm",
	"VisionFieldDetector",
	"build_detector",
	"detect_fields",
	"fit_font_size",
	"load_font_assets",
	"normalize_field",
	"plan_fill",
	"to_page_space",
	"to_raster_space",
]
