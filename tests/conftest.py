import fitz
import pytest

from formfiller.fonts import FontAsset, ScriptTest
from formfiller.models import CoordinateSpace, DetectionResult, FieldDescriptor, FieldType

LATIN = ScriptTest(((0x0000, 0x024F),))
DEVANAGARI = ScriptTest(((0x0900, 0x097F),))


class FixedWidthFont:
    """Measures every character as half the font size wide."""

    def __init__(self, name: str = "Fixed") -> None:
        self.name = name
        self.calls = 0

    def text_width(self, text, size):
        self.calls += 1
        return len(text) * size * 0.5

    def ascent(self, size):
        return size * 0.8

    def descent(self, size):
        return -size * 0.2


class StaticDetector:
    def __init__(self, fields):
        self.fields = list(fields)
        self.calls = []

    def detect(self, page_image, raster):
        self.calls.append((page_image, raster))
        return DetectionResult(fields=list(self.fields), raster=raster)


def make_field(field_id, rect, label="Name", space=CoordinateSpace.RASTER, page=0):
    return FieldDescriptor(id=field_id, label=label, type=FieldType.TEXT, rect=tuple(rect), space=space, page=page)


@pytest.fixture
def latin_font():
    return FontAsset.from_builtin("helv", LATIN, name="NotoSans")


@pytest.fixture
def blank_pdf():
    document = fitz.open()
    document.new_page(width=612, height=792)
    data = document.tobytes()
    document.close()
    return data


@pytest.fixture
def png_image():
    pixmap = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 200, 100), False)
    pixmap.set_rect(pixmap.irect, (255, 255, 255))
    return pixmap.tobytes("png")
