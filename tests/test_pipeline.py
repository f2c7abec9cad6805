import asyncio
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

import fitz
import pytest

from formfiller.config import Settings
from formfiller.errors import CompositionFailure, PersistenceFailure
from formfiller.models import CoordinateSpace, FillRequest, RasterMetadata
from formfiller.pipeline import FormFillingService
from formfiller.storage import LocalArtifactStore
from formfiller.utils import FALLBACK_RASTER

from conftest import StaticDetector, make_field


def _service(tmp_path, latin_font, detector=None, store=None):
    return FormFillingService(
        Settings(output_dir=tmp_path, render_dpi=150),
        detector=detector or StaticDetector([make_field("field_1", (250, 250, 1000, 325))]),
        store=store or LocalArtifactStore(tmp_path),
        font_loader=lambda: [latin_font],
    )


class TestDetect:
    def test_renders_page_for_detector(self, tmp_path, latin_font, blank_pdf):
        detector = StaticDetector([make_field("field_1", (250, 250, 1000, 325))])
        uploaded = asyncio.run(_service(tmp_path, latin_font, detector).detect(blank_pdf, "form.pdf"))

        assert uploaded.pdf_bytes == blank_pdf
        assert uploaded.detection.raster == RasterMetadata(height=1650, width=1275)
        assert not uploaded.detection.used_fallback
        png, raster = detector.calls[0]
        assert png.startswith(b"\x89PNG")
        assert raster == uploaded.detection.raster

    def test_unreadable_upload_falls_back(self, tmp_path, latin_font):
        detector = StaticDetector([make_field("field_1", (1, 2, 3, 4))])
        uploaded = asyncio.run(_service(tmp_path, latin_font, detector).detect(b"not a pdf", "form.pdf"))

        assert uploaded.detection.used_fallback
        assert uploaded.detection.raster == FALLBACK_RASTER
        assert [f.label for f in uploaded.detection.fields] == ["Name", "Age"]
        assert detector.calls == []

    def test_image_upload_becomes_pdf(self, tmp_path, latin_font, png_image):
        detector = StaticDetector([make_field("field_1", (10, 10, 100, 40))])
        uploaded = asyncio.run(_service(tmp_path, latin_font, detector).detect(png_image, "scan.PNG"))

        assert uploaded.pdf_bytes.startswith(b"%PDF")
        assert not uploaded.detection.used_fallback
        with fitz.open(stream=uploaded.pdf_bytes, filetype="pdf") as document:
            assert document.page_count == 1

    def test_translation_keeps_geometry(self, tmp_path, latin_font, blank_pdf):
        service = _service(tmp_path, latin_font)
        uploaded = asyncio.run(service.detect(blank_pdf, translate=lambda label: f"¿{label}?"))

        (field,) = uploaded.detection.fields
        assert field.label == "¿Name?"
        assert field.original_label == "Name"
        assert field.id == "field_1"
        assert field.rect == (250, 250, 1000, 325)

    def test_failed_translation_keeps_label(self, tmp_path, latin_font, blank_pdf):
        def broken(label):
            raise RuntimeError("translator offline")

        uploaded = asyncio.run(_service(tmp_path, latin_font).detect(blank_pdf, translate=broken))
        assert uploaded.detection.fields[0].label == "Name"
        assert uploaded.detection.fields[0].original_label is None


class TestFill:
    def _request(self, values):
        return FillRequest(
            fields=[make_field("field_1", (250, 250, 1000, 325))],
            values=values,
            raster=RasterMetadata(height=1650, width=1275),
        )

    def test_fills_and_stores(self, tmp_path, latin_font, blank_pdf):
        service = _service(tmp_path, latin_font)
        result = asyncio.run(service.fill(blank_pdf, self._request({"field_1": "Asha Rao", "ghost": "boo"})))

        with fitz.open(stream=result.document_bytes, filetype="pdf") as document:
            assert "Asha Rao" in document[0].get_text()
        stored = Path(url2pathname(urlparse(result.download_location).path))
        assert stored.name == result.artifact_name
        assert stored.read_bytes() == result.document_bytes
        assert [(w.field_id, w.stage) for w in result.warnings] == [("ghost", "geometry")]

    def test_text_lands_inside_the_field(self, tmp_path, latin_font, blank_pdf):
        result = asyncio.run(_service(tmp_path, latin_font).fill(blank_pdf, self._request({"field_1": "Asha"})))

        with fitz.open(stream=result.document_bytes, filetype="pdf") as document:
            (word,) = document[0].get_text("words")
        # Raster box (250, 250, 1000, 325) at 150 dpi is (120, 120, 480, 156) in points.
        assert 120 < word[0] < word[2] < 480
        assert word[1] < 156
        assert 120 < word[3] < 156

    def test_storage_failure_raises(self, tmp_path, latin_font, blank_pdf):
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")
        service = _service(tmp_path, latin_font, store=LocalArtifactStore(blocker))
        with pytest.raises(PersistenceFailure):
            asyncio.run(service.fill(blank_pdf, self._request({"field_1": "Asha"})))

    def test_unreadable_document_raises(self, tmp_path, latin_font):
        with pytest.raises(CompositionFailure):
            asyncio.run(_service(tmp_path, latin_font).fill(b"not a pdf", self._request({"field_1": "Asha"})))


class TestFillRequestPayload:
    def test_from_payload(self):
        request = FillRequest.from_payload(
            {
                "fields": [
                    {"id": "field_1", "label": "Name", "type": "text", "rect": [1, 2, 3, 4]},
                    {"id": "field_2", "label": "Age", "type": "weird", "rect": "oops", "space": "page"},
                ],
                "values": {"field_1": "Asha", "field_2": None},
                "rasterMeta": {"height": 1650, "width": 1275},
            }
        )
        assert request.raster == RasterMetadata(height=1650, width=1275)
        assert request.values == {"field_1": "Asha", "field_2": ""}
        assert request.field_by_id("field_1").rect == (1, 2, 3, 4)
        second = request.field_by_id("field_2")
        assert second.rect == ()
        assert second.space is CoordinateSpace.PAGE
        assert request.field_by_id("nope") is None


class TestDefaultFonts:
    def test_fills_latin_without_font_files(self, tmp_path, blank_pdf):
        service = FormFillingService(
            Settings(output_dir=tmp_path, font_dir=tmp_path / "no-fonts"),
            detector=StaticDetector([]),
        )
        request = FillRequest(
            fields=[make_field("field_1", (250, 250, 1000, 325))],
            values={"field_1": "Asha"},
            raster=RasterMetadata(height=1650, width=1275),
        )
        result = asyncio.run(service.fill(blank_pdf, request))

        assert result.warnings == ()
        with fitz.open(stream=result.document_bytes, filetype="pdf") as document:
            assert "Asha" in document[0].get_text()


class TestDownloadLocation:
    def test_reissues_location_for_stored_form(self, tmp_path, latin_font, blank_pdf):
        service = _service(tmp_path, latin_font)
        request = FillRequest(
            fields=[make_field("field_1", (250, 250, 1000, 325))],
            values={"field_1": "Asha"},
            raster=RasterMetadata(height=1650, width=1275),
        )
        result = asyncio.run(service.fill(blank_pdf, request))
        assert asyncio.run(service.download_location(result.artifact_name)) == result.download_location

    def test_unknown_form_raises(self, tmp_path, latin_font):
        with pytest.raises(PersistenceFailure):
            asyncio.run(_service(tmp_path, latin_font).download_location("filled_missing.pdf"))
