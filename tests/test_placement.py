import math

import pytest

from formfiller.fonts import FontAsset, FontResolver
from formfiller.models import (
    CoordinateSpace,
    FillRequest,
    HighlightInstruction,
    PageMetadata,
    RasterMetadata,
    TextInstruction,
)
from formfiller.placement import (
    MAX_FONT_SIZE,
    MIN_FONT_SIZE,
    fit_font_size,
    initial_font_size,
    place_text,
    plan_fill,
)

from conftest import DEVANAGARI, FixedWidthFont, make_field

RASTER = RasterMetadata(height=1000, width=800)
LETTER = PageMetadata(width=612, height=792)


class TestFitFontSize:
    @pytest.mark.parametrize("height,expected", [(30, 14.0), (10, 8.0), (2, 6.0)])
    def test_initial_size(self, height, expected):
        assert initial_font_size(height) == pytest.approx(expected)

    def test_short_value_keeps_initial_size(self):
        size, width = fit_font_size(FixedWidthFont(), "Name", 300, 30)
        assert size == MAX_FONT_SIZE
        assert width == pytest.approx(28.0)

    def test_shrinks_until_it_fits(self):
        size, width = fit_font_size(FixedWidthFont(), "A" * 10, 54, 30)
        assert width <= 50
        assert size == 10.0

    def test_stops_at_floor_even_when_overflowing(self):
        size, width = fit_font_size(FixedWidthFont(), "A very long value that cannot fit", 20, 30)
        assert size == MIN_FONT_SIZE
        assert width > 16

    @pytest.mark.parametrize("box_width", [10, 17.5, 40, 120, 400])
    @pytest.mark.parametrize("box_height", [5, 12.3, 17.1, 30, 90])
    @pytest.mark.parametrize("value", ["x", "Name", "Priya Singh", "W" * 60])
    def test_terminates_within_bound(self, box_width, box_height, value):
        font = FixedWidthFont()
        start = initial_font_size(box_height)
        size, width = fit_font_size(font, value, box_width, box_height)
        steps = font.calls - 1
        assert steps <= math.ceil((start - MIN_FONT_SIZE) / 0.5)
        assert MIN_FONT_SIZE <= size <= MAX_FONT_SIZE
        assert width <= box_width - 4 or size == MIN_FONT_SIZE


class TestPlaceText:
    def test_highlight_comes_before_text(self):
        field = make_field("field_1", (76.5, 712.8, 306.0, 689.04), space=CoordinateSpace.PAGE)
        highlight, text = place_text(field, "Name", FixedWidthFont())
        assert isinstance(highlight, HighlightInstruction)
        assert isinstance(text, TextInstruction)

    def test_text_is_centred_and_anchored_below_top(self):
        field = make_field("field_1", (76.5, 712.8, 306.0, 689.04), space=CoordinateSpace.PAGE)
        highlight, text = place_text(field, "Name", FixedWidthFont(), baseline_offset=7.5)
        x, y = text.origin
        width = 4 * text.font_size * 0.5
        assert x + width / 2 == pytest.approx((76.5 + 306.0) / 2)
        assert y == pytest.approx(712.8 - 7.5)
        assert highlight.rect[0] == pytest.approx(x)
        assert highlight.rect[2] == pytest.approx(x + width)
        assert highlight.rect[1] < y < highlight.rect[3]


class TestPlanFill:
    def _resolver(self, latin_font):
        return FontResolver([latin_font])

    def test_letter_page_scenario(self, latin_font):
        request = FillRequest(
            fields=[make_field("field_1", (100, 100, 400, 130))],
            values={"field_1": "Name"},
            raster=RASTER,
        )
        plan = plan_fill(request, [LETTER], self._resolver(latin_font))

        assert plan.warnings == []
        assert plan.placed_field_ids == ["field_1"]
        highlight, text = plan.instructions
        assert isinstance(highlight, HighlightInstruction)
        assert isinstance(text, TextInstruction)
        assert MIN_FONT_SIZE <= text.font_size <= MAX_FONT_SIZE
        assert text.font_name == "NotoSans"
        width = latin_font.text_width("Name", text.font_size)
        assert text.origin[0] + width / 2 == pytest.approx((76.5 + 306.0) / 2)
        assert text.origin[1] == pytest.approx(712.8 - 7.5)

    def test_page_space_field_is_not_flipped_again(self, latin_font):
        raster_field = make_field("field_1", (100, 100, 400, 130))
        page_field = make_field("field_1", (76.5, 712.8, 306.0, 689.04), space=CoordinateSpace.PAGE)
        resolver = self._resolver(latin_font)
        from_raster = plan_fill(FillRequest([raster_field], {"field_1": "Name"}, RASTER), [LETTER], resolver)
        from_page = plan_fill(FillRequest([page_field], {"field_1": "Name"}, RASTER), [LETTER], resolver)
        assert from_page.instructions[1].origin == pytest.approx(from_raster.instructions[1].origin)

    def test_invalid_id_is_skipped_not_raised(self, latin_font):
        fields = [
            make_field("field_1", (100, 100, 400, 130)),
            make_field("field_2", (100, 200, 400, 230)),
            make_field("field_3", (100, 300, 400, 330)),
        ]
        values = {"field_1": "Asha", "missing": "Ghost", "field_2": "42"}
        plan = plan_fill(FillRequest(fields, values, RASTER), [LETTER], self._resolver(latin_font))

        texts = [i.text for i in plan.instructions if isinstance(i, TextInstruction)]
        assert texts == ["Asha", "42"]
        assert len(plan.instructions) == 4
        assert [(w.field_id, w.stage) for w in plan.warnings] == [("missing", "geometry")]

    def test_follows_request_order(self, latin_font):
        fields = [make_field("a", (100, 100, 400, 130)), make_field("b", (100, 200, 400, 230))]
        plan = plan_fill(FillRequest(fields, {"b": "second", "a": "first"}, RASTER), [LETTER], self._resolver(latin_font))
        assert plan.placed_field_ids == ["b", "a"]

    def test_blank_values_are_ignored(self, latin_font):
        fields = [make_field("field_1", (100, 100, 400, 130))]
        plan = plan_fill(FillRequest(fields, {"field_1": "   ", "other": ""}, RASTER), [LETTER], self._resolver(latin_font))
        assert plan.instructions == []
        assert plan.warnings == []

    @pytest.mark.parametrize("rect", [(100, 100, 400), (100, "a", 400, 130), ()])
    def test_malformed_rect_is_skipped(self, latin_font, rect):
        fields = [make_field("field_1", rect), make_field("field_2", (100, 200, 400, 230))]
        plan = plan_fill(FillRequest(fields, {"field_1": "x", "field_2": "y"}, RASTER), [LETTER], self._resolver(latin_font))
        assert plan.placed_field_ids == ["field_2"]
        assert plan.warnings[0].field_id == "field_1"
        assert plan.warnings[0].stage == "geometry"

    def test_unknown_page_is_skipped(self, latin_font):
        fields = [make_field("field_1", (100, 100, 400, 130), page=3)]
        plan = plan_fill(FillRequest(fields, {"field_1": "x"}, RASTER), [LETTER], self._resolver(latin_font))
        assert plan.instructions == []
        assert plan.warnings[0].stage == "geometry"

    def test_unfonted_value_is_skipped(self):
        resolver = FontResolver([FontAsset.from_builtin("helv", DEVANAGARI, name="NotoSansDevanagari")])
        fields = [make_field("field_1", (100, 100, 400, 130)), make_field("field_2", (100, 200, 400, 230))]
        plan = plan_fill(FillRequest(fields, {"field_1": "Latin", "field_2": "नाम"}, RASTER), [LETTER], resolver)
        assert plan.placed_field_ids == ["field_2"]
        assert [(w.field_id, w.stage) for w in plan.warnings] == [("field_1", "font")]
