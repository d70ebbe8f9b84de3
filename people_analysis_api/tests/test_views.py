"""
Unit tests for the list and overlay views, and the PNG renderer.
"""

import io

import pytest
from PIL import Image

from people_analysis_api.exceptions import InvalidImageError
from people_analysis_api.palette import get_color
from people_analysis_api.renderer import render_annotated_image
from people_analysis_api.validator import validate_analysis_payload
from people_analysis_api.views import build_overlay_boxes, build_person_cards


@pytest.fixture
def result(sample_payload):
    return validate_analysis_payload(sample_payload)


class TestViews:
    """Tests for build_person_cards and build_overlay_boxes."""

    def test_card_and_box_share_colour(self, result):
        cards = build_person_cards(result)
        boxes = build_overlay_boxes(result)

        for card, box in zip(cards, boxes):
            assert card.id == box.id
            assert card.color == box.color == get_color(card.id)

    def test_tags_use_display_name(self, result):
        cards = build_person_cards(result)

        assert [c.tag for c in cards] == ["#1 Person 1", "#2 Famous Actor"]

    def test_highlighted_box_is_filled(self, result):
        boxes = build_overlay_boxes(result, highlighted_id=2)

        assert boxes[0].fill == "transparent"
        assert boxes[1].highlighted
        assert boxes[1].fill == get_color(2) + "33"

    def test_no_result(self):
        assert build_person_cards(None) == []
        assert build_overlay_boxes(None) == []


class TestRenderer:
    """Tests for render_annotated_image."""

    def test_returns_png_of_same_size(self, result, png_bytes):
        png = render_annotated_image(png_bytes, result.people, highlighted_id=1)

        rendered = Image.open(io.BytesIO(png))
        assert rendered.format == "PNG"
        assert rendered.size == (200, 100)

    def test_draws_box_outline_in_person_colour(self, result, png_bytes):
        png = render_annotated_image(png_bytes, result.people[:1])

        rendered = Image.open(io.BytesIO(png)).convert("RGB")
        # Left edge of person 1's box (xmin=100 -> x=20, ymin..ymax -> y=10..30)
        assert rendered.getpixel((20, 25)) == (0xEF, 0x44, 0x44)

    def test_invalid_image(self, result):
        with pytest.raises(InvalidImageError):
            render_annotated_image(b"not an image", result.people)
