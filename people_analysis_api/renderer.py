"""
Server-side overlay rendering.

Draws the same boxes the browser overlay shows directly onto the image with
Pillow, for clients that want a flat annotated picture.
"""

import io
import logging
from typing import Iterable, Optional

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from people_analysis_api.exceptions import InvalidImageError
from people_analysis_api.geometry import box_to_pixels
from people_analysis_api.models import PersonProfile
from people_analysis_api.palette import hex_to_rgb, get_color
from people_analysis_api.views import person_tag

logger = logging.getLogger(__name__)

FONT_PATH = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"

# Fill opacity of the highlighted box (0-255)
HIGHLIGHT_FILL_ALPHA = 51


def _load_font(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype(FONT_PATH, size)
    except OSError:
        return ImageFont.load_default()


def render_annotated_image(
    image_bytes: bytes,
    people: Iterable[PersonProfile],
    highlighted_id: Optional[int] = None,
) -> bytes:
    """
    Draw coloured bounding boxes and label tags on an image.

    Args:
        image_bytes: Original image data
        people: People to draw, with boxes on the 0-1000 grid
        highlighted_id: Person drawn with a thicker outline and a tinted fill

    Returns:
        PNG-encoded annotated image

    Raises:
        InvalidImageError: If the bytes cannot be opened as an image
    """
    try:
        img = Image.open(io.BytesIO(image_bytes)).convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError(f"Cannot open image for annotation: {e}")

    width, height = img.size
    overlay = Image.new("RGBA", img.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    line_width = max(2, round(min(width, height) / 250))
    font = _load_font(max(12, round(min(width, height) / 40)))

    # Highlighted person last so it sits on top
    ordered = sorted(people, key=lambda p: p.id == highlighted_id)

    for person in ordered:
        rgb = hex_to_rgb(get_color(person.id))
        highlighted = person.id == highlighted_id
        x1, y1, x2, y2 = box_to_pixels(person.box_2d, width, height)

        fill = rgb + (HIGHLIGHT_FILL_ALPHA,) if highlighted else None
        outline_width = line_width + 1 if highlighted else line_width
        draw.rectangle([x1, y1, x2, y2], outline=rgb + (255,), width=outline_width, fill=fill)

        # Label tag above the box, or inside it at the top edge
        label_text = person_tag(person)
        text_bbox = draw.textbbox((0, 0), label_text, font=font)
        text_w = text_bbox[2] - text_bbox[0]
        text_h = text_bbox[3] - text_bbox[1]
        text_padding = 4
        tag_top = y1 - text_h - 2 * text_padding
        if tag_top < 0:
            tag_top = y1
        draw.rectangle(
            [x1, tag_top, x1 + text_w + 2 * text_padding, tag_top + text_h + 2 * text_padding],
            fill=rgb + (255,),
        )
        draw.text((x1 + text_padding, tag_top + text_padding - text_bbox[1]), label_text, fill="white", font=font)

    annotated = Image.alpha_composite(img, overlay)

    buffer = io.BytesIO()
    annotated.convert("RGB").save(buffer, format="PNG")
    logger.debug(f"Rendered annotated image {width}x{height} with highlight {highlighted_id}")
    return buffer.getvalue()
