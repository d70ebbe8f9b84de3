"""
Coordinate mapping for detection overlays.

Gemini returns boxes on a 0-1000 grid regardless of the image size. The
overlay is positioned in percentages of its container, so the mapping never
needs to know the pixel dimensions of the image; the browser (or the
renderer, via ``box_to_pixels``) does the final scaling.
"""

from people_analysis_api.models import GRID_SIZE, BoundingBox, BoxStyle

# Grid units per percent of the rendering surface.
_UNITS_PER_PERCENT = GRID_SIZE / 100


def box_to_percentages(box: BoundingBox) -> BoxStyle:
    """
    Convert a normalized box to a percentage rectangle.

    Args:
        box: Bounding box on the 0-1000 grid

    Returns:
        BoxStyle with top/left/height/width in percent of the surface
    """
    return BoxStyle(
        top=box.ymin / _UNITS_PER_PERCENT,
        left=box.xmin / _UNITS_PER_PERCENT,
        height=(box.ymax - box.ymin) / _UNITS_PER_PERCENT,
        width=(box.xmax - box.xmin) / _UNITS_PER_PERCENT,
    )


def box_to_pixels(box: BoundingBox, width: int, height: int) -> tuple[float, float, float, float]:
    """
    Convert a normalized box to pixel corners ``(x1, y1, x2, y2)`` for an
    image of the given size.
    """
    return (
        box.xmin / GRID_SIZE * width,
        box.ymin / GRID_SIZE * height,
        box.xmax / GRID_SIZE * width,
        box.ymax / GRID_SIZE * height,
    )
