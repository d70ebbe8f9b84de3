"""
Colour assignment for detected people.

A person's colour is derived from its id alone, so the list card and the
overlay box of the same person always match.
"""

# A predefined palette of colors for bounding boxes
COLORS = (
    "#ef4444",  # red-500
    "#3b82f6",  # blue-500
    "#22c55e",  # green-500
    "#eab308",  # yellow-500
    "#a855f7",  # purple-500
    "#ec4899",  # pink-500
    "#f97316",  # orange-500
    "#06b6d4",  # cyan-500
)

# Hex alpha used for the fill of a highlighted box (~20% opacity)
HIGHLIGHT_ALPHA = "33"


def get_color(person_id: int, palette: tuple[str, ...] = COLORS) -> str:
    """Return the palette colour for ``person_id`` (ids start at 1)."""
    if not palette:
        raise ValueError("palette must contain at least one colour")
    if person_id < 1:
        raise ValueError(f"person id must be >= 1, got {person_id}")
    return palette[(person_id - 1) % len(palette)]


def with_alpha(color: str, alpha: str = HIGHLIGHT_ALPHA) -> str:
    """Append a hex alpha channel to a ``#rrggbb`` colour."""
    return f"{color}{alpha}"


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb`` into an RGB tuple."""
    value = color.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
