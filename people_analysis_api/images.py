"""
Image intake helpers.

Uploads arrive either as raw bytes (multipart) or as base64 strings, possibly
in data-URL form (``data:image/jpeg;base64,...``). Both are normalised into an
``ImagePayload`` before they are handed to the analyzer.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Optional

from people_analysis_api.config import config
from people_analysis_api.exceptions import InvalidImageError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,", re.IGNORECASE)


@dataclass(frozen=True)
class ImagePayload:
    """Decoded image bytes together with their MIME type."""

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def check_image(data: bytes, mime_type: Optional[str], max_bytes: Optional[int] = None) -> ImagePayload:
    """
    Check that raw bytes are an acceptable image upload.

    Raises:
        InvalidImageError: If the MIME type is not image/* or the file is empty or too big
    """
    limit = config.MAX_IMAGE_BYTES if max_bytes is None else max_bytes

    if not mime_type or not mime_type.lower().startswith("image/"):
        raise InvalidImageError("Only image files can be analysed")

    if not data:
        raise InvalidImageError("Image data is empty")

    if len(data) > limit:
        raise InvalidImageError(f"Image is larger than {limit // (1024 * 1024)}MB")

    return ImagePayload(data=data, mime_type=mime_type.lower())


def decode_image_payload(
    image_base64: str,
    mime_type: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> ImagePayload:
    """
    Decode a base64 (or data URL) image string.

    Args:
        image_base64: Base64 content, with or without a data URL prefix
        mime_type: MIME type; taken from the data URL when omitted
        max_bytes: Size limit, defaults to config.MAX_IMAGE_BYTES

    Returns:
        ImagePayload with the decoded bytes

    Raises:
        InvalidImageError: If the string cannot be decoded or is not an image
    """
    if not image_base64:
        raise InvalidImageError("image_base64 is required")

    match = _DATA_URL_RE.match(image_base64)
    if match:
        mime_type = mime_type or match.group("mime")
        image_base64 = image_base64[match.end():]

    try:
        data = base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageError("Invalid base64 image data")

    payload = check_image(data, mime_type, max_bytes=max_bytes)
    logger.debug(f"Decoded {payload.size} byte {payload.mime_type} image")
    return payload
