"""Normalize incoming image payloads into the bytes + MIME shape Gemini expects."""

import base64
import binascii
import logging
import re
from dataclasses import dataclass

from src.tools.story.errors import ErrorKind, PipelineError

logger = logging.getLogger(__name__)

# Gemini accepts the common raster formats under a single declared type.
CANONICAL_MIME_TYPE = "image/jpeg"

_DATA_URI_PREFIX = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")


@dataclass(frozen=True)
class ImagePayload:
    """Binary image plus the MIME type sent to the model."""

    data: bytes
    mime_type: str = CANONICAL_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


def strip_data_uri(image_data: str) -> str:
    """Remove a data:image/<subtype>;base64, prefix if present."""
    return _DATA_URI_PREFIX.sub("", image_data.strip(), count=1)


def adapt_image_payload(
    image: bytes | bytearray | str,
    max_bytes: int | None = None,
) -> ImagePayload:
    """
    Turn a data URI, base64 string or raw bytes into an ImagePayload.

    Args:
        image: Image bytes, base64 string, or data URL
        max_bytes: Optional size ceiling for the decoded image

    Returns:
        ImagePayload with canonical MIME type

    Raises:
        PipelineError: INVALID_IMAGE_DATA if the image is empty, undecodable
            or larger than max_bytes
    """
    if isinstance(image, str):
        encoded = "".join(strip_data_uri(image).split())
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise PipelineError(ErrorKind.INVALID_IMAGE_DATA, "Image data is not valid base64")
    elif isinstance(image, (bytes, bytearray)):
        data = bytes(image)
    else:
        raise PipelineError(
            ErrorKind.INVALID_IMAGE_DATA,
            f"Unsupported image payload type: {type(image).__name__}",
        )

    if not data:
        raise PipelineError(ErrorKind.INVALID_IMAGE_DATA, "Image data is empty")

    if max_bytes is not None and len(data) > max_bytes:
        raise PipelineError(
            ErrorKind.INVALID_IMAGE_DATA,
            f"Image too large ({len(data)} bytes, max {max_bytes})",
        )

    logger.debug(f"[STORY] Image payload ready ({len(data)} bytes)")
    return ImagePayload(data=data)
