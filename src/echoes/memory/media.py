"""Photo encoding and decoding."""

import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QUALITY = 80


def encode_photo(photo: Image.Image | bytes, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Compress a photo to JPEG bytes.

    Raw bytes are stored as given; they are assumed to be an already
    compressed image.
    """
    if isinstance(photo, (bytes, bytearray)):
        return bytes(photo)

    image = photo
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def decode_photo(data: bytes | None) -> Image.Image | None:
    """Decode stored photo bytes into an image, or None if unreadable."""
    if not data:
        return None
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.debug("Could not decode photo: %s", e)
        return None
    return image
