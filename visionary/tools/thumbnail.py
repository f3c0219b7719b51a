"""Thumbnail encoder for the image history."""
import base64
import io
from typing import Tuple

import PIL.Image

from ..config import THUMBNAIL_MAX_SIZE, THUMBNAIL_QUALITY
from ..errors import EncodingError
from ..models import ImageState


def thumbnail_size(width: int, height: int, max_size: int = THUMBNAIL_MAX_SIZE) -> Tuple[int, int]:
    """Scale (width, height) so the longer side is at most `max_size`."""
    if width > height:
        if width > max_size:
            height = max(1, round(height * max_size / width))
            width = max_size
    elif height > max_size:
        width = max(1, round(width * max_size / height))
        height = max_size
    return width, height


def create_thumbnail(
    image: ImageState,
    max_size: int = THUMBNAIL_MAX_SIZE,
    quality: int = THUMBNAIL_QUALITY,
) -> str:
    """
    Downsample an image and re-encode it as a JPEG data URI.

    Args:
        image: Full-resolution payload
        max_size: Bound for the longer side, in pixels
        quality: JPEG quality (1-95)

    Returns:
        A `data:image/jpeg;base64,...` string small enough to persist

    Raises:
        EncodingError: the payload is empty or cannot be decoded
    """
    if not image.data:
        raise EncodingError("Could not create a thumbnail: the image is empty.")

    try:
        with PIL.Image.open(io.BytesIO(image.data)) as source:
            source.load()
            size = thumbnail_size(source.width, source.height, max_size)

            # JPEG has no alpha channel
            if source.mode in ("RGBA", "LA", "P"):
                rgba = source.convert("RGBA")
                frame = PIL.Image.new("RGB", rgba.size, (255, 255, 255))
                frame.paste(rgba, mask=rgba.getchannel("A"))
            else:
                frame = source.convert("RGB")

            if frame.size != size:
                frame = frame.resize(size, PIL.Image.Resampling.LANCZOS)

            buffer = io.BytesIO()
            frame.save(buffer, format="JPEG", quality=quality)
    except (PIL.UnidentifiedImageError, PIL.Image.DecompressionBombError, OSError, ValueError) as e:
        raise EncodingError(f"Could not create a thumbnail to save in history: {e}") from e

    encoded = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return f"data:image/jpeg;base64,{encoded}"
