"""Text-to-image generation tool."""
import logging
import uuid

from .gemini import generate_with_image_output
from ..models import ImageState

logger = logging.getLogger(__name__)


async def generate_image_compute(prompt: str) -> ImageState:
    """
    Generate one image from a text prompt.

    Args:
        prompt: Text prompt describing the image

    Returns:
        The generated image payload

    Raises:
        RuntimeError: the model answered without an image
        google.api_core.exceptions.GoogleAPIError: transport or quota failure
    """
    request_id = str(uuid.uuid4())[:8]
    logger.info("[generate_image_compute] Starting generation %s", request_id)

    image = await generate_with_image_output(prompt)

    logger.info(
        "[generate_image_compute] Generation %s returned %d bytes of %s",
        request_id, len(image.data), image.mime_type,
    )
    return image
