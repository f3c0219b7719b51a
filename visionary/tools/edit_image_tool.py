"""Image editing (in-painting) tool."""
import logging

from .gemini import generate_with_image_output
from ..models import ImageState

logger = logging.getLogger(__name__)

EDIT_INSTRUCTION_TEMPLATE = (
    "You are an expert at in-painting and image modification. Your task is to apply "
    "a specific edit to the provided image based on the user's request. Preserve the "
    "original image's composition, style, and subject as much as possible, only "
    "changing what is explicitly requested.\n"
    "IMPORTANT: If there is any text in the image, you must preserve its font, style, "
    "and legibility unless the prompt explicitly asks to change it. The user's "
    'instruction for the edit is: "{edit_prompt}"'
)


def build_edit_instruction(edit_prompt: str) -> str:
    """Wrap a user's edit request in the preservation directive."""
    return EDIT_INSTRUCTION_TEMPLATE.format(edit_prompt=edit_prompt)


async def edit_image_compute(image: ImageState, edit_prompt: str) -> ImageState:
    """
    Apply a text instruction to an existing image.

    Args:
        image: Base image to edit
        edit_prompt: Text description of desired edits

    Returns:
        The edited image payload
    """
    content_parts = [
        {"mime_type": image.mime_type, "data": image.data},
        build_edit_instruction(edit_prompt),
    ]
    edited = await generate_with_image_output(content_parts)
    logger.info("[edit_image_compute] Edited image: %d bytes of %s", len(edited.data), edited.mime_type)
    return edited
