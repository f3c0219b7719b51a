"""Lazy access to the Gemini models used by the tools and subagents."""
import base64
import logging
from typing import Optional

import google.generativeai as genai

from .. import config
from ..models import ImageState

logger = logging.getLogger(__name__)

# Edits are user-directed; the model's default filters reject too much
SAFETY_SETTINGS = {
    "HARM_CATEGORY_HATE_SPEECH": "BLOCK_NONE",
    "HARM_CATEGORY_DANGEROUS_CONTENT": "BLOCK_NONE",
    "HARM_CATEGORY_HARASSMENT": "BLOCK_NONE",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT": "BLOCK_NONE",
}

_configured = False
_image_model: Optional[genai.GenerativeModel] = None
_text_model: Optional[genai.GenerativeModel] = None


def _configure():
    global _configured
    if _configured:
        return
    api_key = config.get_api_key()
    if not api_key:
        raise ValueError("GOOGLE_API_KEY or GEMINI_API_KEY environment variable must be set")
    genai.configure(api_key=api_key)
    _configured = True


def get_image_model() -> genai.GenerativeModel:
    """Get the image generation model, configuring the SDK on first use."""
    global _image_model
    if _image_model is None:
        _configure()
        logger.info("Using image model %s", config.IMAGE_MODEL)
        _image_model = genai.GenerativeModel(config.IMAGE_MODEL, safety_settings=SAFETY_SETTINGS)
    return _image_model


def get_text_model() -> genai.GenerativeModel:
    """Get the JSON-mode text model used for suggestions and refinements."""
    global _text_model
    if _text_model is None:
        _configure()
        logger.info("Using text model %s", config.TEXT_MODEL)
        _text_model = genai.GenerativeModel(
            config.TEXT_MODEL,
            generation_config={"response_mime_type": "application/json"},
        )
    return _text_model


async def generate_with_image_output(content_parts) -> ImageState:
    """Call the image model and return the first inline image it produced."""
    model = get_image_model()
    try:
        response = await model.generate_content_async(
            content_parts,
            generation_config={"response_modalities": ["TEXT", "IMAGE"]},
        )
    except (TypeError, ValueError):
        # Older SDK releases reject response_modalities in generation_config
        response = await model.generate_content_async(content_parts)

    image = extract_image(response)
    if image is None:
        raise RuntimeError("No media was returned from the model.")
    return image


def extract_image(response) -> Optional[ImageState]:
    """Pull the first inline image part out of a generate_content response."""
    if hasattr(response, "candidates") and response.candidates:
        candidate = response.candidates[0]
        if hasattr(candidate, "content") and candidate.content:
            for part in candidate.content.parts:
                if hasattr(part, "inline_data") and part.inline_data and part.inline_data.data:
                    image_data = part.inline_data.data
                    if isinstance(image_data, str):
                        image_data = base64.b64decode(image_data)
                    mime_type = part.inline_data.mime_type or "image/png"
                    return ImageState(data=image_data, mime_type=mime_type)
    return None


def response_text(response) -> str:
    """Concatenate the text parts of a generate_content response."""
    message = ""
    if hasattr(response, "candidates") and response.candidates:
        candidate = response.candidates[0]
        if hasattr(candidate, "content") and candidate.content:
            for part in candidate.content.parts:
                if hasattr(part, "text") and part.text:
                    message += part.text
    return message
