"""Sub-agent that analyses an image and proposes edits."""
import logging

import pydantic

from ..models import EditSuggestions, ImageState
from ..tools.gemini import get_text_model, response_text

logger = logging.getLogger(__name__)

SUGGESTION_INSTRUCTION = """
You are an expert photo editor with an eye for holistic analysis.

First examine the whole image end to end: the main subject(s), the background,
lighting, composition, mood, and **any text that appears in the image**.

Then write specific, actionable editing prompts that another model will use to
perform the edits. Suggest targeted modifications, not complete transformations.

Return exactly three suggestions in each of three categories:

1. **creative**: imaginative but specific changes that enhance the scene, such as
   adding or modifying elements or altering the background, while keeping the
   main subject intact.
   Example title: "Add a Small Campfire"
   Example description: "Add a small, realistic campfire in the foreground with
   flickering flames and a warm glow that casts soft shadows on the subject."

2. **style**: transformations of the artistic style that keep the original
   composition recognisable.
   Example title: "Convert to a Watercolor Painting"
   Example description: "Render the entire image as a watercolor painting with
   soft, blended colors and visible brush strokes, keeping the composition and
   subjects distinct."

3. **improvements**: professional photographic enhancements to lighting, color
   balance, focus and composition.
   Example title: "Apply Golden Hour Lighting"
   Example description: "Re-render the image with warm, low-angle golden hour
   light casting long, soft shadows across the whole scene."

**RESPONSE FORMAT**:
A single JSON object with the keys "creative", "style" and "improvements".
Each value is an array of exactly 3 objects with "title" and "description".
"""


async def suggest_edits(image: ImageState) -> EditSuggestions:
    """
    Ask the text model for edit suggestions for `image`.

    Raises:
        RuntimeError: the model's answer does not match the expected schema
    """
    model = get_text_model()
    response = await model.generate_content_async(
        [{"mime_type": image.mime_type, "data": image.data}, SUGGESTION_INSTRUCTION]
    )
    text = response_text(response)
    try:
        return EditSuggestions.model_validate_json(text)
    except pydantic.ValidationError as e:
        logger.debug("Unexpected suggestion payload: %s", text)
        raise RuntimeError(f"The model returned malformed suggestions: {e.error_count()} error(s)") from e
