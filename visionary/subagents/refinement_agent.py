"""Sub-agent that expands a short prompt into tiers of refined prompts."""
import logging

import pydantic

from ..models import PromptRefinements
from ..tools.gemini import get_text_model, response_text

logger = logging.getLogger(__name__)

REFINEMENT_INSTRUCTION = """
You are a world-class prompt refinement assistant for **hyper-realistic** image
generation. Photorealism is the absolute priority.

The user's idea is: "{prompt}"

Derive THREE distinct creative scenarios from the idea. For each scenario write
one prompt at each of three refinement levels:

1. **basic**: one clear sentence describing the scene, using professional
   photography terms such as "photorealistic", "8K", "sharp focus" and
   "cinematic lighting".

2. **intermediate**: the basic description followed by a bulleted list of
   specifications: COMPOSITION (rule of thirds, leading lines), LIGHTING
   (golden hour, volumetric rays), ATMOSPHERE, VISUAL ELEMENTS and MOOD.

3. **advanced**: the intermediate description plus an
   "ADVANCED PHOTOGRAPHY DETAILS" section naming CAMERA (e.g. Sony A7R IV),
   LENS (e.g. 85mm f/1.2), SHOOTING_STYLE and AESTHETICS.

Give every prompt a short descriptive title, e.g. "Dragon Emerging from Ocean Surface".

**RESPONSE FORMAT**:
A single JSON object with the keys "basic", "intermediate" and "advanced".
Each value is an array of exactly 3 objects with "title" and "description".
"""


def build_refinement_prompt(prompt: str) -> str:
    return REFINEMENT_INSTRUCTION.format(prompt=prompt)


async def refine_prompt(prompt: str) -> PromptRefinements:
    """Ask the text model for basic, intermediate and advanced refinements."""
    model = get_text_model()
    response = await model.generate_content_async(build_refinement_prompt(prompt))
    text = response_text(response)
    try:
        return PromptRefinements.model_validate_json(text)
    except pydantic.ValidationError as e:
        logger.debug("Unexpected refinement payload: %s", text)
        raise RuntimeError(f"The model returned malformed refinements: {e.error_count()} error(s)") from e
