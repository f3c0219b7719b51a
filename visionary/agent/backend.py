"""Remote capabilities consumed by the orchestrator."""
from typing import Protocol

from ..models import EditSuggestions, ImageState, PromptRefinements
from ..subagents import refine_prompt, suggest_edits
from ..tools.edit_image_tool import edit_image_compute
from ..tools.generate_image_tool import generate_image_compute


class Backend(Protocol):
    async def generate(self, prompt: str) -> ImageState: ...

    async def edit(self, image: ImageState, instruction: str) -> ImageState: ...

    async def suggest_edits(self, image: ImageState) -> EditSuggestions: ...

    async def refine_prompt(self, prompt: str) -> PromptRefinements: ...


class GeminiBackend:
    """Backend that delegates to the Gemini compute tools and sub-agents."""

    async def generate(self, prompt: str) -> ImageState:
        return await generate_image_compute(prompt)

    async def edit(self, image: ImageState, instruction: str) -> ImageState:
        return await edit_image_compute(image, instruction)

    async def suggest_edits(self, image: ImageState) -> EditSuggestions:
        return await suggest_edits(image)

    async def refine_prompt(self, prompt: str) -> PromptRefinements:
        return await refine_prompt(prompt)
