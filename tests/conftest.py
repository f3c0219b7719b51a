import asyncio
import io
from typing import Dict, List, Optional

import PIL.Image
import pytest

from visionary.agent.orchestrator import Orchestrator
from visionary.models import EditSuggestions, ImageState, PromptRefinements, SuggestionItem
from visionary.session.history import HistoryStore


def make_image(width=64, height=64, color=(200, 30, 30), fmt="PNG", mode="RGB") -> ImageState:
    """Encode a solid-color image."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    buffer = io.BytesIO()
    PIL.Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return ImageState(data=buffer.getvalue(), mime_type=f"image/{fmt.lower()}")


def make_tier(label: str) -> List[SuggestionItem]:
    return [SuggestionItem(title=f"{label} {i}", description=f"{label} description {i}") for i in range(1, 4)]


def make_suggestions(label: str = "edit") -> EditSuggestions:
    return EditSuggestions(
        creative=make_tier(f"{label} creative"),
        style=make_tier(f"{label} style"),
        improvements=make_tier(f"{label} improvements"),
    )


def make_refinements(label: str) -> PromptRefinements:
    return PromptRefinements(
        basic=make_tier(f"{label} basic"),
        intermediate=make_tier(f"{label} intermediate"),
        advanced=make_tier(f"{label} advanced"),
    )


class FakeBackend:
    """In-memory stand-in for the Gemini backend.

    `generated` and `edited` are queues of images or exceptions to return.
    """

    def __init__(self):
        self.calls = []
        self.generated: List = []
        self.edited: List = []
        self.suggest_error: Optional[Exception] = None
        self.refine_error: Optional[Exception] = None
        self.generate_gate: Optional[asyncio.Event] = None
        self.suggest_gate: Optional[asyncio.Event] = None
        self.refine_gates: Dict[str, asyncio.Event] = {}

    @staticmethod
    def _resolve(result):
        if isinstance(result, Exception):
            raise result
        return result

    async def generate(self, prompt):
        self.calls.append(("generate", prompt))
        if self.generate_gate is not None:
            await self.generate_gate.wait()
        return self._resolve(self.generated.pop(0))

    async def edit(self, image, instruction):
        self.calls.append(("edit", instruction))
        return self._resolve(self.edited.pop(0))

    async def suggest_edits(self, image):
        self.calls.append(("suggest", image))
        if self.suggest_gate is not None:
            await self.suggest_gate.wait()
        if self.suggest_error is not None:
            raise self.suggest_error
        return make_suggestions()

    async def refine_prompt(self, prompt):
        self.calls.append(("refine", prompt))
        gate = self.refine_gates.get(prompt)
        if gate is not None:
            await gate.wait()
        if self.refine_error is not None:
            raise self.refine_error
        return make_refinements(prompt)

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def history_path(tmp_path):
    return str(tmp_path / "history.json")


@pytest.fixture
def history(history_path):
    return HistoryStore(path=history_path)


@pytest.fixture
def orchestrator(backend, history):
    return Orchestrator(backend, history)


@pytest.fixture
def red_image():
    return make_image(color=(220, 20, 20))


@pytest.fixture
def blue_image():
    return make_image(color=(20, 20, 220))


@pytest.fixture
def green_image():
    return make_image(color=(20, 220, 20))
