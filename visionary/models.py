"""Shared data types: image payloads, operation status and suggestion sets."""
import base64
import binascii
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .errors import ValidationError

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImageState:
    """An encoded image payload: raw bytes plus their mime type."""

    data: bytes
    mime_type: str = "image/png"

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/", 1)[-1]
        return subtype.split("+", 1)[0] or "png"

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("utf-8")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_uri(cls, uri: str) -> "ImageState":
        match = _DATA_URI_RE.match(uri or "")
        if not match:
            raise ValidationError("Not a base64 data URI.")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"Malformed base64 payload: {e}") from e
        return cls(data=data, mime_type=match.group("mime"))

    def __repr__(self) -> str:
        return f"ImageState(mime_type={self.mime_type!r}, size={len(self.data)})"


class OperationStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    EDITING = "editing"
    SUGGESTING = "suggesting"


class SuggestionItem(BaseModel):
    title: str = Field(description="A short, descriptive title for the suggestion.")
    description: str = Field(description="The full, detailed prompt for the model.")


Tier = List[SuggestionItem]


def _tier(description: str):
    return Field(min_length=3, max_length=3, description=description)


class EditSuggestions(BaseModel):
    """Edit ideas for an existing image, grouped into three themes."""

    creative: Tier = _tier("3 creative enhancements that keep the core subject.")
    style: Tier = _tier("3 changes of artistic style or color palette.")
    improvements: Tier = _tier("3 technical improvements to lighting, detail or composition.")


class PromptRefinements(BaseModel):
    """Refined versions of a text prompt at three levels of sophistication."""

    basic: Tier = _tier("3 basic, photorealistic refinements.")
    intermediate: Tier = _tier("3 refinements adding lighting, composition and mood.")
    advanced: Tier = _tier("3 expert refinements adding camera, lens and style.")


class OrchestratorState(BaseModel):
    """Read-only snapshot handed to the CLI and HTTP surfaces."""

    prompt: str = ""
    edit_prompt: str = ""
    has_image: bool = False
    mime_type: Optional[str] = None
    is_uploaded_image: bool = False
    status: OperationStatus = OperationStatus.IDLE
    refining: bool = False
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    edit_suggestions: Optional[EditSuggestions] = None
    prompt_refinements: Optional[PromptRefinements] = None
    undo_depth: int = 0
    history_length: int = 0
