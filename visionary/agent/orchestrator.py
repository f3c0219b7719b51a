"""Orchestrator for generate, edit, suggest and refine operations.

The orchestrator owns the current image, the undo chain and the suggestion
sets. It runs on a single asyncio event loop: remote calls are awaited, and
only one foreground operation (generate, edit or suggest) may be in flight at
a time. Prompt refinement runs as a background task after a generation and its
result is dropped if a newer generation, a reset or an image load happened in
the meantime.
"""
import asyncio
import contextlib
import logging
import mimetypes
import os
import re
from typing import List, Optional, Set

from ..config import DOWNLOAD_DIR
from ..errors import (
    EncodingError,
    FileError,
    OperationInProgressError,
    PersistenceError,
    ProviderError,
    ValidationError,
    VisionaryError,
    classify_provider_error,
)
from ..models import (
    EditSuggestions,
    ImageState,
    OperationStatus,
    OrchestratorState,
    PromptRefinements,
)
from ..session.history import HistoryStore
from ..session.undo import UndoChain
from .backend import Backend

logger = logging.getLogger(__name__)

MIME_MAP = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.webp': 'image/webp',
    '.gif': 'image/gif'
}

REFINEMENT_TIERS = ("basic", "intermediate", "advanced")
EDIT_TIERS = ("creative", "style", "improvements")


class Orchestrator:
    """Sequences remote image operations and their side effects."""

    def __init__(self, backend: Backend, history: HistoryStore, undo: Optional[UndoChain] = None):
        self.backend = backend
        self.history = history
        self.undo_chain = undo if undo is not None else UndoChain()

        self.prompt = ""
        self.edit_prompt = ""
        self.image: Optional[ImageState] = None
        self.is_uploaded_image = False
        self.status = OperationStatus.IDLE
        self.error: Optional[str] = None
        self.warnings: List[str] = []
        self.edit_suggestions: Optional[EditSuggestions] = None
        self.prompt_refinements: Optional[PromptRefinements] = None

        self._refinement_token = 0
        self._refinements: Set[asyncio.Task] = set()

    # -------------------------------------------------------------------
    # FOREGROUND OPERATIONS
    # -------------------------------------------------------------------
    async def generate(self, prompt: str) -> ImageState:
        """
        Generate a fresh image from `prompt`.

        Clears the current image, the undo chain and all suggestions before
        calling the model. On success the image is recorded in history and a
        background refinement of the prompt is started.

        Raises:
            ValidationError: the prompt is empty or blank
            ProviderError: the model call failed
        """
        if not prompt or not prompt.strip():
            self.error = "Cannot generate image from an empty prompt."
            raise ValidationError(self.error)

        with self._operation(OperationStatus.GENERATING):
            self.prompt = prompt
            self.error = None
            self.warnings = []
            self.is_uploaded_image = False
            self.image = None
            self.undo_chain.clear()
            self.edit_suggestions = None
            self.prompt_refinements = None
            token = self._supersede_refinement()

            try:
                image = await self.backend.generate(prompt)
            except Exception as e:
                raise self._fail(e, "generate") from e

            self.image = image
            await self._record_history(image)
            self.edit_prompt = ""

        self._start_refinement(prompt, token)
        return image

    async def edit(self, instruction: Optional[str] = None, image: Optional[ImageState] = None) -> ImageState:
        """
        Apply `instruction` to `image` (defaults: stored edit prompt, current image).

        The base image is pushed onto the undo chain before the model is
        called. If the edit fails that entry is popped again and restored as
        the current image. After a successful edit the new image is analysed
        for suggestions.

        Raises:
            ValidationError: no instruction or no base image
            ProviderError: the model call failed (after rollback)
        """
        instruction = instruction if instruction is not None else self.edit_prompt
        base = image if image is not None else self.image

        if not instruction or not instruction.strip():
            self.error = "Please enter a prompt to edit the image."
            raise ValidationError(self.error)
        if base is None:
            self.error = "No image to edit. Please generate or upload an image first."
            raise ValidationError(self.error)

        with self._operation(OperationStatus.EDITING):
            self.error = None
            self.warnings = []
            self.edit_suggestions = None
            self.undo_chain.push(base)

            try:
                edited = await self.backend.edit(base, instruction)
            except Exception as e:
                error = self._fail(e, "edit")
                previous = self.undo_chain.pop()
                if previous is not None:
                    self.image = previous
                raise error from e

            self.image = edited
            await self._record_history(edited)
            self.is_uploaded_image = False
            self.edit_prompt = ""

        await self._suggest_quietly(edited)
        return edited

    async def suggest(self, image: Optional[ImageState] = None) -> EditSuggestions:
        """
        Analyse `image` (default: the current image) and replace the edit suggestions.

        The busy guard keeps the current image fixed while the model runs, so
        the result always belongs to the image that is displayed.
        """
        base = image if image is not None else self.image
        if base is None:
            self.error = "No image to analyze. Please generate or upload an image first."
            raise ValidationError(self.error)

        with self._operation(OperationStatus.SUGGESTING):
            self.error = None
            self.edit_suggestions = None

            try:
                suggestions = await self.backend.suggest_edits(base)
            except Exception as e:
                raise self._fail(e, "suggest") from e

            self.edit_suggestions = suggestions
            return suggestions

    async def regenerate(self) -> ImageState:
        """Generate again from the current prompt."""
        return await self.generate(self.prompt)

    async def apply_suggestion(self, tier: str, index: int) -> ImageState:
        """
        Act on the suggestion at a 0-based `index` of `tier`.

        Prompt refinement tiers generate a new image from the item's
        description; edit suggestion tiers apply it as an edit.

        Raises:
            ValidationError: unknown tier, no suggestions yet, or index out of range
        """
        tier = tier.lower()
        if tier in REFINEMENT_TIERS:
            source = self.prompt_refinements
        elif tier in EDIT_TIERS:
            source = self.edit_suggestions
        else:
            raise ValidationError(
                f"Unknown suggestion tier '{tier}'. Choose one of: "
                + ", ".join(REFINEMENT_TIERS + EDIT_TIERS)
            )

        if source is None:
            raise ValidationError(f"There are no {tier} suggestions yet.")
        items = getattr(source, tier)
        if not 0 <= index < len(items):
            raise ValidationError(f"No {tier} suggestion at index {index} ({len(items)} available).")

        description = items[index].description
        logger.info("Applying %s suggestion %d: %s", tier, index, items[index].title)
        if tier in REFINEMENT_TIERS:
            return await self.generate(description)
        return await self.edit(description)

    def set_edit_prompt(self, instruction: str):
        """Store the edit instruction used when `edit` is called without one."""
        self.edit_prompt = instruction or ""

    # -------------------------------------------------------------------
    # LOCAL OPERATIONS
    # -------------------------------------------------------------------
    def undo(self) -> bool:
        """Revert to the previous image. Suggestions and prompts are kept."""
        self._ensure_idle()
        previous = self.undo_chain.pop()
        if previous is None:
            return False
        self.image = previous
        logger.info("Reverted to the previous image state (%d left)", len(self.undo_chain))
        return True

    def reset(self):
        """Clear everything except the persisted history."""
        self._ensure_idle()
        self.prompt = ""
        self.edit_prompt = ""
        self.image = None
        self.undo_chain.clear()
        self.error = None
        self.warnings = []
        self.prompt_refinements = None
        self.edit_suggestions = None
        self.is_uploaded_image = False
        self._supersede_refinement()

    async def load_image(self, image: ImageState):
        """Make an externally sourced image current and analyse it."""
        self._ensure_idle()
        self.image = image
        self.undo_chain.clear()
        self.prompt = ""
        self.edit_prompt = ""
        self.error = None
        self.prompt_refinements = None
        self.edit_suggestions = None
        self.is_uploaded_image = True
        self._supersede_refinement()

        await self._suggest_quietly(image)

    async def load_history(self, index: int) -> ImageState:
        """Load the history thumbnail at `index` as the current image."""
        image = ImageState.from_data_uri(self.history.get(index))
        await self.load_image(image)
        return image

    async def upload(self, data: bytes, mime_type: Optional[str]) -> ImageState:
        """Record an uploaded image in history and load it."""
        if not mime_type or not mime_type.startswith("image/"):
            self.error = "Invalid file type. Please upload an image."
            raise FileError(self.error)
        if not data:
            self.error = "The uploaded file is empty."
            raise FileError(self.error)

        self._ensure_idle()
        image = ImageState(data=data, mime_type=mime_type)
        self.warnings = []
        await self._record_history(image)
        await self.load_image(image)
        return image

    async def upload_file(self, path: str) -> ImageState:
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            self.error = f"There was an error reading your image file: {e}"
            raise FileError(self.error) from e

        mime_type, _ = mimetypes.guess_type(path)
        if not mime_type:
            mime_type = MIME_MAP.get(os.path.splitext(path)[1].lower())
        return await self.upload(data, mime_type)

    def download(self, directory: str = DOWNLOAD_DIR) -> str:
        """
        Write the current image to `directory` and return its path.

        The file name is derived from the prompt, falling back to the edit
        prompt and then to a generic name.
        """
        if self.image is None:
            raise ValidationError("There is no image to download.")

        path = os.path.join(directory, self.download_filename())
        try:
            os.makedirs(directory, exist_ok=True)
            with open(path, "wb") as f:
                f.write(self.image.data)
        except OSError as e:
            raise FileError(f"Could not save image: {e}", title="Download Failed") from e
        logger.info("Saved current image to %s", path)
        return path

    def download_filename(self) -> str:
        fallback = "uploaded_image" if self.is_uploaded_image else "visionary_image"
        name = self.prompt or self.edit_prompt or fallback
        stem = re.sub(r"[^a-z0-9_.-]", "_", name, flags=re.IGNORECASE)[:50] or "visionary_image"
        extension = self.image.extension if self.image else "png"
        return f"{stem}.{extension}"

    # -------------------------------------------------------------------
    # STATE
    # -------------------------------------------------------------------
    @property
    def refining(self) -> bool:
        return any(not task.done() for task in self._refinements)

    def snapshot(self) -> OrchestratorState:
        return OrchestratorState(
            prompt=self.prompt,
            edit_prompt=self.edit_prompt,
            has_image=self.image is not None,
            mime_type=self.image.mime_type if self.image else None,
            is_uploaded_image=self.is_uploaded_image,
            status=self.status,
            refining=self.refining,
            error=self.error,
            warnings=list(self.warnings),
            edit_suggestions=self.edit_suggestions,
            prompt_refinements=self.prompt_refinements,
            undo_depth=len(self.undo_chain),
            history_length=len(self.history),
        )

    async def wait_for_refinement(self):
        """Wait until every background refinement has settled."""
        pending = [task for task in self._refinements if not task.done()]
        while pending:
            await asyncio.gather(*pending)
            pending = [task for task in self._refinements if not task.done()]

    # -------------------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------------------
    @contextlib.contextmanager
    def _operation(self, status: OperationStatus):
        self._ensure_idle()
        self.status = status
        try:
            yield
        finally:
            self.status = OperationStatus.IDLE

    def _ensure_idle(self):
        if self.status is not OperationStatus.IDLE:
            raise OperationInProgressError(
                f"Another operation is in progress ({self.status.value}). Please wait for it to finish."
            )

    def _fail(self, exc: Exception, operation: str) -> ProviderError:
        error = classify_provider_error(exc, operation)
        logger.error("%s: %s", error.title, error.message)
        self.error = error.message
        return error

    async def _record_history(self, image: ImageState):
        # Thumbnail encoding and the file write run off the event loop
        try:
            await asyncio.to_thread(self.history.record, image)
        except (EncodingError, PersistenceError) as e:
            logger.warning("%s: %s", e.title, e.message)
            self.warnings.append(e.message)

    async def _suggest_quietly(self, image: ImageState):
        # Failures are already stored in self.error
        try:
            await self.suggest(image)
        except VisionaryError as e:
            logger.warning("Automatic suggestions skipped: %s", e.message)

    def _supersede_refinement(self) -> int:
        self._refinement_token += 1
        return self._refinement_token

    def _start_refinement(self, prompt: str, token: int):
        task = asyncio.create_task(self._refine(prompt, token))
        self._refinements.add(task)
        task.add_done_callback(self._refinements.discard)

    async def _refine(self, prompt: str, token: int):
        try:
            refinements = await self.backend.refine_prompt(prompt)
        except Exception:
            logger.exception("Failed to refine prompt")
            return

        if token != self._refinement_token:
            logger.debug("Discarding superseded refinement for %r", prompt)
            return
        self.prompt_refinements = refinements
