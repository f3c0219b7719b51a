"""Error kinds raised by Visionary.

Every error carries a short `title` (shown as a heading by the CLI and HTTP
surfaces) and a human-readable message.
"""
from typing import Optional

from google.api_core import exceptions as google_exceptions


class VisionaryError(Exception):
    """Base class for all application errors."""

    title = "Operation Failed"

    def __init__(self, message: str, title: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if title:
            self.title = title


class ValidationError(VisionaryError):
    """Missing or empty input, rejected before any remote call."""

    title = "Invalid Input"


class OperationInProgressError(ValidationError):
    """A foreground operation was requested while another is running."""

    title = "Busy"


class FileError(VisionaryError):
    """An uploaded file could not be read or is not an image."""

    title = "Upload Failed"


class ProviderError(VisionaryError):
    """A remote model call failed."""

    def __init__(self, operation: str, message: str, title: Optional[str] = None):
        super().__init__(message, title)
        self.operation = operation


class ProviderRateLimitError(ProviderError):
    """The remote model reported a rate-limit or quota condition."""

    title = "Rate Limit Exceeded"


class PersistenceError(VisionaryError):
    """Reading or writing the history storage slot failed."""

    title = "History Save Failed"

    def __init__(self, message: str, title: Optional[str] = None, quota_exceeded: bool = False):
        super().__init__(message, title)
        self.quota_exceeded = quota_exceeded


class EncodingError(VisionaryError):
    """A thumbnail could not be produced from an image payload."""

    title = "History Update Failed"


RATE_LIMIT_MESSAGE = (
    "You have exceeded your current quota for the AI model. Please check your "
    "Google Cloud project to ensure billing is enabled and your plan supports "
    "the desired usage. This is not an application error."
)

_OPERATION_CONTEXT = {
    "generate": ("Generation Failed", "Could not generate image."),
    "edit": ("Editing Failed", "Could not edit image."),
    "suggest": ("Suggestion Failed", "Could not suggest edits."),
    "refine": ("Refinement Failed", "Could not refine prompt."),
}


def classify_provider_error(exc: BaseException, operation: str) -> ProviderError:
    """Wrap a remote-call failure into a ProviderError for `operation`."""
    if isinstance(exc, ProviderError):
        return exc

    detail = str(exc) or exc.__class__.__name__
    if isinstance(exc, google_exceptions.ResourceExhausted) or "429" in detail:
        return ProviderRateLimitError(operation, RATE_LIMIT_MESSAGE)

    title, prefix = _OPERATION_CONTEXT.get(operation, ("Operation Failed", "Operation failed."))
    return ProviderError(operation, f"{prefix} {detail}", title=title)
