import pydantic
import pytest
from google.api_core import exceptions as google_exceptions

from visionary.errors import (
    ProviderError,
    ProviderRateLimitError,
    ValidationError,
    classify_provider_error,
)
from visionary.models import EditSuggestions, ImageState

from .conftest import make_tier


def test_resource_exhausted_is_rate_limit():
    error = classify_provider_error(google_exceptions.ResourceExhausted("quota"), "edit")
    assert isinstance(error, ProviderRateLimitError)
    assert error.title == "Rate Limit Exceeded"
    assert error.operation == "edit"


def test_429_in_message_is_rate_limit():
    error = classify_provider_error(RuntimeError("HTTP 429: slow down"), "suggest")
    assert isinstance(error, ProviderRateLimitError)


@pytest.mark.parametrize(
    "operation, title, prefix",
    [
        ("generate", "Generation Failed", "Could not generate image."),
        ("edit", "Editing Failed", "Could not edit image."),
        ("suggest", "Suggestion Failed", "Could not suggest edits."),
    ],
)
def test_generic_errors_carry_operation_context(operation, title, prefix):
    error = classify_provider_error(TimeoutError("timed out"), operation)
    assert type(error) is ProviderError
    assert error.title == title
    assert error.message == f"{prefix} timed out"


def test_already_classified_error_passes_through():
    original = ProviderError("edit", "Could not edit image. boom")
    assert classify_provider_error(original, "edit") is original


def test_data_uri_rejects_garbage():
    with pytest.raises(ValidationError):
        ImageState.from_data_uri("https://example.com/cat.png")


def test_image_extension_from_mime_type():
    assert ImageState(b"x", "image/jpeg").extension == "jpeg"
    assert ImageState(b"x", "image/svg+xml").extension == "svg"


def test_tiers_hold_exactly_three_items():
    with pytest.raises(pydantic.ValidationError):
        EditSuggestions(
            creative=make_tier("a")[:2],
            style=make_tier("b"),
            improvements=make_tier("c"),
        )
