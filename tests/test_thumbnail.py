import io

import PIL.Image
import pytest

from visionary.errors import EncodingError
from visionary.models import ImageState
from visionary.tools.thumbnail import create_thumbnail, thumbnail_size

from .conftest import make_image


def decode(thumbnail):
    image = ImageState.from_data_uri(thumbnail)
    assert image.mime_type == "image/jpeg"
    return PIL.Image.open(io.BytesIO(image.data))


@pytest.mark.parametrize(
    "size, expected",
    [
        ((800, 400), (400, 200)),
        ((300, 900), (133, 400)),
        ((1000, 1000), (400, 400)),
        ((200, 100), (200, 100)),
        ((400, 400), (400, 400)),
        ((4000, 3), (400, 1)),
    ],
)
def test_thumbnail_size(size, expected):
    assert thumbnail_size(*size) == expected


def test_large_image_is_bounded_to_400():
    with decode(create_thumbnail(make_image(1200, 800))) as thumb:
        assert thumb.size == (400, 267)
        assert thumb.format == "JPEG"


def test_portrait_image_keeps_aspect_ratio():
    with decode(create_thumbnail(make_image(500, 1000))) as thumb:
        assert thumb.size == (200, 400)


def test_small_image_keeps_dimensions():
    with decode(create_thumbnail(make_image(120, 80))) as thumb:
        assert thumb.size == (120, 80)


def test_transparent_png_is_flattened():
    source = make_image(600, 300, mode="RGBA")
    with decode(create_thumbnail(source)) as thumb:
        assert thumb.mode == "RGB"
        assert thumb.size == (400, 200)


def test_same_image_gives_same_thumbnail():
    image = make_image(900, 600)
    assert create_thumbnail(image) == create_thumbnail(image)


def test_malformed_payload_raises_encoding_error():
    with pytest.raises(EncodingError):
        create_thumbnail(ImageState(data=b"definitely not an image", mime_type="image/png"))


def test_empty_payload_raises_encoding_error():
    with pytest.raises(EncodingError):
        create_thumbnail(ImageState(data=b"", mime_type="image/png"))


def test_decompression_bomb_raises_encoding_error(monkeypatch):
    monkeypatch.setattr(PIL.Image, "MAX_IMAGE_PIXELS", 1000)
    with pytest.raises(EncodingError):
        create_thumbnail(make_image(64, 64))
