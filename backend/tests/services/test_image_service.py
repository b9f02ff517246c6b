"""Tests for instrument photo transformation utilities."""

from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image

from lablinc.services.image_service import (
    InvalidImageError,
    hash_bytes,
    photo_key,
    to_webp,
)


def _create_sample_jpeg(width: int = 2400, height: int = 1600) -> bytes:
    image = Image.new("RGB", (width, height), color=(20, 90, 200))
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=92)
    return buffer.getvalue()


def test_hash_bytes_is_deterministic() -> None:
    sample = b"example-bytes"
    assert hash_bytes(sample) == hash_bytes(sample)
    assert hash_bytes(sample) != hash_bytes(b"other-bytes")


def test_to_webp_resizes_and_converts() -> None:
    original = _create_sample_jpeg()
    webp_bytes, width, height = to_webp(original, max_width=1200, quality=80)

    assert max(width, height) == 1200
    assert (width, height) == (1200, 800)
    with Image.open(BytesIO(webp_bytes)) as converted:
        assert converted.format == "WEBP"


def test_to_webp_keeps_small_images_at_size() -> None:
    webp_bytes, width, height = to_webp(
        _create_sample_jpeg(320, 200), max_width=1600, quality=80
    )
    assert (width, height) == (320, 200)
    assert webp_bytes


def test_to_webp_rejects_non_images() -> None:
    with pytest.raises(InvalidImageError):
        to_webp(b"not-an-image", max_width=800, quality=80)


def test_photo_key_is_content_addressed() -> None:
    digest = hash_bytes(b"photo")
    key = photo_key("abc", digest)
    assert key == f"instruments/abc/{digest[:32]}.webp"
