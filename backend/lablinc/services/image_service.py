"""Utilities for hashing and transforming uploaded instrument photos."""

from __future__ import annotations

import hashlib
from io import BytesIO

from PIL import Image, UnidentifiedImageError


class InvalidImageError(ValueError):
    """Raised when uploaded bytes are not a decodable image."""


def hash_bytes(data: bytes) -> str:
    """Return the SHA-256 hex digest for the given bytes."""

    return hashlib.sha256(data).hexdigest()


def _resize_image(image: Image.Image, max_width: int) -> Image.Image:
    width, height = image.size
    longest = max(width, height)
    if longest <= max_width:
        return image
    scale = max_width / float(longest)
    new_size = (max(int(width * scale), 1), max(int(height * scale), 1))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def to_webp(data: bytes, max_width: int, quality: int) -> tuple[bytes, int, int]:
    """Convert image bytes to WebP with the longest side capped at ``max_width``.

    Returns ``(webp_bytes, width, height)``. Non-image input raises
    :class:`InvalidImageError` so uploads of arbitrary files are rejected.
    """

    try:
        with Image.open(BytesIO(data)) as image:
            image.load()
            if image.mode not in {"RGB", "RGBA"}:
                image = (
                    image.convert("RGBA")
                    if "A" in image.getbands()
                    else image.convert("RGB")
                )
            resized = _resize_image(image, max_width)
            buffer = BytesIO()
            resized.save(
                buffer,
                format="WEBP",
                quality=max(1, min(quality, 100)),
                method=6,
            )
            width, height = resized.size
            return buffer.getvalue(), width, height
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError("Uploaded file is not a supported image") from exc


def photo_key(instrument_id: str, digest: str) -> str:
    """Content-addressed object key for an instrument photo."""
    return f"instruments/{instrument_id}/{digest[:32]}.webp"
