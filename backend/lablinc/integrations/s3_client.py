"""Object storage facade for instrument media.

Objects are written under a local root laid out like an S3 bucket so that
local development and tests need no network; URLs are built against the
configured endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lablinc.core.config import get_settings


class S3ClientError(RuntimeError):
    """Raised when storage operations fail."""


@dataclass
class StoredObject:
    """Metadata for an object written through the facade."""

    key: str
    path: Path
    size: int
    content_type: str
    cache_control: str | None = None
    tags: dict[str, str] = field(default_factory=dict)


class S3Client:
    def __init__(
        self,
        bucket: str,
        *,
        endpoint_url: str | None = None,
        root: Path | None = None,
        default_cache_seconds: int = 0,
    ) -> None:
        if not bucket:
            raise S3ClientError("S3 bucket is not configured")
        self.bucket = bucket
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self._root = (root or Path.cwd() / ".storage") / bucket
        self._root.mkdir(parents=True, exist_ok=True)
        self._default_cache_seconds = default_cache_seconds

    def _normalise_key(self, key: str) -> str:
        normalised = key.lstrip("/")
        if not normalised or ".." in Path(normalised).parts:
            raise S3ClientError("Invalid storage object key")
        return normalised

    def _path_for(self, key: str) -> Path:
        path = self._root / self._normalise_key(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def put_object(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        cache_seconds: int | None = None,
        tags: dict[str, str] | None = None,
    ) -> StoredObject:
        """Write an object with immutable cache headers and optional tags."""
        path = self._path_for(key)
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise S3ClientError(f"Failed to store object {key}") from exc
        seconds = cache_seconds if cache_seconds is not None else self._default_cache_seconds
        return StoredObject(
            key=self._normalise_key(key),
            path=path,
            size=len(data),
            content_type=content_type,
            cache_control=f"public, max-age={seconds}, immutable" if seconds > 0 else None,
            tags=dict(tags or {}),
        )

    def build_object_url(self, key: str) -> str:
        normalised = self._normalise_key(key)
        if self._endpoint_url:
            return f"{self._endpoint_url}/{self.bucket}/{normalised}"
        return f"/{self.bucket}/{normalised}"


def build_s3_client(**overrides: Any) -> S3Client:
    """Factory that honours application settings."""

    settings = get_settings()
    bucket = overrides.get("bucket") or settings.s3_bucket
    if not bucket:
        raise S3ClientError("S3 bucket is not configured")
    root = overrides.get("root") or (Path(settings.s3_root) if settings.s3_root else None)
    return S3Client(
        bucket,
        endpoint_url=overrides.get("endpoint_url") or settings.s3_endpoint_url,
        root=root,
        default_cache_seconds=settings.s3_cache_seconds,
    )
