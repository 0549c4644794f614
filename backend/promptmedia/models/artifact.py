"""Binary payload types: caller-supplied images and generated artifacts."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Literal

ImageOrigin = Literal["upload", "url"]

_MIME_SUFFIXES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
}


def mime_to_suffix(mime_type: str | None, fallback: str = "bin") -> str:
    """Map a MIME type to a file suffix (without the dot)."""
    if not mime_type:
        return fallback
    base = mime_type.split(";", 1)[0].strip().lower()
    if base in _MIME_SUFFIXES:
        return _MIME_SUFFIXES[base]
    if "/" in base:
        return base.split("/", 1)[1] or fallback
    return fallback


@dataclass(frozen=True)
class ImageInput:
    """An unresolved image reference: uploaded bytes or a URL."""

    data: bytes | None = None
    content_type: str | None = None
    filename: str | None = None
    url: str | None = None

    @property
    def is_upload(self) -> bool:
        return self.data is not None

    @property
    def is_empty(self) -> bool:
        return self.data is None and not self.url


@dataclass(frozen=True)
class SourceImage:
    """A resolved input image, consumed read-only by a strategy."""

    data: bytes
    mime_type: str
    filename: str | None = None
    origin: ImageOrigin = "upload"
    url: str | None = None


@dataclass(frozen=True)
class Artifact:
    """Normalized generation result owned by a task."""

    data: bytes
    mime_type: str
    filename: str

    @property
    def kind(self) -> str:
        """``image``, ``video`` or ``text`` from the MIME type."""
        major = self.mime_type.split("/", 1)[0].lower()
        if major in ("image", "video"):
            return major
        return "text"

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    def describe(self) -> dict[str, object]:
        """Metadata view used in task records; bytes are served separately."""
        return {
            "filename": self.filename,
            "mimeType": self.mime_type,
            "size": self.size,
            "kind": self.kind,
        }
