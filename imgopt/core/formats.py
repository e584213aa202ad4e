"""Supported output formats and their container signatures."""

from enum import Enum
from typing import Optional

from .errors import InvalidFormat


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def pillow_name(self) -> str:
        return self.value.upper()


_ALIASES = {
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "png": ImageFormat.PNG,
    "webp": ImageFormat.WEBP,
}

_CONTENT_TYPES = {
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.PNG: "image/png",
    ImageFormat.WEBP: "image/webp",
}

_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
_JPEG_MAGIC = b"\xff\xd8\xff"


def normalize_format(token: Optional[str]) -> ImageFormat:
    """Map a client token (`jpg`, `JPEG`, ...) to its canonical format."""
    if isinstance(token, ImageFormat):
        return token
    fmt = _ALIASES.get((token or "").strip().lower())
    if fmt is None:
        raise InvalidFormat(f"unsupported format {token!r}")
    return fmt


def content_type(fmt: ImageFormat) -> str:
    return _CONTENT_TYPES[fmt]


def sniff_format(data: bytes) -> Optional[ImageFormat]:
    if not data:
        return None
    if data.startswith(_JPEG_MAGIC):
        return ImageFormat.JPEG
    if data.startswith(_PNG_MAGIC):
        return ImageFormat.PNG
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ImageFormat.WEBP
    return None
