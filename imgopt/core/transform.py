"""
Decode, resize and re-encode source images with Pillow.
"""

from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, EncodeError, SourceNotFound
from .formats import ImageFormat, normalize_format, sniff_format

Source = Union[bytes, str, Path]

MIN_QUALITY = 1
MAX_QUALITY = 100


def _read_source(source: Source) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    path = Path(source)
    try:
        return path.read_bytes()
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
        raise SourceNotFound(f"source image {path} not found") from exc
    except OSError as exc:
        raise DecodeError(f"cannot read source image {path}: {exc}") from exc


def _decode(data: bytes) -> Image.Image:
    try:
        im = Image.open(BytesIO(data))
        im.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"cannot decode source image: {exc}") from exc
    return im


def _prepare_mode(im: Image.Image, fmt: ImageFormat) -> Image.Image:
    has_alpha = im.mode in ("RGBA", "LA", "PA") or (
        im.mode == "P" and "transparency" in im.info
    )
    if fmt is ImageFormat.JPEG:
        if im.mode in ("RGB", "L"):
            return im
        return im.convert("RGBA").convert("RGB") if has_alpha else im.convert("RGB")
    if fmt is ImageFormat.WEBP:
        if im.mode in ("RGB", "RGBA"):
            return im
        return im.convert("RGBA" if has_alpha else "RGB")
    # PNG keeps palette/greyscale modes; only modes it cannot store are converted
    if im.mode in ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"):
        return im
    return im.convert("RGBA" if has_alpha else "RGB")


def fit_inside(size, box) -> tuple:
    """Target dimensions for fitting `size` inside `box` without enlarging."""
    src_w, src_h = size
    box_w, box_h = box
    if src_w <= box_w and src_h <= box_h:
        return src_w, src_h
    scale = min(box_w / src_w, box_h / src_h)
    return max(1, round(src_w * scale)), max(1, round(src_h * scale))


def transform(source: Source, width: int, height: int, quality: int, fmt) -> bytes:
    """
    Resize `source` to fit inside width x height and encode it as `fmt`.

    Never upscales. `quality` drives the lossy encoders (jpeg, webp) and is
    ignored by png. Quality outside 1..100 raises EncodeError; callers that
    want clamping must clamp before calling.
    """
    fmt = normalize_format(fmt)
    if width <= 0 or height <= 0:
        raise EncodeError(f"invalid target box {width}x{height}")
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise EncodeError(f"quality {quality} outside {MIN_QUALITY}..{MAX_QUALITY}")

    im = _decode(_read_source(source))

    target = fit_inside(im.size, (width, height))
    if target != im.size:
        im = im.resize(target, Image.Resampling.LANCZOS)
    im = _prepare_mode(im, fmt)

    options = {}
    if fmt is ImageFormat.JPEG:
        options = {"quality": quality, "optimize": True}
    elif fmt is ImageFormat.WEBP:
        options = {"quality": quality, "method": 6}
    elif fmt is ImageFormat.PNG:
        options = {"optimize": True}

    buffer = BytesIO()
    try:
        im.save(buffer, format=fmt.pillow_name, **options)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"{fmt.value} encoder failed: {exc}") from exc

    data = buffer.getvalue()
    if sniff_format(data) is not fmt:
        raise EncodeError(f"encoder produced data that is not {fmt.value}")
    return data
