"""
Image re-encoding for transport and viewing.

Stored captures are full-size PNGs. Before they are sent anywhere they are
shrunk to fit a bounding box (never enlarged) and re-encoded as JPEG, WebP or
PNG. Quality applies to JPEG and WebP; PNG is lossless and uses a fixed
compression level instead.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from webshot.errors import UnreadableImageError
from webshot.schema import ImageFormat, ReencodeOptions

logger = logging.getLogger(__name__)

PNG_COMPRESS_LEVEL = 8

_PIL_FORMATS = {
    ImageFormat.JPEG: "JPEG",
    ImageFormat.PNG: "PNG",
    ImageFormat.WEBP: "WEBP",
}


@dataclass(frozen=True)
class EncodedImage:
    """An encoded image buffer and what it contains."""

    data: bytes
    format: ImageFormat
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def mime_type(self) -> str:
        return self.format.mime_type


def optimization_ratio(encoded_size: int, original_size: int) -> str:
    """Encoded size as a percentage of the original, e.g. '42.5%'."""
    if original_size <= 0:
        return "100%"
    return f"{encoded_size / original_size * 100:.1f}%"


def reencode(path: Path | str, options: ReencodeOptions | None = None) -> EncodedImage:
    """
    Re-encode the image at path according to options.

    Args:
        path: Source raster file
        options: Target format, quality and bounding box (defaults: jpeg, 80, 1200x800)

    Returns:
        EncodedImage with the encoded bytes and their pixel dimensions

    Raises:
        UnreadableImageError: If the file is missing, empty or not a decodable image
        UnsupportedFormatError: If options carry a format outside jpeg/png/webp
    """
    options = options or ReencodeOptions()
    target = ImageFormat.parse(options.format)
    path = Path(path)

    try:
        original_size = path.stat().st_size
    except FileNotFoundError:
        raise UnreadableImageError(path=str(path), reason="file not found") from None
    except OSError as e:
        raise UnreadableImageError(path=str(path), reason=str(e)) from e
    if original_size == 0:
        raise UnreadableImageError(path=str(path), reason="file is empty")

    try:
        with Image.open(path) as source:
            source.load()
            image = _prepare(source, target)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise UnreadableImageError(path=str(path), reason=str(e)) from e

    original_dims = image.size
    if image.width > options.max_width or image.height > options.max_height:
        image.thumbnail((options.max_width, options.max_height), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    if target is ImageFormat.PNG:
        image.save(buffer, format="PNG", compress_level=PNG_COMPRESS_LEVEL)
    elif target is ImageFormat.JPEG:
        image.save(buffer, format="JPEG", quality=options.quality, optimize=True)
    else:
        image.save(buffer, format=_PIL_FORMATS[target], quality=options.quality)

    encoded = EncodedImage(
        data=buffer.getvalue(),
        format=target,
        width=image.width,
        height=image.height,
    )
    logger.debug(
        "Re-encoded %s: %dx%d %d bytes -> %dx%d %s %d bytes (%s of original)",
        path.name,
        *original_dims,
        original_size,
        encoded.width,
        encoded.height,
        target.value,
        encoded.size,
        optimization_ratio(encoded.size, original_size),
    )
    return encoded


def _prepare(image: Image.Image, target: ImageFormat) -> Image.Image:
    """Convert to a mode the target encoder accepts."""
    if target is ImageFormat.JPEG:
        if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
            rgba = image.convert("RGBA")
            flattened = Image.new("RGB", rgba.size, (255, 255, 255))
            flattened.paste(rgba, mask=rgba.getchannel("A"))
            return flattened
        if image.mode != "RGB":
            return image.convert("RGB")
        return image.copy()
    if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        return image.convert("RGBA" if "A" in image.getbands() else "RGB")
    return image.copy()
