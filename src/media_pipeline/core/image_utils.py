"""Image transform utilities for the media pipeline."""

import io
from typing import Any, Dict, Optional, Tuple

from PIL import Image, ImageOps

from .error_handling import with_error_handling
from .exceptions import TransformError
from .models import ImageEncoding

PIL_FORMATS = {"jpeg": "JPEG", "png": "PNG", "webp": "WEBP"}


def load_image(image_bytes: bytes) -> "Image.Image":
    """Decode image bytes, applying the EXIF orientation."""
    image = Image.open(io.BytesIO(image_bytes))
    image.load()
    return ImageOps.exif_transpose(image)


def _scale_inside(
    size: Tuple[int, int],
    width: Optional[int],
    height: Optional[int],
    without_enlargement: bool,
) -> Tuple[int, int]:
    src_width, src_height = size
    ratios = []
    if width:
        ratios.append(width / src_width)
    if height:
        ratios.append(height / src_height)
    scale = min(ratios) if ratios else 1.0
    if without_enlargement:
        scale = min(scale, 1.0)
    return max(1, round(src_width * scale)), max(1, round(src_height * scale))


def compute_target_size(size: Tuple[int, int], encoding: ImageEncoding) -> Tuple[int, int]:
    """
    Output dimensions of an image of ``size`` once ``encoding`` is applied.

    Boxed fits (cover, contain, fill) need both a width and a height; with a
    single bound they behave like "inside".
    """
    width, height = encoding.width, encoding.height
    if encoding.fit in ("cover", "contain", "fill") and width and height:
        if encoding.without_enlargement:
            return min(width, size[0]), min(height, size[1])
        return width, height
    return _scale_inside(size, width, height, encoding.without_enlargement)


def _encode(image: "Image.Image", encoding: ImageEncoding) -> bytes:
    pil_format = PIL_FORMATS.get(encoding.format)
    if pil_format is None:
        raise TransformError(f"Unsupported output format: {encoding.format}")

    if pil_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    output = io.BytesIO()
    if pil_format == "PNG":
        image.save(output, format=pil_format, optimize=True)
    else:
        image.save(output, format=pil_format, quality=encoding.quality)
    return output.getvalue()


@with_error_handling(TransformError)
def resize_image(image_bytes: bytes, encoding: ImageEncoding) -> bytes:
    """
    Resize and re-encode an image entirely in memory.

    Args:
        image_bytes: Source image
        encoding: Target box, fit, quality and output format

    Returns:
        Encoded image bytes

    Raises:
        TransformError: If the image cannot be decoded or encoded
    """
    image = load_image(image_bytes)
    target = compute_target_size(image.size, encoding)

    if encoding.fit == "cover" and encoding.width and encoding.height:
        resized = ImageOps.fit(image, target, Image.Resampling.LANCZOS, centering=(0.5, 0.5))
    elif encoding.fit == "contain" and encoding.width and encoding.height:
        resized = ImageOps.pad(image, target, Image.Resampling.LANCZOS, centering=(0.5, 0.5))
    elif target != image.size:
        resized = image.resize(target, Image.Resampling.LANCZOS)
    else:
        resized = image

    return _encode(resized, encoding)


@with_error_handling(TransformError)
def extract_image_info(image_bytes: bytes) -> Dict[str, Any]:
    """Basic information (dimensions, format, mode) about encoded image bytes."""
    image = Image.open(io.BytesIO(image_bytes))
    return {
        "width": image.width,
        "height": image.height,
        "format": (image.format or "unknown").lower(),
        "mode": image.mode,
    }


class PillowImageTransform:
    """Image transform backed by Pillow, no I/O dependencies."""

    def resize(self, image_bytes: bytes, encoding: ImageEncoding) -> bytes:
        return resize_image(image_bytes, encoding)

    def describe(self, image_bytes: bytes) -> Dict[str, Any]:
        return extract_image_info(image_bytes)
