"""Fixed-size JPEG normalisation for uploaded photos.

Stability AI's image-to-image endpoint does not accept output dimensions:
the generated image has the same size as the init image.  Every upload is
therefore normalised to the configured square before submission.

The fit is a *cover* fit: the photo is scaled uniformly so that it fully
covers the target box, centred, and anything outside the box is cropped.
Transparent regions are flattened onto white.
"""

from __future__ import annotations

import io
import logging
import math

from PIL import Image, UnidentifiedImageError

from dreamjob.core.errors import ProcessingError

logger = logging.getLogger(__name__)

JPEG_QUALITY = 90
BACKGROUND_COLOUR = (255, 255, 255)


class ImageProcessingError(ProcessingError):
    """Raised when an uploaded image cannot be decoded or re-encoded."""


def cover_geometry(
    source_size: tuple[int, int], target_size: tuple[int, int]
) -> tuple[tuple[int, int], tuple[int, int]]:
    """Compute the scaled size and paste offset for a cover fit.

    Args:
        source_size: ``(width, height)`` of the source image.
        target_size: ``(width, height)`` of the output canvas.

    Returns:
        Tuple of ``(scaled_size, offset)``.  ``offset`` is the top-left
        position of the scaled image on the canvas and is zero or negative
        on each axis.
    """
    src_w, src_h = source_size
    dst_w, dst_h = target_size
    scale = max(dst_w / src_w, dst_h / src_h)

    # Round up so float error never leaves an uncovered strip of background.
    scaled_w = max(dst_w, math.ceil(src_w * scale - 1e-6))
    scaled_h = max(dst_h, math.ceil(src_h * scale - 1e-6))

    offset = ((dst_w - scaled_w) // 2, (dst_h - scaled_h) // 2)
    return (scaled_w, scaled_h), offset


def normalize_image(data: bytes, width: int, height: int) -> bytes:
    """Resize arbitrary image bytes to a ``width`` x ``height`` JPEG.

    Args:
        data: Encoded source image in any format Pillow can decode.
        width: Target width in pixels.
        height: Target height in pixels.

    Returns:
        JPEG-encoded bytes of exactly ``width`` x ``height`` pixels.

    Raises:
        ValueError: If the target dimensions are not positive.
        ImageProcessingError: If the source cannot be decoded or the JPEG
            cannot be encoded.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")

    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            rgba = source.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageProcessingError(
            "The uploaded image could not be decoded."
        ) from e

    if rgba.width == 0 or rgba.height == 0:
        raise ImageProcessingError("The uploaded image is empty.")

    scaled_size, offset = cover_geometry(rgba.size, (width, height))
    scaled = rgba.resize(scaled_size, Image.Resampling.LANCZOS)

    canvas = Image.new("RGB", (width, height), BACKGROUND_COLOUR)
    canvas.paste(scaled, offset, mask=scaled)

    buffer = io.BytesIO()
    try:
        canvas.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    except (OSError, ValueError) as e:
        raise ImageProcessingError("The image could not be encoded as JPEG.") from e

    logger.info(
        f"Normalised image {rgba.width}x{rgba.height} -> {width}x{height} "
        f"({len(buffer.getvalue())} bytes)"
    )
    return buffer.getvalue()
