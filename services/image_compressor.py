# services/image_compressor.py
"""
Image compression for vendor payload budgets.

Most vendors cap the total request body (SpringScan rejects anything much over
~100KB), so both images are re-encoded as JPEG before any provider call.
"""

import logging
from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from models.schemas import CompressedImage
from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

START_QUALITY = 70
MIN_QUALITY = 20
QUALITY_STEP = 10
FIRST_BOX = 800
RETRY_BOX = 600


def _load(image_bytes: bytes) -> Tuple[Image.Image, str]:
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ValidationError(f"Invalid image data: {str(e)}") from e

    mime_type = Image.MIME.get(img.format or "", "application/octet-stream")
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img, mime_type


def _encode(img: Image.Image, box: int, quality: int) -> bytes:
    resized = img.copy()
    # thumbnail() keeps aspect ratio and never enlarges
    resized.thumbnail((box, box), Image.LANCZOS)
    out = BytesIO()
    resized.save(out, "JPEG", quality=quality)
    return out.getvalue()


def compress(image_bytes: bytes, target_size_kb: int = 30) -> CompressedImage:
    """
    Re-encode `image_bytes` as JPEG under `target_size_kb`, best effort.

    Starts at quality 70 inside an 800x800 box; while over budget, drops quality
    by 10 and uses a 600x600 box, stopping at quality 20. Never raises on a
    budget overrun, and never returns more bytes than it was given.
    """
    if not image_bytes:
        raise ValidationError("Invalid image data: empty buffer")

    img, original_mime = _load(image_bytes)
    budget = target_size_kb * 1024

    quality = START_QUALITY
    box = FIRST_BOX
    encoded = _encode(img, box, quality)

    while len(encoded) > budget and quality > MIN_QUALITY:
        quality -= QUALITY_STEP
        box = RETRY_BOX
        encoded = _encode(img, box, quality)

    kept_original = len(encoded) > len(image_bytes)
    if kept_original:
        logger.debug(
            f"Re-encoded image ({len(encoded)} bytes) is larger than input ({len(image_bytes)} bytes), keeping input"
        )
        encoded = image_bytes

    if len(encoded) > budget:
        logger.warning(
            f"Image still over budget after compression: {len(encoded)} bytes > {budget} bytes (quality {quality})"
        )

    return CompressedImage(
        data=encoded,
        encoded_size_bytes=len(encoded),
        original_size_bytes=len(image_bytes),
        quality_used=quality,
        dimension=box,
        kept_original=kept_original,
        mime_type=original_mime if kept_original else "image/jpeg",
    )
