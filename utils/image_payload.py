# utils/image_payload.py
import base64
import binascii
import re
from typing import Optional, Union

from utils.exceptions import ValidationError

DATA_URI_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)


def decode_image(image: Union[bytes, bytearray, str, None], field: str = "image") -> Optional[bytes]:
    """Normalize an inbound image (raw bytes, base64 or data URI) to bytes."""
    if image is None:
        return None
    if isinstance(image, (bytes, bytearray)):
        return bytes(image) or None
    if not isinstance(image, str):
        raise ValidationError(f"Invalid {field} payload")

    image = DATA_URI_PREFIX.sub("", image.strip())
    if not image:
        return None

    # Clients often strip the base64 padding
    missing_padding = len(image) % 4
    if missing_padding:
        image += "=" * (4 - missing_padding)
    try:
        return base64.b64decode(image)
    except (binascii.Error, ValueError) as decode_error:
        raise ValidationError(f"Invalid base64 {field}: {str(decode_error)}") from decode_error
