"""Image payload helpers: base64, data URLs and MIME sniffing."""

import base64
import binascii
import re
from io import BytesIO
from typing import Optional, Tuple
from PIL import Image, UnidentifiedImageError

from .logger import get_logger
from .errors import ImageProcessingError

logger = get_logger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)

# Pillow format name -> MIME type accepted by the generation model
_FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "HEIC": "image/heic",
    "HEIF": "image/heif",
}


def to_data_url(mime_type: str, base64_data: str) -> str:
    """Compose a self-describing data URL from a MIME type and base64 payload."""
    return f"data:{mime_type};base64,{base64_data}"


def split_data_url(value: str) -> Tuple[Optional[str], str]:
    """
    Split a data URL into (mime_type, base64 payload).

    Plain base64 input is returned unchanged with a None MIME type.
    """
    match = _DATA_URL_RE.match(value.strip())
    if match is None:
        return None, value.strip()
    return match.group("mime"), match.group("data")


def mime_type_from_data_url(value: Optional[str]) -> Optional[str]:
    """MIME type declared by a data URL, or None."""
    if not value:
        return None
    mime_type, _ = split_data_url(value)
    return mime_type


def base64_to_bytes(base64_string: str) -> bytes:
    """
    Convert base64 string (or data URL) to bytes.

    Raises:
        ImageProcessingError: If the payload is not valid base64
    """
    _, payload = split_data_url(base64_string)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageProcessingError(f"Invalid base64 image payload: {e}") from e


def bytes_to_base64(image_bytes: bytes) -> str:
    """Convert image bytes to base64 string."""
    return base64.b64encode(image_bytes).decode('utf-8')


def detect_mime_type(image_bytes: bytes) -> str:
    """
    Sniff the MIME type of encoded image bytes.

    Raises:
        ImageProcessingError: If the bytes are not a supported image
    """
    try:
        with Image.open(BytesIO(image_bytes)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError(f"Failed to read image: {e}") from e

    mime_type = _FORMAT_MIME_TYPES.get(image_format or "")
    if mime_type is None:
        raise ImageProcessingError(f"Unsupported image format: {image_format}")

    logger.debug(f"Detected image format {image_format}", extra={"mime_type": mime_type})
    return mime_type


def prepare_image_payload(value: str, mime_type: Optional[str] = None) -> Tuple[str, str]:
    """
    Normalize a caller supplied image into (base64 payload, MIME type).

    Accepts plain base64 or a data URL. The declared MIME type wins over the
    data URL prefix; when neither is given the bytes are sniffed.
    """
    url_mime_type, payload = split_data_url(value)
    image_bytes = base64_to_bytes(payload)
    if not image_bytes:
        raise ImageProcessingError("Image payload is empty")

    resolved = mime_type or url_mime_type or detect_mime_type(image_bytes)
    return payload, resolved
