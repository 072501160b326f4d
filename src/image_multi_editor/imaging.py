from __future__ import annotations

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError

from .errors import BatchValidationError


def sniff_mime_type(data: bytes) -> str:
    """Return the MIME type of an encoded image, validating that Pillow can read it."""
    if not data:
        raise BatchValidationError("Image content is empty")
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
    except UnidentifiedImageError as exc:
        raise BatchValidationError("Uploaded file is not a readable image") from exc

    mime_type = Image.MIME.get(image_format or "")
    if not mime_type:
        raise BatchValidationError(f"Unsupported image format: {image_format}")
    return mime_type


def to_data_uri(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def from_data_uri(uri: str) -> tuple[bytes, str]:
    """Split a ``data:<mime>;base64,<payload>`` URI back into bytes and MIME type."""
    header, sep, payload = uri.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Expected a base64 data URI")
    mime_type = header[len("data:") : -len(";base64")]
    try:
        return base64.b64decode(payload, validate=True), mime_type
    except binascii.Error as exc:
        raise ValueError(f"Failed to decode data URI payload: {exc}") from exc
