"""Image payload validation.

Images arrive as ``data:image/<type>;base64,<payload>`` URLs. Validation
checks the declared type, decodes the payload strictly, enforces the size
limit on the decoded bytes, and verifies the file signature (magic number)
so a renamed file cannot pass as an image.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Literal, cast

from quickpaste.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

ImageType = Literal["png", "jpeg", "gif", "webp"]

IMAGE_DATA_URL_REGEX = re.compile(r"^data:image/(jpeg|jpg|png|gif|webp);base64,", re.IGNORECASE)


def get_image_type_from_subtype(subtype: str) -> ImageType:
    """Map the MIME subtype of a data URL to an internal image type."""
    subtype = subtype.lower()
    if subtype == "jpg":
        return "jpeg"
    return cast(ImageType, subtype)


def validate_image_signature(data: bytes, expected_type: ImageType) -> bool:
    """Validate image magic numbers against the declared type.

    Args:
        data: Decoded image bytes.
        expected_type: Type declared by the data URL.

    Returns:
        True if the signature matches, False otherwise.
    """
    if expected_type == "webp":
        return data[:4] == b"RIFF" and data[8:12] == b"WEBP"

    SIGNATURES = {
        "png": [b"\x89PNG\r\n\x1a\n"],
        "jpeg": [b"\xff\xd8\xff"],
        "gif": [b"GIF87a", b"GIF89a"],
    }

    for sig in SIGNATURES.get(expected_type, []):
        if data.startswith(sig):
            return True

    logger.warning(
        "image_signature.invalid",
        extra={
            "expected_type": expected_type,
            "actual_prefix": data[:8] if data else "EMPTY",
        },
    )
    return False


def estimate_decoded_size(payload: str) -> int:
    """Decoded byte count of a base64 payload, computed without decoding."""
    padding = len(payload) - len(payload.rstrip("="))
    return (len(payload) * 3) // 4 - padding


def decode_image_data_url(data_url: str, *, max_bytes: int) -> tuple[ImageType, bytes]:
    """Validate an image data URL and return its type and decoded bytes.

    The size check runs on the encoded length first so oversized payloads
    are rejected before any decoding work.

    Args:
        data_url: ``data:image/...;base64,...`` string.
        max_bytes: Maximum decoded size in bytes.

    Returns:
        Tuple of (image_type, decoded_bytes).

    Raises:
        ValidationAppError: If the URL is malformed, too large, not valid
            base64, or its content does not match the declared type.
    """
    match = IMAGE_DATA_URL_REGEX.match(data_url)
    if not match:
        raise ValidationAppError(
            code="invalid_image",
            message="Image must be a base64 data URL of type png, jpeg, gif or webp",
        )

    image_type = get_image_type_from_subtype(match.group(1))
    payload = data_url[match.end():]
    if not payload:
        raise ValidationAppError(code="invalid_image", message="Image payload is empty")

    estimated = estimate_decoded_size(payload)
    if estimated > max_bytes:
        logger.warning(
            "image_validation.rejected_by_size",
            extra={"size": estimated, "max_bytes": max_bytes},
        )
        raise ValidationAppError(
            code="image_too_large",
            message=f"Image too large. Maximum size is {max_bytes} bytes",
            details={"max_value": max_bytes, "actual_value": estimated},
        )

    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationAppError(
            code="invalid_image",
            message="Image payload is not valid base64",
        ) from exc

    if len(decoded) > max_bytes:
        raise ValidationAppError(
            code="image_too_large",
            message="Image too large",
            details={"max_value": max_bytes, "actual_value": len(decoded)},
        )

    if not validate_image_signature(decoded, image_type):
        raise ValidationAppError(
            code="invalid_image",
            message=f"Image content does not match declared type '{image_type}'",
        )

    return image_type, decoded
