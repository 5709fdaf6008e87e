"""
Input Validation

Checks performed on images and prompts before any collaborator call.
"""

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError

from lumina.core.exceptions import InvalidImageError, InvalidPromptError


# Pillow format name -> MIME type accepted by the image models
SUPPORTED_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


def decode_image_payload(image_base64: str) -> bytes:
    """Decode a base64 image, with or without a data URL prefix."""
    if not image_base64 or not image_base64.strip():
        raise InvalidImageError("Image is required")
    if "," in image_base64:
        image_base64 = image_base64.split(",", 1)[1]
    try:
        return base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageError("Image must be valid base64 data")


def encode_image(image: bytes) -> str:
    return base64.b64encode(image).decode("utf-8")


def detect_mime_type(image: bytes) -> str:
    """MIME type of an image, defaulting to JPEG when Pillow cannot tell."""
    try:
        with Image.open(io.BytesIO(image)) as img:
            return SUPPORTED_FORMATS.get(img.format, "image/jpeg")
    except (UnidentifiedImageError, OSError):
        return "image/jpeg"


def validate_image(image: bytes, max_bytes: int) -> str:
    """
    Verify an uploaded image and return its MIME type.

    Raises:
        InvalidImageError: empty, too large, unreadable or unsupported format
    """
    if not image:
        raise InvalidImageError("Image is required")
    if len(image) > max_bytes:
        raise InvalidImageError(
            f"Image is too large ({len(image)} bytes, limit {max_bytes} bytes)"
        )
    try:
        with Image.open(io.BytesIO(image)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidImageError(f"Could not read image: {e}")

    if fmt not in SUPPORTED_FORMATS:
        raise InvalidImageError(
            f"Unsupported image format '{fmt}'. Use JPEG, PNG or WEBP."
        )
    return SUPPORTED_FORMATS[fmt]


def _validate_text(text: str, label: str, min_length: int, max_length: int) -> str:
    if text is None or not text.strip():
        raise InvalidPromptError(f"{label} is required")
    cleaned = text.strip()
    if len(cleaned) < min_length:
        raise InvalidPromptError(f"{label} must be at least {min_length} characters")
    if len(cleaned) > max_length:
        raise InvalidPromptError(f"{label} must be at most {max_length} characters")
    return cleaned


def validate_prompt(text: str, min_length: int = 10, max_length: int = 2000) -> str:
    """Redesign and text-to-image prompts."""
    return _validate_text(text, "Prompt", min_length, max_length)


def validate_chat_message(text: str, max_length: int = 500) -> str:
    return _validate_text(text, "Message", 1, max_length)
