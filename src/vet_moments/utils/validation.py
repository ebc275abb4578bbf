"""
Validation and data processing utilities for feed content.

This module provides text sanitization for post and comment bodies and the
media helpers used when recording uploaded files.
"""

import re
import unicodedata
from typing import Optional

VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "webm", "m4v"})
DEFAULT_EXTENSION = "jpg"

SUPPORTED_CONTENT_TYPE_PREFIXES = ("image/", "video/")

# Collapses runs of horizontal whitespace but keeps line breaks
_HORIZONTAL_SPACE = re.compile(r"[ \t\f\v]+")


def sanitize_text(value: Optional[str]) -> str:
    """
    Sanitize user-entered text by normalizing unicode and trimming whitespace.

    Line breaks are preserved; runs of spaces and tabs collapse to one space.

    Args:
        value: The text to sanitize

    Returns:
        Sanitized text, empty string for ``None``
    """
    if value is None:
        return ""

    normalized = unicodedata.normalize("NFKC", value)
    lines = [
        _HORIZONTAL_SPACE.sub(" ", line).strip() for line in normalized.splitlines()
    ]
    return "\n".join(lines).strip()


def media_extension(filename: str) -> str:
    """
    Get the lowercase extension of an uploaded file name.

    Files without an extension are treated as JPEG images.
    """
    if "." not in filename:
        return DEFAULT_EXTENSION
    ext = filename.rsplit(".", 1)[1].strip().lower()
    return ext or DEFAULT_EXTENSION


def media_type_for(filename: str) -> str:
    """Classify an uploaded file as ``"video"`` or ``"image"`` by extension."""
    return "video" if media_extension(filename) in VIDEO_EXTENSIONS else "image"


def is_supported_content_type(content_type: Optional[str]) -> bool:
    """Check that a MIME type is an image or a video."""
    if not content_type:
        return False
    return content_type.lower().startswith(SUPPORTED_CONTENT_TYPE_PREFIXES)
