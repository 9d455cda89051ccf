"""
Input validation and sanitization for chat text and model names.
All functions are pure and raise ValidationError on bad input.
"""

import re
from typing import List

from .errors import ValidationError


MAX_TEXT_LENGTH = 10000
MAX_MODEL_NAME_LENGTH = 100

MODEL_NAME_PATTERN = re.compile(r"[A-Za-z0-9._:-]+")
URL_PATTERN = re.compile(r"https?://[\w-]+(\.[\w-]+)*(:\d+)?(/[\w\-.,@?^=%&:/~+#]*)?")

# Matched case-insensitively against chat input
BLOCKED_SUBSTRINGS: List[str] = [
    '<script',
    'javascript:',
    'data:',
    'vbscript:',
    'onload=',
    'onerror=',
    'onclick=',
    'eval(',
    'document.cookie',
    'document.write',
]

_ESCAPES = {
    '<': '&lt;',
    '>': '&gt;',
    '"': '&quot;',
    "'": '&#x27;',
    '&': '&amp;',
}
_ESCAPE_PATTERN = re.compile(r"""[<>"'&]""")


def is_valid_text(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """
    Validate chat input text.

    Args:
        text: Raw user text
        max_length: Maximum accepted length in characters

    Returns:
        The text unchanged

    Raises:
        ValidationError: If the text is blank, too long, or looks like an injection attempt
    """
    if text is None or not text.strip():
        raise ValidationError("Input text cannot be empty")

    if len(text) > max_length:
        raise ValidationError(f"Input text is too long (max {max_length} characters)")

    lowered = text.lower()
    for pattern in BLOCKED_SUBSTRINGS:
        if pattern in lowered:
            raise ValidationError("Input contains potentially harmful content")

    return text


def sanitize(text: str) -> str:
    """Trim and HTML-escape < > " ' &."""
    return _ESCAPE_PATTERN.sub(lambda match: _ESCAPES[match.group(0)], text.strip())


def is_valid_model_name(name: str) -> str:
    """
    Validate a model name such as 'llama3.1:8b'.

    Raises:
        ValidationError: If the name is blank, too long, or has characters
            outside [A-Za-z0-9._:-]
    """
    if name is None or not name.strip():
        raise ValidationError("Model name cannot be empty")

    if len(name) > MAX_MODEL_NAME_LENGTH:
        raise ValidationError(f"Model name is too long (max {MAX_MODEL_NAME_LENGTH} characters)")

    if not MODEL_NAME_PATTERN.fullmatch(name):
        raise ValidationError(f"Model name '{name}' contains invalid characters")

    return name


def is_valid_url(url: str) -> str:
    if url is None or not url.strip():
        raise ValidationError("URL cannot be empty")
    if not URL_PATTERN.fullmatch(url):
        raise ValidationError(f"Invalid URL format: {url}")
    return url
