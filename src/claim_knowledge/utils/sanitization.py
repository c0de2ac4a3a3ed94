"""Input sanitization for retrieval queries and search filter literals."""

import re

from claim_knowledge.errors import InvalidInput

# Maximum lengths for caller-supplied text (characters)
MAX_QUERY_LENGTH = 4000
MAX_INSTRUCTIONS_LENGTH = 8000
MAX_KEY_LENGTH = 128

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
# Keys allow no control characters at all, tab and newline included
_KEY_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_text(text: str | None, max_length: int, label: str = "Text") -> str:
    """Strip control characters and surrounding whitespace.

    Raises:
        InvalidInput: If the cleaned text is longer than max_length.
    """
    if text is None or not isinstance(text, str):
        return ""
    # Remove control characters (0x00-0x1F except tab/newline/carriage return)
    cleaned = _CONTROL_CHARS.sub("", text).strip()
    if len(cleaned) > max_length:
        raise InvalidInput(f"{label} exceeds {max_length} characters ({len(cleaned)})")
    return cleaned


def validate_key(value: str) -> str:
    """Return a claim number unchanged if it can serve as a document key.

    The same rule applies when indexing and when looking up, so every key that
    can be indexed can also be found again byte for byte.

    Raises:
        InvalidInput: If the key is blank or longer than MAX_KEY_LENGTH, or contains
            a control character.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput("Claim number cannot be empty")
    if len(value) > MAX_KEY_LENGTH:
        raise InvalidInput(f"Claim number exceeds {MAX_KEY_LENGTH} characters ({len(value)})")
    if _KEY_CONTROL_CHARS.search(value):
        raise InvalidInput("Claim number cannot contain control characters")
    return value


def escape_odata_literal(value: str) -> str:
    """Escape a value for use inside a single-quoted OData string literal."""
    return value.replace("'", "''")


def key_filter(field_name: str, value: str) -> str:
    """Exact-match OData filter expression, e.g. ``claimNumber eq 'CLM-1'``."""
    return f"{field_name} eq '{escape_odata_literal(value)}'"
