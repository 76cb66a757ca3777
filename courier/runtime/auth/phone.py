"""Phone-number validation for the pairing-code flow."""

from __future__ import annotations

import re

from ..errors import ValidationError

MIN_DIGITS = 10
MAX_DIGITS = 15

_SEPARATORS = re.compile(r"[\s\-()]")
_DIGITS = re.compile(r"[0-9]+")


def validate_phone_number(raw: str) -> str:
    """Return the bare digits of *raw* or raise :class:`ValidationError`.

    Spaces, dashes, parentheses and one leading ``+`` are tolerated; the
    rest must be 10-15 ASCII digits including the country code.
    """
    candidate = _SEPARATORS.sub("", raw or "")
    if candidate.startswith("+"):
        candidate = candidate[1:]
    if not _DIGITS.fullmatch(candidate) or not MIN_DIGITS <= len(candidate) <= MAX_DIGITS:
        raise ValidationError(
            f"phone number must contain {MIN_DIGITS}-{MAX_DIGITS} digits "
            "including the country code, e.g. 254712345678"
        )
    return candidate
