"""Order identifier generation."""

import secrets
import string
import time

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_SUFFIX_LENGTH = 6


def generate_order_id(prefix: str = "WEB") -> str:
    """
    Generate an external order identifier.

    Format: WEB-<epoch millis>-<6 random base36 chars>. The random suffix
    keeps IDs distinct when requests land in the same millisecond.
    """
    millis = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{prefix}-{millis}-{suffix}"
