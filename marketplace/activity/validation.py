"""Subject identifier validation."""

import re
from typing import Any, Optional

from marketplace.activity.exceptions import InvalidArgument

_DIGITS = re.compile(r"[0-9]+")

# Entity ids are 32-bit INTEGER columns
MAX_SUBJECT_ID = 2 ** 31 - 1
_MAX_DIGITS = len(str(MAX_SUBJECT_ID))


def parse_subject_id(raw: str, field: str) -> int:
    """
    Parse a path identifier.

    Only plain ASCII digits are accepted; signs, whitespace, decimals, zero
    and values past MAX_SUBJECT_ID are rejected.
    """
    if raw is None or not _DIGITS.fullmatch(raw) or len(raw.lstrip("0")) > _MAX_DIGITS:
        raise InvalidArgument(
            f"{field} must be a positive integer",
            details={"field": field, "value": raw},
        )
    return ensure_subject_id(int(raw), field)


def ensure_subject_id(value: Any, field: str) -> int:
    """Check an already-typed identifier before it reaches the store."""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= MAX_SUBJECT_ID:
        raise InvalidArgument(
            f"{field} must be a positive integer no greater than {MAX_SUBJECT_ID}",
            details={"field": field, "value": value},
        )
    return value


def ensure_page(limit: Optional[int], offset: int, max_page_size: int) -> None:
    """Check seller order pagination arguments."""
    if limit is not None and not 1 <= limit <= max_page_size:
        raise InvalidArgument(
            f"limit must be between 1 and {max_page_size}",
            details={"field": "limit", "value": limit},
        )
    if offset < 0:
        raise InvalidArgument(
            "offset must not be negative",
            details={"field": "offset", "value": offset},
        )
