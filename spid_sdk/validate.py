"""Small predicates used to validate options and payloads."""

from typing import Any, Mapping, Optional
from urllib.parse import urlparse


def is_non_empty_str(value: Any, min_length: int = 1, max_length: Optional[int] = None) -> bool:
    """Check that value is a string with ``min_length <= len(value) <= max_length``."""
    if not isinstance(value, str) or len(value) < max(min_length, 1):
        return False
    return max_length is None or len(value) <= max_length


def is_object(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_non_empty_obj(value: Any) -> bool:
    return is_object(value) and len(value) > 0


def is_url(value: Any) -> bool:
    """Check that value is an absolute http(s) URL."""
    if not is_non_empty_str(value):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_function(value: Any) -> bool:
    return callable(value)
