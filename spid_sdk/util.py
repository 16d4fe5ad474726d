"""
Helpers shared by the request core: base64, authorization headers and
payload cleanup.
"""

import base64
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError
from .validate import is_non_empty_str, is_object


def to_base64(value: str) -> str:
    """Encode a string in base64 (UTF-8)."""
    if not isinstance(value, str):
        raise ConfigError(f'Cannot encode a non-string value to base-64: {value!r}')
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def clone_defined(src: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Copy a mapping, leaving out every key whose value is None.

    None plays the role of an undefined value: such keys are treated as
    absent and never sent over the wire.
    """
    if not is_object(src):
        return {}
    return {key: value for key, value in src.items() if value is not None}


def basic_auth_header(user: str, password: str) -> str:
    """Build a Basic authorization header value."""
    if not is_non_empty_str(user):
        raise ConfigError(f'User should be a non-empty string but is {user!r}')
    if not isinstance(password, str):
        raise ConfigError(f"Password should be string but it is of type {type(password).__name__}")
    return f"Basic {to_base64(f'{user}:{password}')}"


def bearer_auth_header(token: str) -> str:
    """Build a Bearer authorization header value."""
    if not is_non_empty_str(token):
        raise ConfigError(f"Token should be a non-empty string but is of type {type(token).__name__}")
    return f"Bearer {token}"
