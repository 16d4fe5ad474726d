"""
Credential resolution.

A client authenticates in exactly one of three ways: not at all, with client
credentials (Basic auth) or with a user access token that may be refreshed.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .errors import ConfigError
from .types import DEFAULT_TOKEN_MIN_LENGTH
from .util import basic_auth_header, bearer_auth_header
from .validate import is_non_empty_str


@dataclass(frozen=True)
class NoCredentials:
    """Anonymous access to open endpoints."""

    def auth_headers(self) -> Dict[str, str]:
        return {}

    def can_refresh(self) -> bool:
        return False


@dataclass(frozen=True)
class ClientCredentials:
    """Client id and secret sent as Basic auth."""

    client_id: str
    client_secret: str

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": basic_auth_header(self.client_id, self.client_secret)}

    def can_refresh(self) -> bool:
        return False


@dataclass
class BearerCredentials:
    """
    User tokens sent as Bearer auth.

    ``access_token`` is replaced in place after a successful refresh. It may
    start out empty when only a refresh token is known; the first 401 then
    triggers a refresh.
    """

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    def auth_headers(self) -> Dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": bearer_auth_header(self.access_token)}

    def can_refresh(self) -> bool:
        return bool(self.refresh_token)


Credentials = Union[NoCredentials, ClientCredentials, BearerCredentials]


@dataclass
class AuthOptions:
    """Raw credential fields as given by the caller."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


def _field(options: Any, name: str) -> Any:
    if isinstance(options, Mapping):
        return options.get(name)
    return getattr(options, name, None)


def resolve_credentials(
    options: Any,
    token_min_length: int = DEFAULT_TOKEN_MIN_LENGTH,
    token_max_length: Optional[int] = None,
) -> Credentials:
    """
    Pick the credential variant described by ``options``.

    Args:
        options: AuthOptions, SpidConfig or any mapping with the
            client_id/client_secret/access_token/refresh_token fields
        token_min_length: minimum accepted token length
        token_max_length: maximum accepted token length, None for unbounded

    Raises:
        ConfigError: if the fields mix both auth methods, carry only half of
            the client credentials or no usable token
    """
    if options is None:
        return NoCredentials()

    client_id = _field(options, "client_id")
    client_secret = _field(options, "client_secret")
    access_token = _field(options, "access_token")
    refresh_token = _field(options, "refresh_token")

    has_client = client_id is not None or client_secret is not None
    has_bearer = access_token is not None or refresh_token is not None

    if has_client and has_bearer:
        raise ConfigError(
            "access_token and/or refresh_token cannot be present when client_id and client_secret are present"
        )

    if has_client:
        if not (is_non_empty_str(client_id) and is_non_empty_str(client_secret)):
            raise ConfigError("client_id and client_secret must both be present")
        return ClientCredentials(client_id, client_secret)

    if has_bearer:
        def valid(token: Any) -> bool:
            return is_non_empty_str(token, token_min_length, token_max_length)

        if not (valid(access_token) or valid(refresh_token)):
            raise ConfigError("Neither access_token nor refresh_token is a valid token")
        return BearerCredentials(
            access_token if valid(access_token) else None,
            refresh_token if valid(refresh_token) else None,
        )

    return NoCredentials()
