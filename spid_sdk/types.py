"""
SPiD SDK Type Definitions

Configuration dataclasses, the request descriptor and the collaborator
protocols consumed by the request core and the SDK facade.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Literal, Mapping, Optional, Protocol, Union, runtime_checkable

import httpx


HttpMethod = Literal["GET", "POST", "DELETE"]

# Supported methods, matched case-sensitively
VALID_METHODS = ("GET", "POST", "DELETE")

# Tokens shorter than this are rejected by the credential resolver
DEFAULT_TOKEN_MIN_LENGTH = 2


@runtime_checkable
class Persistence(Protocol):
    """Storage interface for the cached session."""

    def get(self) -> Optional[Any]:
        """Get the stored value, or None when absent or expired."""
        ...

    def set(self, value: Any, ttl_seconds: float) -> bool:
        """Store a value for ``ttl_seconds``. Returns whether it was stored."""
        ...

    def clear(self) -> None:
        """Remove the stored value."""
        ...


@dataclass
class SpidConfig:
    """Options for the authenticated API clients."""

    # SPiD server URL, or one of the shorthands LOCAL, DEV, PRE, PRO, PRO.NO
    server_url: str = "LOCAL"
    # Client credentials (Basic auth). Mutually exclusive with the tokens
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    # User tokens (Bearer auth). The access token is replaced after a refresh
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    # Scope requested when refreshing the access token
    scope: Optional[str] = None
    # Request timeout in seconds (default: 30)
    timeout: float = 30.0
    # Accepted token length bounds
    token_min_length: int = DEFAULT_TOKEN_MIN_LENGTH
    token_max_length: Optional[int] = None
    # Custom headers to include in requests
    headers: Optional[Dict[str, str]] = None
    # Enable debug logging (default: False)
    debug: bool = False
    # Logger receiving the request traces (default: the "spid_sdk" logger)
    logger: Optional[logging.Logger] = None
    # Custom httpx transport, mostly useful for tests
    transport: Optional[Union[httpx.BaseTransport, httpx.AsyncBaseTransport]] = None


@dataclass
class CacheOptions:
    """TTLs in seconds for the facade caches. None disables a cache."""

    has_session: Optional[int] = None
    has_product: Optional[int] = None
    has_subscription: Optional[int] = None

    def enabled(self) -> bool:
        return bool(self.has_session or self.has_product or self.has_subscription)


@dataclass
class SDKOptions:
    """Options for the SpidSDK facade."""

    client_id: str
    redirect_uri: str
    server_url: str = "LOCAL"
    payment_server_url: str = "LOCAL"
    # Query the session cluster first and fall back to the core endpoint
    use_session_cluster: bool = True
    # "file", "cookie", anything else disables persistence
    persistence: str = "file"
    persistence_path: Optional[str] = None
    cache: CacheOptions = field(default_factory=CacheOptions)
    timeout: float = 30.0
    debug: bool = False
    logger: Optional[logging.Logger] = None
    transport: Optional[httpx.AsyncBaseTransport] = None


@dataclass(frozen=True)
class RequestDescriptor:
    """One validated request: method, path and the payload left after cleanup."""

    method: HttpMethod
    path: str
    payload: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass
class TokenResult:
    """Token result of a refresh_token grant."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenResult":
        """Create from dictionary."""
        return cls(
            access_token=data.get("access_token", ""),
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope"),
        )
