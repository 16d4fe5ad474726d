"""
SPiD Python SDK

Client library for the SPiD identity and payment API: authenticated REST
clients (client credentials or user tokens with automatic refresh on 401)
and a facade turning session polling into login/logout/... events.
"""

from .client import (
    SpidClient,
    SpidAsyncClient,
    build_request,
    create_open_client,
    create_server_client,
    create_user_client,
)
from .credentials import (
    AuthOptions,
    BearerCredentials,
    ClientCredentials,
    Credentials,
    NoCredentials,
    resolve_credentials,
)
from .errors import (
    SDKError,
    ConfigError,
    TransportError,
    HttpError,
    AuthError,
    MalformedResponseError,
    is_sdk_error,
)
from .events import EventEmitter
from .persistence import CookiePersistence, FilePersistence, InMemoryCache, NullPersistence
from .sdk import SpidSDK
from .session import SessionEvent, SessionEventType, SessionTracker, diff_session
from .types import (
    CacheOptions,
    Persistence,
    RequestDescriptor,
    SDKOptions,
    SpidConfig,
    TokenResult,
)
from .uri import ENDPOINTS, Uri
from .util import basic_auth_header, bearer_auth_header

__version__ = "0.1.0"
__all__ = [
    # Clients
    "SpidClient",
    "SpidAsyncClient",
    "SpidSDK",
    "build_request",
    "create_open_client",
    "create_server_client",
    "create_user_client",
    # Credentials
    "AuthOptions",
    "BearerCredentials",
    "ClientCredentials",
    "Credentials",
    "NoCredentials",
    "resolve_credentials",
    "basic_auth_header",
    "bearer_auth_header",
    # Types
    "CacheOptions",
    "Persistence",
    "RequestDescriptor",
    "SDKOptions",
    "SpidConfig",
    "TokenResult",
    # Session
    "SessionEvent",
    "SessionEventType",
    "SessionTracker",
    "diff_session",
    "EventEmitter",
    # Errors
    "SDKError",
    "ConfigError",
    "TransportError",
    "HttpError",
    "AuthError",
    "MalformedResponseError",
    "is_sdk_error",
    # Persistence
    "CookiePersistence",
    "FilePersistence",
    "InMemoryCache",
    "NullPersistence",
    # URLs
    "ENDPOINTS",
    "Uri",
]
