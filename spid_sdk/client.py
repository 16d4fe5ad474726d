"""
SPiD SDK Client

Synchronous and asynchronous clients for the SPiD REST endpoints. The
credentials given in the config decide how requests are authenticated:
anonymously, with client credentials (Basic auth) or with a user access
token. A 401 answer is recovered from once per call by refreshing the access
token when a refresh token is known.
"""

import asyncio
import logging
import threading
from types import MappingProxyType
from typing import Any, Awaitable, Dict, Mapping, Optional, Tuple, Union

import httpx

from .credentials import BearerCredentials, Credentials, resolve_credentials
from .errors import (
    ConfigError,
    HttpError,
    MalformedResponseError,
    SDKError,
    TransportError,
)
from .types import VALID_METHODS, RequestDescriptor, SpidConfig, TokenResult
from .uri import ENDPOINTS, url_normalizer
from .util import clone_defined
from .validate import is_non_empty_str, is_object, is_url


logger = logging.getLogger("spid_sdk")

TOKEN_PATH = "/oauth/token"

# Body fields never written to the debug trace
SECRET_FIELDS = ("access_token", "refresh_token", "client_secret", "password")


def build_request(method: Any, path: Any, data: Optional[Mapping[str, Any]] = None) -> RequestDescriptor:
    """
    Validate a call and drop the payload keys whose value is None.

    Raises:
        ConfigError: if the method is not exactly GET, POST or DELETE, the
            path is empty or the payload is not a mapping
    """
    if not isinstance(method, str) or method not in VALID_METHODS:
        raise ConfigError(f'Method must be one of {" | ".join(VALID_METHODS)} but it is {method!r}')
    if not is_non_empty_str(path):
        raise ConfigError(f'Pathname must be a non-empty string but it is {path!r}')
    if data is not None and not is_object(data):
        raise ConfigError(f"Payload must be a mapping but it is {type(data).__name__}")
    return RequestDescriptor(method, path, MappingProxyType(clone_defined(data)))


def _masked(headers: Mapping[str, str]) -> Dict[str, str]:
    """Copy of headers safe to log."""
    masked = dict(headers)
    if "Authorization" in masked:
        scheme = masked["Authorization"].split(" ", 1)[0]
        masked["Authorization"] = f"{scheme} ***"
    return masked


def _masked_body(body: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if body is None:
        return None
    return {key: "***" if key in SECRET_FIELDS else value for key, value in body.items()}


class _ClientCore:
    """State and helpers shared by the sync and async clients."""

    def __init__(self, config: Optional[SpidConfig] = None) -> None:
        config = config or SpidConfig()
        self._server_url = url_normalizer(config.server_url or "LOCAL", ENDPOINTS["SPiD"])
        if not is_url(self._server_url):
            raise ConfigError(f"server_url is invalid: {config.server_url!r}")

        self._credentials: Credentials = resolve_credentials(
            config, config.token_min_length, config.token_max_length
        )
        self._scope = config.scope
        self._timeout = config.timeout
        self._custom_headers = config.headers or {}
        self._debug = config.debug
        self._logger = config.logger or logger
        self._transport = config.transport

        self._log(
            f"{self.__class__.__name__} initialized "
            f"(server_url={self._server_url}, auth={type(self._credentials).__name__})"
        )

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def server_url(self) -> str:
        return self._server_url

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            self._logger.debug(f"[SPiD] {message}", *args)

    def _current_access_token(self) -> Optional[str]:
        if isinstance(self._credentials, BearerCredentials):
            return self._credentials.access_token
        return None

    def _should_refresh(self, error: SDKError, retry: bool) -> bool:
        return retry and error.status == 401 and self._credentials.can_refresh()

    def _refreshable_credentials(self) -> BearerCredentials:
        credentials = self._credentials
        if not isinstance(credentials, BearerCredentials) or not credentials.refresh_token:
            raise ConfigError("No refresh token available")
        return credentials

    def _refresh_request(self, credentials: BearerCredentials, scope: Optional[str]) -> RequestDescriptor:
        return build_request("POST", TOKEN_PATH, {
            "grant_type": "refresh_token",
            "refresh_token": credentials.refresh_token,
            "scope": scope or self._scope,
        })

    def _store_tokens(self, credentials: BearerCredentials, response: Any) -> TokenResult:
        """Replace the access token (and a rotated refresh token) from a token response."""
        if not is_object(response) or not is_non_empty_str(response.get("access_token")):
            raise MalformedResponseError("Token response carries no access_token", 200, repr(response))
        result = TokenResult.from_dict(dict(response))
        credentials.access_token = result.access_token
        if result.refresh_token:
            credentials.refresh_token = result.refresh_token
        self._log("Access token refreshed")
        return result

    def _prepare(
        self, request: RequestDescriptor, auth_headers: Mapping[str, str]
    ) -> Tuple[str, Dict[str, Any]]:
        """Build the URL and the httpx keyword arguments for one request."""
        if is_url(request.path):
            url = request.path
        else:
            url = f"{self._server_url}/{request.path.lstrip('/')}"

        headers: Dict[str, str] = {**self._custom_headers, **auth_headers}
        kwargs: Dict[str, Any] = {"headers": headers}

        if request.payload:
            if request.method == "POST":
                headers["Content-Type"] = "application/x-www-form-urlencoded"
                kwargs["data"] = dict(request.payload)
            else:
                # GET and DELETE use query strings
                kwargs["params"] = dict(request.payload)

        self._log("Doing a %s to %s", request.method, url)
        self._log("Headers: %r", _masked(headers))
        self._log("Body: %r", _masked_body(kwargs.get("data")))
        return url, kwargs

    def _handle_response(self, response: httpx.Response) -> Any:
        """Parse the JSON body and raise for statuses outside 200-299."""
        self._log("Response came back with code %d (%s)", response.status_code, response.reason_phrase)

        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                raise MalformedResponseError(
                    f"Response body is not valid JSON ({response.status_code} {response.reason_phrase})",
                    response.status_code,
                    response.text,
                )
        self._log("Body: %r", _masked_body(body) if is_object(body) else body)

        if not response.is_success:
            raise HttpError.from_response(response.status_code, response.reason_phrase, body)
        return body


class SpidClient(_ClientCore):
    """
    SPiD Client - Synchronous SDK entry point for server runtimes.

    Example:
        with SpidClient(SpidConfig(server_url="PRE", client_id=cid, client_secret=secret)) as api:
            api.get("/api/2/endpoints")
    """

    def __init__(self, config: Optional[SpidConfig] = None) -> None:
        super().__init__(config)
        self._refresh_lock = threading.Lock()
        self._http_client = httpx.Client(timeout=self._timeout, transport=self._transport)

    @property
    def cookies(self) -> httpx.Cookies:
        return self._http_client.cookies

    # =========================================================================
    # Request Methods
    # =========================================================================

    def request(self, method: str, path: str, data: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Call an endpoint and return its parsed JSON body.

        Args:
            method: GET, POST or DELETE
            path: path like '/api/2/endpoint-name' or an absolute URL
            data: query parameters (GET/DELETE) or form fields (POST)

        Raises:
            ConfigError: for invalid arguments, before any network activity
            HttpError: for non-2xx answers (AuthError for 401)
            TransportError: for network failures
        """
        return self._call(build_request(method, path, data))

    def get(self, path: str, data: Optional[Mapping[str, Any]] = None) -> Any:
        return self.request("GET", path, data)

    def post(self, path: str, data: Optional[Mapping[str, Any]] = None) -> Any:
        return self.request("POST", path, data)

    def delete(self, path: str, data: Optional[Mapping[str, Any]] = None) -> Any:
        return self.request("DELETE", path, data)

    def refresh_access_token(self, scope: Optional[str] = None) -> TokenResult:
        """
        Exchange the refresh token for a new access token.

        See https://tools.ietf.org/html/rfc6749#section-6
        """
        credentials = self._refreshable_credentials()
        response = self._call(self._refresh_request(credentials, scope), retry=False, authenticate=False)
        return self._store_tokens(credentials, response)

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _call(self, request: RequestDescriptor, retry: bool = True, authenticate: bool = True) -> Any:
        """Send a request, refreshing the token and retrying once on 401."""
        sent_token = self._current_access_token()
        try:
            return self._execute_request(request, self._credentials.auth_headers() if authenticate else {})
        except SDKError as error:
            if not self._should_refresh(error, retry):
                raise
            self._log("Got 401 for %s %s, refreshing the access token", request.method, request.path)

        self._refresh_once(sent_token)
        return self._execute_request(request, self._credentials.auth_headers())

    def _refresh_once(self, sent_token: Optional[str]) -> None:
        with self._refresh_lock:
            if self._current_access_token() != sent_token:
                self._log("Access token was already refreshed by a concurrent call")
                return
            self.refresh_access_token()

    def _execute_request(self, request: RequestDescriptor, auth_headers: Mapping[str, str]) -> Any:
        """Execute a single HTTP request."""
        url, kwargs = self._prepare(request, auth_headers)
        try:
            response = self._http_client.request(request.method, url, **kwargs)
        except httpx.TimeoutException:
            raise TransportError("Request timeout", {"timeout": self._timeout})
        except httpx.RequestError as e:
            raise TransportError(str(e))
        return self._handle_response(response)

    def close(self) -> None:
        """Close the HTTP client."""
        self._http_client.close()

    def __enter__(self) -> "SpidClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# =============================================================================
# Async Client
# =============================================================================

class SpidAsyncClient(_ClientCore):
    """
    SPiD Async Client - Asynchronous SDK entry point.

    ``request``, ``get``, ``post``, ``delete`` and ``refresh_access_token``
    validate their arguments immediately and return an awaitable, so a
    ConfigError is raised at the call site rather than when awaiting.
    """

    def __init__(self, config: Optional[SpidConfig] = None) -> None:
        super().__init__(config)
        # Created on first use so it binds to the running loop
        self._refresh_lock: Optional[asyncio.Lock] = None

        # HTTP client (created lazily)
        self._http_client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._http_client

    @property
    def cookies(self) -> httpx.Cookies:
        return self._get_client().cookies

    # =========================================================================
    # Request Methods
    # =========================================================================

    def request(self, method: str, path: str, data: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        """Call an endpoint. See SpidClient.request."""
        return self._call(build_request(method, path, data))

    def get(self, path: str, data: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        return self.request("GET", path, data)

    def post(self, path: str, data: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        return self.request("POST", path, data)

    def delete(self, path: str, data: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        return self.request("DELETE", path, data)

    def refresh_access_token(self, scope: Optional[str] = None) -> Awaitable[TokenResult]:
        """Exchange the refresh token for a new access token."""
        credentials = self._refreshable_credentials()
        return self._refresh(credentials, self._refresh_request(credentials, scope))

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _refresh(self, credentials: BearerCredentials, request: RequestDescriptor) -> TokenResult:
        response = await self._call(request, retry=False, authenticate=False)
        return self._store_tokens(credentials, response)

    async def _call(self, request: RequestDescriptor, retry: bool = True, authenticate: bool = True) -> Any:
        """Send a request, refreshing the token and retrying once on 401."""
        sent_token = self._current_access_token()
        try:
            return await self._execute_request(
                request, self._credentials.auth_headers() if authenticate else {}
            )
        except SDKError as error:
            if not self._should_refresh(error, retry):
                raise
            self._log("Got 401 for %s %s, refreshing the access token", request.method, request.path)

        await self._refresh_once(sent_token)
        return await self._execute_request(request, self._credentials.auth_headers())

    async def _refresh_once(self, sent_token: Optional[str]) -> None:
        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()
        async with self._refresh_lock:
            if self._current_access_token() != sent_token:
                self._log("Access token was already refreshed by a concurrent call")
                return
            await self.refresh_access_token()

    async def _execute_request(self, request: RequestDescriptor, auth_headers: Mapping[str, str]) -> Any:
        """Execute a single HTTP request."""
        url, kwargs = self._prepare(request, auth_headers)
        try:
            client = self._get_client()
            response = await client.request(request.method, url, **kwargs)
        except httpx.TimeoutException:
            raise TransportError("Request timeout", {"timeout": self._timeout})
        except httpx.RequestError as e:
            raise TransportError(str(e))
        return self._handle_response(response)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "SpidAsyncClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# =============================================================================
# Factory Functions
# =============================================================================

AnyClient = Union[SpidClient, SpidAsyncClient]


def _create(config: SpidConfig, async_: bool) -> AnyClient:
    return SpidAsyncClient(config) if async_ else SpidClient(config)


def create_open_client(server_url: str = "LOCAL", async_: bool = False, **options: Any) -> AnyClient:
    """Client for endpoints that need no authorization."""
    return _create(SpidConfig(server_url=server_url, **options), async_)


def create_server_client(
    server_url: str, client_id: str, client_secret: str, async_: bool = False, **options: Any
) -> AnyClient:
    """Client for endpoints that need client credentials."""
    return _create(
        SpidConfig(server_url=server_url, client_id=client_id, client_secret=client_secret, **options),
        async_,
    )


def create_user_client(
    server_url: str,
    access_token: Optional[str] = None,
    refresh_token: Optional[str] = None,
    async_: bool = False,
    **options: Any,
) -> AnyClient:
    """Client for endpoints that need a user token."""
    if access_token is None and refresh_token is None:
        raise ConfigError("access_token or refresh_token is required")
    return _create(
        SpidConfig(server_url=server_url, access_token=access_token, refresh_token=refresh_token, **options),
        async_,
    )
