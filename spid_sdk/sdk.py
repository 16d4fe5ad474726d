"""
SPiD SDK Facade

Anonymous session polling and entitlement checks for a site using SPiD.
Session responses are compared with the previous one and the resulting
changes are published on ``SpidSDK.event``:

    sdk = SpidSDK(SDKOptions(client_id="abc", redirect_uri="https://site.example/cb"))
    sdk.event.on("login", lambda session: print("hello", session["userId"]))
    await sdk.has_session()
"""

from typing import Any, Dict, Mapping, Optional

from .client import SpidAsyncClient, logger
from .errors import HttpError, MalformedResponseError, SDKError
from .events import EventEmitter
from .persistence import (
    VARNISH_COOKIE,
    CookiePersistence,
    FilePersistence,
    InMemoryCache,
    NullPersistence,
)
from .session import SessionTracker, diff_session
from .types import Persistence, SDKOptions, SpidConfig
from .uri import Uri
from .validate import is_non_empty_str, is_object, is_url


class SpidSDK:
    """
    Session and entitlement facade.

    Raises:
        ConfigError: if the options are missing or some of their values are invalid
    """

    def __init__(self, options: SDKOptions) -> None:
        SDKError.assert_(isinstance(options, SDKOptions), "SDK options must be an SDKOptions instance")
        SDKError.assert_(is_non_empty_str(options.client_id), "client_id parameter is required")
        SDKError.assert_(is_url(options.redirect_uri), f"redirect_uri parameter is invalid: {options.redirect_uri}")

        self.uri = Uri(
            client_id=options.client_id,
            redirect_uri=options.redirect_uri,
            server_url=options.server_url,
            payment_server_url=options.payment_server_url,
        )
        SDKError.assert_(is_url(self.uri.spid_url), f"server_url parameter is invalid: {options.server_url}")
        SDKError.assert_(
            is_url(self.uri.payment_url),
            f"payment_server_url parameter is invalid: {options.payment_server_url}",
        )

        self.options = options
        self._debug = options.debug
        self._logger = options.logger or logger
        self.event = EventEmitter()

        # Previous session and the state tracked across session diffs
        self._session: Dict[str, Any] = {}
        self._tracker = SessionTracker()

        self.cache: Optional[InMemoryCache] = InMemoryCache() if options.cache.enabled() else None
        self._api = SpidAsyncClient(SpidConfig(
            server_url=self.uri.spid_url,
            timeout=options.timeout,
            debug=options.debug,
            logger=options.logger,
            transport=options.transport,
        ))
        self.persist: Persistence = self._get_persistence(options.persistence)

    def _get_persistence(self, which: str) -> Persistence:
        key = f"spid_py_{self.options.client_id}"
        if which == "file":
            return FilePersistence(key, self.options.persistence_path)
        if which == "cookie":
            return CookiePersistence(key, self._api.cookies)
        return NullPersistence()

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            self._logger.debug(f"[SPiD] {message}", *args)

    @property
    def session(self) -> Dict[str, Any]:
        """The last session seen by has_session."""
        return self._session

    def version(self) -> str:
        from . import __version__
        return __version__

    # =========================================================================
    # Session
    # =========================================================================

    async def has_session(self) -> Dict[str, Any]:
        """
        Get the session of the visitor.

        A cached session that has not expired is returned without any request
        and without emitting events. Otherwise the session endpoint is
        queried, the change events are emitted and the session is cached.

        Raises:
            SDKError: after emitting it on the "error" channel
        """
        cached = self.persist.get()
        if cached:
            self._log("Session resolved from cache")
            return cached

        try:
            data = await self._fetch_session()
            if not is_object(data):
                raise MalformedResponseError("Session response is not an object", 200, repr(data))
        except SDKError as error:
            self.event.emit("error", error)
            raise

        cache_ttl = self.options.cache.has_session
        ttl = data.get("expiresIn") or cache_ttl
        if (data.get("result") or cache_ttl) and ttl:
            self.persist.set(data, ttl)

        self._emit_session_events(self._session, data)
        self._session = data
        return data

    async def _fetch_session(self) -> Any:
        if not self.options.use_session_cluster:
            return await self._api.get(self.uri.session(1))
        try:
            return await self._api.get(self.uri.session_cluster(1))
        except HttpError as error:
            if error.extra_fields.get("type") != "LoginException":
                raise
            # The session cluster refused us, fall back to the core endpoint
            self._log("Session cluster answered with a LoginException, falling back")
            self.event.emit("loginException")
            return await self._api.get(self.uri.session(1))

    def _emit_session_events(self, previous: Mapping[str, Any], current: Mapping[str, Any]) -> None:
        for session_event in diff_session(previous, current, self._tracker):
            self._log("Emitting %s", session_event.name)
            self.event.emit(session_event.name, session_event.payload)

    async def accept_agreement(self) -> Dict[str, Any]:
        """Accept the terms for the current user, then poll the session again."""
        await self._api.get(self.uri.agreement())
        self.clear_client_data()
        return await self.has_session()

    def clear_client_data(self) -> None:
        """Forget the cached session and the Varnish cookie."""
        self.persist.clear()
        self._api.cookies.delete(VARNISH_COOKIE)

    # =========================================================================
    # Entitlements
    # =========================================================================

    async def has_product(self, product_id: Any) -> Any:
        """Check whether the user has access to a product."""
        return await self._check_entitlement(
            f"prd_{product_id}",
            self.uri.product(product_id),
            self.options.cache.has_product,
            "hasProduct",
            {"productId": product_id},
        )

    async def has_subscription(self, product_id: Any) -> Any:
        """Check whether the user has a subscription to a product."""
        return await self._check_entitlement(
            f"pub_{product_id}",
            self.uri.subscription(product_id),
            self.options.cache.has_subscription,
            "hasSubscription",
            {"subscriptionId": product_id},
        )

    async def _check_entitlement(
        self,
        cache_key: str,
        url: str,
        ttl: Optional[int],
        event: str,
        event_data: Dict[str, Any],
    ) -> Any:
        use_cache = self.cache is not None and bool(ttl)
        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        data = await self._api.get(url)
        if is_object(data) and data.get("result"):
            if use_cache:
                self.cache.set(cache_key, data, ttl)
            self.event.emit(event, {**event_data, "result": data["result"]})
        return data

    async def set_traits(self, traits: str) -> Any:
        return await self._api.get(self.uri.traits(traits))

    # =========================================================================
    # Login, logout and payment
    # =========================================================================

    def login_url(self, login_type: str = "", redirect_uri: Optional[str] = None) -> str:
        """
        Args:
            login_type: "" for username/password, "otp-email" or "otp-sms"
            redirect_uri: uri receiving the code, defaults to the configured one
        """
        return self.uri.login(login_type, redirect_uri)

    def logout_url(self, redirect_uri: Optional[str] = None) -> str:
        return self.uri.logout(redirect_uri)

    def purchase_url(self, paylink: Any, redirect_uri: Optional[str] = None) -> str:
        return self.uri.purchase_paylink(paylink, redirect_uri)

    def account_url(self) -> str:
        return self.uri.account()

    def purchase_history_url(self) -> str:
        return self.uri.purchase_history()

    def subscriptions_url(self) -> str:
        return self.uri.subscriptions()

    def products_url(self) -> str:
        return self.uri.products()

    def redeem_url(self, voucher_code: str) -> str:
        return self.uri.redeem(voucher_code)

    async def logout(self, redirect_uri: Optional[str] = None) -> Any:
        """End the SPiD session, clear client data and emit "logout"."""
        data = await self._api.get(self.uri.logout(redirect_uri))
        self.clear_client_data()
        self.event.emit("logout", data)
        return data

    async def close(self) -> None:
        await self._api.close()

    async def __aenter__(self) -> "SpidSDK":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
