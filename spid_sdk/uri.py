"""
URL building for the SPiD endpoints.

Server URLs can be given verbatim or as an environment shorthand looked up
in ENDPOINTS.
"""

from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

from .errors import ConfigError
from .util import clone_defined


ENDPOINTS: Dict[str, Dict[str, str]] = {
    # Good old SPiD endpoints (Schibsted Payment & Identity)
    "SPiD": {
        "LOCAL": "http://spp.dev",
        "DEV": "https://identity-dev.schibsted.com",
        "PRE": "https://identity-pre.schibsted.com",
        "PRO": "https://login.schibsted.com",
        "PRO.NO": "https://payment.schibsted.no",
    },
    # The session cluster (has-session)
    "SESSION_CLUSTER": {
        "LOCAL": "http://session.spp.dev",
        "DEV": "https://session.identity-dev.schibsted.com",
        "PRE": "https://session.identity-pre.schibsted.com",
        "PRO": "https://session.login.schibsted.com",
        "PRO.NO": "https://session.payment.schibsted.no",
    },
    # BFF (checkout flow)
    "BFF": {
        "LOCAL": "http://spp.dev:4100",
        "DEV": "https://front.identity-dev.schibsted.com",
    },
}


def url_normalizer(url: str, shorthands: Mapping[str, str]) -> str:
    """Resolve an environment shorthand to its URL, strip the trailing slash otherwise."""
    if url in shorthands:
        return shorthands[url]
    return url.rstrip("/")


def server(base_url: str, default_params: Mapping[str, Any]) -> Callable[..., str]:
    """
    Return a builder producing ``base_url/<path>?<query>`` URLs.

    ``default_params`` are sent with every URL; per-call parameters override
    them unless they are None. Parameters whose value is None are left out.
    """

    def build(path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        query = clone_defined({**default_params, **clone_defined(params)})
        url = f"{base_url}/{path.lstrip('/')}"
        if query:
            url += "?" + urlencode(query)
        return url

    return build


class Uri:
    """Builds the endpoint URLs used by the SDK facade."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        server_url: str = "LOCAL",
        payment_server_url: str = "LOCAL",
    ) -> None:
        client_redirect = {"client_id": client_id, "redirect_uri": redirect_uri}
        self.spid_url = url_normalizer(server_url or "LOCAL", ENDPOINTS["SPiD"])
        self.session_cluster_url = url_normalizer(server_url or "LOCAL", ENDPOINTS["SESSION_CLUSTER"])
        self.payment_url = url_normalizer(payment_server_url or "LOCAL", ENDPOINTS["BFF"])

        self._spid = server(self.spid_url, client_redirect)
        self._session_cluster = server(self.session_cluster_url, client_redirect)
        self._bff = server(self.payment_url, client_redirect)

    def login(self, login_type: str = "", redirect_uri: Optional[str] = None) -> str:
        """
        Args:
            login_type: acr value, "" for username/password, "otp-email" or
                "otp-sms" for one time passwords
            redirect_uri: overrides the configured redirect uri
        """
        return self._spid("bff-oauth/authorize", {
            "response_type": "code",
            "scope": "openid",
            "acr_values": login_type,
            "redirect_uri": redirect_uri,
        })

    signup = login

    def logout(self, redirect_uri: Optional[str] = None) -> str:
        return self._spid("logout", {"response_type": "code", "redirect_uri": redirect_uri})

    def account(self) -> str:
        return self._spid("account/summary", {"response_type": "code"})

    def purchase_history(self) -> str:
        return self._spid("account/purchasehistory")

    def subscriptions(self) -> str:
        return self._spid("account/subscriptions")

    def products(self) -> str:
        return self._spid("account/products")

    def redeem(self, voucher_code: str) -> str:
        return self._spid("account/summary", {"voucher_code": voucher_code})

    def session_cluster(self, autologin: int = 1) -> str:
        """Session cluster endpoint, the faster and preferred way to query the session."""
        self._check_autologin(autologin)
        return self._session_cluster("rpc/hasSession.js", {"autologin": autologin})

    def session(self, autologin: int = 1) -> str:
        self._check_autologin(autologin)
        return self._spid("ajax/hasSession.js", {"autologin": autologin})

    def product(self, product_id: Any) -> str:
        return self._spid("ajax/hasproduct.js", {"product_id": product_id})

    def subscription(self, product_id: Any) -> str:
        return self._spid("ajax/hassubscription.js", {"product_id": product_id})

    def agreement(self) -> str:
        return self._spid("ajax/acceptAgreement.js")

    def traits(self, traits: str) -> str:
        return self._spid("ajax/traits.js", {"t": traits})

    def purchase_paylink(self, paylink: Any, redirect_uri: Optional[str] = None) -> str:
        return self._bff("api/payment/purchase", {"paylink": paylink, "redirect_uri": redirect_uri})

    @staticmethod
    def _check_autologin(autologin: Any) -> None:
        if autologin not in (0, 1) or isinstance(autologin, bool):
            raise ConfigError(f'Invalid autologin value: {autologin!r}')
