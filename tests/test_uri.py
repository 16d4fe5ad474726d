"""
Tests for endpoint URL building
"""

from urllib.parse import parse_qs, urlparse

import pytest

from spid_sdk.errors import ConfigError
from spid_sdk.uri import ENDPOINTS, Uri, server, url_normalizer


def query(url: str):
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


@pytest.fixture
def uri() -> Uri:
    return Uri(
        client_id="client",
        redirect_uri="https://site.example/callback",
        server_url="PRE",
        payment_server_url="DEV",
    )


class TestUrlNormalizer:

    def test_shorthand(self):
        assert url_normalizer("PRO", ENDPOINTS["SPiD"]) == "https://login.schibsted.com"
        assert url_normalizer("PRO", ENDPOINTS["SESSION_CLUSTER"]) == "https://session.login.schibsted.com"

    def test_verbatim_url(self):
        assert url_normalizer("https://spid.example/", ENDPOINTS["SPiD"]) == "https://spid.example"


class TestServerBuilder:

    def test_default_and_call_params(self):
        build = server("https://spid.example", {"client_id": "c", "redirect_uri": None})

        assert build("/logout", {"a": "1"}) == "https://spid.example/logout?client_id=c&a=1"

    def test_call_params_override_defaults(self):
        build = server("https://spid.example", {"client_id": "c"})

        assert query(build("x", {"client_id": "other"})) == {"client_id": "other"}

    def test_none_override_keeps_default(self):
        build = server("https://spid.example", {"client_id": "c", "redirect_uri": "https://site.example/"})

        assert query(build("x", {"redirect_uri": None}))["redirect_uri"] == "https://site.example/"

    def test_no_query(self):
        assert server("https://spid.example", {})("account") == "https://spid.example/account"


class TestUri:
    """Tests for the facade URLs."""

    def test_base_urls(self, uri: Uri):
        assert uri.spid_url == "https://identity-pre.schibsted.com"
        assert uri.session_cluster_url == "https://session.identity-pre.schibsted.com"
        assert uri.payment_url == "https://front.identity-dev.schibsted.com"

    def test_login(self, uri: Uri):
        url = uri.login()

        assert url.startswith("https://identity-pre.schibsted.com/bff-oauth/authorize?")
        assert query(url) == {
            "client_id": "client",
            "redirect_uri": "https://site.example/callback",
            "response_type": "code",
            "scope": "openid",
        }

    def test_login_otp_and_redirect(self, uri: Uri):
        params = query(uri.login("otp-email", "https://other.example/"))

        assert params["acr_values"] == "otp-email"
        assert params["redirect_uri"] == "https://other.example/"

    def test_default_redirect_uri_is_kept(self, uri: Uri):
        assert query(uri.login(redirect_uri=None))["redirect_uri"] == "https://site.example/callback"
        assert query(uri.logout())["redirect_uri"] == "https://site.example/callback"
        assert query(uri.purchase_paylink(1))["redirect_uri"] == "https://site.example/callback"

    def test_redirect_uri_override(self, uri: Uri):
        assert query(uri.logout("https://other.example/bye"))["redirect_uri"] == "https://other.example/bye"

    def test_signup_is_login(self, uri: Uri):
        assert uri.signup() == uri.login()

    def test_logout(self, uri: Uri):
        url = uri.logout()

        assert urlparse(url).path == "/logout"
        assert query(url)["response_type"] == "code"

    def test_account_pages(self, uri: Uri):
        assert urlparse(uri.account()).path == "/account/summary"
        assert urlparse(uri.purchase_history()).path == "/account/purchasehistory"
        assert urlparse(uri.subscriptions()).path == "/account/subscriptions"
        assert urlparse(uri.products()).path == "/account/products"
        assert query(uri.redeem("VOUCHER"))["voucher_code"] == "VOUCHER"

    def test_session_endpoints(self, uri: Uri):
        cluster = uri.session_cluster(1)
        core = uri.session(0)

        assert cluster.startswith("https://session.identity-pre.schibsted.com/rpc/hasSession.js?")
        assert query(cluster)["autologin"] == "1"
        assert core.startswith("https://identity-pre.schibsted.com/ajax/hasSession.js?")
        assert query(core)["autologin"] == "0"

    @pytest.mark.parametrize("autologin", [2, -1, "1", True, None])
    def test_invalid_autologin(self, uri: Uri, autologin):
        with pytest.raises(ConfigError):
            uri.session(autologin)

    def test_entitlements(self, uri: Uri):
        assert query(uri.product(42))["product_id"] == "42"
        assert urlparse(uri.subscription(42)).path == "/ajax/hassubscription.js"
        assert urlparse(uri.agreement()).path == "/ajax/acceptAgreement.js"
        assert query(uri.traits("a,b"))["t"] == "a,b"

    def test_purchase_paylink(self, uri: Uri):
        url = uri.purchase_paylink(123)

        assert url.startswith("https://front.identity-dev.schibsted.com/api/payment/purchase?")
        assert query(url)["paylink"] == "123"
