"""
Tests for credential resolution
"""

import pytest

from spid_sdk import SpidConfig
from spid_sdk.credentials import (
    AuthOptions,
    BearerCredentials,
    ClientCredentials,
    NoCredentials,
    resolve_credentials,
)
from spid_sdk.errors import ConfigError


class TestResolveCredentials:
    """Tests for picking the credential variant."""

    def test_nothing_given(self):
        assert isinstance(resolve_credentials(None), NoCredentials)
        assert isinstance(resolve_credentials({}), NoCredentials)
        assert isinstance(resolve_credentials(AuthOptions()), NoCredentials)

    def test_client_credentials(self):
        credentials = resolve_credentials({"client_id": "cid", "client_secret": "secret"})

        assert credentials == ClientCredentials("cid", "secret")
        assert credentials.auth_headers() == {"Authorization": "Basic Y2lkOnNlY3JldA=="}
        assert not credentials.can_refresh()

    @pytest.mark.parametrize("options", [
        {"client_id": "cid"},
        {"client_secret": "secret"},
        {"client_id": "", "client_secret": "secret"},
    ])
    def test_half_client_credentials(self, options):
        with pytest.raises(ConfigError):
            resolve_credentials(options)

    @pytest.mark.parametrize("options", [
        {"client_id": "cid", "client_secret": "secret", "access_token": "token"},
        {"client_id": "cid", "client_secret": "secret", "refresh_token": "token"},
        {"client_id": "cid", "refresh_token": "token"},
    ])
    def test_mixed_auth_methods(self, options):
        with pytest.raises(ConfigError):
            resolve_credentials(options)

    def test_bearer_credentials(self):
        credentials = resolve_credentials(AuthOptions(access_token="access", refresh_token="refresh"))

        assert isinstance(credentials, BearerCredentials)
        assert credentials.auth_headers() == {"Authorization": "Bearer access"}
        assert credentials.can_refresh()

    def test_access_token_only_cannot_refresh(self):
        credentials = resolve_credentials({"access_token": "access"})

        assert not credentials.can_refresh()

    def test_invalid_token_is_dropped(self):
        credentials = resolve_credentials({"access_token": "x", "refresh_token": "refresh"})

        assert credentials.access_token is None
        assert credentials.auth_headers() == {}
        assert credentials.refresh_token == "refresh"

    def test_no_valid_token(self):
        with pytest.raises(ConfigError):
            resolve_credentials({"access_token": "x", "refresh_token": ""})

    def test_token_length_bounds(self):
        with pytest.raises(ConfigError):
            resolve_credentials({"access_token": "abcdef"}, token_min_length=10)
        with pytest.raises(ConfigError):
            resolve_credentials({"access_token": "abcdef"}, token_max_length=3)

        credentials = resolve_credentials({"access_token": "abcdef"}, 2, 6)
        assert credentials.access_token == "abcdef"

    def test_reads_config_attributes(self):
        config = SpidConfig(client_id="cid", client_secret="secret")

        assert isinstance(resolve_credentials(config), ClientCredentials)

    def test_bearer_token_is_mutable(self):
        credentials = BearerCredentials("old", "refresh")
        credentials.access_token = "new"

        assert credentials.auth_headers() == {"Authorization": "Bearer new"}
