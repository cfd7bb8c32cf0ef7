"""
Tests for auth_header.py
Logic testing: Decision/Branch, Boundary Value
"""
import base64

import pytest

from fetch_request.auth.auth_header import basic_auth_value, bearer_auth_value, mask_auth_value


class TestAuthValues:
    """Tests for Authorization header values."""

    def test_basic(self):
        assert basic_auth_value("u", "p") == "Basic " + base64.b64encode(b"u:p").decode()

    # Boundary: empty password and non-ASCII credentials
    def test_basic_empty_password(self):
        assert basic_auth_value("user", "") == "Basic " + base64.b64encode(b"user:").decode()

    def test_basic_utf8(self):
        expected = "Basic " + base64.b64encode("jöns:pässword".encode("utf-8")).decode()
        assert basic_auth_value("jöns", "pässword") == expected

    def test_bearer(self):
        assert bearer_auth_value("abc") == "Bearer abc"


class TestMaskAuthValue:
    """Tests for mask_auth_value function."""

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value):
        assert mask_auth_value(value) == "<empty>"

    def test_short_fully_masked(self):
        assert mask_auth_value("secret") == "******"

    def test_long_keeps_prefix(self):
        assert mask_auth_value("Bearer abcdefghij") == "Bearer abc*******"
