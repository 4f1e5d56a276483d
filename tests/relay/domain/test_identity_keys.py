"""Tests for identity key derivation."""

import re

from relay.identity.keys import IDENTITY_KEY_LENGTH, derive_identity_key


class TestDeriveIdentityKey:
    def test_is_deterministic(self):
        assert derive_identity_key("u1", "a.example") == derive_identity_key("u1", "a.example")

    def test_is_32_lowercase_hex_chars(self):
        key = derive_identity_key("u1", "a.example")
        assert len(key) == IDENTITY_KEY_LENGTH == 32
        assert re.fullmatch(r"[0-9a-f]{32}", key)

    def test_differs_per_origin(self):
        assert derive_identity_key("u1", "a.example") != derive_identity_key("u1", "b.example")

    def test_differs_per_user(self):
        assert derive_identity_key("u1", "a.example") != derive_identity_key("u2", "a.example")

    def test_separator_injection_does_not_collide(self):
        assert derive_identity_key("a:b", "c") != derive_identity_key("a", "b:c")
        assert derive_identity_key("ab", "c") != derive_identity_key("a", "bc")

    def test_does_not_contain_the_raw_inputs(self):
        key = derive_identity_key("alice", "shop.example")
        assert "alice" not in key
        assert "shop" not in key

    def test_handles_unicode(self):
        key = derive_identity_key("usér-ü", "bücher.example")
        assert len(key) == 32

    def test_empty_components_are_distinct(self):
        assert derive_identity_key("", "a.example") != derive_identity_key("a.example", "")
