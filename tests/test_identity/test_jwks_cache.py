"""Tests for the JWKS cache refresh rules."""

from unittest.mock import MagicMock, patch

from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from app.identity.jwks_cache import JWKSCache


def _jwk(kid):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    jwk = RSAAlgorithm.to_jwk(key.public_key(), as_dict=True)
    jwk["kid"] = kid
    return jwk


def _response(*keys):
    resp = MagicMock()
    resp.json.return_value = {"keys": list(keys)}
    return resp


def test_cached_key_is_served_without_refetch():
    with patch("app.identity.jwks_cache.requests.get", return_value=_response(_jwk("k1"))) as get:
        cache = JWKSCache("https://issuer.example/keys", ttl_seconds=3600)
        assert cache.get_signing_key("k1") is not None
        assert cache.get_signing_key("k1") is not None
    assert get.call_count == 1


def test_unknown_kid_forces_one_refresh():
    responses = [_response(_jwk("k1")), _response(_jwk("k1"), _jwk("k2"))]
    with patch("app.identity.jwks_cache.requests.get", side_effect=responses) as get:
        cache = JWKSCache("https://issuer.example/keys", ttl_seconds=3600)
        key = cache.get_signing_key("k2")
    assert key is not None
    assert key.key_id == "k2"
    assert get.call_count == 2


def test_unknown_kid_after_refresh_is_none():
    with patch("app.identity.jwks_cache.requests.get", return_value=_response(_jwk("k1"))) as get:
        cache = JWKSCache("https://issuer.example/keys", ttl_seconds=3600)
        assert cache.get_signing_key("nope") is None
    assert get.call_count == 2


def test_stale_cache_refetches():
    with patch("app.identity.jwks_cache.requests.get", return_value=_response(_jwk("k1"))) as get:
        cache = JWKSCache("https://issuer.example/keys", ttl_seconds=0)
        cache.get_signing_key("k1")
        cache.get_signing_key("k1")
    assert get.call_count == 2
