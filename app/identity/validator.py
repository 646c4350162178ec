"""
Validate identity-provider ID tokens and turn them into an ``Identity``.

Before anything in a bearer token is trusted we check, in order:

    1. a key id is present (RS256) and resolves to a published key,
    2. the signature,
    3. the issuer (``iss``) and audience (``aud``),
    4. expiry (``exp``) and not-before (``nbf``), with clock skew.

The resulting ``Identity`` carries every non-registered claim as a trusted
attribute. Custom claims such as ``master`` can only be set server-side by the
identity provider, which is why they are trusted.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt
import requests

from app.scope_engine.models import Identity

from .config import IdentityConfig
from .jwks_cache import JWKSCache

logger = logging.getLogger(__name__)

# Claims that describe the token rather than the caller.
_REGISTERED_CLAIMS = frozenset({
    "iss",
    "aud",
    "sub",
    "exp",
    "nbf",
    "iat",
    "jti",
    "auth_time",
    "azp",
    "user_id",
    "email",
    "email_verified",
    "firebase",
})


class IdentityTokenError(Exception):
    """Raised when token validation fails. Do not log the token."""


class IdentityProviderUnavailable(IdentityTokenError):
    """Signing keys could not be fetched."""


def _get_kid(token: str) -> str | None:
    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError:
        return None
    return header.get("kid") if isinstance(header, dict) else None


def identity_from_claims(payload: dict[str, Any]) -> Identity:
    """
    Build an ``Identity`` from a validated payload.

    * **sub**: the stable user id; ``user_id`` is accepted when ``sub`` is absent.
    * **email**: display and profile bootstrap only; never used for authorization.
    * anything else not registered: trusted attributes, e.g. ``{"master": true}``.
    """

    user_id = payload.get("sub") or payload.get("user_id") or ""
    if not user_id:
        raise IdentityTokenError("Invalid token: missing subject")

    email = payload.get("email")
    attributes = {k: v for k, v in payload.items() if k not in _REGISTERED_CLAIMS}
    return Identity(
        id=str(user_id),
        email=str(email) if email else None,
        trusted_attributes=attributes,
    )


class IdentityTokenValidator:
    """
    Validates bearer tokens against the configured issuer and audience.

    RS256 tokens are checked with keys from the JWKS endpoint (cached with a
    TTL). When a shared secret is configured, HS256 tokens are accepted
    instead.
    """

    def __init__(self, config: IdentityConfig | None = None) -> None:
        self._config = config or IdentityConfig.from_environ()
        self._jwks = (
            JWKSCache(self._config.jwks_uri, self._config.jwks_cache_ttl_seconds)
            if self._config.jwks_uri and not self._config.uses_shared_secret
            else None
        )

    def validate(self, token: str) -> Identity:
        """Validate ``token`` and return the caller's identity, or raise IdentityTokenError."""
        key = self._signing_key(token)
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=self._config.algorithms,
                audience=self._config.audience,
                issuer=self._config.issuer,
                leeway=self._config.clock_skew_seconds,
                options={"require": ["exp", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise IdentityTokenError("Token expired") from e
        except jwt.InvalidIssuerError as e:
            logger.info("Token invalid issuer")
            raise IdentityTokenError("Invalid token: issuer") from e
        except jwt.InvalidAudienceError as e:
            logger.info("Token invalid audience")
            raise IdentityTokenError("Invalid token: audience") from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise IdentityTokenError("Invalid token") from e

        return identity_from_claims(payload)

    def _signing_key(self, token: str) -> Any:
        if self._config.uses_shared_secret:
            return self._config.shared_secret

        kid = _get_kid(token)
        if not kid:
            logger.debug("Token missing or invalid kid")
            raise IdentityTokenError("Invalid token: missing key id")
        if self._jwks is None:
            raise IdentityProviderUnavailable("No JWKS endpoint configured")
        try:
            signing_key = self._jwks.get_signing_key(kid)
        except requests.RequestException as e:
            logger.warning("JWKS fetch failed: %s", type(e).__name__)
            raise IdentityProviderUnavailable("Signing keys unavailable") from e
        if signing_key is None:
            logger.debug("No signing key found for kid")
            raise IdentityTokenError("Invalid token: unknown signing key")
        return signing_key.key
