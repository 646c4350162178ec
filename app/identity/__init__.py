"""
Bearer-token validation for the identity provider.

Use ``IdentityTokenValidator(config).validate(token)`` to get an ``Identity``.
"""

from .config import IdentityConfig
from .validator import IdentityProviderUnavailable, IdentityTokenError, IdentityTokenValidator, identity_from_claims

__all__ = [
    "IdentityConfig",
    "IdentityProviderUnavailable",
    "IdentityTokenError",
    "IdentityTokenValidator",
    "identity_from_claims",
]
