from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from app.identity import IdentityProviderUnavailable, IdentityTokenError, IdentityTokenValidator
from app.scope_engine import Identity
from app.settings import Settings

logger = logging.getLogger(__name__)


def extract_bearer_token(request: Request, settings: Settings) -> str | None:
    """
    Read ``Authorization: Bearer <token>``.

    Returns None when the header is absent (signed out); raises 400 when it
    is present but malformed.
    """

    header_name = settings.authorization_header
    bearer_prefix = settings.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        return None

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Missing token after '{bearer_prefix}'.",
        )
    return token


def extract_device_id(request: Request, settings: Settings) -> str:
    device_id = (request.headers.get(settings.device_header) or "").strip()
    if not device_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing {settings.device_header} header.",
        )
    return device_id


def authenticate(token: str, validator: IdentityTokenValidator) -> Identity:
    try:
        return validator.validate(token)
    except IdentityProviderUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except IdentityTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
