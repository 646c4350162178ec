from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status

from app.identity import IdentityTokenValidator
from app.scope_engine import Role, ScopeContext
from app.security.auth import authenticate, extract_bearer_token, extract_device_id
from app.security.sessions import DeviceSession, SessionRegistry
from app.settings import Settings


def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise RuntimeError("Settings not loaded. Did app startup run?")
    return settings


def get_session_registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "session_registry", None)
    if registry is None:
        raise RuntimeError("Session registry not built. Did app startup run?")
    return registry


def get_token_validator(request: Request) -> IdentityTokenValidator:
    validator = getattr(request.app.state, "token_validator", None)
    if validator is None:
        raise RuntimeError("Token validator not configured. Did app startup run?")
    return validator


def get_device(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    registry: SessionRegistry = Depends(get_session_registry),
) -> DeviceSession:
    """The caller's device session, without authenticating."""
    return registry.get(extract_device_id(request, settings))


def get_scope_session(
    request: Request,
    device: DeviceSession = Depends(get_device),
    settings: Settings = Depends(get_app_settings),
    validator: IdentityTokenValidator = Depends(get_token_validator),
) -> DeviceSession:
    """
    Authenticate and feed the identity into the device's event hub.

    The hub only fires when the identity differs from the last one seen on
    this device, so resolution runs on sign-in or identity switch, not on
    every request.
    """

    token = extract_bearer_token(request, settings)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    identity = authenticate(token, validator)
    device.hub.observe(identity)
    request.state.identity = identity
    return device


def get_scope_context(device: DeviceSession = Depends(get_scope_session)) -> ScopeContext:
    return device.session.context()


def _servable_context(ctx: ScopeContext) -> ScopeContext:
    # A refresh that hit a transient failure keeps serving the last result.
    if not ctx.servable:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Scope is still resolving")
    return ctx


def require_capability(capability: str) -> Callable[..., ScopeContext]:
    """Guard a route on a capability in the active organization."""

    def checker(ctx: ScopeContext = Depends(get_scope_context)) -> ScopeContext:
        _servable_context(ctx)
        if not ctx.has_capability(capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing capability {capability!r} in the active organization",
            )
        return ctx

    return checker


def require_role(role: str) -> Callable[..., ScopeContext]:
    """
    Guard a route on the role in the active organization.

    ``admin`` requires admin (or master); ``volunteer`` accepts volunteers
    and admins, since admin is a superset.
    """

    wanted = Role(role)

    def checker(ctx: ScopeContext = Depends(get_scope_context)) -> ScopeContext:
        _servable_context(ctx)
        allowed = ctx.is_admin_for_active_org or (
            wanted is Role.VOLUNTEER and ctx.role_for_active_org is Role.VOLUNTEER
        )
        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient role. Required: {wanted.value}",
            )
        return ctx

    return checker
