from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas.scope import (
    CapabilityCheckOut,
    SaveResultOut,
    ScopeContextOut,
    SetActiveLocationIn,
    SetActiveOrgIn,
)
from app.scope_engine import LocationChoice, ScopeContext
from app.security.dependencies import get_device, get_scope_context, get_scope_session
from app.security.sessions import DeviceSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scope", tags=["scope"])


@router.get("", response_model=ScopeContextOut)
def read_scope(ctx: ScopeContext = Depends(get_scope_context)) -> dict[str, object]:
    return ctx.to_dict()


@router.put("/org", response_model=ScopeContextOut)
def set_active_org(body: SetActiveOrgIn, device: DeviceSession = Depends(get_scope_session)) -> dict[str, object]:
    device.session.set_active_org(body.org_id)
    return device.session.context().to_dict()


@router.put("/location", response_model=ScopeContextOut)
def set_active_location(
    body: SetActiveLocationIn,
    device: DeviceSession = Depends(get_scope_session),
) -> dict[str, object]:
    if body.location_id == "":
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail='location_id must be a location id, "ALL", or null',
        )
    device.session.set_active_location(LocationChoice.from_wire(body.location_id))
    return device.session.context().to_dict()


@router.post("/default", response_model=SaveResultOut)
def save_device_default_scope(device: DeviceSession = Depends(get_scope_session)) -> SaveResultOut:
    result = device.session.save_device_default_scope()
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error)
    return SaveResultOut(saved=result.saved, error=result.error)


@router.post("/refresh", response_model=ScopeContextOut)
def refresh_scope(device: DeviceSession = Depends(get_scope_session)) -> dict[str, object]:
    # Picks up membership changes made since the last pass.
    device.watcher.refresh()
    return device.session.context().to_dict()


@router.post("/sign-out", response_model=ScopeContextOut)
def sign_out(device: DeviceSession = Depends(get_device)) -> dict[str, object]:
    device.watcher.sign_out()
    logger.info("Device signed out device=%s", device.device_id)
    return device.session.context().to_dict()


@router.get("/capabilities/{capability}", response_model=CapabilityCheckOut)
def check_capability(capability: str, ctx: ScopeContext = Depends(get_scope_context)) -> CapabilityCheckOut:
    return CapabilityCheckOut(capability=capability, allowed=ctx.has_capability(capability))
