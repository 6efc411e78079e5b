"""Device endpoints: register and revoke SMS-forwarding handsets."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sms_recon.db.session import get_db
from sms_recon.models.device import Device
from sms_recon.services.device_gate import register_device, revoke_device
from sms_recon.api.v1.schemas.devices import (
    DeviceResponse,
    RegisterDeviceRequest,
    RegisterDeviceResponse,
    RevokeDeviceRequest,
)

router = APIRouter(prefix="/devices", tags=["Devices"])


def _device_to_response(device: Device) -> DeviceResponse:
    return DeviceResponse(
        id=str(device.id),
        device_uuid=device.device_uuid,
        shop_id=device.shop_id,
        device_name=device.device_name,
        last_seen_at=device.last_seen_at,
        revoked_at=device.revoked_at,
        created_at=device.created_at,
    )


@router.get("", response_model=list[DeviceResponse])
def list_devices(
    shop_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """List devices, newest first. Token hashes are never returned."""
    query = db.query(Device)
    if shop_id:
        query = query.filter(Device.shop_id == shop_id)
    return [_device_to_response(d) for d in query.order_by(Device.created_at.desc()).all()]


@router.post("/register", response_model=RegisterDeviceResponse)
def register(
    request: RegisterDeviceRequest,
    db: Session = Depends(get_db),
):
    """Register a device. The webhook token in the response is shown only once."""
    device, token = register_device(
        db,
        shop_id=request.shop_id,
        device_name=request.device_name,
        created_by=request.created_by,
    )
    return RegisterDeviceResponse(device=_device_to_response(device), webhook_token=token)


@router.post("/{device_id}/revoke", response_model=DeviceResponse)
def revoke(
    device_id: uuid.UUID,
    request: RevokeDeviceRequest = RevokeDeviceRequest(),
    db: Session = Depends(get_db),
):
    """Revoke a device; its token is rejected from now on."""
    return _device_to_response(revoke_device(db, device_id, actor=request.revoked_by))
