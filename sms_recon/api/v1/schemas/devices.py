"""Pydantic schemas for device registration."""

from datetime import datetime
from pydantic import BaseModel, Field


class RegisterDeviceRequest(BaseModel):
    shop_id: str = Field(..., min_length=1)
    device_name: str = Field(..., min_length=1)
    created_by: str | None = None


class DeviceResponse(BaseModel):
    id: str
    device_uuid: str
    shop_id: str
    device_name: str | None = None
    last_seen_at: datetime | None = None
    revoked_at: datetime | None = None
    created_at: datetime


class RegisterDeviceResponse(BaseModel):
    device: DeviceResponse
    webhook_token: str
    message: str = "Store this token now; it cannot be shown again"


class RevokeDeviceRequest(BaseModel):
    revoked_by: str | None = None
