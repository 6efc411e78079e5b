"""
Device/webhook gate: admits SMS only from registered, unrevoked devices.

Each device gets a random webhook token at registration. Only its SHA-256
hash is stored, so the token is shown once and can never be read back; a
lost token means registering the device again.
"""

import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from sms_recon.config import get_settings
from sms_recon.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    RateLimitExceededError,
)
from sms_recon.models.device import Device
from sms_recon.models.sms_message import SmsMessage
from sms_recon.services.audit import log_audit

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW = timedelta(seconds=60)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def extract_token(x_webhook_token: str | None, authorization: str | None) -> str:
    """Pull the bearer credential from either supported header."""
    raw = x_webhook_token or authorization
    if not raw:
        raise AuthenticationError("Webhook token required")
    token = raw[len("Bearer "):] if raw.startswith("Bearer ") else raw
    token = token.strip()
    if not token:
        raise AuthenticationError("Webhook token required")
    return token


def authenticate_device(
    db: Session,
    device_uuid: str,
    token: str,
    now: datetime | None = None,
) -> Device:
    """
    Verify a device credential and stamp last-seen.

    The last-seen update is staged, not committed; it lands with the
    message that the device is submitting.

    Raises:
        AuthorizationError: unknown device, wrong token, or revoked device.
    """
    now = now or datetime.utcnow()
    device = db.query(Device).filter(Device.device_uuid == device_uuid).first()

    if device is None or not hmac.compare_digest(device.webhook_token_hash, hash_token(token)):
        logger.warning("Rejected webhook for device %r: unknown device or bad token", device_uuid)
        raise AuthorizationError("Invalid or revoked device")

    if device.is_revoked:
        logger.warning("Rejected webhook for revoked device %s", device_uuid)
        raise AuthorizationError("Invalid or revoked device")

    device.last_seen_at = now
    return device


def enforce_rate_limit(db: Session, device: Device, now: datetime | None = None) -> None:
    """Reject when the device already sent its quota in the last minute."""
    limit = get_settings().webhook_rate_limit_per_minute
    if limit <= 0:
        return

    now = now or datetime.utcnow()
    recent = (
        db.query(func.count(SmsMessage.id))
        .filter(
            SmsMessage.device_id == device.id,
            SmsMessage.created_at > now - RATE_LIMIT_WINDOW,
        )
        .scalar()
    )
    if recent >= limit:
        logger.warning("Device %s over rate limit (%d in window)", device.device_uuid, recent)
        raise RateLimitExceededError(
            f"Device exceeded {limit} messages per minute"
        )


def register_device(
    db: Session,
    shop_id: str,
    device_name: str,
    created_by: str | None = None,
) -> tuple[Device, str]:
    """
    Register a new forwarding device.

    Returns:
        (device, webhook_token). The token is not stored and cannot be
        recovered later.
    """
    token = secrets.token_urlsafe(36)
    device = Device(
        device_uuid=secrets.token_hex(16),
        shop_id=shop_id,
        device_name=device_name,
        webhook_token_hash=hash_token(token),
        created_by=created_by,
    )
    db.add(device)
    try:
        db.flush()
        log_audit(
            db,
            action="device_register",
            entity_type="device",
            entity_id=device.id,
            actor=created_by,
            meta={"device_name": device_name, "shop_id": shop_id},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(device)

    logger.info("Registered device %s for shop %s", device.device_uuid, shop_id)
    return device, token


def revoke_device(
    db: Session,
    device_id: uuid.UUID,
    actor: str | None = None,
    now: datetime | None = None,
) -> Device:
    """Stamp revoked_at; the device's token stops working immediately."""
    device = db.query(Device).filter(Device.id == device_id).first()
    if device is None:
        raise NotFoundError(f"Device {device_id} not found")

    if device.revoked_at is None:
        device.revoked_at = now or datetime.utcnow()
        log_audit(db, action="device_revoke", entity_type="device", entity_id=device.id, actor=actor)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(device)
        logger.info("Revoked device %s", device.device_uuid)

    return device
