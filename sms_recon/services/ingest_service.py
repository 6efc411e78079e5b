"""
Ingest service: admits one forwarded SMS and resolves it synchronously.

Called by the /sms/webhook endpoint. Runs in sequence:
  1. Device gate (credential check, last-seen, rate limit)
  2. received_at normalisation
  3. SMS parsing
  4. Persist the message (committed before any matching is attempted)
  5. Matching engine

A message that fails in step 5 is still stored as unprocessed and can be
re-resolved later.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from sms_recon.errors import InvalidInputError
from sms_recon.matching.engine import resolve_message, ResolutionResult
from sms_recon.models.sms_message import SmsMessage, MessageStatus
from sms_recon.parsers.sms_parser import parse_sms
from sms_recon.services.audit import log_audit
from sms_recon.services.device_gate import authenticate_device, enforce_rate_limit

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    message: SmsMessage
    resolution: ResolutionResult

    @property
    def status(self) -> str:
        return self.resolution.status


def ingest_sms(
    db: Session,
    device_uuid: str,
    token: str,
    sender: str | None,
    text: str,
    received_at: str | int | float,
    raw_meta: Any = None,
    now: datetime | None = None,
) -> IngestResult:
    """
    Admit and resolve one SMS.

    Args:
        db: SQLAlchemy session
        device_uuid: Claimed device identifier
        token: Webhook credential presented by the device
        sender: Sender label from the handset (untrusted)
        text: Raw SMS body
        received_at: ISO-8601 string or epoch milliseconds
        raw_meta: Opaque metadata, stored as given
        now: Clock override

    Returns:
        IngestResult with the stored message and its resolution.

    Raises:
        AuthorizationError, RateLimitExceededError, InvalidInputError;
        no message is stored in any of these cases.
    """
    now = now or datetime.utcnow()

    try:
        device = authenticate_device(db, device_uuid, token, now)
        enforce_rate_limit(db, device, now)
        received = parse_received_at(received_at)
    except Exception:
        db.rollback()
        raise

    signal = parse_sms(text, sender)

    message = SmsMessage(
        device_id=device.id,
        shop_id=device.shop_id,
        sender=sender,
        raw_text=text,
        received_at=received,
        raw_meta=raw_meta,
        parsed_amount_minor=signal.amount_minor,
        parsed_utr=signal.utr,
        parsed_vpa=signal.vpa,
        status=MessageStatus.UNPROCESSED,
        created_at=now,
    )
    db.add(message)
    try:
        db.flush()
        log_audit(
            db,
            action="sms_received",
            entity_type="sms",
            entity_id=message.id,
            meta={"device_uuid": device_uuid, "confidence": signal.confidence},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(message)

    logger.info(
        "Admitted SMS %s from device %s (amount=%s, utr=%s)",
        message.id,
        device_uuid,
        signal.amount_minor,
        signal.utr,
    )

    resolution = resolve_message(db, message, now)
    return IngestResult(message=message, resolution=resolution)


def parse_received_at(value: str | int | float) -> datetime:
    """Normalise a device timestamp to naive UTC.

    Numbers are epoch milliseconds (what Android forwarders send); strings
    are ISO-8601, with or without a trailing 'Z'.
    """
    if isinstance(value, bool):
        raise InvalidInputError("received_at must be a timestamp")

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            raise InvalidInputError(f"received_at out of range: {value}")

    raw = str(value).strip()
    if raw.isdigit():
        return parse_received_at(int(raw))

    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidInputError(f"Unrecognised received_at: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
