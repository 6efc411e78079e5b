"""
Review service: operator actions on the manual-review queue.

Keeps the API layer thin. Every action validates before writing and either
applies completely or raises a ReconciliationError with nothing changed.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from sms_recon.config import get_settings
from sms_recon.errors import (
    ConflictError,
    NotFoundError,
    MESSAGE_ALREADY_PROCESSED,
    REQUEST_EXPIRED,
    REQUEST_NOT_AWAITING,
)
from sms_recon.matching.engine import rank_candidates, resolve_message, ResolutionResult
from sms_recon.matching.rules import amount_match
from sms_recon.matching.scoring import MatchCandidate
from sms_recon.matching.settlement import apply_match
from sms_recon.models.match_record import MatchRecord, MatchType
from sms_recon.models.payment_request import PaymentRequest, RequestStatus
from sms_recon.models.sms_message import SmsMessage, MessageStatus, OPEN_STATUSES
from sms_recon.services.audit import log_audit

logger = logging.getLogger(__name__)


def get_message(db: Session, message_id: uuid.UUID) -> SmsMessage:
    message = db.query(SmsMessage).filter(SmsMessage.id == message_id).first()
    if message is None:
        raise NotFoundError(f"SMS {message_id} not found")
    return message


def list_review_queue(db: Session, shop_id: str | None = None) -> list[SmsMessage]:
    """Messages awaiting an operator, newest first."""
    query = db.query(SmsMessage).filter(SmsMessage.status == MessageStatus.NEEDS_REVIEW)
    if shop_id:
        query = query.filter(SmsMessage.shop_id == shop_id)
    return query.order_by(SmsMessage.received_at.desc()).all()


def candidates_for_message(db: Session, message_id: uuid.UUID) -> list[MatchCandidate]:
    """Recompute candidates against the requests eligible right now."""
    message = get_message(db, message_id)
    return rank_candidates(db, message)


def retry_resolution(db: Session, message_id: uuid.UUID) -> ResolutionResult:
    """Re-run automatic resolution for an open message."""
    message = get_message(db, message_id)
    return resolve_message(db, message)


def manual_match(
    db: Session,
    message_id: uuid.UUID,
    payment_request_id: uuid.UUID,
    actor: str | None = None,
    note: str | None = None,
    transaction_id: str | None = None,
    now: datetime | None = None,
) -> MatchRecord:
    """
    Settle a request with an SMS chosen by an operator.

    ``transaction_id`` overrides the UTR parsed from the SMS, for texts
    whose reference was misread or is already taken.

    Raises:
        NotFoundError: unknown message, or unknown request / other merchant's.
        ConflictError: message already closed, request no longer awaiting
                       or expired, or the SMS's UTR already settled something.
    """
    now = now or datetime.utcnow()
    message = get_message(db, message_id)

    if message.is_terminal:
        raise ConflictError(
            f"SMS {message_id} has already been processed",
            code=MESSAGE_ALREADY_PROCESSED,
        )

    request = db.query(PaymentRequest).filter(PaymentRequest.id == payment_request_id).first()
    # Requests of another merchant are reported as missing, not forbidden
    if request is None or request.shop_id != message.shop_id:
        raise NotFoundError(f"Payment request {payment_request_id} not found")

    _ensure_settleable(request, now)

    # Scored anyway so the record shows how far the choice was from the engine's
    scored = amount_match.score(
        message.signal,
        request,
        tolerance_minor=get_settings().amount_tolerance_minor,
    )

    record = apply_match(
        db,
        request,
        match_type=MatchType.MANUAL,
        score=scored["score"],
        message=message,
        actor=actor,
        note=note,
        transaction_id=transaction_id,
        now=now,
    )
    logger.info("Manual match: SMS %s -> request %s by %s", message_id, payment_request_id, actor)
    return record


def dismiss_message(
    db: Session,
    message_id: uuid.UUID,
    actor: str | None = None,
    note: str | None = None,
    now: datetime | None = None,
) -> SmsMessage:
    """
    Close a message as not matchable. No settlement, no MatchRecord; the
    dismissal is kept in the audit log.

    Raises:
        NotFoundError: unknown message.
        ConflictError: message already closed.
    """
    now = now or datetime.utcnow()
    message = get_message(db, message_id)

    try:
        result = db.execute(
            update(SmsMessage)
            .where(
                SmsMessage.id == message_id,
                SmsMessage.status.in_(list(OPEN_STATUSES)),
            )
            .values(status=MessageStatus.DISMISSED, processed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"SMS {message_id} has already been processed",
                code=MESSAGE_ALREADY_PROCESSED,
            )
        log_audit(
            db,
            action="dismiss",
            entity_type="sms",
            entity_id=message_id,
            actor=actor,
            meta={"note": note} if note else None,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(message)
    logger.info("Dismissed SMS %s by %s", message_id, actor)
    return message


def verify_payment(
    db: Session,
    payment_request_id: uuid.UUID,
    transaction_id: str,
    amount_minor: int,
    actor: str | None = None,
    note: str | None = None,
    now: datetime | None = None,
) -> MatchRecord:
    """
    Settle a request from an operator-supplied reference, without any SMS.

    Raises:
        NotFoundError: unknown request.
        ConflictError: request not awaiting or expired, or transaction id
                       already used.
    """
    now = now or datetime.utcnow()
    request = db.query(PaymentRequest).filter(PaymentRequest.id == payment_request_id).first()
    if request is None:
        raise NotFoundError(f"Payment request {payment_request_id} not found")

    _ensure_settleable(request, now)

    return apply_match(
        db,
        request,
        match_type=MatchType.MANUAL,
        score=100,
        actor=actor,
        note=note,
        transaction_id=transaction_id,
        amount_minor=amount_minor,
        now=now,
    )


def _ensure_settleable(request: PaymentRequest, now: datetime) -> None:
    """Operator actions may only settle awaiting, unexpired requests."""
    if request.status != RequestStatus.AWAITING:
        raise ConflictError(
            f"Payment request {request.invoice_no} is {request.status.value}, not awaiting",
            code=REQUEST_NOT_AWAITING,
        )
    if request.expires_at <= now:
        raise ConflictError(
            f"Payment request {request.invoice_no} expired at {request.expires_at.isoformat()}",
            code=REQUEST_EXPIRED,
        )
