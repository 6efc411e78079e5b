"""
Atomic application of a match.

One unit of work:
  1. record the settlement transaction (Payment)
  2. flip the payment request awaiting -> settled (compare-and-set)
  3. flip the SMS to its terminal status (compare-and-set), if there is one
  4. append the MatchRecord and an audit entry
  5. commit

Steps 2 and 3 are conditional UPDATEs that must hit exactly one row. A
concurrent resolution that already settled the request, or already closed
the message, makes them hit zero rows; the whole unit is then rolled back
and a ConflictError raised. Any other failure also rolls back everything.
"""

import logging
import secrets
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sms_recon.errors import (
    ConflictError,
    MESSAGE_ALREADY_PROCESSED,
    REQUEST_NOT_AWAITING,
    TRANSACTION_REFERENCE_USED,
)
from sms_recon.models.match_record import MatchRecord, MatchType
from sms_recon.models.payment import Payment, TRANSACTION_ID_LENGTH
from sms_recon.models.payment_request import PaymentRequest, RequestStatus
from sms_recon.models.sms_message import SmsMessage, MessageStatus, OPEN_STATUSES
from sms_recon.services.audit import log_audit

logger = logging.getLogger(__name__)


def apply_match(
    db: Session,
    request: PaymentRequest,
    match_type: MatchType,
    score: int | None,
    message: SmsMessage | None = None,
    actor: str | None = None,
    note: str | None = None,
    transaction_id: str | None = None,
    amount_minor: int | None = None,
    now: datetime | None = None,
) -> MatchRecord:
    """
    Settle ``request`` and record how it was matched, all or nothing.

    Args:
        db: SQLAlchemy session
        request: Payment request being settled
        match_type: AUTO or MANUAL
        score: Match score to record
        message: Originating SMS, None for verification without SMS
        actor: Operator id (None for automatic matches)
        note: Free-text operator note
        transaction_id: Settlement reference; defaults to the SMS UTR when it
                        fits the column, then a generated id
        amount_minor: Settled amount; defaults to the parsed SMS amount,
                      then the request amount
        now: Clock override

    Returns:
        The committed MatchRecord.

    Raises:
        ConflictError: request no longer awaiting, message already closed,
                       or transaction reference already used.
    """
    now = now or datetime.utcnow()
    request_id = request.id
    message_id = message.id if message is not None else None

    if transaction_id is None:
        utr = message.parsed_utr if message is not None else None
        if utr and len(utr) <= TRANSACTION_ID_LENGTH:
            transaction_id = utr
        else:
            transaction_id = _generate_transaction_id(match_type)
    if amount_minor is None:
        parsed = message.parsed_amount_minor if message is not None else None
        amount_minor = parsed if parsed is not None else request.amount_minor

    try:
        _record_settlement(db, request_id, transaction_id, amount_minor, actor, note, now)
        _claim_request(db, request_id, now)
        if message is not None:
            _claim_message(db, message_id, request_id, match_type, now)
        record = _append_match_record(db, request_id, message_id, score, match_type, actor, note, now)
        log_audit(
            db,
            action=_audit_action(match_type, message_id),
            entity_type="payment_request",
            entity_id=request_id,
            actor=actor,
            meta={
                "sms_id": str(message_id) if message_id else None,
                "transaction_id": transaction_id,
                "score": score,
            },
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Settlement of request %s rejected: %s", request_id, e.orig)
        raise ConflictError(
            f"Transaction reference {transaction_id} is already recorded",
            code=TRANSACTION_REFERENCE_USED,
        )
    except Exception:
        db.rollback()
        raise

    db.refresh(record)
    logger.info(
        "Settled request %s via %s match (score=%s, sms=%s, txn=%s)",
        request_id,
        match_type.value,
        score,
        message_id,
        transaction_id,
    )
    return record


def _generate_transaction_id(match_type: MatchType) -> str:
    prefix = "AUTO" if match_type == MatchType.AUTO else "MANUAL"
    return f"{prefix}-{secrets.token_hex(4).upper()}"


def _audit_action(match_type: MatchType, message_id) -> str:
    if match_type == MatchType.AUTO:
        return "auto_match"
    return "manual_match" if message_id is not None else "payment_verify"


def _record_settlement(db, request_id, transaction_id, amount_minor, actor, note, now) -> Payment:
    payment = Payment(
        payment_request_id=request_id,
        transaction_id=transaction_id,
        amount_minor=amount_minor,
        payment_method="upi",
        verified_by=actor,
        verified_at=now,
        notes=note,
    )
    db.add(payment)
    db.flush()
    return payment


def _claim_request(db, request_id, now) -> None:
    result = db.execute(
        update(PaymentRequest)
        .where(
            PaymentRequest.id == request_id,
            PaymentRequest.status == RequestStatus.AWAITING,
        )
        .values(status=RequestStatus.SETTLED, settled_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(
            f"Payment request {request_id} is no longer awaiting payment",
            code=REQUEST_NOT_AWAITING,
        )


def _claim_message(db, message_id, request_id, match_type, now) -> None:
    status = MessageStatus.AUTO_MATCHED if match_type == MatchType.AUTO else MessageStatus.MANUALLY_MATCHED
    result = db.execute(
        update(SmsMessage)
        .where(
            SmsMessage.id == message_id,
            SmsMessage.status.in_(list(OPEN_STATUSES)),
        )
        .values(status=status, matched_request_id=request_id, processed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(
            f"SMS {message_id} has already been processed",
            code=MESSAGE_ALREADY_PROCESSED,
        )


def _append_match_record(db, request_id, message_id, score, match_type, actor, note, now) -> MatchRecord:
    record = MatchRecord(
        payment_request_id=request_id,
        sms_message_id=message_id,
        score=score,
        match_type=match_type,
        matched_by=actor,
        note=note,
        matched_at=now,
    )
    db.add(record)
    db.flush()
    return record
