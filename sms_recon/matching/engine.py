"""
Matching engine: resolves one SMS against the merchant's pending requests.

Flow:
  1. Load eligible requests fresh from the DB (awaiting, unexpired, same shop)
  2. Score them against the message's parsed signal
  3. Decide: auto-match, needs review, or unidentified
  4. Apply: settle atomically on auto-match, otherwise park the message in
     the review queue with its candidate snapshot

Nothing is cached between calls; the eligible set may change at any time.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from sms_recon.config import get_settings
from sms_recon.errors import ConflictError, MESSAGE_ALREADY_PROCESSED
from sms_recon.matching.resolver import AutoMatched, MatchDecision, NeedsReview, Unidentified, decide
from sms_recon.matching.scoring import MatchCandidate, score_candidates
from sms_recon.matching.settlement import apply_match
from sms_recon.models.match_record import MatchRecord, MatchType
from sms_recon.models.payment_request import PaymentRequest, RequestStatus
from sms_recon.models.sms_message import SmsMessage, MessageStatus, OPEN_STATUSES

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    """Outcome of resolving one message."""

    message: SmsMessage
    decision: MatchDecision
    match_record: MatchRecord | None = None

    @property
    def status(self) -> str:
        if self.match_record is not None:
            return "auto_matched"
        if not self.decision.candidates:
            return "unidentified"
        return "needs_review"


def fetch_eligible_requests(db: Session, shop_id: str, now: datetime) -> list[PaymentRequest]:
    """Awaiting, unexpired requests for one merchant, oldest first."""
    return (
        db.query(PaymentRequest)
        .filter(
            PaymentRequest.shop_id == shop_id,
            PaymentRequest.status == RequestStatus.AWAITING,
            PaymentRequest.expires_at > now,
        )
        .order_by(PaymentRequest.created_at.asc())
        .all()
    )


def rank_candidates(db: Session, message: SmsMessage, now: datetime | None = None) -> list[MatchCandidate]:
    """Live candidate list for a message."""
    settings = get_settings()
    now = now or datetime.utcnow()
    requests = fetch_eligible_requests(db, message.shop_id, now)
    return score_candidates(
        message.signal,
        requests,
        tolerance_minor=settings.amount_tolerance_minor,
    )


def resolve_message(db: Session, message: SmsMessage, now: datetime | None = None) -> ResolutionResult:
    """
    Run automatic resolution for one message.

    Args:
        db: SQLAlchemy session
        message: Persisted message in an open status
        now: Clock override

    Returns:
        ResolutionResult with the decision and, on auto-match, the MatchRecord.

    Raises:
        ConflictError: the message is already terminal.
    """
    settings = get_settings()
    now = now or datetime.utcnow()
    message_id = message.id

    if message.is_terminal:
        raise ConflictError(
            f"SMS {message_id} has already been processed",
            code=MESSAGE_ALREADY_PROCESSED,
        )

    signal = message.signal
    try:
        candidates = rank_candidates(db, message, now)
    except OperationalError as e:
        # No eligible set to score against: park with an empty snapshot
        db.rollback()
        logger.warning("Candidate lookup for SMS %s failed on persistence (%s); sending to review", message_id, e.orig)
        _park_for_review(db, message, [])
        return ResolutionResult(message=message, decision=Unidentified(signal=signal))

    decision = decide(signal, candidates, auto_match_threshold=settings.auto_match_threshold)

    logger.info(
        "SMS %s: %s (%d candidate(s), confidence=%d)",
        message_id,
        decision.label,
        len(candidates),
        signal.confidence,
    )

    if isinstance(decision, AutoMatched):
        try:
            record = apply_match(
                db,
                decision.request,
                match_type=MatchType.AUTO,
                score=decision.score,
                message=message,
                now=now,
            )
            db.refresh(message)
            return ResolutionResult(message=message, decision=decision, match_record=record)
        except ConflictError as e:
            if e.code == MESSAGE_ALREADY_PROCESSED:
                raise
            # Lost a race for the request, or the UTR was already used
            logger.warning("Auto-match of SMS %s aborted (%s); sending to review", message_id, e.code)
        except OperationalError as e:
            logger.warning("Auto-match of SMS %s failed on persistence (%s); sending to review", message_id, e.orig)

        decision = NeedsReview(signal=decision.signal, candidates=candidates)

    _park_for_review(db, message, decision.candidates)
    return ResolutionResult(message=message, decision=decision)


def _park_for_review(db: Session, message: SmsMessage, candidates: list[MatchCandidate]) -> None:
    """Store the candidate snapshot and move an open message to needs_review."""
    message_id = message.id
    try:
        result = db.execute(
            update(SmsMessage)
            .where(
                SmsMessage.id == message_id,
                SmsMessage.status.in_(list(OPEN_STATUSES)),
            )
            .values(
                status=MessageStatus.NEEDS_REVIEW,
                review_candidates=[c.to_dict() for c in candidates],
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"SMS {message_id} has already been processed",
                code=MESSAGE_ALREADY_PROCESSED,
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(message)
