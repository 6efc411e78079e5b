"""SMS endpoints: webhook ingress and the manual-review queue."""

import uuid

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from sms_recon.db.session import get_db
from sms_recon.models.sms_message import SmsMessage
from sms_recon.services import review_service
from sms_recon.services.device_gate import extract_token
from sms_recon.services.ingest_service import ingest_sms
from sms_recon.api.v1.schemas.sms import (
    SmsWebhookRequest,
    SmsWebhookResponse,
    SmsMessageResponse,
    ParsedSignalResponse,
    CandidateSnapshot,
    ReviewQueueResponse,
    CandidateResponse,
    CandidateListResponse,
    ManualMatchRequest,
    DismissRequest,
    ResolveResponse,
)
from sms_recon.api.v1.schemas.matches import MatchResponse
from sms_recon.api.v1.endpoints.matches import _match_to_response

router = APIRouter(prefix="/sms", tags=["SMS"])


def _message_to_response(message: SmsMessage) -> SmsMessageResponse:
    """Convert an SmsMessage ORM object to its response schema."""
    signal = message.signal
    return SmsMessageResponse(
        id=str(message.id),
        device_id=str(message.device_id) if message.device_id else None,
        shop_id=message.shop_id,
        sender=message.sender,
        raw_text=message.raw_text,
        received_at=message.received_at,
        raw_meta=message.raw_meta,
        signal=ParsedSignalResponse(**signal.to_dict()),
        status=message.status.value,
        review_label=message.review_label,
        review_candidates=[
            CandidateSnapshot(**c) for c in (message.review_candidates or [])
        ],
        matched_request_id=str(message.matched_request_id) if message.matched_request_id else None,
        processed_at=message.processed_at,
        created_at=message.created_at,
    )


@router.post("/webhook", response_model=SmsWebhookResponse)
def receive_sms(
    payload: SmsWebhookRequest,
    x_webhook_token: str | None = Header(None),
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
):
    """
    Accept an SMS from a registered forwarding device.

    Authenticate with `X-Webhook-Token: <token>` or
    `Authorization: Bearer <token>`. Matching runs before the response is
    sent; `resolution` is auto_matched, needs_review or unidentified.
    """
    token = extract_token(x_webhook_token, authorization)
    result = ingest_sms(
        db,
        device_uuid=payload.device_id,
        token=token,
        sender=payload.sender,
        text=payload.text,
        received_at=payload.received_at,
        raw_meta=payload.raw_meta,
    )
    return SmsWebhookResponse(id=str(result.message.id), resolution=result.status)


@router.get("/review-queue", response_model=ReviewQueueResponse)
def list_review_queue(
    shop_id: str | None = Query(None, description="Restrict to one merchant"),
    db: Session = Depends(get_db),
):
    """Messages waiting for an operator. Zero-candidate items are labelled unidentified."""
    messages = review_service.list_review_queue(db, shop_id=shop_id)
    return ReviewQueueResponse(
        total=len(messages),
        messages=[_message_to_response(m) for m in messages],
    )


@router.get("/{sms_id}", response_model=SmsMessageResponse)
def get_sms(sms_id: uuid.UUID, db: Session = Depends(get_db)):
    """Get a single message with its parsed signal and status."""
    return _message_to_response(review_service.get_message(db, sms_id))


@router.get("/{sms_id}/candidates", response_model=CandidateListResponse)
def get_candidates(sms_id: uuid.UUID, db: Session = Depends(get_db)):
    """Rank the currently eligible payment requests against this SMS."""
    candidates = review_service.candidates_for_message(db, sms_id)
    return CandidateListResponse(
        sms_id=str(sms_id),
        total=len(candidates),
        candidates=[
            CandidateResponse(
                request_id=str(c.request.id),
                invoice_no=c.request.invoice_no,
                amount_minor=c.request.amount_minor,
                created_at=c.request.created_at,
                expires_at=c.request.expires_at,
                score=c.score,
                rule=c.rule,
                details=c.details,
            )
            for c in candidates
        ],
    )


@router.post("/{sms_id}/manual-match", response_model=MatchResponse)
def manual_match(
    sms_id: uuid.UUID,
    request: ManualMatchRequest,
    db: Session = Depends(get_db),
):
    """
    Settle a payment request with this SMS.

    Fails with 409 if the request is no longer awaiting payment or the SMS
    was already matched or dismissed.
    """
    record = review_service.manual_match(
        db,
        message_id=sms_id,
        payment_request_id=request.payment_request_id,
        actor=request.matched_by,
        note=request.note,
        transaction_id=request.transaction_id,
    )
    return _match_to_response(record)


@router.post("/{sms_id}/dismiss", response_model=SmsMessageResponse)
def dismiss_sms(
    sms_id: uuid.UUID,
    request: DismissRequest = DismissRequest(),
    db: Session = Depends(get_db),
):
    """Close this SMS as not matchable. Nothing is settled."""
    message = review_service.dismiss_message(
        db,
        message_id=sms_id,
        actor=request.dismissed_by,
        note=request.note,
    )
    return _message_to_response(message)


@router.post("/{sms_id}/resolve", response_model=ResolveResponse)
def resolve_sms(sms_id: uuid.UUID, db: Session = Depends(get_db)):
    """Re-run automatic matching for an SMS that is still open."""
    result = review_service.retry_resolution(db, sms_id)
    return ResolveResponse(
        sms_id=str(sms_id),
        resolution=result.status,
        match_record_id=str(result.match_record.id) if result.match_record else None,
    )
