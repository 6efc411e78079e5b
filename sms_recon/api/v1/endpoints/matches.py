"""Match endpoints: read the append-only match history."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from sms_recon.db.session import get_db
from sms_recon.models.match_record import MatchRecord, MatchType
from sms_recon.api.v1.schemas.matches import (
    MatchResponse,
    MatchListResponse,
    MatchRequestSummary,
)

router = APIRouter(prefix="/matches", tags=["Matches"])


def _match_to_response(record: MatchRecord) -> MatchResponse:
    """Convert a MatchRecord ORM object to a MatchResponse schema."""
    req = record.payment_request
    return MatchResponse(
        id=str(record.id),
        score=record.score,
        match_type=record.match_type.value,
        sms_id=str(record.sms_message_id) if record.sms_message_id else None,
        matched_by=record.matched_by,
        note=record.note,
        matched_at=record.matched_at,
        payment_request=MatchRequestSummary(
            id=str(req.id),
            invoice_no=req.invoice_no,
            amount_minor=req.amount_minor,
            status=req.status.value,
            settled_at=req.settled_at,
        ),
    )


@router.get("", response_model=MatchListResponse)
def list_matches(
    match_type: str | None = Query(None, description="Filter by match type: auto, manual"),
    payment_request_id: uuid.UUID | None = Query(None, description="Only matches for this request"),
    db: Session = Depends(get_db),
):
    """
    List match records with optional filtering.

    Use match_type to see only automatic or operator matches.
    """
    query = db.query(MatchRecord).options(joinedload(MatchRecord.payment_request))

    if match_type:
        try:
            mt = MatchType(match_type)
            query = query.filter(MatchRecord.match_type == mt)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid match_type '{match_type}'. Use: auto, manual",
            )

    if payment_request_id is not None:
        query = query.filter(MatchRecord.payment_request_id == payment_request_id)

    records = query.order_by(MatchRecord.matched_at.desc()).all()

    return MatchListResponse(
        total=len(records),
        matches=[_match_to_response(r) for r in records],
    )


@router.get("/{match_id}", response_model=MatchResponse)
def get_match(
    match_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Get a single match record by ID."""
    record = (
        db.query(MatchRecord)
        .options(joinedload(MatchRecord.payment_request))
        .filter(MatchRecord.id == match_id)
        .first()
    )

    if not record:
        raise HTTPException(status_code=404, detail=f"Match {match_id} not found")

    return _match_to_response(record)
