"""Pydantic schemas for match record endpoints."""

from datetime import datetime
from pydantic import BaseModel


class MatchRequestSummary(BaseModel):
    """Embedded payment request info inside a match response."""
    id: str
    invoice_no: str
    amount_minor: int
    status: str
    settled_at: datetime | None = None


class MatchResponse(BaseModel):
    """Single match record."""
    id: str
    score: int | None = None
    match_type: str
    sms_id: str | None = None
    matched_by: str | None = None
    note: str | None = None
    matched_at: datetime
    payment_request: MatchRequestSummary


class MatchListResponse(BaseModel):
    """List of match records with count."""
    total: int
    matches: list[MatchResponse]
