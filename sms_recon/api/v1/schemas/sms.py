"""Pydantic schemas for SMS webhook and review-queue endpoints."""
import uuid
from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field


class SmsWebhookRequest(BaseModel):
    """Payload posted by the SMS-forwarding app."""
    device_id: str = Field(..., min_length=1, alias="deviceId")
    sender: str = Field("", alias="from")
    text: str = Field(..., min_length=1)
    received_at: str | int | float = Field(..., alias="receivedAt")
    raw_meta: Any = Field(None, alias="rawMeta")

    class Config:
        populate_by_name = True


class SmsWebhookResponse(BaseModel):
    id: str
    status: str = "received"
    resolution: str


class ParsedSignalResponse(BaseModel):
    amount_minor: int | None = None
    utr: str | None = None
    vpa: str | None = None
    confidence: int


class CandidateSnapshot(BaseModel):
    """Candidate as recorded when the message was sent to review."""
    request_id: str
    score: int
    rule: str


class SmsMessageResponse(BaseModel):
    id: str
    device_id: str | None = None
    shop_id: str
    sender: str | None = None
    raw_text: str
    received_at: datetime
    raw_meta: Any = None
    signal: ParsedSignalResponse
    status: str
    review_label: str | None = None
    review_candidates: list[CandidateSnapshot] = []
    matched_request_id: str | None = None
    processed_at: datetime | None = None
    created_at: datetime


class ReviewQueueResponse(BaseModel):
    total: int
    messages: list[SmsMessageResponse]


class CandidateResponse(BaseModel):
    """Live-scored candidate."""
    request_id: str
    invoice_no: str
    amount_minor: int
    created_at: datetime
    expires_at: datetime
    score: int
    rule: str
    details: str


class CandidateListResponse(BaseModel):
    sms_id: str
    total: int
    candidates: list[CandidateResponse]


class ManualMatchRequest(BaseModel):
    """Request body for matching an SMS to a payment request by hand."""
    payment_request_id: uuid.UUID
    # Replaces the parsed UTR as the settlement reference
    transaction_id: str | None = Field(None, min_length=1, max_length=50)
    matched_by: str | None = None
    note: str | None = None


class DismissRequest(BaseModel):
    dismissed_by: str | None = None
    note: str | None = None


class ResolveResponse(BaseModel):
    sms_id: str
    resolution: str
    match_record_id: str | None = None
