"""Pydantic schemas for manual payment verification."""

import uuid

from pydantic import BaseModel, Field


class VerifyPaymentRequest(BaseModel):
    """Settle a request from an operator-supplied transaction reference."""
    payment_request_id: uuid.UUID
    transaction_id: str = Field(..., min_length=1, max_length=50)
    amount_minor: int = Field(..., gt=0)
    verified_by: str | None = None
    note: str | None = None
