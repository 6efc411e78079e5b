"""Payment endpoints: operator verification without an SMS."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sms_recon.db.session import get_db
from sms_recon.services.review_service import verify_payment
from sms_recon.api.v1.schemas.payments import VerifyPaymentRequest
from sms_recon.api.v1.schemas.matches import MatchResponse
from sms_recon.api.v1.endpoints.matches import _match_to_response

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/verify", response_model=MatchResponse)
def verify(
    request: VerifyPaymentRequest,
    db: Session = Depends(get_db),
):
    """
    Mark a payment request as paid from a reference the operator checked
    themselves (bank app, statement). Recorded as a manual match with no SMS.
    """
    record = verify_payment(
        db,
        payment_request_id=request.payment_request_id,
        transaction_id=request.transaction_id,
        amount_minor=request.amount_minor,
        actor=request.verified_by,
        note=request.note,
    )
    return _match_to_response(record)
