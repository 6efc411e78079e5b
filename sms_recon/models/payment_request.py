import uuid
import enum
from datetime import datetime
from sqlalchemy import String, Text, Integer, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sms_recon.db.compat import UUID, enum_values

from sms_recon.db.base import Base


class RequestStatus(str, enum.Enum):
    AWAITING = "awaiting"
    SETTLED = "settled"
    PARTIALLY_SETTLED = "partially_settled"
    EXPIRED = "expired"
    NEEDS_REVIEW = "needs_review"


class PaymentRequest(Base):
    """Merchant-issued payment request awaiting settlement.

    Owned by the surrounding application; the reconciliation core only reads
    these rows and flips ``status`` from awaiting to settled.
    """

    __tablename__ = "payment_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(), primary_key=True, default=uuid.uuid4
    )
    shop_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    invoice_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    amount_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=True)
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, values_callable=enum_values), default=RequestStatus.AWAITING, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    settled_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    # Relationships
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="payment_request", cascade="all, delete-orphan"
    )
    match_records: Mapped[list["MatchRecord"]] = relationship(
        "MatchRecord", back_populates="payment_request", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<PaymentRequest {self.invoice_no}: {self.amount_minor} ({self.status.value})>"
