import uuid
from datetime import datetime
from sqlalchemy import String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sms_recon.db.compat import UUID

from sms_recon.db.base import Base

TRANSACTION_ID_LENGTH = 50


class Payment(Base):
    """Settlement transaction recorded against a payment request."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(), primary_key=True, default=uuid.uuid4
    )
    payment_request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(), ForeignKey("payment_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # UTR when the SMS carried one; unique so a reference settles at most once
    transaction_id: Mapped[str] = mapped_column(String(TRANSACTION_ID_LENGTH), nullable=False, unique=True)
    amount_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), default="upi")
    verified_by: Mapped[str] = mapped_column(String(100), nullable=True)
    verified_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    notes: Mapped[str] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    payment_request: Mapped["PaymentRequest"] = relationship(
        "PaymentRequest", back_populates="payments"
    )

    def __repr__(self) -> str:
        return f"<Payment {self.transaction_id}: {self.amount_minor}>"
