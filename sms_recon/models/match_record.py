import uuid
import enum
from datetime import datetime
from sqlalchemy import String, Text, Integer, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sms_recon.db.compat import UUID, enum_values

from sms_recon.db.base import Base


class MatchType(str, enum.Enum):
    AUTO = "auto"
    MANUAL = "manual"


class MatchRecord(Base):
    """Append-only audit of how a payment request got settled."""

    __tablename__ = "match_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(), primary_key=True, default=uuid.uuid4
    )
    payment_request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(), ForeignKey("payment_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # None for manual verification without an SMS
    sms_message_id: Mapped[uuid.UUID] = mapped_column(
        UUID(), ForeignKey("sms_messages.id", ondelete="SET NULL"), nullable=True
    )
    score: Mapped[int] = mapped_column(Integer, nullable=True)
    match_type: Mapped[MatchType] = mapped_column(Enum(MatchType, values_callable=enum_values), nullable=False)
    matched_by: Mapped[str] = mapped_column(String(100), nullable=True)
    note: Mapped[str] = mapped_column(Text, nullable=True)
    matched_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    payment_request: Mapped["PaymentRequest"] = relationship(
        "PaymentRequest", back_populates="match_records"
    )
    sms_message: Mapped["SmsMessage"] = relationship("SmsMessage")

    def __repr__(self) -> str:
        return f"<MatchRecord {self.id}: {self.score} ({self.match_type.value})>"
