import uuid
import enum
from datetime import datetime
from sqlalchemy import String, Text, Integer, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sms_recon.db.compat import UUID, JSONB, enum_values

from sms_recon.db.base import Base
from sms_recon.parsers.sms_parser import ParsedSignal


class MessageStatus(str, enum.Enum):
    UNPROCESSED = "unprocessed"
    AUTO_MATCHED = "auto_matched"
    NEEDS_REVIEW = "needs_review"
    MANUALLY_MATCHED = "manually_matched"
    DISMISSED = "dismissed"


# A message in one of these states can never be resolved again
TERMINAL_STATUSES = frozenset(
    {MessageStatus.AUTO_MATCHED, MessageStatus.MANUALLY_MATCHED, MessageStatus.DISMISSED}
)
OPEN_STATUSES = frozenset({MessageStatus.UNPROCESSED, MessageStatus.NEEDS_REVIEW})


class SmsMessage(Base):
    """Inbound bank/UPI SMS as forwarded by a device."""

    __tablename__ = "sms_messages"
    __table_args__ = (
        # Rate-limit lookups: recent messages per device
        Index("ix_sms_messages_device_created", "device_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(), primary_key=True, default=uuid.uuid4
    )
    device_id: Mapped[uuid.UUID] = mapped_column(
        UUID(), ForeignKey("devices.id", ondelete="SET NULL"), nullable=True
    )
    shop_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    sender: Mapped[str] = mapped_column(Text, nullable=True)
    raw_text: Mapped[str] = mapped_column(Text, nullable=False)
    received_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    raw_meta: Mapped[dict] = mapped_column(JSONB, nullable=True)

    # Parsed fields; confidence is derived from these, see ``signal``
    parsed_amount_minor: Mapped[int] = mapped_column(Integer, nullable=True)
    # Unbounded: the reference pattern has no length limit
    parsed_utr: Mapped[str] = mapped_column(Text, nullable=True)
    parsed_vpa: Mapped[str] = mapped_column(Text, nullable=True)

    # Resolution
    status: Mapped[MessageStatus] = mapped_column(
        Enum(MessageStatus, values_callable=enum_values), default=MessageStatus.UNPROCESSED, index=True
    )
    review_candidates: Mapped[list] = mapped_column(JSONB, nullable=True)
    matched_request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(), ForeignKey("payment_requests.id", ondelete="SET NULL"), nullable=True
    )
    processed_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    device: Mapped["Device"] = relationship("Device", back_populates="messages")
    matched_request: Mapped["PaymentRequest"] = relationship("PaymentRequest")

    @property
    def signal(self) -> ParsedSignal:
        return ParsedSignal(
            amount_minor=self.parsed_amount_minor,
            utr=self.parsed_utr,
            vpa=self.parsed_vpa,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def review_label(self) -> str | None:
        """'unidentified' for a review item that had no candidates at all."""
        if self.status != MessageStatus.NEEDS_REVIEW:
            return None
        return "needs_review" if self.review_candidates else "unidentified"

    def __repr__(self) -> str:
        return f"<SmsMessage {self.id}: {self.status.value}>"
