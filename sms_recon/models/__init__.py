from sms_recon.models.device import Device
from sms_recon.models.payment_request import PaymentRequest, RequestStatus
from sms_recon.models.sms_message import (
    SmsMessage,
    MessageStatus,
    TERMINAL_STATUSES,
    OPEN_STATUSES,
)
from sms_recon.models.payment import Payment
from sms_recon.models.match_record import MatchRecord, MatchType
from sms_recon.models.audit_log import AuditLog

__all__ = [
    "Device",
    "PaymentRequest",
    "RequestStatus",
    "SmsMessage",
    "MessageStatus",
    "TERMINAL_STATUSES",
    "OPEN_STATUSES",
    "Payment",
    "MatchRecord",
    "MatchType",
    "AuditLog",
]
