"""
Error taxonomy for the reconciliation core.

Services raise these; the API layer maps each class to an HTTP status in
main.py so routers never have to translate them by hand.
"""


class ReconciliationError(Exception):
    """Base class for caller-visible errors."""

    status_code = 400
    default_code = "reconciliation_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class InvalidInputError(ReconciliationError):
    status_code = 400
    default_code = "invalid_input"


class AuthenticationError(ReconciliationError):
    status_code = 401
    default_code = "credential_required"


class AuthorizationError(ReconciliationError):
    status_code = 403
    default_code = "invalid_device"


class NotFoundError(ReconciliationError):
    status_code = 404
    default_code = "not_found"


class ConflictError(ReconciliationError):
    """A resolution lost a race or targeted something already terminal."""

    status_code = 409
    default_code = "conflict"


class RateLimitExceededError(ReconciliationError):
    status_code = 429
    default_code = "rate_limited"


# Conflict codes
MESSAGE_ALREADY_PROCESSED = "message_already_processed"
REQUEST_NOT_AWAITING = "request_not_awaiting"
REQUEST_EXPIRED = "request_expired"
TRANSACTION_REFERENCE_USED = "transaction_reference_used"
