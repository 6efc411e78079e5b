"""
Parser for bank/UPI credit SMS: extracts amount, UTR and payee VPA.

Rules (first match wins for each field):
  - Amount: "Rs" / "Rs." (any case) followed by digits with optional comma
    separators and up to two decimals. Converted to paise, half-up.
  - Reference: one of UTR, UPI, Ref, TxnId (any case), optional ':' or
    whitespace, then an alphanumeric code.
  - VPA: first localpart@domain token; local part alphanumeric plus . _ -,
    domain alphabetic.

Parsing never fails; a field that cannot be extracted is None.
"""
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

logger = logging.getLogger(__name__)

AMOUNT_PATTERN = re.compile(r"Rs\.?\s*([\d,]+(?:\.\d{2})?)", re.IGNORECASE)
REFERENCE_PATTERN = re.compile(r"(?:UTR|UPI|Ref|TxnId)[:\s]*([A-Z0-9]+)", re.IGNORECASE)
VPA_PATTERN = re.compile(r"([a-zA-Z0-9._-]+@[a-zA-Z]+)")

# Confidence bands: high >= 80, medium 50-79, low < 50
CONFIDENCE_AMOUNT_AND_REFERENCE = 90
CONFIDENCE_AMOUNT_ONLY = 60
CONFIDENCE_REFERENCE_ONLY = 30
CONFIDENCE_NONE = 0
VPA_BONUS = 5


@dataclass(frozen=True)
class ParsedSignal:
    """Structured payment signal extracted from one SMS."""

    amount_minor: int | None = None
    utr: str | None = None
    vpa: str | None = None

    @property
    def confidence(self) -> int:
        """Derived from which fields were found; never stored on its own."""
        if self.amount_minor is not None and self.utr:
            base = CONFIDENCE_AMOUNT_AND_REFERENCE
        elif self.amount_minor is not None:
            base = CONFIDENCE_AMOUNT_ONLY
        elif self.utr:
            base = CONFIDENCE_REFERENCE_ONLY
        else:
            base = CONFIDENCE_NONE
        if self.vpa:
            base += VPA_BONUS
        return base

    def to_dict(self) -> dict:
        return {
            "amount_minor": self.amount_minor,
            "utr": self.utr,
            "vpa": self.vpa,
            "confidence": self.confidence,
        }


def parse_sms(text: str, sender: str | None = None) -> ParsedSignal:
    """Parse raw SMS text into a ParsedSignal.

    Args:
        text: Raw message body.
        sender: Sender label as reported by the device. Untrusted and not
                used for extraction.

    Returns:
        ParsedSignal; fields that could not be found are None.
    """
    if not text:
        return ParsedSignal()

    signal = ParsedSignal(
        amount_minor=_extract_amount(text),
        utr=_extract_reference(text),
        vpa=_extract_vpa(text),
    )
    logger.debug(
        "Parsed SMS from %r: amount=%s utr=%s vpa=%s confidence=%d",
        sender,
        signal.amount_minor,
        signal.utr,
        signal.vpa,
        signal.confidence,
    )
    return signal


def _extract_amount(text: str) -> int | None:
    """First Rs amount in the text, in paise. Zero counts as not found."""
    match = AMOUNT_PATTERN.search(text)
    if not match:
        return None

    raw = match.group(1).replace(",", "")
    try:
        rupees = Decimal(raw)
    except InvalidOperation:
        # "Rs ," matches with a bare separator
        return None

    paise = int((rupees * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return paise if paise > 0 else None


def _extract_reference(text: str) -> str | None:
    match = REFERENCE_PATTERN.search(text)
    return match.group(1) if match else None


def _extract_vpa(text: str) -> str | None:
    match = VPA_PATTERN.search(text)
    return match.group(1) if match else None
