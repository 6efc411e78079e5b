"""
Amount matching rule.

Compares the amount parsed from the SMS against the payment request's
expected amount, both in paise. Small absolute differences cover rounding
and fee deductions by the payer's bank.

Scoring:
  - Exact match: 100
  - Within tolerance (default 100 paise, inclusive): 80
  - No parsed amount, or beyond tolerance: 0 (candidate excluded)
"""

from sms_recon.parsers.sms_parser import ParsedSignal

EXACT_SCORE = 100
TOLERANCE_SCORE = 80

RULE_EXACT = "amount_exact"
RULE_TOLERANCE = "amount_within_tolerance"


def score(
    signal: ParsedSignal,
    request,
    tolerance_minor: int = 100,
) -> dict:
    """
    Score amount match between a parsed SMS and a payment request.

    Args:
        signal: Parsed SMS signal
        request: Anything with an ``amount_minor`` attribute
        tolerance_minor: Acceptable absolute difference in paise

    Returns:
        dict with keys: score (int), rule (str | None), details (str)
    """
    if signal.amount_minor is None:
        return {
            "score": 0,
            "rule": None,
            "details": "No amount parsed from SMS",
        }

    difference = abs(request.amount_minor - signal.amount_minor)

    if difference == 0:
        return {
            "score": EXACT_SCORE,
            "rule": RULE_EXACT,
            "details": f"Exact amount match: {signal.amount_minor}",
        }

    if difference <= tolerance_minor:
        return {
            "score": TOLERANCE_SCORE,
            "rule": RULE_TOLERANCE,
            "details": f"Amount within tolerance: |{request.amount_minor} - {signal.amount_minor}| = {difference}",
        }

    return {
        "score": 0,
        "rule": None,
        "details": f"Amount mismatch: |{request.amount_minor} - {signal.amount_minor}| = {difference} exceeds {tolerance_minor}",
    }
