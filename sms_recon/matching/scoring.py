"""
Candidate scorer: ranks eligible payment requests against a parsed SMS.

Pure function of its inputs. The caller supplies the eligible requests
(awaiting, unexpired, same merchant) and gets back only those with a
positive score, best first. Equal scores are ordered oldest request first.
"""

from dataclasses import dataclass
from typing import Iterable

from sms_recon.parsers.sms_parser import ParsedSignal
from sms_recon.matching.rules import amount_match


@dataclass(frozen=True)
class MatchCandidate:
    """A payment request scored against one SMS."""

    request: object
    score: int
    rule: str
    details: str = ""

    @property
    def request_id(self):
        return self.request.id

    def to_dict(self) -> dict:
        return {
            "request_id": str(self.request.id),
            "score": self.score,
            "rule": self.rule,
        }


def score_candidates(
    signal: ParsedSignal,
    requests: Iterable,
    tolerance_minor: int = 100,
) -> list[MatchCandidate]:
    """
    Score every request and return the ranked, non-zero candidates.

    Args:
        signal: Parsed SMS signal
        requests: Eligible payment requests (id, amount_minor, created_at)
        tolerance_minor: Amount tolerance in paise

    Returns:
        Candidates sorted by score descending, then created_at ascending.
    """
    candidates = []

    for request in requests:
        result = amount_match.score(signal, request, tolerance_minor=tolerance_minor)
        if result["score"] <= 0:
            continue
        candidates.append(
            MatchCandidate(
                request=request,
                score=result["score"],
                rule=result["rule"],
                details=result["details"],
            )
        )

    candidates.sort(key=lambda c: (-c.score, c.request.created_at, str(c.request.id)))
    return candidates
