from sms_recon.matching.engine import resolve_message, rank_candidates, ResolutionResult
from sms_recon.matching.scoring import score_candidates, MatchCandidate
from sms_recon.matching.resolver import decide, AutoMatched, NeedsReview, Unidentified

__all__ = [
    "resolve_message",
    "rank_candidates",
    "ResolutionResult",
    "score_candidates",
    "MatchCandidate",
    "decide",
    "AutoMatched",
    "NeedsReview",
    "Unidentified",
]
