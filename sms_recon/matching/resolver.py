"""
Match decision: turns ranked candidates into exactly one outcome per SMS.

  AutoMatched   unique top candidate at or above the auto-match threshold
  NeedsReview   anything else with at least one candidate (below threshold,
                or several candidates tied at the top score)
  Unidentified  no candidates at all; handled like NeedsReview downstream

This module only decides. Applying a decision is settlement.apply_match.
"""

from dataclasses import dataclass, field

from sms_recon.parsers.sms_parser import ParsedSignal
from sms_recon.matching.scoring import MatchCandidate


@dataclass(frozen=True)
class AutoMatched:
    request: object
    signal: ParsedSignal
    score: int

    label = "auto_matched"


@dataclass(frozen=True)
class NeedsReview:
    signal: ParsedSignal
    candidates: list[MatchCandidate] = field(default_factory=list)

    label = "needs_review"


@dataclass(frozen=True)
class Unidentified:
    signal: ParsedSignal

    label = "unidentified"

    @property
    def candidates(self) -> list[MatchCandidate]:
        return []


MatchDecision = AutoMatched | NeedsReview | Unidentified


def decide(
    signal: ParsedSignal,
    candidates: list[MatchCandidate],
    auto_match_threshold: int = 100,
) -> MatchDecision:
    """
    Pick the outcome for one SMS.

    Args:
        signal: Parsed SMS signal
        candidates: Output of score_candidates (already ranked)
        auto_match_threshold: Minimum score for an automatic match

    Returns:
        AutoMatched, NeedsReview or Unidentified.
    """
    if not candidates:
        return Unidentified(signal=signal)

    top = candidates[0]
    tied = len(candidates) > 1 and candidates[1].score == top.score

    if top.score >= auto_match_threshold and not tied:
        return AutoMatched(request=top.request, signal=signal, score=top.score)

    return NeedsReview(signal=signal, candidates=list(candidates))
