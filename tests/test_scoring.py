import uuid
from datetime import datetime, timedelta
from types import SimpleNamespace

from sms_recon.matching.rules import amount_match
from sms_recon.matching.scoring import score_candidates
from sms_recon.parsers.sms_parser import ParsedSignal

BASE_TIME = datetime(2024, 3, 1, 10, 0, 0)


def _request(amount_minor, minutes_old=0):
    return SimpleNamespace(
        id=uuid.uuid4(),
        amount_minor=amount_minor,
        created_at=BASE_TIME - timedelta(minutes=minutes_old),
    )


class TestAmountRule:
    def test_exact(self):
        result = amount_match.score(ParsedSignal(amount_minor=50000), _request(50000))

        assert result["score"] == 100
        assert result["rule"] == amount_match.RULE_EXACT

    def test_within_tolerance_is_inclusive(self):
        signal = ParsedSignal(amount_minor=50000)

        assert amount_match.score(signal, _request(50100))["score"] == 80
        assert amount_match.score(signal, _request(49900))["score"] == 80
        assert amount_match.score(signal, _request(50101))["score"] == 0

    def test_custom_tolerance(self):
        signal = ParsedSignal(amount_minor=50000)

        assert amount_match.score(signal, _request(50500), tolerance_minor=500)["score"] == 80
        assert amount_match.score(signal, _request(50001), tolerance_minor=0)["score"] == 0

    def test_no_amount(self):
        result = amount_match.score(ParsedSignal(utr="X1"), _request(50000))

        assert result["score"] == 0
        assert result["rule"] is None


class TestScoreCandidates:
    def test_excludes_non_positive_scores(self):
        requests = [_request(50000), _request(70000)]

        candidates = score_candidates(ParsedSignal(amount_minor=50000), requests)

        assert [c.request for c in candidates] == [requests[0]]

    def test_no_amount_yields_nothing(self):
        assert score_candidates(ParsedSignal(utr="X1"), [_request(50000)]) == []

    def test_empty_eligible_set(self):
        assert score_candidates(ParsedSignal(amount_minor=50000), []) == []

    def test_sorted_by_score_then_oldest(self):
        near_new = _request(50050, minutes_old=1)
        exact = _request(50000, minutes_old=2)
        near_old = _request(49950, minutes_old=30)

        candidates = score_candidates(
            ParsedSignal(amount_minor=50000),
            [near_new, exact, near_old],
        )

        assert [c.request for c in candidates] == [exact, near_old, near_new]
        assert [c.score for c in candidates] == [100, 80, 80]

    def test_exact_ties_keep_oldest_first(self):
        newer = _request(50000, minutes_old=1)
        older = _request(50000, minutes_old=5)

        candidates = score_candidates(ParsedSignal(amount_minor=50000), [newer, older])

        assert [c.request for c in candidates] == [older, newer]

    def test_snapshot_dict(self):
        request = _request(50000)

        candidate = score_candidates(ParsedSignal(amount_minor=50000), [request])[0]

        assert candidate.request_id == request.id
        assert candidate.to_dict() == {
            "request_id": str(request.id),
            "score": 100,
            "rule": amount_match.RULE_EXACT,
        }
