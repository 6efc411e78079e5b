from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError

from sms_recon.matching import engine
from sms_recon.models import (
    AuditLog,
    MatchRecord,
    MatchType,
    MessageStatus,
    Payment,
    RequestStatus,
    SmsMessage,
)

CREDIT_500 = "Rs.500.00 credited to A/c XX1234. UTR: 401234567890"


class TestWebhookAuth:
    def test_missing_token(self, post_sms, db):
        response = post_sms(CREDIT_500, headers={})

        assert response.status_code == 401
        assert response.json()["code"] == "credential_required"
        assert db.query(SmsMessage).count() == 0

    def test_wrong_token(self, post_sms, db):
        response = post_sms(CREDIT_500, headers={"X-Webhook-Token": "wrong"})

        assert response.status_code == 403
        assert response.json()["code"] == "invalid_device"
        assert db.query(SmsMessage).count() == 0

    def test_unknown_device(self, client, device):
        _, token = device
        response = client.post(
            "/api/v1/sms/webhook",
            json={"deviceId": "nope", "text": CREDIT_500, "receivedAt": 1709288100000},
            headers={"X-Webhook-Token": token},
        )

        assert response.status_code == 403

    def test_revoked_device(self, client, post_sms, device, db):
        dev, _ = device
        assert client.post(f"/api/v1/devices/{dev.id}/revoke", json={"revoked_by": "owner"}).status_code == 200

        response = post_sms(CREDIT_500)

        assert response.status_code == 403
        assert db.query(SmsMessage).count() == 0

    def test_bearer_header(self, post_sms, device):
        _, token = device

        response = post_sms(CREDIT_500, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["status"] == "received"

    def test_rate_limited(self, post_sms, settings, monkeypatch, db):
        monkeypatch.setattr(settings, "webhook_rate_limit_per_minute", 1)

        assert post_sms("Rs 10 received").status_code == 200
        response = post_sms("Rs 20 received")

        assert response.status_code == 429
        assert response.json()["code"] == "rate_limited"
        assert db.query(SmsMessage).count() == 1


class TestWebhookPayload:
    def test_missing_text(self, client, device):
        dev, token = device
        response = client.post(
            "/api/v1/sms/webhook",
            json={"deviceId": dev.device_uuid, "receivedAt": 1709288100000},
            headers={"X-Webhook-Token": token},
        )

        assert response.status_code == 422

    def test_bad_received_at(self, post_sms, db):
        response = post_sms(CREDIT_500, received_at="yesterday")

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"
        assert db.query(SmsMessage).count() == 0

    def test_epoch_millis_and_meta(self, client, post_sms):
        response = post_sms(
            "Rs 10 received",
            received_at=1709288100000,
            rawMeta={"sim": 1, "app": "forwarder"},
        )
        sms = client.get(f"/api/v1/sms/{response.json()['id']}").json()

        assert sms["received_at"] == "2024-03-01T10:15:00"
        assert sms["raw_meta"] == {"sim": 1, "app": "forwarder"}
        assert sms["sender"] == "VM-HDFCBK"

    def test_offset_timestamp_normalised_to_utc(self, client, post_sms):
        response = post_sms("Rs 10 received", received_at="2024-03-01T15:45:00+05:30")
        sms = client.get(f"/api/v1/sms/{response.json()['id']}").json()

        assert sms["received_at"] == "2024-03-01T10:15:00"

    def test_last_seen_updated(self, post_sms, device, db):
        dev, _ = device

        post_sms("Rs 10 received")
        db.refresh(dev)

        assert dev.last_seen_at is not None


class TestResolution:
    def test_unique_exact_amount_auto_matches(self, client, post_sms, make_request, db):
        request = make_request(50000)
        make_request(90000)

        response = post_sms(CREDIT_500)

        assert response.status_code == 200
        assert response.json()["resolution"] == "auto_matched"

        sms = client.get(f"/api/v1/sms/{response.json()['id']}").json()
        assert sms["status"] == "auto_matched"
        assert sms["matched_request_id"] == str(request.id)
        assert sms["signal"]["confidence"] == 90

        db.refresh(request)
        assert request.status == RequestStatus.SETTLED
        assert request.settled_at is not None

        payment = db.query(Payment).one()
        assert payment.transaction_id == "401234567890"
        assert payment.amount_minor == 50000

        record = db.query(MatchRecord).one()
        assert record.match_type == MatchType.AUTO
        assert record.score == 100
        assert record.matched_by is None
        assert db.query(AuditLog).filter(AuditLog.action == "auto_match").count() == 1

    def test_tied_amounts_need_review(self, client, post_sms, make_request, db):
        older = make_request(50000, created_at=datetime.utcnow() - timedelta(hours=2))
        newer = make_request(50000, created_at=datetime.utcnow() - timedelta(hours=1))

        response = post_sms(CREDIT_500)

        assert response.json()["resolution"] == "needs_review"
        sms = client.get(f"/api/v1/sms/{response.json()['id']}").json()
        assert sms["status"] == "needs_review"
        assert sms["review_label"] == "needs_review"
        assert [c["request_id"] for c in sms["review_candidates"]] == [str(older.id), str(newer.id)]
        assert db.query(MatchRecord).count() == 0
        assert db.query(Payment).count() == 0

    def test_within_tolerance_needs_review(self, client, post_sms, make_request):
        request = make_request(50050)

        response = post_sms(CREDIT_500)

        assert response.json()["resolution"] == "needs_review"
        sms = client.get(f"/api/v1/sms/{response.json()['id']}").json()
        assert sms["review_candidates"] == [
            {"request_id": str(request.id), "score": 80, "rule": "amount_within_tolerance"}
        ]

    def test_no_amount_is_unidentified(self, client, post_sms, make_request):
        make_request(50000)

        response = post_sms("Payment done. TxnId:AB12CD34")

        assert response.json()["resolution"] == "unidentified"
        sms = client.get(f"/api/v1/sms/{response.json()['id']}").json()
        assert sms["status"] == "needs_review"
        assert sms["review_label"] == "unidentified"
        assert sms["review_candidates"] == []

        queue = client.get("/api/v1/sms/review-queue").json()
        assert queue["total"] == 1
        assert queue["messages"][0]["review_label"] == "unidentified"

    def test_expired_request_not_eligible(self, post_sms, make_request):
        make_request(50000, expires_at=datetime.utcnow() - timedelta(minutes=1))

        assert post_sms(CREDIT_500).json()["resolution"] == "unidentified"

    def test_settled_request_not_eligible(self, post_sms, make_request):
        make_request(50000, status=RequestStatus.SETTLED)

        assert post_sms(CREDIT_500).json()["resolution"] == "unidentified"

    def test_other_shop_not_eligible(self, post_sms, make_request):
        make_request(50000, shop_id="shop-2")

        assert post_sms(CREDIT_500).json()["resolution"] == "unidentified"

    def test_reused_utr_goes_to_review(self, post_sms, make_request, db):
        first_request = make_request(50000)
        first = post_sms(CREDIT_500)
        assert first.json()["resolution"] == "auto_matched"

        second_request = make_request(50000)
        second = post_sms(CREDIT_500)

        assert second.json()["resolution"] == "needs_review"
        db.refresh(first_request)
        db.refresh(second_request)
        assert first_request.status == RequestStatus.SETTLED
        assert second_request.status == RequestStatus.AWAITING
        assert db.query(Payment).count() == 1
        message = db.query(SmsMessage).filter(SmsMessage.id == second.json()["id"]).one()
        assert message.status == MessageStatus.NEEDS_REVIEW

    def test_lookup_timeout_still_acknowledged(self, client, post_sms, make_request, monkeypatch):
        make_request(50000)

        def timed_out(*args, **kwargs):
            raise OperationalError("SELECT payment_requests", {}, Exception("statement timeout"))

        monkeypatch.setattr(engine, "fetch_eligible_requests", timed_out)

        response = post_sms("Rs. 500.00 credited. UTR: ABC123XYZ")

        assert response.status_code == 200
        assert response.json()["resolution"] == "unidentified"
        queue = client.get("/api/v1/sms/review-queue").json()
        assert queue["total"] == 1
        assert queue["messages"][0]["id"] == response.json()["id"]
