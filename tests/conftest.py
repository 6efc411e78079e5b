import os
import uuid
from datetime import datetime, timedelta

# Must be set before sms_recon.db.session builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("WEBHOOK_RATE_LIMIT_PER_MINUTE", "60")

import pytest
from fastapi.testclient import TestClient

from sms_recon.config import get_settings
from sms_recon.db.base import Base
from sms_recon.db.session import engine, SessionLocal, get_db
from sms_recon.main import app
from sms_recon.models import PaymentRequest, RequestStatus
from sms_recon.services.device_gate import register_device

SHOP_ID = "shop-1"


@pytest.fixture(scope="function")
def db():
    # Create the database tables
    Base.metadata.create_all(bind=engine)

    # Create a new database session for each test
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Drop the database tables
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    # Override the get_db dependency
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def device(db):
    """A registered device and its one-time webhook token."""
    return register_device(db, shop_id=SHOP_ID, device_name="Counter phone", created_by="owner")


@pytest.fixture
def make_request(db):
    """Factory for payment requests; amounts are in paise."""

    def _make(
        amount_minor,
        shop_id=SHOP_ID,
        invoice_no=None,
        status=RequestStatus.AWAITING,
        created_at=None,
        expires_at=None,
    ):
        now = datetime.utcnow()
        request = PaymentRequest(
            id=uuid.uuid4(),
            shop_id=shop_id,
            invoice_no=invoice_no or f"INV-{uuid.uuid4().hex[:6].upper()}",
            amount_minor=amount_minor,
            status=status,
            created_at=created_at or now - timedelta(minutes=10),
            expires_at=expires_at or now + timedelta(days=7),
        )
        db.add(request)
        db.commit()
        db.refresh(request)
        return request

    return _make


@pytest.fixture
def post_sms(client, device):
    """POST a message to the webhook as the registered device."""
    dev, token = device

    def _post(text, received_at="2024-03-01T10:15:00Z", headers=None, **extra):
        payload = {
            "deviceId": dev.device_uuid,
            "from": "VM-HDFCBK",
            "text": text,
            "receivedAt": received_at,
        }
        payload.update(extra)
        return client.post(
            "/api/v1/sms/webhook",
            json=payload,
            headers=headers if headers is not None else {"X-Webhook-Token": token},
        )

    return _post
