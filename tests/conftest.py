"""
Pytest configuration and fixtures.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SMTP_HOST", "smtp.test")
os.environ.setdefault("SMTP_PORT", "587")
os.environ.setdefault("SMTP_USER", "mailer@jambi.test")
os.environ.setdefault("SMTP_PASSWORD", "secret")
os.environ.setdefault("FORMS_TO_EMAIL", "team@jambi.test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("PAYMENT_EXPIRY_SWEEP_SECONDS", "0")

import json
from typing import List, Tuple
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from jambi.core.rate_limit import rate_limiter
from jambi.core.security import generate_api_key
from jambi.db.session import engine
from jambi.external_services.email_service import EmailClient, get_email_client
from jambi.external_services.webhook_service import get_webhook_dispatcher
from jambi.main import app
from jambi.models.admin_model import AdminUser
from jambi.models.merchant_model import ApiKey, Merchant

ADMIN_EMAIL = "ops@jambi.test"
ADMIN_PASSWORD = "Str0ngPass!"


class RecordingDispatcher:
    """Stands in for the webhook dispatcher and keeps every event it is handed."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: List[Tuple[str, str, dict]] = []

    def dispatch(self, merchant_id, event, payment):
        self.events.append((merchant_id, getattr(event, "value", event), payment))
        if self.fail:
            raise RuntimeError("webhook endpoint unreachable")
        return None

    def names(self) -> List[str]:
        return [name for _, name, _ in self.events]


@pytest.fixture(autouse=True)
def database():
    SQLModel.metadata.create_all(engine)
    rate_limiter.reset()
    yield
    SQLModel.metadata.drop_all(engine)
    app.dependency_overrides.clear()


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def dispatcher():
    dispatcher = RecordingDispatcher()
    app.dependency_overrides[get_webhook_dispatcher] = lambda: dispatcher
    return dispatcher


@pytest.fixture
def email_client():
    client = MagicMock(spec=EmailClient)
    client.send_email.return_value = True
    app.dependency_overrides[get_email_client] = lambda: client
    return client


@pytest.fixture
def client(dispatcher, email_client):
    return TestClient(app)


def make_merchant(session: Session, name: str = "Juba Electronics", **fields) -> Tuple[Merchant, str]:
    """Create a merchant with one active test key. Returns the merchant and its plaintext key."""
    merchant = Merchant(
        name=name,
        email=f"{name.split()[0].lower()}@merchant.test",
        mtn_momo_number=fields.pop("mtn_momo_number", "0921111111"),
        **fields,
    )
    session.add(merchant)
    session.commit()
    session.refresh(merchant)

    key, prefix, key_hash = generate_api_key(is_live=False)
    session.add(ApiKey(merchant_id=merchant.id, key_prefix=prefix, key_hash=key_hash))
    session.commit()
    session.refresh(merchant)
    return merchant, key


@pytest.fixture
def merchant(session):
    return make_merchant(session)


@pytest.fixture
def auth_headers(merchant):
    _, key = merchant
    return {"Authorization": f"Bearer {key}"}


@pytest.fixture
def bank_merchant(session):
    return make_merchant(
        session,
        name="Nile Traders",
        mtn_momo_number=None,
        bank_account_info_json=json.dumps(
            {"bank_name": "KCB", "account_number": "0012345", "account_name": "Nile Traders Ltd"}
        ),
    )


@pytest.fixture
def admin(session):
    admin = AdminUser(email=ADMIN_EMAIL, hashed_password=AdminUser.get_password_hash(ADMIN_PASSWORD))
    session.add(admin)
    session.commit()
    session.refresh(admin)
    return admin


@pytest.fixture
def admin_headers(client, admin):
    response = client.post("/admin/login", data={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
