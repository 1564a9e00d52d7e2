"""
Pytest configuration and fixtures.
"""
import os

# Configuration is read at import time, so the environment must be set first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_BACKGROUND_SCHEDULERS"] = "false"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RESEND_API_KEY"] = ""
os.environ["MERCADOPAGO_ACCESS_TOKEN"] = ""
os.environ["MERCADOPAGO_WEBHOOK_SECRET"] = ""
os.environ["WHATSAPP_ENCRYPTION_KEY"] = ""
os.environ["PUBLIC_BASE_URL"] = "https://app.test"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app import email_service  # noqa: E402
from app.database import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import CheckoutPayment, CheckoutPlan  # noqa: E402
from app.models_whatsapp import WhatsAppAccount  # noqa: E402
from app.services import whatsapp_service  # noqa: E402
from app.services.email_retry_queue import email_retry_queue  # noqa: E402

ADMIN_HEADERS = {"Authorization": "Bearer test-admin-token"}


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh tables and an empty retry queue for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    email_retry_queue.clear()
    yield
    email_retry_queue.clear()


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers() -> dict:
    return dict(ADMIN_HEADERS)


class EmailRecorder:
    """Stands in for ``send_email``; records calls and can be told to fail."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with = None

    async def __call__(self, to, subject, **kwargs):
        if self.fail_with:
            raise Exception(self.fail_with)
        self.sent.append({"to": to, "subject": subject, **kwargs})
        return {"id": f"email_{len(self.sent)}"}

    def subjects(self) -> list[str]:
        return [email["subject"] for email in self.sent]


@pytest.fixture
def sent_emails(monkeypatch) -> EmailRecorder:
    """Email service configured, with Resend replaced by a recorder."""
    recorder = EmailRecorder()
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr(email_service, "send_email", recorder)
    return recorder


class WhatsAppRecorder:
    def __init__(self):
        self.sent: list[dict] = []
        self.error = None

    async def __call__(self, account, to_phone, text):
        if self.error:
            return False, None, self.error
        self.sent.append({"account_id": account.id, "to": to_phone, "text": text})
        return True, f"wamid.{len(self.sent)}", None


@pytest.fixture
def sent_whatsapp(monkeypatch) -> WhatsAppRecorder:
    recorder = WhatsAppRecorder()
    monkeypatch.setattr(whatsapp_service, "send_text_message", recorder)
    return recorder


@pytest.fixture
def plan(db_session) -> CheckoutPlan:
    plan = CheckoutPlan(name="Plano Mensal", price=9700, access_days=30)
    db_session.add(plan)
    db_session.commit()
    db_session.refresh(plan)
    return plan


@pytest.fixture
def make_account(db_session):
    def _make(label="Principal", priority=0, hourly_limit=10, sent=0, status="connected", reset_at=None):
        account = WhatsAppAccount(
            label=label,
            phone_number="5511900000000",
            status=status,
            access_token=whatsapp_service.encrypt_token("EAAG-token"),
            phone_number_id=f"phone-{label}",
            priority=priority,
            hourly_limit=hourly_limit,
            messages_sent_this_hour=sent,
            last_hour_reset_at=reset_at,
        )
        db_session.add(account)
        db_session.commit()
        db_session.refresh(account)
        return account

    return _make


@pytest.fixture
def make_pix_payment(db_session, plan):
    def _make(
        email="comprador@exemplo.com",
        phone="11987654321",
        status="pending",
        expires_at=datetime(2026, 1, 1, 12, 0),
        plan_id="default",
        **fields,
    ):
        payment = CheckoutPayment(
            email=email,
            name="Comprador Teste",
            phone=phone,
            plan_id=plan.id if plan_id == "default" else plan_id,
            amount=9700,
            status=status,
            payment_method="pix",
            pix_expires_at=expires_at,
            **fields,
        )
        db_session.add(payment)
        db_session.commit()
        db_session.refresh(payment)
        return payment

    return _make
