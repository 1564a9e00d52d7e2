"""
Tests for the Mercado Pago webhook: approval provisioning, failures and signatures.
"""
from datetime import timedelta

import pytest

from app.models import Admin, Affiliate, CheckoutPayment, utcnow
from app.routes import checkout_webhooks
from app.services import mercadopago_service
from app.webhook_security import create_mercadopago_signature

MP_ID = "555001"


@pytest.fixture
def mp_payment(monkeypatch):
    """The payment Mercado Pago returns for MP_ID; tests fill in the fields."""
    state = {"id": int(MP_ID), "payment_type_id": "bank_transfer"}

    async def fake_get_payment(payment_id):
        assert payment_id == MP_ID
        return True, dict(state), None

    monkeypatch.setattr(mercadopago_service, "get_payment", fake_get_payment)
    return state


def notify(client, **kwargs):
    return client.post(
        "/webhooks/mercadopago",
        params={"type": "payment", "data.id": MP_ID},
        json={"type": "payment", "data": {"id": MP_ID}},
        **kwargs,
    )


class TestApproved:
    def test_creates_account_and_sends_credentials(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        payment = make_pix_payment(mercadopago_payment_id=MP_ID)
        mp_payment.update(status="approved", status_detail="accredited", external_reference=payment.id)

        response = notify(client)

        assert response.json() == {"status": "success"}
        db_session.refresh(payment)
        assert payment.status == "approved"
        assert payment.approved_at is not None

        admin = db_session.query(Admin).filter(Admin.email == payment.email).one()
        assert admin.password_hash
        assert admin.plan_id == payment.plan_id
        assert payment.admin_id == admin.id
        remaining = admin.access_expires_at - utcnow()
        assert timedelta(days=29) < remaining <= timedelta(days=30)

        assert sent_emails.subjects() == [
            "Pagamento confirmado - AutoWebinar",
            "Seu acesso ao AutoWebinar foi liberado!",
        ]

    def test_existing_account_is_extended_without_new_credentials(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        current_expiry = utcnow() + timedelta(days=5)
        admin = Admin(name="Comprador", email="comprador@exemplo.com", access_expires_at=current_expiry)
        db_session.add(admin)
        db_session.commit()
        payment = make_pix_payment(mercadopago_payment_id=MP_ID)
        mp_payment.update(status="approved", status_detail="accredited")

        notify(client)

        db_session.refresh(admin)
        assert admin.access_expires_at == current_expiry + timedelta(days=30)
        assert sent_emails.subjects() == ["Pagamento confirmado - AutoWebinar"]
        db_session.refresh(payment)
        assert payment.admin_id == admin.id

    def test_duplicate_notification_is_skipped(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        make_pix_payment(mercadopago_payment_id=MP_ID)
        mp_payment.update(status="approved", status_detail="accredited")

        notify(client)
        notify(client)

        assert db_session.query(Admin).count() == 1
        assert len(sent_emails.sent) == 2

    def test_failed_provisioning_is_retried_by_the_next_notification(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails, monkeypatch
    ) -> None:
        payment = make_pix_payment(mercadopago_payment_id=MP_ID)
        mp_payment.update(status="approved", status_detail="accredited")
        real_provision = checkout_webhooks.provision_admin
        calls = []

        def flaky_provision(db, payment, access_days):
            calls.append(payment.id)
            if len(calls) == 1:
                raise RuntimeError("connection reset")
            return real_provision(db, payment, access_days)

        monkeypatch.setattr(checkout_webhooks, "provision_admin", flaky_provision)

        first = notify(client)
        db_session.refresh(payment)
        assert first.status_code == 500
        assert payment.status == "pending"

        retry = notify(client)

        assert retry.json() == {"status": "success"}
        assert len(calls) == 2
        db_session.refresh(payment)
        assert payment.status == "approved"
        admin = db_session.query(Admin).one()
        assert payment.admin_id == admin.id
        assert "Seu acesso ao AutoWebinar foi liberado!" in sent_emails.subjects()

    def test_affiliate_is_told_about_the_commission(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        db_session.add(Affiliate(name="Parceira", email="parceira@exemplo.com", link_code="parc30"))
        db_session.commit()
        make_pix_payment(mercadopago_payment_id=MP_ID, affiliate_link_code="parc30")
        mp_payment.update(status="approved", status_detail="accredited")

        notify(client)

        affiliate_email = sent_emails.sent[-1]
        assert affiliate_email["to"] == "parceira@exemplo.com"
        assert "29,10" in affiliate_email["subject"]


class TestFailed:
    def test_rejection_is_recorded_and_buyer_notified(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        payment = make_pix_payment(mercadopago_payment_id=MP_ID)
        mp_payment.update(status="rejected", status_detail="cc_rejected_insufficient_amount")

        response = notify(client)

        assert response.status_code == 200
        db_session.refresh(payment)
        assert payment.status == "rejected"
        assert payment.failure_attempts == 1
        assert payment.user_friendly_error.startswith("Seu cartão não possui limite suficiente.")
        assert sent_emails.subjects() == ["Ação necessária: pagamento não aprovado - AutoWebinar"]

    def test_repeated_rejection_is_not_counted_twice(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        payment = make_pix_payment(mercadopago_payment_id=MP_ID)
        mp_payment.update(status="rejected", status_detail="cc_rejected_other_reason")

        notify(client)
        notify(client)

        db_session.refresh(payment)
        assert payment.failure_attempts == 1
        assert len(sent_emails.sent) == 1

    def test_existing_account_is_flagged(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        admin = Admin(name="Comprador", email="comprador@exemplo.com")
        db_session.add(admin)
        db_session.commit()
        make_pix_payment(mercadopago_payment_id=MP_ID)
        mp_payment.update(status="cancelled", status_detail="expired")

        notify(client)

        db_session.refresh(admin)
        assert admin.payment_status == "failed"
        assert admin.payment_failed_reason

    def test_late_rejection_never_overrides_approval(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        payment = make_pix_payment(mercadopago_payment_id=MP_ID, status="approved")
        mp_payment.update(status="rejected", status_detail="cc_rejected_other_reason")

        notify(client)

        db_session.refresh(payment)
        assert payment.status == "approved"
        assert sent_emails.sent == []


class TestPendingAndIgnored:
    def test_pending_update(self, client, db_session, make_pix_payment, mp_payment) -> None:
        payment = make_pix_payment(mercadopago_payment_id=MP_ID, status="checkout_iniciado")
        mp_payment.update(status="in_process", status_detail="pending_review_manual")

        notify(client)

        db_session.refresh(payment)
        assert payment.status == "in_process"
        assert payment.status_detail == "pending_review_manual"

    def test_missing_data_id(self, client) -> None:
        response = client.post("/webhooks/mercadopago", json={"type": "payment"})
        assert response.json() == {"status": "ignored"}

    def test_other_event_types(self, client, mp_payment) -> None:
        response = client.post(
            "/webhooks/mercadopago", json={"type": "merchant_order", "data": {"id": MP_ID}}
        )
        assert response.json() == {"status": "ignored"}

    def test_unknown_payment(self, client, db_session, mp_payment) -> None:
        mp_payment.update(status="approved")

        assert notify(client).json() == {"status": "ignored"}
        assert db_session.query(CheckoutPayment).count() == 0

    def test_gateway_lookup_failure(self, client, monkeypatch) -> None:
        async def failing_get_payment(payment_id):
            return False, None, "timeout"

        monkeypatch.setattr(mercadopago_service, "get_payment", failing_get_payment)

        assert notify(client).status_code == 502


class TestSignature:
    SECRET = "whsec-test"

    @pytest.fixture(autouse=True)
    def webhook_secret(self, monkeypatch):
        monkeypatch.setattr(checkout_webhooks, "MERCADOPAGO_WEBHOOK_SECRET", self.SECRET)

    def test_unsigned_request_is_rejected(self, client, mp_payment) -> None:
        response = notify(client)

        assert response.status_code == 401

    def test_signed_request_is_processed(
        self, client, db_session, make_pix_payment, mp_payment, sent_emails
    ) -> None:
        payment = make_pix_payment(mercadopago_payment_id=MP_ID)
        mp_payment.update(status="in_process", status_detail="pending_contingency")
        headers = {
            "x-signature": create_mercadopago_signature(self.SECRET, MP_ID, "req-42"),
            "x-request-id": "req-42",
        }

        response = notify(client, headers=headers)

        assert response.json() == {"status": "success"}
        db_session.refresh(payment)
        assert payment.status == "in_process"
