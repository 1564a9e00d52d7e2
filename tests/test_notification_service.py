"""
Tests for the unified email + WhatsApp notification dispatcher.
"""
import pytest

from app.services import notification_service


async def email_ok(to, **kwargs):
    return True


async def email_queued(to, **kwargs):
    return False


async def email_raises(to, **kwargs):
    raise Exception("Resend down")


async def whatsapp_ok(db, phone, **kwargs):
    return True


async def whatsapp_raises(db, phone, **kwargs):
    raise Exception("Graph API down")


class TestSendNotification:
    @pytest.mark.asyncio
    async def test_both_channels(self, db_session) -> None:
        result = await notification_service.send_notification(
            db_session, "ana@exemplo.com", "5511987654321", "Ana", "welcome",
            email_ok, whatsapp_ok, {}, {},
        )
        assert result == {"email_sent": True, "whatsapp_sent": True, "email_error": None, "whatsapp_error": None}

    @pytest.mark.asyncio
    async def test_email_failure_does_not_block_whatsapp(self, db_session) -> None:
        result = await notification_service.send_notification(
            db_session, "ana@exemplo.com", "5511987654321", "Ana", "welcome",
            email_raises, whatsapp_ok, {}, {},
        )

        assert result["email_sent"] is False
        assert result["email_error"] == "Resend down"
        assert result["whatsapp_sent"] is True

    @pytest.mark.asyncio
    async def test_whatsapp_failure_is_reported(self, db_session) -> None:
        result = await notification_service.send_notification(
            db_session, "ana@exemplo.com", "5511987654321", "Ana", "welcome",
            email_ok, whatsapp_raises, {}, {},
        )

        assert result["email_sent"] is True
        assert result["whatsapp_error"] == "Graph API down"

    @pytest.mark.asyncio
    async def test_queued_email_counts_as_not_sent(self, db_session) -> None:
        result = await notification_service.send_notification(
            db_session, "ana@exemplo.com", None, "Ana", "welcome",
            email_queued, whatsapp_ok, {}, {},
        )

        assert result["email_sent"] is False
        assert result["email_error"] == "Queued for retry"
        assert result["whatsapp_sent"] is False

    @pytest.mark.asyncio
    async def test_kwargs_are_forwarded(self, db_session) -> None:
        calls = {}

        async def email_func(to, **kwargs):
            calls["email"] = (to, kwargs)

        async def whatsapp_func(db, phone, **kwargs):
            calls["whatsapp"] = (phone, kwargs)
            return True

        await notification_service.send_notification(
            db_session, "ana@exemplo.com", "5511987654321", "Ana", "welcome",
            email_func, whatsapp_func, {"name": "Ana"}, {"name": "Ana W"},
        )

        assert calls["email"] == ("ana@exemplo.com", {"name": "Ana"})
        assert calls["whatsapp"] == ("5511987654321", {"name": "Ana W"})


class TestNotifyHelpers:
    @pytest.mark.asyncio
    async def test_notify_pix_expired(self, db_session, sent_emails, make_account, sent_whatsapp) -> None:
        make_account("Principal")

        result = await notification_service.notify_pix_expired(
            db_session, "ana@exemplo.com", "11987654321", "Ana", "Plano Mensal", 1, 9700
        )

        assert result["email_sent"] is True
        assert result["whatsapp_sent"] is True
        assert sent_emails.subjects() == ["Seu PIX expirou - Finalize sua compra do Plano Mensal"]
        assert "R$ 97,00" in sent_whatsapp.sent[0]["text"]

    @pytest.mark.asyncio
    async def test_notify_plan_expired(self, db_session, sent_emails, make_account, sent_whatsapp) -> None:
        make_account("Principal")

        result = await notification_service.notify_plan_expired(
            db_session, "ana@exemplo.com", "11987654321", "Ana", "Plano Mensal"
        )

        assert result["email_sent"] is True
        assert result["whatsapp_sent"] is True
        assert sent_emails.subjects() == ["Seu plano expirou - AutoWebinar"]
        assert "Plano Mensal" in sent_whatsapp.sent[0]["text"]
