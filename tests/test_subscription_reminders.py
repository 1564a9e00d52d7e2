"""
Tests for subscription expiration reminders.

Business hours are UTC-3: 12:00 UTC is 09:00 local.
"""
from datetime import datetime, timedelta

import pytest

from app.models import Admin, CheckoutPlan
from app.services.subscription_reminders import SubscriptionReminderService, should_send_email

NOW = datetime(2026, 3, 10, 12, 0)


@pytest.fixture
def monthly_plan(db_session) -> CheckoutPlan:
    plan = CheckoutPlan(name="Plano Mensal", price=9700)
    db_session.add(plan)
    db_session.commit()
    return plan


@pytest.fixture
def daily_plan(db_session) -> CheckoutPlan:
    plan = CheckoutPlan(
        name="Plano Diário",
        price=990,
        access_days=1,
        billing_type="recorrente",
        frequency=1,
        frequency_type="days",
    )
    db_session.add(plan)
    db_session.commit()
    return plan


@pytest.fixture
def make_admin(db_session):
    def _make(email, plan, expires_at, last_sent=None, is_active=True):
        admin = Admin(
            name="Cliente",
            email=email,
            plan_id=plan.id,
            access_expires_at=expires_at,
            last_expiration_email_sent=last_sent,
            is_active=is_active,
        )
        db_session.add(admin)
        db_session.commit()
        return admin

    return _make


@pytest.fixture
def service() -> SubscriptionReminderService:
    return SubscriptionReminderService()


class TestThrottle:
    def test_never_sent(self) -> None:
        assert should_send_email(Admin(last_expiration_email_sent=None), "1day", NOW) is True

    def test_throttled_per_kind(self) -> None:
        admin = Admin(last_expiration_email_sent=NOW - timedelta(hours=10))
        assert should_send_email(admin, "3days", NOW) is False
        assert should_send_email(admin, "daily_reminder", NOW) is True


class TestRegularPlans:
    @pytest.mark.asyncio
    async def test_three_day_and_one_day_reminders(
        self, db_session, service, sent_emails, make_admin, monthly_plan
    ) -> None:
        three_days = make_admin("tres@exemplo.com", monthly_plan, datetime(2026, 3, 13, 15, 0))
        make_admin("amanha@exemplo.com", monthly_plan, datetime(2026, 3, 11, 20, 0))
        make_admin("longe@exemplo.com", monthly_plan, datetime(2026, 4, 10))

        sent = await service.process(db_session, NOW)

        assert sent["3days"] == 1
        assert sent["1day"] == 1
        by_recipient = {email["to"]: email["subject"] for email in sent_emails.sent}
        assert by_recipient["tres@exemplo.com"].startswith("Seu plano vence em 3 dias!")
        assert by_recipient["amanha@exemplo.com"].startswith("Seu plano vence amanhã!")
        assert "longe@exemplo.com" not in by_recipient
        db_session.refresh(three_days)
        assert three_days.last_expiration_email_sent == NOW

    @pytest.mark.asyncio
    async def test_recent_reminder_is_not_repeated(
        self, db_session, service, sent_emails, make_admin, monthly_plan
    ) -> None:
        make_admin(
            "tres@exemplo.com",
            monthly_plan,
            datetime(2026, 3, 13, 15, 0),
            last_sent=NOW - timedelta(hours=10),
        )

        sent = await service.process(db_session, NOW)

        assert sent["3days"] == 0
        assert sent_emails.sent == []

    @pytest.mark.asyncio
    async def test_expired_notice_in_the_morning_window(
        self, db_session, service, sent_emails, make_admin, monthly_plan
    ) -> None:
        make_admin("ontem@exemplo.com", monthly_plan, datetime(2026, 3, 9, 18, 0), is_active=False)

        sent = await service.process(db_session, NOW)

        assert sent["expired"] == 1
        assert sent_emails.subjects()[0].startswith("Seu plano venceu")

    @pytest.mark.asyncio
    async def test_no_expired_notice_outside_the_window(
        self, db_session, service, sent_emails, make_admin, monthly_plan
    ) -> None:
        make_admin("ontem@exemplo.com", monthly_plan, datetime(2026, 3, 9, 18, 0))

        sent = await service.process(db_session, datetime(2026, 3, 10, 18, 0))  # 15:00 local

        assert sent["expired"] == 0

    @pytest.mark.asyncio
    async def test_regular_plans_checked_once_per_day_before_the_window(
        self, db_session, service, sent_emails, make_admin, monthly_plan
    ) -> None:
        early = datetime(2026, 3, 10, 8, 0)  # 05:00 local
        await service.process(db_session, early)
        make_admin("amanha@exemplo.com", monthly_plan, datetime(2026, 3, 11, 20, 0))

        sent = await service.process(db_session, early + timedelta(hours=1))

        assert sent["1day"] == 0

    @pytest.mark.asyncio
    async def test_failed_send_does_not_update_throttle(
        self, db_session, service, sent_emails, make_admin, monthly_plan
    ) -> None:
        sent_emails.fail_with = "Resend down"
        admin = make_admin("amanha@exemplo.com", monthly_plan, datetime(2026, 3, 11, 20, 0))

        sent = await service.process(db_session, NOW)

        assert sent["1day"] == 0
        db_session.refresh(admin)
        assert admin.last_expiration_email_sent is None


class TestDailyPlans:
    @pytest.mark.asyncio
    async def test_hour_based_reminder(self, db_session, service, sent_emails, make_admin, daily_plan) -> None:
        make_admin("diario@exemplo.com", daily_plan, NOW + timedelta(hours=2, minutes=30))

        sent = await service.process(db_session, NOW)

        assert sent["daily_reminder"] == 1
        assert sent_emails.subjects()[0].startswith("Seu plano vence em 3 horas!")

    @pytest.mark.asyncio
    async def test_expired_in_last_hours(self, db_session, service, sent_emails, make_admin, daily_plan) -> None:
        make_admin("diario@exemplo.com", daily_plan, NOW - timedelta(hours=2))

        sent = await service.process(db_session, NOW)

        assert sent["daily_expired"] == 1
        assert sent["expired"] == 0

    @pytest.mark.asyncio
    async def test_daily_plans_skip_day_based_reminders(
        self, db_session, service, sent_emails, make_admin, daily_plan
    ) -> None:
        make_admin("diario@exemplo.com", daily_plan, datetime(2026, 3, 11, 20, 0))

        sent = await service.process(db_session, NOW)

        assert sent["1day"] == 0
        assert sent_emails.sent == []
