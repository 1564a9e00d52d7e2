"""
Subscription Expiration Reminders
Hourly job warning customers before and after their access expires.

Daily plans (recurring every 1 to 3 days) get hour-based reminders; every
other plan gets 3-day and 1-day reminders plus a morning notice the day after
expiration. ``Admin.last_expiration_email_sent`` throttles all of them.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from .. import email_service
from ..config import BUSINESS_UTC_OFFSET_HOURS
from ..database import SessionLocal
from ..models import Admin

logger = logging.getLogger(__name__)

DAILY_PLAN_WINDOW_HOURS = 6
EXPIRED_NOTICE_START_HOUR = 8
EXPIRED_NOTICE_END_HOUR = 10
DEFAULT_PLAN_NAME = "Seu Plano"
DEFAULT_CUSTOMER_NAME = "Cliente"

# Minimum hours since the previous reminder, per reminder kind
THROTTLE_HOURS = {
    "3days": 48,
    "1day": 20,
    "expired": 20,
    "daily_reminder": 4,
    "daily_expired": 4,
}


def should_send_email(admin: Admin, kind: str, now: datetime) -> bool:
    if not admin.last_expiration_email_sent:
        return True
    hours_since = (now - admin.last_expiration_email_sent).total_seconds() / 3600
    return hours_since >= THROTTLE_HOURS.get(kind, 0)


def is_daily_plan(admin: Admin) -> bool:
    return bool(admin.plan and admin.plan.is_daily)


def _plan_name(admin: Admin) -> str:
    return admin.plan.name if admin.plan and admin.plan.name else DEFAULT_PLAN_NAME


def _local_midnight_utc(now: datetime) -> datetime:
    """Start of the current business day, expressed in naive UTC"""
    offset = timedelta(hours=BUSINESS_UTC_OFFSET_HOURS)
    local_midnight = (now + offset).replace(hour=0, minute=0, second=0, microsecond=0)
    return local_midnight - offset


def _active_expiring_between(db: Session, start: datetime, end: datetime) -> list[Admin]:
    return (
        db.query(Admin)
        .filter(
            Admin.access_expires_at.isnot(None),
            Admin.access_expires_at >= start,
            Admin.access_expires_at <= end,
            Admin.is_active.is_(True),
        )
        .all()
    )


def get_admins_expiring_in_days(db: Session, days: int, now: datetime) -> list[Admin]:
    target = _local_midnight_utc(now) + timedelta(days=days)
    return _active_expiring_between(db, target, target + timedelta(days=1))


def get_admins_expiring_in_hours(db: Session, hours: int, now: datetime) -> list[Admin]:
    return _active_expiring_between(db, now, now + timedelta(hours=hours))


def get_admins_expired_in_last_hours(db: Session, hours: int, now: datetime) -> list[Admin]:
    return _active_expiring_between(db, now - timedelta(hours=hours), now)


def get_admins_expired_yesterday(db: Session, now: datetime) -> list[Admin]:
    # Deactivated accounts are included: expiration usually deactivates them
    today = _local_midnight_utc(now)
    return (
        db.query(Admin)
        .filter(
            Admin.access_expires_at.isnot(None),
            Admin.access_expires_at >= today - timedelta(days=1),
            Admin.access_expires_at <= today,
        )
        .all()
    )


class SubscriptionReminderService:
    def __init__(self):
        self.last_run_date: Optional[str] = None

    async def _send(self, db: Session, admin: Admin, kind: str, now: datetime, send) -> bool:
        if not should_send_email(admin, kind, now):
            logger.info(f"⏭️ Skipping {kind} reminder for {admin.email} - recently sent")
            return False
        try:
            await send()
        except Exception as e:
            logger.error(f"❌ Failed to send {kind} reminder to {admin.email}: {e}")
            return False
        admin.last_expiration_email_sent = now
        db.commit()
        logger.info(f"✅ Sent {kind} reminder to {admin.email}")
        return True

    def _reminder(self, admin: Admin, time_label: str):
        return lambda: email_service.send_expiration_reminder_email(
            admin.email,
            admin.name or DEFAULT_CUSTOMER_NAME,
            _plan_name(admin),
            time_label,
            admin.access_expires_at,
            plan_id=admin.plan_id,
        )

    def _expired_notice(self, admin: Admin):
        return lambda: email_service.send_expired_renewal_email(
            admin.email,
            admin.name or DEFAULT_CUSTOMER_NAME,
            _plan_name(admin),
            plan_id=admin.plan_id,
        )

    async def process(self, db: Optional[Session] = None, now: Optional[datetime] = None) -> dict:
        """Run one reminder pass; returns the number of emails sent per kind."""
        now = now or datetime.utcnow()
        local_now = now + timedelta(hours=BUSINESS_UTC_OFFSET_HOURS)
        today_str = local_now.date().isoformat()
        sent = {kind: 0 for kind in THROTTLE_HOURS}

        owns_session = db is None
        db = db or SessionLocal()
        try:
            logger.info(f"🔄 Running expiration check at {now.isoformat()}")

            for admin in get_admins_expiring_in_hours(db, DAILY_PLAN_WINDOW_HOURS, now):
                if not is_daily_plan(admin):
                    continue
                hours_left = max(1, int((admin.access_expires_at - now).total_seconds() // 3600) + 1)
                label = f"em {hours_left} hora{'s' if hours_left > 1 else ''}"
                if await self._send(db, admin, "daily_reminder", now, self._reminder(admin, label)):
                    sent["daily_reminder"] += 1

            for admin in get_admins_expired_in_last_hours(db, DAILY_PLAN_WINDOW_HOURS, now):
                if not is_daily_plan(admin):
                    continue
                if await self._send(db, admin, "daily_expired", now, self._expired_notice(admin)):
                    sent["daily_expired"] += 1

            # Regular plans are handled once per business day
            if self.last_run_date == today_str and local_now.hour < EXPIRED_NOTICE_START_HOUR:
                return sent

            for days, kind, label in ((3, "3days", "em 3 dias"), (1, "1day", "amanhã")):
                for admin in get_admins_expiring_in_days(db, days, now):
                    if is_daily_plan(admin):
                        continue
                    if await self._send(db, admin, kind, now, self._reminder(admin, label)):
                        sent[kind] += 1

            if EXPIRED_NOTICE_START_HOUR <= local_now.hour < EXPIRED_NOTICE_END_HOUR:
                for admin in get_admins_expired_yesterday(db, now):
                    if is_daily_plan(admin):
                        continue
                    if await self._send(db, admin, "expired", now, self._expired_notice(admin)):
                        sent["expired"] += 1

            self.last_run_date = today_str
            return sent
        finally:
            if owns_session:
                db.close()


subscription_reminders = SubscriptionReminderService()


async def process_expiration_reminders(now: Optional[datetime] = None) -> dict:
    return await subscription_reminders.process(now=now)
