"""
PIX Expiration Background Worker
Finds PIX charges that expired without payment, sends a recovery email and
WhatsApp message, then marks the charge expired
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config import PIX_EXPIRATION_INTERVAL_SECONDS
from ..database import SessionLocal
from ..models import CheckoutPayment, CheckoutPlan
from ..services import notification_service
from ..services.periodic import PeriodicJob

logger = logging.getLogger(__name__)

DEFAULT_PLAN_NAME = "Seu Plano"


def get_expired_pix_payments(db: Session, now: Optional[datetime] = None) -> list[CheckoutPayment]:
    """Pending PIX charges past their expiry that have not had a recovery notice"""
    now = now or datetime.utcnow()
    return (
        db.query(CheckoutPayment)
        .filter(
            CheckoutPayment.payment_method == "pix",
            CheckoutPayment.status == "pending",
            CheckoutPayment.pix_expires_at.isnot(None),
            CheckoutPayment.pix_expires_at <= now,
            or_(
                CheckoutPayment.pix_expired_email_sent.is_(None),
                CheckoutPayment.pix_expired_email_sent.is_(False),
            ),
        )
        .all()
    )


def get_plan_name(db: Session, plan_id: Optional[int]) -> str:
    if not plan_id:
        return DEFAULT_PLAN_NAME
    try:
        plan = db.query(CheckoutPlan).filter(CheckoutPlan.id == plan_id).first()
        return plan.name if plan and plan.name else DEFAULT_PLAN_NAME
    except Exception as e:
        logger.warning(f"⚠️ Could not load plan {plan_id}: {e}")
        return DEFAULT_PLAN_NAME


def mark_expired_notification_sent(db: Session, payment_id: str) -> bool:
    """
    Flip a charge to expired only if it is still pending.

    A webhook may have approved the charge while the recovery was being sent;
    in that case no row matches and the approval is kept.

    Returns:
        True when the row was updated
    """
    try:
        updated = (
            db.query(CheckoutPayment)
            .filter(CheckoutPayment.id == payment_id, CheckoutPayment.status == "pending")
            .update(
                {
                    CheckoutPayment.pix_expired_email_sent: True,
                    CheckoutPayment.status: "expired",
                    CheckoutPayment.status_detail: "PIX expirado",
                    CheckoutPayment.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return updated > 0
    except Exception as e:
        logger.error(f"❌ Error marking PIX {payment_id} as expired: {e}")
        db.rollback()
        return False


async def process_expired_pix_payments(
    db: Optional[Session] = None, now: Optional[datetime] = None
) -> dict:
    """
    Send recovery notifications for every expired PIX charge

    Returns:
        Summary dict of the sweep
    """
    summary = {"found": 0, "notified": 0, "marked": 0, "status_changed": 0, "failed": 0}

    owns_session = db is None
    db = db or SessionLocal()
    try:
        expired_payments = get_expired_pix_payments(db, now)
        summary["found"] = len(expired_payments)

        if not expired_payments:
            return summary

        logger.info(f"🔄 Found {len(expired_payments)} expired PIX payments")

        # Snapshot plain values so a concurrent update does not change them mid-send
        rows = [
            (p.id, p.email, p.name, p.phone, p.plan_id, p.amount) for p in expired_payments
        ]

        for payment_id, email, name, phone, plan_id, amount in rows:
            try:
                plan_name = get_plan_name(db, plan_id)
                logger.info(f"📧 Sending PIX recovery to {email} for plan {plan_name}")

                result = await notification_service.notify_pix_expired(
                    db=db,
                    email=email,
                    phone=phone,
                    name=name,
                    plan_name=plan_name,
                    plan_id=plan_id,
                    amount=amount,
                )

                if not (result["email_sent"] or result["whatsapp_sent"]):
                    summary["failed"] += 1
                    logger.error(f"❌ Failed to send PIX recovery to {email}")
                    continue

                summary["notified"] += 1
                if mark_expired_notification_sent(db, payment_id):
                    summary["marked"] += 1
                    logger.info(
                        f"✅ PIX recovery sent to {email} - Email: {result['email_sent']}, "
                        f"WhatsApp: {result['whatsapp_sent']}"
                    )
                else:
                    summary["status_changed"] += 1
                    logger.info(f"⏭️ Payment {payment_id} left pending state during recovery, kept as is")

            except Exception as e:
                summary["failed"] += 1
                logger.error(f"❌ Error processing PIX payment {payment_id}: {e}")
                db.rollback()

        return summary
    finally:
        if owns_session:
            db.close()


class PixExpirationScheduler:
    """In-process poller; runs one sweep on start, then every interval."""

    def __init__(self, interval_seconds: float = PIX_EXPIRATION_INTERVAL_SECONDS):
        self._job = PeriodicJob(
            "PIX expiration scheduler",
            process_expired_pix_payments,
            interval_seconds,
            run_immediately=True,
        )

    @property
    def is_running(self) -> bool:
        return self._job.is_running

    def start(self) -> bool:
        return self._job.start()

    async def stop(self) -> None:
        await self._job.stop()

    def get_status(self) -> dict:
        db = SessionLocal()
        try:
            pending_count = len(get_expired_pix_payments(db))
        except Exception as e:
            logger.error(f"❌ Error getting PIX scheduler status: {e}")
            pending_count = 0
        finally:
            db.close()
        return {"is_running": self.is_running, "pending_count": pending_count}


pix_expiration_scheduler = PixExpirationScheduler()
