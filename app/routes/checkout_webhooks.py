"""
Mercado Pago Webhook Handler
Receives payment notifications, provisions access on approval and
notifies the buyer on failures
"""

import json
import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import email_service
from ..auth import hash_password
from ..config import MERCADOPAGO_WEBHOOK_SECRET
from ..database import get_db
from ..models import Admin, Affiliate, CheckoutPayment, utcnow
from ..services import mercadopago_service, notification_service
from ..services.payment_errors import (
    get_mercadopago_error_message,
    log_payment_error,
    log_payment_success,
)
from ..webhook_security import verify_mercadopago_webhook
from ..workers.pix_expiration_worker import DEFAULT_PLAN_NAME

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

DEFAULT_ACCESS_DAYS = 30
FAILED_STATUSES = ("rejected", "cancelled")
PENDING_STATUSES = ("pending", "in_process")


def _parse_payload(raw_body: bytes) -> dict:
    if not raw_body:
        return {}
    try:
        payload = json.loads(raw_body)
    except ValueError:
        logger.warning("⚠️ Mercado Pago webhook body is not valid JSON")
        return {}
    return payload if isinstance(payload, dict) else {}


def _find_payment(db: Session, mp_payment: dict) -> Optional[CheckoutPayment]:
    """Match by external_reference (our id), falling back to the gateway id"""
    external_reference = mp_payment.get("external_reference")
    if external_reference:
        payment = db.query(CheckoutPayment).filter(CheckoutPayment.id == external_reference).first()
        if payment:
            return payment

    mp_id = mp_payment.get("id")
    if mp_id is None:
        return None
    return (
        db.query(CheckoutPayment)
        .filter(CheckoutPayment.mercadopago_payment_id == str(mp_id))
        .first()
    )


def provision_admin(
    db: Session, payment: CheckoutPayment, access_days: int
) -> tuple[Admin, Optional[str]]:
    """
    Create the buyer's account or extend an existing one.

    Access is extended from the current expiration when it is still in the
    future, otherwise from now. Changes are flushed; the caller commits.

    Returns:
        Tuple of (admin, temp_password). temp_password is None for existing accounts.
    """
    now = utcnow()
    temp_password = None
    admin = db.query(Admin).filter(Admin.email == payment.email).first()
    if not admin:
        temp_password = secrets.token_urlsafe(9)
        admin = Admin(
            name=payment.name,
            email=payment.email,
            phone=payment.phone,
            password_hash=hash_password(temp_password),
            role="user",
        )
        db.add(admin)
        logger.info(f"👤 Creating account for {payment.email}")

    base = admin.access_expires_at if admin.access_expires_at and admin.access_expires_at > now else now
    admin.access_expires_at = base + timedelta(days=access_days)
    admin.plan_id = payment.plan_id
    admin.is_active = True
    admin.payment_status = "ok"
    admin.payment_failed_reason = None
    admin.last_expiration_email_sent = None
    if payment.phone and not admin.phone:
        admin.phone = payment.phone
    db.flush()

    payment.admin_id = admin.id
    payment.expires_at = admin.access_expires_at
    db.flush()
    return admin, temp_password


async def notify_affiliate(db: Session, payment: CheckoutPayment) -> None:
    if not payment.affiliate_link_code:
        return

    affiliate = (
        db.query(Affiliate)
        .filter(
            Affiliate.link_code == payment.affiliate_link_code,
            Affiliate.status == "active",
        )
        .first()
    )
    if not affiliate:
        logger.warning(f"⚠️ Affiliate not found for link code {payment.affiliate_link_code}")
        return

    commission = round(payment.amount * (affiliate.commission_percent or 0) / 100)
    await email_service.send_affiliate_sale_email_safe(
        affiliate.email, affiliate.name, payment.amount, commission
    )


async def handle_approved(db: Session, payment: CheckoutPayment, mp_payment: dict) -> bool:
    """Returns False when the payment had already been approved (duplicate webhook)"""
    now = utcnow()
    updated = (
        db.query(CheckoutPayment)
        .filter(CheckoutPayment.id == payment.id, CheckoutPayment.status != "approved")
        .update(
            {
                CheckoutPayment.status: "approved",
                CheckoutPayment.status_detail: mp_payment.get("status_detail"),
                CheckoutPayment.mercadopago_payment_id: str(mp_payment.get("id")),
                CheckoutPayment.payment_method: mp_payment.get("payment_type_id")
                or payment.payment_method,
                CheckoutPayment.approved_at: now,
                CheckoutPayment.paid_at: now,
                CheckoutPayment.user_friendly_error: None,
            },
            synchronize_session=False,
        )
    )
    if not updated:
        db.rollback()
        logger.info(f"ℹ️ Payment {payment.id} already approved, skipping")
        return False

    db.refresh(payment)
    plan = payment.plan
    plan_name = plan.name if plan else DEFAULT_PLAN_NAME
    access_days = plan.access_days if plan else DEFAULT_ACCESS_DAYS

    # Approval and account commit together
    admin, temp_password = provision_admin(db, payment, access_days)
    db.commit()

    log_payment_success(
        gateway="mercadopago",
        payment_id=payment.id,
        email=payment.email,
        amount=payment.amount,
        method=payment.payment_method or "pix",
        external_id=payment.mercadopago_payment_id,
    )

    await notification_service.notify_payment_confirmed(
        db=db,
        email=payment.email,
        phone=payment.phone,
        name=payment.name,
        plan_name=plan_name,
        expiration_date=admin.access_expires_at,
    )
    if temp_password:
        await notification_service.notify_access_credentials(
            db=db,
            email=payment.email,
            phone=payment.phone,
            name=payment.name,
            temp_password=temp_password,
            plan_name=plan_name,
        )

    await notify_affiliate(db, payment)
    return True


async def handle_failed(db: Session, payment: CheckoutPayment, mp_payment: dict) -> bool:
    status = mp_payment.get("status")
    status_detail = mp_payment.get("status_detail")

    if payment.status == "approved":
        logger.warning(f"⚠️ Ignoring {status} for already approved payment {payment.id}")
        return False
    if payment.status == status and payment.status_detail == status_detail:
        logger.info(f"ℹ️ Payment {payment.id} already marked {status}, skipping")
        return False

    error_info = get_mercadopago_error_message(status_detail)
    payment.status = status
    payment.status_detail = status_detail
    payment.gateway_error_code = status_detail
    payment.gateway_error_message = error_info.message
    payment.user_friendly_error = error_info.user_message
    payment.failure_attempts = (payment.failure_attempts or 0) + 1
    payment.last_failure_at = utcnow()

    admin = db.query(Admin).filter(Admin.email == payment.email).first()
    if admin:
        admin.payment_status = "failed"
        admin.payment_failed_reason = error_info.message
    db.commit()

    log_payment_error(
        gateway="mercadopago",
        payment_id=payment.id,
        email=payment.email,
        amount=payment.amount,
        method=mp_payment.get("payment_type_id") or payment.payment_method or "pix",
        error_code=status_detail or status,
        error_message=error_info.message,
        gateway_response=mp_payment,
    )

    await notification_service.notify_payment_failed(
        db=db,
        email=payment.email,
        phone=payment.phone,
        name=payment.name,
        plan_name=payment.plan.name if payment.plan else DEFAULT_PLAN_NAME,
        reason=error_info.message,
        plan_id=payment.plan_id,
    )
    return True


def handle_pending(db: Session, payment: CheckoutPayment, mp_payment: dict) -> bool:
    if payment.status in ("approved", "expired"):
        return False
    payment.status = mp_payment.get("status")
    payment.status_detail = mp_payment.get("status_detail")
    if mp_payment.get("id") is not None:
        payment.mercadopago_payment_id = str(mp_payment["id"])
    db.commit()
    return True


@router.post("/mercadopago")
async def mercadopago_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Mercado Pago payment notification.

    The notification only carries the payment id; the payment itself is
    fetched from the API before any state change.
    """
    raw_body = await request.body()
    payload = _parse_payload(raw_body)

    event_type = request.query_params.get("type") or payload.get("type") or request.query_params.get("topic")
    data_id = request.query_params.get("data.id") or str((payload.get("data") or {}).get("id") or "")

    if not data_id:
        logger.warning("⚠️ Mercado Pago webhook without data.id, ignoring")
        return {"status": "ignored"}

    if MERCADOPAGO_WEBHOOK_SECRET:
        await verify_mercadopago_webhook(request, MERCADOPAGO_WEBHOOK_SECRET, data_id)

    if event_type and event_type != "payment":
        logger.info(f"ℹ️ Ignoring Mercado Pago event type: {event_type}")
        return {"status": "ignored"}

    ok, mp_payment, error = await mercadopago_service.get_payment(data_id)
    if not ok:
        logger.error(f"❌ Could not fetch Mercado Pago payment {data_id}: {error}")
        raise HTTPException(status_code=502, detail="Could not fetch payment")

    payment = _find_payment(db, mp_payment)
    if not payment:
        logger.warning(f"⚠️ No checkout payment for Mercado Pago payment {data_id}")
        return {"status": "ignored"}

    status = mp_payment.get("status")
    logger.info(f"📥 Mercado Pago payment {data_id} -> {status} (checkout {payment.id})")

    try:
        if status == "approved":
            await handle_approved(db, payment, mp_payment)
        elif status in FAILED_STATUSES:
            await handle_failed(db, payment, mp_payment)
        elif status in PENDING_STATUSES:
            handle_pending(db, payment, mp_payment)
        else:
            logger.info(f"ℹ️ Unhandled Mercado Pago status {status} for payment {payment.id}")
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error processing Mercado Pago payment {data_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Webhook processing failed") from e

    return {"status": "success"}
