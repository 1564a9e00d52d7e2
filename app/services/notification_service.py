"""
Unified Notification Service
Handles both email and WhatsApp notifications for checkout and subscription events
Ensures both channels are triggered consistently from the same event source
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from .. import email_service
from . import whatsapp_notifications

logger = logging.getLogger(__name__)


async def send_notification(
    db: Session,
    email: Optional[str],
    phone: Optional[str],
    name: str,
    notification_type: str,
    email_func,
    whatsapp_func,
    email_kwargs: dict,
    whatsapp_kwargs: dict,
) -> dict:
    """
    Unified notification sender that handles both email and WhatsApp

    A failure on one channel never prevents the other from being attempted.

    Args:
        db: Database session
        email: Recipient email address
        phone: Recipient phone number
        name: Recipient name for logging
        notification_type: Type of notification (for logging)
        email_func: Email coroutine; raising or returning False counts as not sent
        whatsapp_func: WhatsApp coroutine taking ``db`` and ``phone``, returning bool
        email_kwargs: Kwargs for email function
        whatsapp_kwargs: Kwargs for WhatsApp function

    Returns:
        Dict with email_sent and whatsapp_sent status
    """
    result = {
        "email_sent": False,
        "whatsapp_sent": False,
        "email_error": None,
        "whatsapp_error": None,
    }

    if email and email_func:
        try:
            logger.info(f"📧 Sending {notification_type} email to {email}")
            sent = await email_func(to=email, **email_kwargs)
            result["email_sent"] = sent is not False
            if result["email_sent"]:
                logger.info(f"✅ {notification_type} email sent successfully to {email}")
            else:
                result["email_error"] = "Queued for retry"
        except Exception as e:
            result["email_error"] = str(e)
            logger.error(f"❌ Failed to send {notification_type} email to {email}: {e}")
    else:
        logger.debug(f"⚠️ No email address for {notification_type} notification to {name}")

    if phone and whatsapp_func:
        try:
            logger.info(f"📱 Attempting to send {notification_type} WhatsApp to {phone}")
            sent = await whatsapp_func(db=db, phone=phone, **whatsapp_kwargs)
            result["whatsapp_sent"] = bool(sent)
            if not sent:
                result["whatsapp_error"] = "Not sent"
        except Exception as e:
            result["whatsapp_error"] = str(e)
            logger.error(f"❌ Failed to send {notification_type} WhatsApp to {phone}: {e}")
    else:
        logger.debug(f"⚠️ No phone number for {notification_type} WhatsApp to {name}")

    return result


async def notify_pix_expired(
    db: Session,
    email: str,
    phone: Optional[str],
    name: str,
    plan_name: str,
    plan_id,
    amount: int,
) -> dict:
    """Recovery email and WhatsApp for an expired PIX charge"""
    return await send_notification(
        db=db,
        email=email,
        phone=phone,
        name=name,
        notification_type="pix_expired",
        email_func=email_service.send_pix_expired_recovery_email,
        whatsapp_func=whatsapp_notifications.send_whatsapp_payment_recovery,
        email_kwargs={"name": name, "plan_name": plan_name, "plan_id": plan_id, "amount": amount},
        whatsapp_kwargs={
            "name": name,
            "plan_name": plan_name,
            "plan_id": plan_id,
            "amount": amount,
            "email": email,
        },
    )


async def notify_payment_confirmed(
    db: Session,
    email: str,
    phone: Optional[str],
    name: str,
    plan_name: str,
    expiration_date: datetime,
) -> dict:
    return await send_notification(
        db=db,
        email=email,
        phone=phone,
        name=name,
        notification_type="payment_confirmed",
        email_func=email_service.send_payment_confirmed_email_safe,
        whatsapp_func=whatsapp_notifications.send_whatsapp_payment_confirmed,
        email_kwargs={"name": name, "plan_name": plan_name, "expiration_date": expiration_date},
        whatsapp_kwargs={"name": name, "plan_name": plan_name, "expiration_date": expiration_date},
    )


async def notify_access_credentials(
    db: Session,
    email: str,
    phone: Optional[str],
    name: str,
    temp_password: str,
    plan_name: str,
) -> dict:
    return await send_notification(
        db=db,
        email=email,
        phone=phone,
        name=name,
        notification_type="credentials",
        email_func=email_service.send_access_credentials_email_safe,
        whatsapp_func=whatsapp_notifications.send_whatsapp_credentials,
        email_kwargs={"name": name, "temp_password": temp_password, "plan_name": plan_name},
        whatsapp_kwargs={
            "name": name,
            "temp_password": temp_password,
            "plan_name": plan_name,
            "email": email,
        },
    )


async def notify_payment_failed(
    db: Session,
    email: str,
    phone: Optional[str],
    name: str,
    plan_name: str,
    reason: Optional[str] = None,
    plan_id=None,
) -> dict:
    return await send_notification(
        db=db,
        email=email,
        phone=phone,
        name=name,
        notification_type="payment_failed",
        email_func=email_service.send_payment_failed_email_safe,
        whatsapp_func=whatsapp_notifications.send_whatsapp_payment_failed,
        email_kwargs={"name": name, "plan_name": plan_name, "reason": reason, "plan_id": plan_id},
        whatsapp_kwargs={
            "name": name,
            "plan_name": plan_name,
            "reason": reason,
            "plan_id": plan_id,
            "email": email,
        },
    )


async def notify_plan_expired(
    db: Session, email: str, phone: Optional[str], name: str, plan_name: str
) -> dict:
    return await send_notification(
        db=db,
        email=email,
        phone=phone,
        name=name,
        notification_type="plan_expired",
        email_func=email_service.send_plan_expired_email_safe,
        whatsapp_func=whatsapp_notifications.send_whatsapp_plan_expired,
        email_kwargs={"name": name, "plan_name": plan_name},
        whatsapp_kwargs={"name": name, "plan_name": plan_name},
    )
