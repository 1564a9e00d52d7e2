"""
Transactional Email Service using Resend
Provides email functionality using MJML templates, admin-editable overrides
stored in the database and a retry queue for failed sends
"""

import logging
from datetime import datetime
from typing import Any, Optional, Union

import resend
from mjml import mjml_to_html

from .config import APP_NAME, EMAIL_FROM_ADDRESS, EMAIL_REPLY_TO, RESEND_API_KEY, get_app_url
from .database import SessionLocal
from .email_templates import (
    EmailContent,
    affiliate_sale_template,
    credentials_email_template,
    expiration_reminder_template,
    expired_renewal_template,
    password_reset_template,
    payment_confirmed_template,
    payment_failed_template,
    payment_pending_template,
    pix_expired_recovery_template,
    plan_expired_template,
    sample_email_template,
    welcome_email_template,
)
from .models import EmailNotificationTemplate
from .services.email_retry_queue import email_retry_queue
from .utils.formatting import format_brl, format_date_br
from .utils.links import admin_url, build_checkout_url, login_url, reset_password_url
from .utils.sanitization import sanitize_dict
from .utils.templating import replace_placeholders

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY

DEFAULT_NAME = "Usuário"
DEFAULT_FAILURE_REASON = "Cartão recusado ou limite insuficiente"


def is_email_service_available() -> bool:
    return bool(RESEND_API_KEY)


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns an object exposing 'html' and 'errors'
        errors = getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        html = getattr(result, "html", None)
        if html is not None:
            return html
        if isinstance(result, dict):
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: Optional[str] = None,
    html_content: Optional[str] = None,
    text_content: Optional[str] = None,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (compiled to HTML)
        html_content: Ready HTML, used when no MJML is given (database templates)
        text_content: Optional plain-text alternative
        from_address: Optional custom from address
        reply_to: Optional reply-to address

    Returns:
        Send response dict

    Raises:
        Exception: when the service is not configured or Resend rejects the send
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    if mjml_content is not None:
        html_content = compile_mjml_to_html(mjml_content)
    if not html_content:
        raise ValueError("Email body is empty")

    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {to}")
        email_data = {
            "from": from_address or EMAIL_FROM_ADDRESS,
            "to": recipients,
            "subject": subject,
            "html": html_content,
            "reply_to": reply_to or EMAIL_REPLY_TO,
        }
        if text_content:
            email_data["text"] = text_content

        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


def get_active_template(notification_type: str) -> Optional[EmailContent]:
    """
    Admin override for a notification type, as raw (unrendered) subject/html/text.

    Lookup failures are logged and treated as "no override" so the built-in
    template is used instead.
    """
    db = SessionLocal()
    try:
        template = (
            db.query(EmailNotificationTemplate)
            .filter(
                EmailNotificationTemplate.notification_type == notification_type,
                EmailNotificationTemplate.is_active.is_(True),
            )
            .first()
        )
        if not template:
            return None
        return EmailContent(
            subject=template.subject,
            mjml=template.html_template,
            text=template.text_template or "",
        )
    except Exception as e:
        logger.warning(f"⚠️ Could not load email template '{notification_type}': {e}")
        return None
    finally:
        db.close()


async def _send_templated(
    to: str, notification_type: str, placeholders: dict[str, Any], fallback: EmailContent
) -> dict:
    override = get_active_template(notification_type)
    if override:
        logger.info(f"📝 Using database template for {notification_type} email")
        return await send_email(
            to=to,
            subject=replace_placeholders(override.subject, placeholders),
            html_content=replace_placeholders(override.mjml, sanitize_dict(placeholders)),
            text_content=replace_placeholders(override.text, placeholders) or None,
        )
    return await send_email(
        to=to,
        subject=fallback.subject,
        mjml_content=fallback.mjml,
        text_content=fallback.text,
    )


# ============================================
# Typed senders. Each raises on failure.
# ============================================


async def send_welcome_email(to: str, name: str) -> dict:
    name = name or DEFAULT_NAME
    placeholders = {
        "name": name,
        "email": to,
        "appName": APP_NAME,
        "adminUrl": admin_url(),
        "loginUrl": login_url(),
    }
    return await _send_templated(
        to, "welcome", placeholders, welcome_email_template(name, admin_url())
    )


async def send_access_credentials_email(
    to: str, name: str, temp_password: str, plan_name: str
) -> dict:
    name = name or DEFAULT_NAME
    placeholders = {
        "name": name,
        "email": to,
        "tempPassword": temp_password,
        "planName": plan_name,
        "loginUrl": login_url(),
        "appName": APP_NAME,
    }
    fallback = credentials_email_template(name, to, temp_password, plan_name, login_url())
    return await _send_templated(to, "credentials", placeholders, fallback)


async def send_password_reset_email(to: str, name: str, reset_token: str) -> dict:
    name = name or DEFAULT_NAME
    reset_url = reset_password_url(reset_token)
    placeholders = {"name": name, "resetUrl": reset_url, "appName": APP_NAME}
    return await _send_templated(
        to, "password_reset", placeholders, password_reset_template(name, reset_url)
    )


async def send_plan_expired_email(to: str, name: str, plan_name: str) -> dict:
    name = name or DEFAULT_NAME
    renew_url = f"{get_app_url()}/checkout"
    placeholders = {
        "name": name,
        "planName": plan_name,
        "renewUrl": renew_url,
        "appName": APP_NAME,
    }
    return await _send_templated(
        to, "plan_expired", placeholders, plan_expired_template(name, plan_name, renew_url)
    )


async def send_payment_failed_email(
    to: str, name: str, plan_name: str, reason: Optional[str] = None, plan_id=None
) -> dict:
    name = name or DEFAULT_NAME
    reason = reason or DEFAULT_FAILURE_REASON
    payment_url = build_checkout_url(plan_id, to, name, flag="renovacao")
    placeholders = {
        "name": name,
        "planName": plan_name,
        "reason": reason,
        "paymentUrl": payment_url,
        "appName": APP_NAME,
    }
    fallback = payment_failed_template(name, plan_name, reason, payment_url)
    return await _send_templated(to, "payment_failed", placeholders, fallback)


async def send_payment_confirmed_email(
    to: str, name: str, plan_name: str, expiration_date: datetime
) -> dict:
    name = name or DEFAULT_NAME
    formatted_date = format_date_br(expiration_date)
    placeholders = {
        "name": name,
        "planName": plan_name,
        "expirationDate": formatted_date,
        "loginUrl": admin_url(),
        "appName": APP_NAME,
    }
    fallback = payment_confirmed_template(name, plan_name, formatted_date, admin_url())
    return await _send_templated(to, "payment_confirmed", placeholders, fallback)


async def send_payment_pending_email(
    to: str, name: str, plan_name: str, payment_method: str, plan_id=None
) -> dict:
    content = payment_pending_template(
        name or DEFAULT_NAME,
        plan_name,
        payment_method,
        build_checkout_url(plan_id, to, name or DEFAULT_NAME, flag="pendente"),
    )
    return await send_email(
        to=to, subject=content.subject, mjml_content=content.mjml, text_content=content.text
    )


async def send_pix_expired_recovery_email(
    to: str, name: str, plan_name: str, plan_id, amount: int
) -> dict:
    """PIX recovery email with a pre-filled checkout link"""
    name = name or DEFAULT_NAME
    content = pix_expired_recovery_template(
        name, plan_name, format_brl(amount), build_checkout_url(plan_id, to, name)
    )
    return await send_email(
        to=to, subject=content.subject, mjml_content=content.mjml, text_content=content.text
    )


async def send_expiration_reminder_email(
    to: str, name: str, plan_name: str, time_label: str, expiration_date: datetime, plan_id=None
) -> dict:
    name = name or DEFAULT_NAME
    content = expiration_reminder_template(
        name,
        plan_name,
        time_label,
        format_date_br(expiration_date),
        build_checkout_url(plan_id, to, name, flag="renovacao"),
    )
    return await send_email(
        to=to, subject=content.subject, mjml_content=content.mjml, text_content=content.text
    )


async def send_expired_renewal_email(to: str, name: str, plan_name: str, plan_id=None) -> dict:
    name = name or DEFAULT_NAME
    content = expired_renewal_template(
        name, plan_name, build_checkout_url(plan_id, to, name, flag="renovacao")
    )
    return await send_email(
        to=to, subject=content.subject, mjml_content=content.mjml, text_content=content.text
    )


async def send_affiliate_sale_email(
    to: str, name: str, sale_amount: int, commission_amount: int
) -> dict:

    content = affiliate_sale_template(
        name or DEFAULT_NAME,
        format_brl(sale_amount),
        format_brl(commission_amount),
        f"{get_app_url()}/afiliado",
    )
    return await send_email(
        to=to, subject=content.subject, mjml_content=content.mjml, text_content=content.text
    )


async def send_test_email(to: str) -> dict:
    content = sample_email_template()
    return await send_email(
        to=to, subject=content.subject, mjml_content=content.mjml, text_content=content.text
    )


# ============================================
# Safe senders: never raise, queue failures for retry
# ============================================

EMAIL_RETRY_HANDLERS = {
    "welcome": send_welcome_email,
    "credentials": send_access_credentials_email,
    "payment_confirmed": send_payment_confirmed_email,
    "password_reset": send_password_reset_email,
    "plan_expired": send_plan_expired_email,
    "payment_failed": send_payment_failed_email,
}

for _email_type, _handler in EMAIL_RETRY_HANDLERS.items():
    email_retry_queue.register(_email_type, _handler)
email_retry_queue.is_available = is_email_service_available


async def _send_or_queue(email_type: str, to: str, data: dict[str, Any]) -> bool:
    if not is_email_service_available():
        logger.warning(f"⚠️ Email service unavailable, queueing {email_type} email to {to}")
        email_retry_queue.enqueue(email_type, to, data, "Email service not configured")
        return False

    try:
        await EMAIL_RETRY_HANDLERS[email_type](to, **data)
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send {email_type} email to {to}, queueing retry: {e}")
        email_retry_queue.enqueue(email_type, to, data, str(e))
        return False


async def send_welcome_email_safe(to: str, name: str) -> bool:
    return await _send_or_queue("welcome", to, {"name": name})


async def send_access_credentials_email_safe(
    to: str, name: str, temp_password: str, plan_name: str
) -> bool:
    data = {"name": name, "temp_password": temp_password, "plan_name": plan_name}
    return await _send_or_queue("credentials", to, data)


async def send_payment_confirmed_email_safe(
    to: str, name: str, plan_name: str, expiration_date: datetime
) -> bool:
    data = {"name": name, "plan_name": plan_name, "expiration_date": expiration_date}
    return await _send_or_queue("payment_confirmed", to, data)


async def send_password_reset_email_safe(to: str, name: str, reset_token: str) -> bool:
    return await _send_or_queue("password_reset", to, {"name": name, "reset_token": reset_token})


async def send_plan_expired_email_safe(to: str, name: str, plan_name: str) -> bool:
    return await _send_or_queue("plan_expired", to, {"name": name, "plan_name": plan_name})


async def send_payment_failed_email_safe(
    to: str, name: str, plan_name: str, reason: Optional[str] = None, plan_id=None
) -> bool:
    data = {"name": name, "plan_name": plan_name, "reason": reason, "plan_id": plan_id}
    return await _send_or_queue("payment_failed", to, data)


async def send_affiliate_sale_email_safe(
    to: str, name: str, sale_amount: int, commission_amount: int
) -> bool:
    """Best-effort: affiliate sale notices are never retried."""
    try:
        await send_affiliate_sale_email(to, name, sale_amount, commission_amount)
        return True
    except Exception as e:
        logger.warning(f"⚠️ Affiliate sale email to {to} failed (not retried): {e}")
        return False
