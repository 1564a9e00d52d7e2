"""
Notification Template Routes - Admin overrides for email and WhatsApp messages
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..config import APP_NAME
from ..database import get_db
from ..email_templates import NOTIFICATION_PLACEHOLDERS
from ..models import EmailNotificationTemplate
from ..models_whatsapp import WhatsAppNotificationTemplate
from ..schemas import (
    EmailTemplatePreview,
    EmailTemplateResponse,
    EmailTemplateUpsert,
    MessageResponse,
    TemplatePreviewRequest,
    WhatsAppTemplateResponse,
    WhatsAppTemplateUpsert,
)
from ..services.whatsapp_notifications import WHATSAPP_NOTIFICATION_PLACEHOLDERS
from ..utils.links import admin_url, build_checkout_url, login_url, reset_password_url
from ..utils.sanitization import sanitize_dict
from ..utils.templating import replace_placeholders

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/notification-templates",
    tags=["Notification Templates"],
    dependencies=[Depends(require_admin)],
)


def sample_placeholder_values() -> dict[str, str]:
    """Realistic values for previewing a template"""
    checkout_url = build_checkout_url(1, "maria@exemplo.com", "Maria Silva")
    return {
        "name": "Maria Silva",
        "email": "maria@exemplo.com",
        "planName": "Plano Mensal",
        "tempPassword": "Xk9mP2qL",
        "loginUrl": login_url(),
        "adminUrl": admin_url(),
        "appName": APP_NAME,
        "resetUrl": reset_password_url("exemplo"),
        "renewUrl": checkout_url,
        "paymentUrl": checkout_url,
        "checkoutUrl": checkout_url,
        "expirationDate": "31/12/2026",
        "amount": "R$ 97,00",
        "reason": "Cartão recusado ou limite insuficiente",
    }


def _check_type(notification_type: str, placeholders: dict) -> None:
    if notification_type not in placeholders:
        raise HTTPException(status_code=404, detail="Tipo de notificação desconhecido")


# ============================================
# Email
# ============================================


@router.get("/email")
def list_email_templates(db: Session = Depends(get_db)):
    """Every overridable email type with its placeholders and current override"""
    templates = {t.notification_type: t for t in db.query(EmailNotificationTemplate).all()}
    return [
        {
            "notification_type": notification_type,
            "placeholders": placeholders,
            "template": EmailTemplateResponse.model_validate(templates[notification_type])
            if notification_type in templates
            else None,
        }
        for notification_type, placeholders in NOTIFICATION_PLACEHOLDERS.items()
    ]


def _get_email_template(db: Session, notification_type: str) -> EmailNotificationTemplate:
    _check_type(notification_type, NOTIFICATION_PLACEHOLDERS)
    template = (
        db.query(EmailNotificationTemplate)
        .filter(EmailNotificationTemplate.notification_type == notification_type)
        .first()
    )
    if not template:
        raise HTTPException(status_code=404, detail="Template não encontrado")
    return template


@router.get("/email/{notification_type}", response_model=EmailTemplateResponse)
def get_email_template(notification_type: str, db: Session = Depends(get_db)):
    return _get_email_template(db, notification_type)


@router.put("/email/{notification_type}", response_model=EmailTemplateResponse)
def upsert_email_template(
    notification_type: str, data: EmailTemplateUpsert, db: Session = Depends(get_db)
):
    _check_type(notification_type, NOTIFICATION_PLACEHOLDERS)
    template = (
        db.query(EmailNotificationTemplate)
        .filter(EmailNotificationTemplate.notification_type == notification_type)
        .first()
    )
    if not template:
        template = EmailNotificationTemplate(notification_type=notification_type)
        db.add(template)

    for field, value in data.model_dump().items():
        setattr(template, field, value)
    db.commit()
    db.refresh(template)
    logger.info(f"📝 Email template '{notification_type}' saved (active={template.is_active})")
    return template


@router.delete("/email/{notification_type}", response_model=MessageResponse)
def delete_email_template(notification_type: str, db: Session = Depends(get_db)):
    template = _get_email_template(db, notification_type)
    db.delete(template)
    db.commit()
    logger.info(f"🗑️ Email template '{notification_type}' removed, built-in template restored")
    return MessageResponse(message="Template removido")


@router.post("/email/{notification_type}/preview", response_model=EmailTemplatePreview)
def preview_email_template(
    notification_type: str, data: TemplatePreviewRequest, db: Session = Depends(get_db)
):
    template = _get_email_template(db, notification_type)
    values = {**sample_placeholder_values(), **data.sample_data}
    return EmailTemplatePreview(
        subject=replace_placeholders(template.subject, values),
        html=replace_placeholders(template.html_template, sanitize_dict(values)),
        text=replace_placeholders(template.text_template or "", values),
    )


# ============================================
# WhatsApp
# ============================================


@router.get("/whatsapp")
def list_whatsapp_templates(db: Session = Depends(get_db)):
    templates = {t.notification_type: t for t in db.query(WhatsAppNotificationTemplate).all()}
    return [
        {
            "notification_type": notification_type,
            "placeholders": placeholders,
            "template": WhatsAppTemplateResponse.model_validate(templates[notification_type])
            if notification_type in templates
            else None,
        }
        for notification_type, placeholders in WHATSAPP_NOTIFICATION_PLACEHOLDERS.items()
    ]


def _get_whatsapp_template(db: Session, notification_type: str) -> WhatsAppNotificationTemplate:
    _check_type(notification_type, WHATSAPP_NOTIFICATION_PLACEHOLDERS)
    template = (
        db.query(WhatsAppNotificationTemplate)
        .filter(WhatsAppNotificationTemplate.notification_type == notification_type)
        .first()
    )
    if not template:
        raise HTTPException(status_code=404, detail="Template não encontrado")
    return template


@router.get("/whatsapp/{notification_type}", response_model=WhatsAppTemplateResponse)
def get_whatsapp_template(notification_type: str, db: Session = Depends(get_db)):
    return _get_whatsapp_template(db, notification_type)


@router.put("/whatsapp/{notification_type}", response_model=WhatsAppTemplateResponse)
def upsert_whatsapp_template(
    notification_type: str, data: WhatsAppTemplateUpsert, db: Session = Depends(get_db)
):
    _check_type(notification_type, WHATSAPP_NOTIFICATION_PLACEHOLDERS)
    template = (
        db.query(WhatsAppNotificationTemplate)
        .filter(WhatsAppNotificationTemplate.notification_type == notification_type)
        .first()
    )
    if not template:
        template = WhatsAppNotificationTemplate(notification_type=notification_type)
        db.add(template)

    for field, value in data.model_dump().items():
        setattr(template, field, value)
    db.commit()
    db.refresh(template)
    logger.info(f"📝 WhatsApp template '{notification_type}' saved (active={template.is_active})")
    return template


@router.delete("/whatsapp/{notification_type}", response_model=MessageResponse)
def delete_whatsapp_template(notification_type: str, db: Session = Depends(get_db)):
    template = _get_whatsapp_template(db, notification_type)
    db.delete(template)
    db.commit()
    return MessageResponse(message="Template removido")


@router.post("/whatsapp/{notification_type}/preview")
def preview_whatsapp_template(
    notification_type: str, data: TemplatePreviewRequest, db: Session = Depends(get_db)
):
    template = _get_whatsapp_template(db, notification_type)
    values = {**sample_placeholder_values(), **data.sample_data}
    return {"message": replace_placeholders(template.message_template, values, ignore_case=True)}
