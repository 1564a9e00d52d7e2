"""
Notification Admin Routes - Channel status, retry queue and WhatsApp accounts
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import email_service
from ..auth import require_admin
from ..config import WHATSAPP_DEFAULT_API_VERSION
from ..database import get_db
from ..models_whatsapp import WhatsAppAccount, WhatsAppNotificationLog
from ..schemas import MessageResponse, WhatsAppAccountCreate, WhatsAppAccountResponse, WhatsAppEnabledUpdate
from ..services import whatsapp_notifications, whatsapp_service
from ..services.email_retry_queue import email_retry_queue
from ..shared.validators import normalize_br_phone
from ..workers.pix_expiration_worker import pix_expiration_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/notifications",
    tags=["Notifications"],
    dependencies=[Depends(require_admin)],
)


@router.get("/status")
def get_notifications_status(db: Session = Depends(get_db)):
    """Health of every notification channel and background job"""
    return {
        "email": {
            "available": email_service.is_email_service_available(),
            "retry_queue": {
                "pending": email_retry_queue.pending_count(),
                "is_running": email_retry_queue.is_running,
                "entries": [entry.to_dict() for entry in email_retry_queue.snapshot()],
            },
        },
        "pix_expiration": pix_expiration_scheduler.get_status(),
        "whatsapp": whatsapp_notifications.get_notification_status(db),
    }


@router.post("/email-queue/process")
async def process_email_queue():
    """Run one retry cycle now instead of waiting for the next tick"""
    summary = await email_retry_queue.process_pending()
    return {**summary, "pending": email_retry_queue.pending_count()}


@router.put("/whatsapp/enabled")
def set_whatsapp_enabled(data: WhatsAppEnabledUpdate, db: Session = Depends(get_db)):
    whatsapp_notifications.set_whatsapp_notifications_enabled(db, data.enabled)
    return {"enabled": whatsapp_notifications.is_whatsapp_notifications_enabled(db)}


@router.get("/whatsapp/accounts", response_model=list[WhatsAppAccountResponse])
def list_whatsapp_accounts(db: Session = Depends(get_db)):
    return (
        db.query(WhatsAppAccount)
        .order_by(WhatsAppAccount.priority.desc(), WhatsAppAccount.id.asc())
        .all()
    )


@router.post("/whatsapp/accounts", response_model=WhatsAppAccountResponse)
async def create_whatsapp_account(data: WhatsAppAccountCreate, db: Session = Depends(get_db)):
    """Register a Cloud API number after checking its credentials against Meta"""
    api_version = data.api_version or WHATSAPP_DEFAULT_API_VERSION
    valid, display_phone, error = await whatsapp_service.validate_credentials(
        data.access_token, data.phone_number_id, api_version
    )
    if not valid:
        logger.warning(f"🚫 WhatsApp credentials rejected for '{data.label}': {error}")
        raise HTTPException(status_code=400, detail=f"Credenciais inválidas: {error}")

    account = WhatsAppAccount(
        label=data.label,
        phone_number=normalize_br_phone(display_phone),
        status="connected",
        scope="notifications",
        provider="cloud_api",
        access_token=whatsapp_service.encrypt_token(data.access_token),
        phone_number_id=data.phone_number_id,
        api_version=api_version,
        priority=data.priority,
        hourly_limit=data.hourly_limit,
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    logger.info(f"📱 WhatsApp account '{account.label}' connected ({account.phone_number})")
    return account


@router.delete("/whatsapp/accounts/{account_id}", response_model=MessageResponse)
def delete_whatsapp_account(account_id: int, db: Session = Depends(get_db)):
    account = db.query(WhatsAppAccount).filter(WhatsAppAccount.id == account_id).first()
    if not account:
        raise HTTPException(status_code=404, detail="Conta não encontrada")
    db.query(WhatsAppNotificationLog).filter(WhatsAppNotificationLog.account_id == account.id).update(
        {WhatsAppNotificationLog.account_id: None}, synchronize_session=False
    )
    db.delete(account)
    db.commit()
    return MessageResponse(message="Conta removida")
