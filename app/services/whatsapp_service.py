"""
WhatsApp Cloud API Service
Sends text messages through the Graph API and rotates between connected
notification accounts according to their hourly limits
"""

import base64
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Optional

import httpx
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from ..config import (
    SECRET_KEY,
    WHATSAPP_DEFAULT_API_VERSION,
    WHATSAPP_ENCRYPTION_KEY,
    WHATSAPP_GRAPH_API_URL,
)
from ..models_whatsapp import WhatsAppAccount

logger = logging.getLogger(__name__)

DEFAULT_HOURLY_LIMIT = 10


def _build_cipher() -> Fernet:
    if WHATSAPP_ENCRYPTION_KEY:
        return Fernet(WHATSAPP_ENCRYPTION_KEY.encode())
    # Derive a valid Fernet key from SECRET_KEY when no dedicated key is configured
    digest = hashlib.sha256(SECRET_KEY.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


# Encryption for access tokens
cipher_suite = _build_cipher()


def encrypt_token(token: str) -> str:
    return cipher_suite.encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    """Decrypt a stored access token"""
    return cipher_suite.decrypt(encrypted_token.encode()).decode()


def _messages_url(api_version: Optional[str], phone_number_id: str) -> str:
    version = api_version or WHATSAPP_DEFAULT_API_VERSION
    return f"{WHATSAPP_GRAPH_API_URL}/{version}/{phone_number_id}/messages"


def _error_message(response: httpx.Response) -> str:
    try:
        error = response.json().get("error", {})
        return error.get("message") or f"HTTP {response.status_code}"
    except ValueError:
        return f"HTTP {response.status_code}"


async def send_text_message(
    account: WhatsAppAccount, to_phone: str, text: str
) -> tuple[bool, Optional[str], Optional[str]]:
    """
    Send a plain text message from a Cloud API account

    Args:
        account: Sending account (must hold an access token and phone number id)
        to_phone: Recipient in international digits-only format (5511987654321)
        text: Message body

    Returns:
        Tuple of (success, message_id, error_message)
    """
    if not account.access_token or not account.phone_number_id:
        return False, None, "Account missing Cloud API credentials"

    try:
        access_token = decrypt_token(account.access_token)
    except InvalidToken:
        logger.error(f"Failed to decrypt WhatsApp token for account {account.id}")
        return False, None, "Failed to decrypt credentials"

    payload = {
        "messaging_product": "whatsapp",
        "to": to_phone,
        "type": "text",
        "text": {"body": text},
    }

    try:
        logger.info(f"📱 Sending WhatsApp message to {to_phone} via {account.label}")
        async with httpx.AsyncClient() as client:
            response = await client.post(
                _messages_url(account.api_version, account.phone_number_id),
                headers={"Authorization": f"Bearer {access_token}"},
                json=payload,
                timeout=15.0,
            )

        if response.status_code in (200, 201):
            messages = response.json().get("messages") or [{}]
            message_id = messages[0].get("id")
            logger.info(f"✅ WhatsApp message sent to {to_phone} (id: {message_id})")
            return True, message_id, None

        error_message = _error_message(response)
        logger.error(f"❌ WhatsApp API error ({response.status_code}): {error_message}")
        return False, None, error_message

    except httpx.HTTPError as e:
        logger.error(f"WhatsApp API error: {str(e)}")
        return False, None, str(e)


async def validate_credentials(
    access_token: str, phone_number_id: str, api_version: Optional[str] = None
) -> tuple[bool, Optional[str], Optional[str]]:
    """
    Check Cloud API credentials by reading the phone number resource

    Returns:
        Tuple of (valid, display_phone_number, error_message)
    """
    version = api_version or WHATSAPP_DEFAULT_API_VERSION
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{WHATSAPP_GRAPH_API_URL}/{version}/{phone_number_id}",
                headers={"Authorization": f"Bearer {access_token}"},
                params={"fields": "display_phone_number,verified_name"},
                timeout=10.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"WhatsApp credential check failed: {str(e)}")
        return False, None, str(e)

    if response.status_code != 200:
        return False, None, _error_message(response)

    data = response.json()
    logger.info(
        f"✅ WhatsApp credentials valid: {data.get('verified_name')} ({data.get('display_phone_number')})"
    )
    return True, data.get("display_phone_number"), None


def get_rotation_accounts(db: Session) -> list[WhatsAppAccount]:
    """Connected notification accounts, highest priority first"""
    return (
        db.query(WhatsAppAccount)
        .filter(
            WhatsAppAccount.scope == "notifications",
            WhatsAppAccount.status == "connected",
        )
        .order_by(WhatsAppAccount.priority.desc(), WhatsAppAccount.id.asc())
        .all()
    )


def _reset_hourly_counter(account: WhatsAppAccount, now: datetime) -> None:
    if not account.last_hour_reset_at or now - account.last_hour_reset_at >= timedelta(hours=1):
        account.messages_sent_this_hour = 0
        account.last_hour_reset_at = now


def select_account_for_sending(
    db: Session, now: Optional[datetime] = None
) -> Optional[WhatsAppAccount]:
    """
    Pick the first account still under its hourly limit.

    A lone account keeps sending after reaching its limit; with several
    accounts all at their limit nothing is selected.
    """
    now = now or datetime.utcnow()
    accounts = get_rotation_accounts(db)
    if not accounts:
        logger.info("Nenhuma conta WhatsApp conectada")
        return None

    for account in accounts:
        _reset_hourly_counter(account, now)
    db.commit()

    for account in accounts:
        limit = account.hourly_limit or DEFAULT_HOURLY_LIMIT
        sent = account.messages_sent_this_hour or 0
        if sent < limit:
            logger.debug(f"Usando conta {account.label} ({sent}/{limit} msgs/hora)")
            return account

    if len(accounts) == 1:
        logger.warning(f"⚠️ Única conta {accounts[0].label} atingiu limite, usando mesmo assim")
        return accounts[0]

    logger.warning("⚠️ Todas as contas WhatsApp atingiram o limite horário")
    return None


def record_message_sent(db: Session, account: WhatsAppAccount, now: Optional[datetime] = None) -> None:
    now = now or datetime.utcnow()
    account.messages_sent_this_hour = (account.messages_sent_this_hour or 0) + 1
    account.last_used_at = now
    db.commit()
