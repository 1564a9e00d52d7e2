"""
WhatsApp Notification Service
Transactional WhatsApp messages mirroring the emails. Every sender returns a
bool and never raises, so a WhatsApp outage never blocks a checkout flow.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..config import APP_NAME, get_app_url
from ..models import CheckoutConfig
from ..models_whatsapp import WhatsAppAccount, WhatsAppNotificationLog, WhatsAppNotificationTemplate
from ..shared.validators import normalize_br_phone
from ..utils.formatting import format_brl, format_date_br
from ..utils.links import admin_url, build_checkout_url, login_url, reset_password_url
from ..utils.templating import replace_placeholders
from . import whatsapp_service

logger = logging.getLogger(__name__)

ENABLED_CONFIG_KEY = "WHATSAPP_NOTIFICATIONS_ENABLED"

WHATSAPP_NOTIFICATION_PLACEHOLDERS = {
    "credentials": ["name", "email", "planName", "tempPassword", "loginUrl", "appName"],
    "payment_confirmed": ["name", "planName", "expirationDate", "loginUrl", "appName"],
    "password_reset": ["name", "resetUrl", "appName"],
    "plan_expired": ["name", "planName", "renewUrl", "appName"],
    "payment_failed": ["name", "planName", "reason", "paymentUrl", "appName"],
    "welcome": ["name", "adminUrl", "appName"],
    "payment_recovery": ["name", "planName", "amount", "checkoutUrl", "appName"],
}


def is_whatsapp_notifications_enabled(db: Session) -> bool:
    """Enabled unless an admin explicitly turned notifications off"""
    config = db.query(CheckoutConfig).filter(CheckoutConfig.key == ENABLED_CONFIG_KEY).first()
    if not config or config.value in (None, ""):
        return True
    return config.value == "true"


def set_whatsapp_notifications_enabled(db: Session, enabled: bool) -> None:
    config = db.query(CheckoutConfig).filter(CheckoutConfig.key == ENABLED_CONFIG_KEY).first()
    if not config:
        config = CheckoutConfig(key=ENABLED_CONFIG_KEY)
        db.add(config)
    config.value = "true" if enabled else "false"
    db.commit()
    logger.info(f"📱 Notificações WhatsApp {'habilitadas' if enabled else 'desabilitadas'}")


def get_template_message(
    db: Session, notification_type: str, data: dict, default_message: str
) -> str:
    """Active database template with placeholders filled in, else the default message"""
    try:
        template = (
            db.query(WhatsAppNotificationTemplate)
            .filter(WhatsAppNotificationTemplate.notification_type == notification_type)
            .first()
        )
        if template and template.is_active and template.message_template:
            return replace_placeholders(template.message_template, data, ignore_case=True)
    except Exception as e:
        logger.error(f"❌ Erro ao buscar template WhatsApp {notification_type}: {e}")
    return default_message


def _log_notification(
    db: Session,
    phone: str,
    message: str,
    notification_type: str,
    recipient_name: Optional[str],
    account: Optional[WhatsAppAccount],
    success: bool,
    message_id: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    db.add(
        WhatsAppNotificationLog(
            account_id=account.id if account else None,
            phone=phone,
            recipient_name=recipient_name,
            notification_type=notification_type,
            message=message,
            status="sent" if success else "failed",
            error=error,
            external_message_id=message_id,
        )
    )
    db.commit()


async def send_notification_message(
    db: Session,
    phone: Optional[str],
    message: str,
    notification_type: str,
    recipient_name: Optional[str] = None,
) -> bool:
    """Send through the rotation; returns True only when the API accepted the message"""
    try:
        if not is_whatsapp_notifications_enabled(db):
            logger.info("Notificações WhatsApp desabilitadas, ignorando envio")
            return False

        formatted_phone = normalize_br_phone(phone)
        if not formatted_phone:
            logger.info("Telefone não fornecido, ignorando envio WhatsApp")
            return False

        account = whatsapp_service.select_account_for_sending(db)
        if not account:
            logger.warning("⚠️ Nenhuma conta WhatsApp disponível para envio")
            return False

        success, message_id, error = await whatsapp_service.send_text_message(
            account, formatted_phone, message
        )
    except Exception as e:
        logger.error(f"❌ Erro ao enviar mensagem WhatsApp ({notification_type}): {e}")
        db.rollback()
        return False

    if not success:
        logger.error(f"❌ Falha ao enviar WhatsApp para {formatted_phone}: {error}")

    # Bookkeeping failures never change the delivery result
    try:
        if success:
            whatsapp_service.record_message_sent(db, account)
        _log_notification(
            db,
            formatted_phone,
            message,
            notification_type,
            recipient_name,
            account,
            success,
            message_id=message_id,
            error=error,
        )
    except Exception as e:
        logger.error(f"❌ Erro ao registrar envio WhatsApp ({notification_type}): {e}")
        db.rollback()

    return success


async def send_whatsapp_credentials(
    db: Session,
    phone: Optional[str],
    name: str,
    temp_password: str,
    plan_name: str,
    email: Optional[str] = None,
) -> bool:
    """Access credentials for a newly provisioned account"""
    default_message = (
        f"Olá {name}!\n\n"
        f"Seu acesso ao {APP_NAME} foi liberado!\n\n"
        "*Suas credenciais:*\n"
        f"Email: {email or ''}\n"
        f"Senha: {temp_password}\n"
        f"Plano: {plan_name}\n\n"
        f"Acesse: {login_url()}\n\n"
        "Por segurança, altere sua senha após o primeiro login.\n\n"
        "Dúvidas? Estamos aqui para ajudar!"
    )
    data = {
        "name": name,
        "email": email or "",
        "planName": plan_name,
        "tempPassword": temp_password,
        "loginUrl": login_url(),
        "appName": APP_NAME,
    }
    message = get_template_message(db, "credentials", data, default_message)
    return await send_notification_message(db, phone, message, "credentials", name)


async def send_whatsapp_payment_confirmed(
    db: Session, phone: Optional[str], name: str, plan_name: str, expiration_date: datetime
) -> bool:
    date_str = format_date_br(expiration_date)
    default_message = (
        f"Olá {name}!\n\n"
        "Seu pagamento foi *confirmado*!\n\n"
        f"Plano: {plan_name}\n"
        f"Acesso até: {date_str}\n\n"
        f"Acesse sua conta: {login_url()}\n\n"
        f"Obrigado por escolher o {APP_NAME}!"
    )
    data = {
        "name": name,
        "planName": plan_name,
        "expirationDate": date_str,
        "loginUrl": login_url(),
        "appName": APP_NAME,
    }
    message = get_template_message(db, "payment_confirmed", data, default_message)
    return await send_notification_message(db, phone, message, "payment_confirmed", name)


async def send_whatsapp_password_reset(
    db: Session, phone: Optional[str], name: str, reset_token: str
) -> bool:
    reset_url = reset_password_url(reset_token)
    default_message = (
        f"Olá {name}!\n\n"
        f"Recebemos sua solicitação para redefinir a senha no {APP_NAME}.\n\n"
        f"Acesse o link abaixo para criar uma nova senha:\n{reset_url}\n\n"
        "*Este link é válido por 1 hora.*\n\n"
        "Se você não solicitou isso, ignore esta mensagem."
    )
    data = {"name": name, "resetUrl": reset_url, "appName": APP_NAME}
    message = get_template_message(db, "password_reset", data, default_message)
    return await send_notification_message(db, phone, message, "password_reset", name)


async def send_whatsapp_plan_expired(
    db: Session, phone: Optional[str], name: str, plan_name: str
) -> bool:
    renew_url = f"{get_app_url()}/checkout"
    default_message = (
        f"Olá {name}!\n\n"
        f"Seu plano *{plan_name}* expirou.\n\n"
        "O que acontece agora:\n"
        "- Seus webinários foram pausados\n"
        "- Novos leads não serão capturados\n\n"
        "*Seus dados estão seguros!*\n\n"
        f"Renove agora: {renew_url}\n\n"
        "Precisa de ajuda? Estamos aqui!"
    )
    data = {"name": name, "planName": plan_name, "renewUrl": renew_url, "appName": APP_NAME}
    message = get_template_message(db, "plan_expired", data, default_message)
    return await send_notification_message(db, phone, message, "plan_expired", name)


async def send_whatsapp_payment_failed(
    db: Session,
    phone: Optional[str],
    name: str,
    plan_name: str,
    reason: Optional[str] = None,
    plan_id=None,
    email: str = "",
) -> bool:
    payment_url = build_checkout_url(plan_id, email, name, flag="renovacao")
    default_message = f"Olá {name}!\n\nHouve um problema com seu pagamento do plano *{plan_name}*."
    if reason:
        default_message += f"\n\nMotivo: {reason}"
    default_message += (
        "\n\nPor favor, verifique seus dados de pagamento e tente novamente.\n\n"
        f"Regularizar: {payment_url}\n\n"
        "Dúvidas? Estamos aqui para ajudar!"
    )
    data = {
        "name": name,
        "planName": plan_name,
        "reason": reason or "",
        "paymentUrl": payment_url,
        "appName": APP_NAME,
    }
    message = get_template_message(db, "payment_failed", data, default_message)
    return await send_notification_message(db, phone, message, "payment_failed", name)


async def send_whatsapp_welcome(db: Session, phone: Optional[str], name: str) -> bool:
    default_message = (
        f"Olá {name}!\n\n"
        f"Bem-vindo ao {APP_NAME}!\n\n"
        "Sua conta foi criada com sucesso.\n\n"
        "O que você pode fazer:\n"
        "- Criar webinários automatizados 24/7\n"
        "- Capturar leads automaticamente\n\n"
        f"Acesse: {admin_url()}\n\n"
        "Dúvidas? Estamos aqui para ajudar!"
    )
    data = {"name": name, "adminUrl": admin_url(), "appName": APP_NAME}
    message = get_template_message(db, "welcome", data, default_message)
    return await send_notification_message(db, phone, message, "welcome", name)


async def send_whatsapp_payment_recovery(
    db: Session,
    phone: Optional[str],
    name: str,
    plan_name: str,
    plan_id,
    amount: int,
    email: str = "",
) -> bool:
    """Nudge a buyer whose PIX charge expired back to the checkout"""
    if not phone:
        logger.warning("⚠️ Telefone não disponível para enviar recuperação")
        return False

    formatted_amount = format_brl(amount)
    checkout_url = build_checkout_url(plan_id, email, name)
    default_message = (
        f"Olá {name}!\n\n"
        "Notamos que você ainda não finalizou sua compra.\n\n"
        f"Plano: {plan_name}\n"
        f"Valor: {formatted_amount}\n\n"
        f"Seu carrinho está esperando por você! Finalize agora:\n{checkout_url}\n\n"
        "Formas de pagamento:\n"
        "- PIX (aprovação instantânea)\n"
        "- Boleto (vence em 3 dias)\n"
        "- Cartão (até 12x)\n\n"
        "Dúvidas? Responda esta mensagem!"
    )
    data = {
        "name": name,
        "planName": plan_name,
        "amount": formatted_amount,
        "checkoutUrl": checkout_url,
        "appName": APP_NAME,
    }
    message = get_template_message(db, "payment_recovery", data, default_message)
    return await send_notification_message(db, phone, message, "payment_recovery", name)


def get_notification_status(db: Session) -> dict:
    try:
        enabled = is_whatsapp_notifications_enabled(db)
        total = db.query(WhatsAppAccount).filter(WhatsAppAccount.scope == "notifications").count()
        connected = whatsapp_service.get_rotation_accounts(db)

        if not connected:
            return {
                "configured": total > 0,
                "status": "disconnected" if total > 0 else "not_configured",
                "phone_number": None,
                "enabled": enabled,
                "connected_accounts": 0,
                "total_accounts": total,
            }

        return {
            "configured": True,
            "status": "connected",
            "phone_number": connected[0].phone_number,
            "enabled": enabled,
            "connected_accounts": len(connected),
            "total_accounts": total,
        }
    except Exception as e:
        logger.error(f"❌ Erro ao obter status WhatsApp: {e}")
        return {
            "configured": False,
            "status": "error",
            "phone_number": None,
            "enabled": False,
            "connected_accounts": 0,
            "total_accounts": 0,
        }
