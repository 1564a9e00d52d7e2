"""
WhatsApp Integration Models
Database models for Cloud API accounts, editable notification templates and send logs
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from .database import Base
from .models import utcnow


class WhatsAppAccount(Base):
    """WhatsApp Cloud API number used for outbound notifications"""

    __tablename__ = "whatsapp_accounts"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(255), nullable=False)
    phone_number = Column(String(30), nullable=True)
    status = Column(String(20), default="disconnected", nullable=False)  # connected, disconnected
    scope = Column(String(20), default="notifications", nullable=False)  # notifications, marketing
    provider = Column(String(20), default="cloud_api", nullable=False)

    # Cloud API credentials (access token encrypted)
    access_token = Column(Text, nullable=True)
    phone_number_id = Column(String(64), nullable=True)
    api_version = Column(String(10), default="v20.0", nullable=False)

    # Rotation
    priority = Column(Integer, default=0, nullable=False)
    hourly_limit = Column(Integer, default=10, nullable=False)
    messages_sent_this_hour = Column(Integer, default=0, nullable=False)
    last_hour_reset_at = Column(DateTime, nullable=True)
    last_used_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)


class WhatsAppNotificationTemplate(Base):
    __tablename__ = "whatsapp_notification_templates"

    id = Column(Integer, primary_key=True, index=True)
    notification_type = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    message_template = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class WhatsAppNotificationLog(Base):
    """Track WhatsApp notifications, successful or not"""

    __tablename__ = "whatsapp_notification_logs"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("whatsapp_accounts.id"), nullable=True)
    phone = Column(String(30), nullable=False)
    recipient_name = Column(String(255), nullable=True)
    notification_type = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), nullable=False)  # sent, failed
    error = Column(Text, nullable=True)
    external_message_id = Column(String(255), nullable=True)
    sent_at = Column(DateTime, default=utcnow)
