import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID used as the gateway external reference"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Admin(Base):
    """Customer account provisioned after a successful checkout"""

    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), default="user", nullable=False)  # superadmin, user
    plan_id = Column(Integer, ForeignKey("checkout_plans.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    payment_status = Column(String(20), default="ok", nullable=False)  # ok, failed, pending
    payment_failed_reason = Column(Text, nullable=True)
    access_expires_at = Column(DateTime, nullable=True)
    # Throttles expiration reminders so a user never gets the same warning twice
    last_expiration_email_sent = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    plan = relationship("CheckoutPlan")


class CheckoutPlan(Base):
    __tablename__ = "checkout_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False)  # centavos
    access_days = Column(Integer, default=30, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    gateway = Column(String(50), default="mercadopago", nullable=False)
    billing_type = Column(String(20), default="unico", nullable=False)  # unico, recorrente
    frequency = Column(Integer, default=1, nullable=False)
    frequency_type = Column(String(20), default="months", nullable=False)  # days, months, years
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_daily(self) -> bool:
        """Recurring plans billed every few days get hour-based reminders"""
        return (
            self.billing_type == "recorrente"
            and self.frequency_type == "days"
            and (self.frequency or 0) <= 3
        )


class CheckoutPayment(Base):
    __tablename__ = "checkout_payments"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    email = Column(String(255), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    cpf = Column(String(20), nullable=True)
    phone = Column(String(50), nullable=True)
    plan_id = Column(Integer, ForeignKey("checkout_plans.id"), nullable=True)
    amount = Column(Integer, nullable=False)  # centavos
    # checkout_iniciado, pending, in_process, approved, rejected, cancelled, expired
    status = Column(String(30), default="checkout_iniciado", index=True, nullable=False)
    status_detail = Column(String(255), nullable=True)
    payment_method = Column(String(20), nullable=True)  # pix, boleto, credit_card
    mercadopago_payment_id = Column(String(64), unique=True, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)  # access expiration granted by this payment
    admin_id = Column(Integer, ForeignKey("admins.id"), nullable=True)
    pix_qr_code = Column(Text, nullable=True)
    pix_copy_paste = Column(Text, nullable=True)
    # Gateway failure tracking
    gateway_error_code = Column(String(100), nullable=True)
    gateway_error_message = Column(Text, nullable=True)
    user_friendly_error = Column(Text, nullable=True)
    failure_attempts = Column(Integer, default=0, nullable=False)
    last_failure_at = Column(DateTime, nullable=True)
    affiliate_link_code = Column(String(100), nullable=True)
    pix_expires_at = Column(DateTime, index=True, nullable=True)
    pix_expired_email_sent = Column(Boolean, default=False, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    plan = relationship("CheckoutPlan")
    admin = relationship("Admin")


class CheckoutConfig(Base):
    """Key/value settings editable from the admin panel"""

    __tablename__ = "checkout_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, index=True, nullable=False)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class EmailNotificationTemplate(Base):
    """Admin-edited override for a transactional email"""

    __tablename__ = "email_notification_templates"

    id = Column(Integer, primary_key=True, index=True)
    notification_type = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(String(500), nullable=False)
    html_template = Column(Text, nullable=False)
    text_template = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Affiliate(Base):
    __tablename__ = "affiliates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    link_code = Column(String(100), unique=True, index=True, nullable=False)
    commission_percent = Column(Float, default=30.0, nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, inactive
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
