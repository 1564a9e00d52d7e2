from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .shared.validators import validate_cpf, validate_email


class MessageResponse(BaseModel):
    message: str


# Checkout Schemas
class CheckoutPlanResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price: int
    access_days: int
    billing_type: str
    frequency: int
    frequency_type: str

    class Config:
        from_attributes = True


class PixCheckoutRequest(BaseModel):
    plan_id: int
    name: str = Field(..., min_length=2, max_length=255)
    email: str
    cpf: Optional[str] = None
    phone: Optional[str] = None
    affiliate_link_code: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return validate_email(value)

    @field_validator("cpf")
    @classmethod
    def check_cpf(cls, value: Optional[str]) -> Optional[str]:
        return validate_cpf(value)


class PixCheckoutResponse(BaseModel):
    payment_id: str
    status: str
    amount: int
    pix_qr_code: Optional[str] = None
    pix_copy_paste: Optional[str] = None
    pix_expires_at: Optional[datetime] = None


class PaymentStatusResponse(BaseModel):
    id: str
    status: str
    status_detail: Optional[str]
    payment_method: Optional[str]
    amount: int
    user_friendly_error: Optional[str]
    pix_expires_at: Optional[datetime]

    class Config:
        from_attributes = True


# Notification Template Schemas
class EmailTemplateUpsert(BaseModel):
    name: str
    description: Optional[str] = None
    subject: str
    html_template: str
    text_template: Optional[str] = None
    is_active: bool = True


class EmailTemplateResponse(BaseModel):
    id: int
    notification_type: str
    name: str
    description: Optional[str]
    subject: str
    html_template: str
    text_template: Optional[str]
    is_active: bool
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class TemplatePreviewRequest(BaseModel):
    sample_data: dict[str, str] = {}


class EmailTemplatePreview(BaseModel):
    subject: str
    html: str
    text: str


class WhatsAppTemplateUpsert(BaseModel):
    name: str
    description: Optional[str] = None
    message_template: str
    is_active: bool = True


class WhatsAppTemplateResponse(BaseModel):
    id: int
    notification_type: str
    name: str
    description: Optional[str]
    message_template: str
    is_active: bool
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


# Notification admin schemas
class WhatsAppEnabledUpdate(BaseModel):
    enabled: bool


class WhatsAppAccountCreate(BaseModel):
    label: str
    access_token: str
    phone_number_id: str
    api_version: Optional[str] = None
    priority: int = 0
    hourly_limit: int = Field(10, ge=1)


class WhatsAppAccountResponse(BaseModel):
    id: int
    label: str
    phone_number: Optional[str]
    status: str
    scope: str
    phone_number_id: Optional[str]
    api_version: str
    priority: int
    hourly_limit: int
    messages_sent_this_hour: int
    last_used_at: Optional[datetime]

    class Config:
        from_attributes = True


class TestEmailRequest(BaseModel):
    to: str

    @field_validator("to")
    @classmethod
    def check_email(cls, value: str) -> str:
        return validate_email(value)
