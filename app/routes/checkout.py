"""
Checkout Routes - Plans and PIX payments via Mercado Pago
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import email_service
from ..config import PIX_EXPIRATION_MINUTES, get_app_url
from ..database import get_db
from ..models import CheckoutPayment, CheckoutPlan, utcnow
from ..schemas import CheckoutPlanResponse, PaymentStatusResponse, PixCheckoutRequest, PixCheckoutResponse
from ..services import mercadopago_service
from ..services.payment_errors import get_mercadopago_error_message, log_payment_error
from ..shared.validators import normalize_br_phone, validate_uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkout", tags=["Checkout"])


async def send_pending_email_background(to: str, name: str, plan_name: str, plan_id: int) -> None:
    """Payment-pending email after the response is sent. Failures are only logged."""
    try:
        await email_service.send_payment_pending_email(
            to=to, name=name, plan_name=plan_name, payment_method="pix", plan_id=plan_id
        )
    except Exception as e:
        logger.warning(f"⚠️ Payment pending email to {to} failed: {e}")


@router.get("/plans", response_model=list[CheckoutPlanResponse])
def list_plans(db: Session = Depends(get_db)):
    return (
        db.query(CheckoutPlan)
        .filter(CheckoutPlan.is_active.is_(True))
        .order_by(CheckoutPlan.price.asc())
        .all()
    )


@router.post("/pix", response_model=PixCheckoutResponse)
async def create_pix_checkout(
    data: PixCheckoutRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Create a PIX charge for a plan and store the pending payment"""
    plan = (
        db.query(CheckoutPlan)
        .filter(CheckoutPlan.id == data.plan_id, CheckoutPlan.is_active.is_(True))
        .first()
    )
    if not plan:
        raise HTTPException(status_code=404, detail="Plano não encontrado")

    payment = CheckoutPayment(
        email=data.email,
        name=data.name.strip(),
        cpf=data.cpf,
        phone=normalize_br_phone(data.phone),
        plan_id=plan.id,
        amount=plan.price,
        payment_method="pix",
        affiliate_link_code=data.affiliate_link_code,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    expires_at = utcnow() + timedelta(minutes=PIX_EXPIRATION_MINUTES)
    ok, mp_payment, error = await mercadopago_service.create_pix_payment(
        payment_id=payment.id,
        amount=payment.amount,
        description=plan.name,
        email=payment.email,
        name=payment.name,
        cpf=payment.cpf,
        expires_at=expires_at,
        notification_url=f"{get_app_url()}/webhooks/mercadopago",
    )

    if not ok:
        error_info = get_mercadopago_error_message(None)
        payment.gateway_error_message = error
        payment.user_friendly_error = error_info.user_message
        payment.failure_attempts = (payment.failure_attempts or 0) + 1
        payment.last_failure_at = utcnow()
        db.commit()
        log_payment_error(
            gateway="mercadopago",
            payment_id=payment.id,
            email=payment.email,
            amount=payment.amount,
            method="pix",
            error_code="pix_creation_failed",
            error_message=error or "",
        )
        raise HTTPException(status_code=502, detail=error_info.user_message)

    qr_code_base64, copy_paste = mercadopago_service.extract_pix_data(mp_payment)
    payment.mercadopago_payment_id = str(mp_payment.get("id"))
    payment.status = "pending"
    payment.status_detail = mp_payment.get("status_detail")
    payment.pix_qr_code = qr_code_base64
    payment.pix_copy_paste = copy_paste
    payment.pix_expires_at = expires_at
    db.commit()
    db.refresh(payment)

    logger.info(f"💠 PIX created for {payment.email}: {payment.id} (expires {expires_at.isoformat()})")

    background_tasks.add_task(
        send_pending_email_background, payment.email, payment.name, plan.name, plan.id
    )

    return PixCheckoutResponse(
        payment_id=payment.id,
        status=payment.status,
        amount=payment.amount,
        pix_qr_code=payment.pix_qr_code,
        pix_copy_paste=payment.pix_copy_paste,
        pix_expires_at=payment.pix_expires_at,
    )


@router.get("/payments/{payment_id}", response_model=PaymentStatusResponse)
def get_payment_status(payment_id: str, db: Session = Depends(get_db)):
    if not validate_uuid(payment_id):
        raise HTTPException(status_code=404, detail="Pagamento não encontrado")

    payment = db.query(CheckoutPayment).filter(CheckoutPayment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=404, detail="Pagamento não encontrado")
    return payment
