"""
Mercado Pago Service
PIX charge creation and payment lookups over the REST API
"""

import logging
from datetime import datetime
from typing import Optional

import httpx

from ..config import MERCADOPAGO_ACCESS_TOKEN, MERCADOPAGO_API_URL

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    return bool(MERCADOPAGO_ACCESS_TOKEN)


def _headers(idempotency_key: Optional[str] = None) -> dict:
    headers = {"Authorization": f"Bearer {MERCADOPAGO_ACCESS_TOKEN}"}
    if idempotency_key:
        headers["X-Idempotency-Key"] = idempotency_key
    return headers


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
        return data.get("message") or data.get("error") or f"HTTP {response.status_code}"
    except ValueError:
        return f"HTTP {response.status_code}"


async def create_pix_payment(
    payment_id: str,
    amount: int,
    description: str,
    email: str,
    name: str,
    cpf: Optional[str],
    expires_at: datetime,
    notification_url: Optional[str] = None,
) -> tuple[bool, Optional[dict], Optional[str]]:
    """
    Create a PIX charge

    Args:
        payment_id: Our payment id, sent as external_reference and idempotency key
        amount: Amount in centavos
        expires_at: Naive UTC expiration of the QR code

    Returns:
        Tuple of (success, payment_data, error_message)
    """
    if not is_configured():
        return False, None, "Mercado Pago não configurado"

    first_name, _, last_name = (name or "").partition(" ")
    payer = {"email": email, "first_name": first_name, "last_name": last_name}
    if cpf:
        payer["identification"] = {"type": "CPF", "number": cpf}

    body = {
        "transaction_amount": round(amount / 100, 2),
        "description": description,
        "payment_method_id": "pix",
        "external_reference": payment_id,
        "date_of_expiration": expires_at.strftime("%Y-%m-%dT%H:%M:%S.000+00:00"),
        "payer": payer,
    }
    if notification_url:
        body["notification_url"] = notification_url

    try:
        logger.info(f"💳 Creating Mercado Pago PIX for {email} ({amount} centavos)")
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{MERCADOPAGO_API_URL}/v1/payments",
                headers=_headers(idempotency_key=payment_id),
                json=body,
                timeout=20.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"Mercado Pago API error: {str(e)}")
        return False, None, str(e)

    if response.status_code not in (200, 201):
        error_message = _error_message(response)
        logger.error(f"❌ Mercado Pago PIX creation failed ({response.status_code}): {error_message}")
        return False, None, error_message

    return True, response.json(), None


async def get_payment(mercadopago_payment_id: str) -> tuple[bool, Optional[dict], Optional[str]]:
    """Fetch the authoritative payment state (webhooks only carry the id)"""
    if not is_configured():
        return False, None, "Mercado Pago não configurado"

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{MERCADOPAGO_API_URL}/v1/payments/{mercadopago_payment_id}",
                headers=_headers(),
                timeout=15.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"Mercado Pago API error: {str(e)}")
        return False, None, str(e)

    if response.status_code != 200:
        return False, None, _error_message(response)

    return True, response.json(), None


def extract_pix_data(payment_data: dict) -> tuple[Optional[str], Optional[str]]:
    """(qr_code_base64, copy_paste_code) from a PIX payment response"""
    transaction_data = (payment_data.get("point_of_interaction") or {}).get("transaction_data") or {}
    return transaction_data.get("qr_code_base64"), transaction_data.get("qr_code")
