"""
Webhook Security Module

Signature verification for incoming payment webhooks:
- Constant-time signature comparison
- Timestamp validation against replayed notifications
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """
    Verify webhook timestamp is within acceptable range.

    Args:
        timestamp: Unix timestamp as string, in seconds or milliseconds
        max_age: Maximum age in seconds
    """
    if not timestamp:
        return False

    try:
        webhook_time = int(timestamp)
        # Mercado Pago sends milliseconds
        if webhook_time > 10**11:
            webhook_time //= 1000
        age = abs(int(time.time()) - webhook_time)

        if age > max_age:
            logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
            return False

        return True
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False


def parse_signature_header(header: str) -> dict[str, str]:
    """Parse "ts=...,v1=..." into a dict"""
    parts = {}
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if sep:
            parts[key.strip()] = value.strip()
    return parts


def build_mercadopago_manifest(data_id: str, request_id: Optional[str], ts: str) -> str:
    manifest = f"id:{data_id.lower() if data_id.isalnum() else data_id};"
    if request_id:
        manifest += f"request-id:{request_id};"
    return manifest + f"ts:{ts};"


def create_mercadopago_signature(
    secret: str, data_id: str, request_id: Optional[str], ts: Optional[str] = None
) -> str:
    """Build an x-signature header value (outgoing test webhooks)"""
    ts = ts or str(int(time.time() * 1000))
    signature = compute_hmac_sha256(
        secret, build_mercadopago_manifest(data_id, request_id, ts).encode()
    )
    return f"ts={ts},v1={signature}"


async def verify_mercadopago_webhook(
    request: Request, secret: str, data_id: str, raise_on_failure: bool = True
) -> tuple[bool, bytes]:
    """
    Verify a Mercado Pago webhook.

    Mercado Pago signs the manifest "id:{data.id};request-id:{x-request-id};ts:{ts};"
    with HMAC-SHA256 and sends it as "x-signature: ts=<ts>,v1=<hex>".

    Returns:
        Tuple of (is_valid, raw_body)
    """
    raw_body = await request.body()
    signature_header = request.headers.get("x-signature", "")
    request_id = request.headers.get("x-request-id")

    logger.info(f"📥 Mercado Pago webhook received: data.id={data_id}, request_id={request_id}")

    def fail(detail: str) -> tuple[bool, bytes]:
        logger.warning(f"🚫 Mercado Pago webhook rejected: {detail}")
        if raise_on_failure:
            raise HTTPException(status_code=401, detail=detail)
        return False, raw_body

    if not signature_header:
        return fail("Missing webhook signature")

    parts = parse_signature_header(signature_header)
    ts = parts.get("ts")
    received_signature = parts.get("v1")
    if not ts or not received_signature:
        return fail("Invalid signature format")

    if not verify_timestamp(ts):
        return fail("Webhook timestamp expired")

    manifest = build_mercadopago_manifest(data_id, request_id, ts)
    expected_signature = compute_hmac_sha256(secret, manifest.encode())

    if not constant_time_compare(expected_signature, received_signature):
        return fail("Invalid webhook signature")

    logger.debug(f"✅ Mercado Pago webhook signature verified: {data_id}")
    return True, raw_body
