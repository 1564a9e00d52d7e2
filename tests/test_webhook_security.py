"""
Tests for Mercado Pago webhook signature verification.
"""
import time

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from app.webhook_security import (
    build_mercadopago_manifest,
    compute_hmac_sha256,
    constant_time_compare,
    create_mercadopago_signature,
    parse_signature_header,
    verify_mercadopago_webhook,
    verify_timestamp,
)

SECRET = "mp-webhook-secret"


def make_request(headers: dict, body: bytes = b"{}") -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/webhooks/mercadopago",
        "headers": [(key.lower().encode(), value.encode()) for key, value in headers.items()],
        "query_string": b"",
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


class TestHelpers:
    def test_constant_time_compare(self) -> None:
        assert constant_time_compare("abc", "abc") is True
        assert constant_time_compare("abc", "abd") is False
        assert constant_time_compare("", "") is False

    def test_parse_signature_header(self) -> None:
        assert parse_signature_header("ts=1700000000, v1=abc123") == {"ts": "1700000000", "v1": "abc123"}
        assert parse_signature_header("garbage") == {}

    def test_manifest_format(self) -> None:
        assert build_mercadopago_manifest("123", "req-1", "1700") == "id:123;request-id:req-1;ts:1700;"
        assert build_mercadopago_manifest("123", None, "1700") == "id:123;ts:1700;"

    def test_alphanumeric_ids_are_lowercased(self) -> None:
        assert build_mercadopago_manifest("ABC123", None, "1").startswith("id:abc123;")

    def test_timestamp_window(self) -> None:
        now = int(time.time())
        assert verify_timestamp(str(now)) is True
        assert verify_timestamp(str(now * 1000)) is True
        assert verify_timestamp(str(now - 3600)) is False
        assert verify_timestamp(None) is False
        assert verify_timestamp("soon") is False


class TestVerifyWebhook:
    @pytest.mark.asyncio
    async def test_valid_signature(self) -> None:
        signature = create_mercadopago_signature(SECRET, "123", "req-1")
        request = make_request({"x-signature": signature, "x-request-id": "req-1"}, b'{"a": 1}')

        valid, body = await verify_mercadopago_webhook(request, SECRET, "123")

        assert valid is True
        assert body == b'{"a": 1}'

    @pytest.mark.asyncio
    async def test_tampered_data_id(self) -> None:
        signature = create_mercadopago_signature(SECRET, "123", "req-1")
        request = make_request({"x-signature": signature, "x-request-id": "req-1"})

        with pytest.raises(HTTPException) as exc_info:
            await verify_mercadopago_webhook(request, SECRET, "999")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid webhook signature"

    @pytest.mark.asyncio
    async def test_missing_signature(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await verify_mercadopago_webhook(make_request({}), SECRET, "123")
        assert exc_info.value.detail == "Missing webhook signature"

    @pytest.mark.asyncio
    async def test_expired_timestamp(self) -> None:
        old_ts = str(int(time.time()) - 3600)
        signature = compute_hmac_sha256(SECRET, build_mercadopago_manifest("123", None, old_ts).encode())
        request = make_request({"x-signature": f"ts={old_ts},v1={signature}"})

        with pytest.raises(HTTPException) as exc_info:
            await verify_mercadopago_webhook(request, SECRET, "123")
        assert exc_info.value.detail == "Webhook timestamp expired"

    @pytest.mark.asyncio
    async def test_soft_failure(self) -> None:
        request = make_request({"x-signature": "ts=1,v1=bad"})

        valid, _ = await verify_mercadopago_webhook(request, SECRET, "123", raise_on_failure=False)

        assert valid is False
