"""
Email Routes - For testing the email channel
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from .. import email_service
from ..auth import require_admin
from ..schemas import MessageResponse, TestEmailRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["Email"], dependencies=[Depends(require_admin)])


@router.post("/test", response_model=MessageResponse)
async def send_test_email(data: TestEmailRequest):
    """Send a test email to verify Resend configuration"""
    if not email_service.is_email_service_available():
        raise HTTPException(status_code=503, detail="Email service not configured")

    try:
        await email_service.send_test_email(data.to)
    except Exception as e:
        logger.error(f"❌ Test email to {data.to} failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to send test email")

    return MessageResponse(message=f"Test email sent to {data.to}")
