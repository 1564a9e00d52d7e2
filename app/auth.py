import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from .config import ADMIN_API_TOKEN
from .webhook_security import constant_time_compare

logger = logging.getLogger(__name__)

security = HTTPBearer()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


async def require_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    """Allow requests carrying the configured admin API token"""
    if not ADMIN_API_TOKEN:
        logger.error("❌ ADMIN_API_TOKEN not configured, admin API disabled")
        raise HTTPException(status_code=503, detail="Admin API not configured")

    if not constant_time_compare(credentials.credentials, ADMIN_API_TOKEN):
        logger.warning("🚫 Invalid admin token")
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    return "admin"
