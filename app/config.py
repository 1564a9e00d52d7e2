import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./autowebinar.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Bearer token for the admin API (notification templates, WhatsApp accounts)
ADMIN_API_TOKEN = os.getenv("ADMIN_API_TOKEN")

# Public URL used in email links
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL")
RENDER_EXTERNAL_URL = os.getenv("RENDER_EXTERNAL_URL")
DEFAULT_APP_URL = "https://autowebinar.com.br"
APP_NAME = "AutoWebinar"

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "AutoWebinar <contato@autowebinar.shop>")
EMAIL_REPLY_TO = os.getenv("EMAIL_REPLY_TO", "contato@autowebinar.shop")

# Email retry queue
EMAIL_RETRY_INTERVAL_SECONDS = int(os.getenv("EMAIL_RETRY_INTERVAL_SECONDS", "60"))
EMAIL_RETRY_MAX_ATTEMPTS = int(os.getenv("EMAIL_RETRY_MAX_ATTEMPTS", "3"))

# PIX expiration
PIX_EXPIRATION_INTERVAL_SECONDS = int(os.getenv("PIX_EXPIRATION_INTERVAL_SECONDS", "300"))
PIX_EXPIRATION_MINUTES = int(os.getenv("PIX_EXPIRATION_MINUTES", "30"))
# "in_process" runs the poller inside the API process, "worker" leaves it to the arq cron
PIX_EXPIRATION_SCHEDULER = os.getenv("PIX_EXPIRATION_SCHEDULER", "in_process")

# Disable to run the API without in-process background loops (tests, one-off scripts)
ENABLE_BACKGROUND_SCHEDULERS = os.getenv("ENABLE_BACKGROUND_SCHEDULERS", "true").lower() == "true"

# Mercado Pago
MERCADOPAGO_ACCESS_TOKEN = os.getenv("MERCADOPAGO_ACCESS_TOKEN")
MERCADOPAGO_WEBHOOK_SECRET = os.getenv("MERCADOPAGO_WEBHOOK_SECRET")
MERCADOPAGO_API_URL = os.getenv("MERCADOPAGO_API_URL", "https://api.mercadopago.com")

# WhatsApp Cloud API
WHATSAPP_GRAPH_API_URL = os.getenv("WHATSAPP_GRAPH_API_URL", "https://graph.facebook.com")
WHATSAPP_DEFAULT_API_VERSION = os.getenv("WHATSAPP_DEFAULT_API_VERSION", "v20.0")
# Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
WHATSAPP_ENCRYPTION_KEY = os.getenv("WHATSAPP_ENCRYPTION_KEY")

# Redis for the arq worker
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")

# Subscription reminders run on Brazilian business hours (UTC-3, no DST)
BUSINESS_UTC_OFFSET_HOURS = int(os.getenv("BUSINESS_UTC_OFFSET_HOURS", "-3"))


def get_app_url() -> str:
    """Public base URL, preferring explicit config over the hosting provider's URL."""
    url = PUBLIC_BASE_URL or RENDER_EXTERNAL_URL or DEFAULT_APP_URL
    return url.rstrip("/")

# CORS origins for the admin panel and checkout pages
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS",
        "https://autowebinar.com.br,https://www.autowebinar.com.br,http://localhost:5173",
    ).split(",")
    if origin.strip()
]

# Requests slower than this are logged as warnings
SLOW_REQUEST_THRESHOLD_SECONDS = float(os.getenv("SLOW_REQUEST_THRESHOLD_SECONDS", "2.0"))

# Database pool (ignored for SQLite)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))
