from typing import Optional
from urllib.parse import urlencode

from ..config import get_app_url


def build_checkout_url(
    plan_id: Optional[object], email: str, name: str, flag: str = "recuperacao"
) -> str:
    """
    Checkout link with the buyer's data pre-filled.

    ``flag`` marks the origin of the visit ("recuperacao" for abandoned PIX,
    "renovacao" for failed renewals).
    """
    query = urlencode({"email": email, "nome": name, flag: "true"})
    base = f"{get_app_url()}/checkout"
    if plan_id:
        base = f"{base}/{plan_id}"
    return f"{base}?{query}"


def login_url() -> str:
    return f"{get_app_url()}/login"


def admin_url() -> str:
    return f"{get_app_url()}/admin"


def reset_password_url(token: str) -> str:
    return f"{get_app_url()}/reset-password?{urlencode({'token': token})}"
