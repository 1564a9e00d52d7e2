import html
from typing import Any, Optional


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string by escaping HTML special characters to prevent XSS.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(str(value), quote=True)


def sanitize_dict(data: dict[str, Any], fields: Optional[list[str]] = None) -> dict[str, Any]:
    """
    Escape the string values of a placeholder dictionary before they are
    interpolated into HTML. Non-string values are passed through.

    Args:
        data: Dictionary to sanitize
        fields: Field names to sanitize. If None, sanitizes all strings.
    """
    if not data:
        return data

    sanitized = {}
    for key, value in data.items():
        if (fields is None or key in fields) and isinstance(value, str):
            sanitized[key] = sanitize_string(value)
        else:
            sanitized[key] = value

    return sanitized
