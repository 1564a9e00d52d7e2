import re
from typing import Any, Mapping, Optional

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")


def replace_placeholders(
    template: Optional[str], values: Mapping[str, Any], ignore_case: bool = False
) -> str:
    """
    Replace every ``{key}`` in the template with its value.

    Missing values (None) become an empty string. Placeholders without a key
    in ``values`` are left untouched so admins can spot typos in previews.

    Args:
        template: Text containing ``{placeholder}`` markers
        values: Placeholder name -> value
        ignore_case: Match ``{Nome}`` as well as ``{nome}`` (WhatsApp templates)
    """
    if not template:
        return ""

    if ignore_case:
        lookup = {key.lower(): value for key, value in values.items()}
    else:
        lookup = dict(values)

    def _substitute(match: re.Match) -> str:
        key = match.group(1).lower() if ignore_case else match.group(1)
        if key not in lookup:
            return match.group(0)
        value = lookup[key]
        return "" if value is None else str(value)

    # Single pass: inserted values are never scanned for placeholders again
    return PLACEHOLDER_PATTERN.sub(_substitute, template)
