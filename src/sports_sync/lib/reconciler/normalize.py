"""Field normalizers applied before comparing store and provider values.

Every normalizer maps ``None`` to the empty string and is idempotent:
``f(f(x)) == f(x)``.
"""

from typing import Any


def normalize_text(value: Any) -> str:
    """Trim surrounding whitespace."""
    if value is None:
        return ""
    return str(value).strip()


def normalize_code(value: Any) -> str:
    """Trim and lowercase, for case-insensitive codes such as ISO country codes."""
    return normalize_text(value).lower()


def normalize_result(value: Any) -> str:
    """Trim a score string and treat ``:`` and ``-`` as the same separator."""
    return normalize_text(value).replace(":", "-")


def normalize_value(value: Any) -> str:
    """Stringify scalars (numbers, dates, booleans) so both sides compare alike."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return normalize_text(value)
