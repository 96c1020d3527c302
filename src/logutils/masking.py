"""Masking of credentials and personal data in log output.

Portal passwords, bot tokens and registration numbers all pass through the
service layer, so every formatter runs messages through these helpers.
"""

from __future__ import annotations

import re
from typing import Any

MASK = "***MASKED***"

# (pattern, replacement) pairs applied in order
_KEY_VALUE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r'(["\']?(?:encrypted[_-]?)?password["\']?\s*[:=]\s*)["\']?[^"\'\s,}\]]+["\']?',
        re.IGNORECASE,
    ),
    re.compile(
        r'(["\']?api[_-]?key["\']?\s*[:=]\s*)["\']?[A-Za-z0-9_\-]+["\']?', re.IGNORECASE
    ),
    re.compile(
        r'(["\']?(?:bot[_-]?|auth[_-]?|access[_-]?)?token["\']?\s*[:=]\s*)["\']?[A-Za-z0-9_:\-\.]+["\']?',
        re.IGNORECASE,
    ),
    re.compile(
        r'(["\']?(?:encryption[_-]?|client[_-]?)?secret["\']?\s*[:=]\s*)["\']?[A-Za-z0-9_\-]+["\']?',
        re.IGNORECASE,
    ),
]

# Telegram-style bot tokens: "<digits>:<35 url-safe chars>"
BOT_TOKEN = re.compile(r"\b\d{6,12}:[A-Za-z0-9_\-]{30,}\b")

URL_CREDENTIALS = re.compile(r"(https?://)[^:/\s]+:[^@/\s]+(@)", re.IGNORECASE)

EMAIL = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Registration numbers keep their first four characters (batch year + college)
REGISTRATION_NUMBER = re.compile(
    r'(["\']?(?:student[_-]?id|reg(?:istration)?[_-]?(?:no|number))["\']?\s*[:=]\s*["\']?)([A-Z0-9]{4})[A-Z0-9]+',
    re.IGNORECASE,
)

SENSITIVE_KEYWORDS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "api_key",
        "apikey",
        "credential",
        "authorization",
        "encryption_key",
        "storage_state",
    }
)


def _mask_email(match: re.Match[str]) -> str:
    local, _, domain = match.group(0).partition("@")
    return f"{local[:2]}***@{domain}"


def mask_sensitive_string(text: str) -> str:
    """Return ``text`` with credentials, tokens and emails masked."""
    if not text:
        return text

    result = text
    for pattern in _KEY_VALUE_PATTERNS:
        result = pattern.sub(r"\g<1>" + MASK, result)

    result = BOT_TOKEN.sub(MASK, result)
    result = URL_CREDENTIALS.sub(r"\1" + MASK + r"\2", result)
    result = EMAIL.sub(_mask_email, result)
    result = REGISTRATION_NUMBER.sub(r"\g<1>\g<2>***", result)
    return result


def is_sensitive_key(key: str) -> bool:
    """True when a field name looks like it holds a secret."""
    lower_key = key.lower()
    return any(keyword in lower_key for keyword in SENSITIVE_KEYWORDS)


def mask_dict(data: dict[str, Any], depth: int = 0, max_depth: int = 8) -> dict[str, Any]:
    """Recursively mask values of sensitive keys and strings in ``data``."""
    if depth >= max_depth:
        return data

    result: dict[str, Any] = {}
    for key, value in data.items():
        if is_sensitive_key(str(key)):
            result[key] = MASK
        elif isinstance(value, dict):
            result[key] = mask_dict(value, depth + 1, max_depth)
        elif isinstance(value, list):
            result[key] = [
                mask_dict(item, depth + 1, max_depth) if isinstance(item, dict) else item
                for item in value
            ]
        elif isinstance(value, str):
            result[key] = mask_sensitive_string(value)
        else:
            result[key] = value
    return result


class SensitiveValue:
    """Holds a secret and renders as MASK when formatted.

    Usage:
        password = SensitiveValue(os.getenv("PORTAL_PASSWORD"))
        logger.info(f"Logging in with {password}")
    """

    def __init__(self, value: Any) -> None:
        self._value = value

    def get(self) -> Any:
        return self._value

    def __str__(self) -> str:
        return MASK

    def __repr__(self) -> str:
        return f"SensitiveValue({MASK})"

    def __bool__(self) -> bool:
        return bool(self._value)
