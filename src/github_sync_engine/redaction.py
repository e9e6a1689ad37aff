"""Scrub credentials out of error text before it is stored or logged."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"authorization:\s*(?:token\s+)?[^\s,}]+", re.IGNORECASE),
    re.compile(r"\b(?:access_)?token[=:]\s*[A-Za-z0-9\-._~+/]+", re.IGNORECASE),
    re.compile(r"\bapi[_-]?key[=:]\s*[A-Za-z0-9\-._~+/]+", re.IGNORECASE),
    re.compile(r"\bpassword[=:]\s*[^\s&]+", re.IGNORECASE),
    re.compile(r"\bsecret[=:]\s*[^\s&]+", re.IGNORECASE),
    re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,}"),
    re.compile(r"\bgithub_pat_[A-Za-z0-9_]{20,}"),
    # user:password@ in connection strings and URLs
    re.compile(r"(?<=://)[^/\s:@]+:[^/\s@]+@"),
)


def sanitize_message(text: str) -> str:
    """Return ``text`` with every recognised secret replaced by ``[REDACTED]``."""
    for pattern in _PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


def sanitize_error(error: BaseException) -> dict[str, Any]:
    """Describe an exception without leaking credentials.

    Returns:
        Dict with ``message``, ``name`` and ``code`` keys. ``code`` is the
        HTTP status when the error carries one, otherwise the class name.
    """
    message = str(error) or error.__class__.__name__
    status = getattr(error, "status_code", None)
    return {
        "message": sanitize_message(message),
        "name": error.__class__.__name__,
        "code": str(status) if status is not None else error.__class__.__name__,
    }
