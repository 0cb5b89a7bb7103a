"""Redact sensitive data from structured logs. Never log secrets, tokens or signed-URL signatures; clip long free text."""
import re
from typing import Any

# Keys (case-insensitive) that must be redacted in dicts
REDACT_KEYS = frozenset({
    "password", "token", "secret", "authorization", "cookie",
    "api_key", "signature", "session",
})
# Free-text query params (search terms) can be arbitrarily long
MAX_LOG_VALUE_LENGTH = 200


def _redact_key(key: str) -> bool:
    k = key.lower()
    return any(r in k for r in REDACT_KEYS)


def redact_for_log(obj: Any) -> Any:
    """Return a copy of obj safe for logging: sensitive keys replaced with '[REDACTED]'."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if _redact_key(str(k)) else redact_for_log(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact_for_log(x) for x in obj)
    if isinstance(obj, str):
        if _looks_like_secret(obj):
            return "[REDACTED]"
        if len(obj) > MAX_LOG_VALUE_LENGTH:
            return obj[:MAX_LOG_VALUE_LENGTH] + "..."
    return obj


def _looks_like_secret(s: str) -> bool:
    """Heuristic: JWT-like or bearer token."""
    if len(s) > 64 and re.match(r"^[A-Za-z0-9_-]+\.([A-Za-z0-9_-]+)\.", s):
        return True  # JWT-like
    if s.lower().startswith("bearer "):
        return True
    return False
