"""Redaction of credential-looking fields in structured log extras."""

from __future__ import annotations

from typing import Any, Mapping

_SENSITIVE_KEYWORDS = ("token", "secret", "password", "access_key", "credential")

REDACTED = "***REDACTED***"


def _redact(key: str, value: Any) -> Any:
    lowered = key.lower()
    if any(keyword in lowered for keyword in _SENSITIVE_KEYWORDS):
        return REDACTED
    if isinstance(value, Mapping):
        return redact_items(value)
    return value


def redact_items(items: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``items`` with sensitive keys, including nested ones, masked."""

    return {key: _redact(str(key), value) for key, value in items.items()}


__all__ = ["REDACTED", "redact_items"]
