from __future__ import annotations

from typing import Any

# Keys whose values never leave the request that carried them: credentials,
# one-time codes, reset links and card tokens.
SENSITIVE_KEYS = frozenset({
    "password", "password_hash", "new_password",
    "token", "access_token", "reset_token", "payment_token",
    "otp", "code",
    "api_key", "authorization", "jwt_secret",
})

REDACTED = "**********"


def _is_sensitive(key: Any, keys: frozenset[str]) -> bool:
    return isinstance(key, str) and key.lower() in keys


def redact_payload(value: Any, *, extra_keys: set[str] | None = None) -> Any:
    """Copy of ``value`` with sensitive dict entries masked, at any depth."""
    keys = SENSITIVE_KEYS | {k.lower() for k in extra_keys} if extra_keys else SENSITIVE_KEYS

    if isinstance(value, dict):
        return {
            k: REDACTED if _is_sensitive(k, keys) else redact_payload(v, extra_keys=extra_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_payload(v, extra_keys=extra_keys) for v in value]
    return value
