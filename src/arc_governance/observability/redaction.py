from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "***REDACTED***"

# "token" alone would hide staking token addresses and reward amounts.
SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "secret",
        "private_key",
        "privatekey",
        "api_key",
        "password",
        "passphrase",
        "mnemonic",
        "auth_token",
        "access_token",
    }
)


def _is_sensitive_key(key: str) -> bool:
    normalized = key.lower().replace("-", "_")
    return any(sensitive in normalized for sensitive in SENSITIVE_KEYS)


def redact_url(value: str) -> str:
    scheme, sep, rest = value.partition("://")
    if not sep or "@" not in rest.split("/", 1)[0]:
        return value
    _, _, host = rest.partition("@")
    return f"{scheme}://{REDACTED}@{host}"


def redact_sensitive(data: Any) -> Any:
    if isinstance(data, Mapping):
        return {
            key: REDACTED if _is_sensitive_key(str(key)) else redact_sensitive(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_sensitive(item) for item in data]
    if isinstance(data, str):
        return redact_url(data)
    return data
