"""Helpers for safe debug logging.

pytronity handles client secrets and bearer tokens. This module provides a
small utility to redact sensitive fields, and explicitly registered secret
values, before emitting DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "client_secret",
        "clientsecret",
        "secret",
        "password",
        "access_token",
        "accesstoken",
        "refresh_token",
        "refreshtoken",
        "token",
        "authorization",
        "cookie",
    }
)

_MASK = "<redacted>"


def _mask_secrets(text: str, secrets: tuple[str, ...]) -> str:
    for secret in secrets:
        text = text.replace(secret, _MASK)
    return text


def redact_for_log(
    value: Any,
    *,
    secrets: Iterable[str] = (),
    max_string: int = 512,
    _depth: int = 0,
) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Keys listed in ``_SENSITIVE_VALUE_KEYS`` are masked wholesale; any
    occurrence of a string in *secrets* is masked wherever it appears.
    """
    if _depth > 20:
        return "<max-depth>"

    # Longest first so a secret containing another is masked as a whole.
    masks = tuple(sorted((s for s in secrets if s), key=len, reverse=True))

    if value is None:
        return None

    if isinstance(value, str):
        value = _mask_secrets(value, masks)
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                redacted[key] = _MASK
            else:
                redacted[key] = redact_for_log(v, secrets=masks, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, secrets=masks, max_string=max_string, _depth=_depth + 1) for v in value]

    # Fallback: represent unknown objects without dumping internals.
    return _mask_secrets(repr(value), masks)
