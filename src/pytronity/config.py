"""Client configuration for pytronity."""

from __future__ import annotations

import dataclasses
import os
import re
from collections.abc import Mapping
from typing import Any

from pytronity._constants import BASE_URL, DEFAULT_CACHE_TTL
from pytronity.exceptions import TronityConfigError
from pytronity.models.token import OAuthToken

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS: dict[str, float] = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

# Normalized user config keys to TronityConfig fields.
_FIELD_MAP: dict[str, str] = {
    "vin": "vin",
    "cache": "cache",
    "baseurl": "base_url",
    "timeout": "request_timeout",
    "requesttimeout": "request_timeout",
    "invalidatecacheoncommand": "invalidate_cache_on_command",
    "title": "title",
    "capacity": "capacity",
    "phases": "phases",
    "identifiers": "identifiers",
    "icon": "icon",
}


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    raise TronityConfigError(f"invalid boolean: {value!r}")


def parse_duration(value: Any) -> float:
    """Convert a duration to seconds.

    Accepts numbers (seconds), numeric strings, and Go-style duration
    strings such as ``"90s"``, ``"5m"`` or ``"1h30m"``.
    """
    if isinstance(value, bool):
        raise TronityConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise TronityConfigError(f"invalid duration: {value!r}")

    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise TronityConfigError(f"invalid duration: {value!r}")
    return total


def _normalize_key(key: Any) -> str:
    return str(key).replace("_", "").replace("-", "").lower()


def _normalized(mapping: Mapping[str, Any], where: str) -> dict[str, Any]:
    if not isinstance(mapping, Mapping):
        raise TronityConfigError(f"{where}: expected a mapping, got {type(mapping).__name__}")
    return {_normalize_key(k): v for k, v in mapping.items()}


@dataclasses.dataclass(frozen=True)
class ClientCredentials:
    """OAuth client credentials issued by the Tronity platform."""

    id: str = ""
    secret: str = ""

    def error(self) -> TronityConfigError | None:
        """Return the validation error, if any, without raising."""
        if not self.id:
            return TronityConfigError("missing credentials id")
        if not self.secret:
            return TronityConfigError("missing credentials secret")
        return None

    def validate(self) -> None:
        err = self.error()
        if err is not None:
            raise err


@dataclasses.dataclass(frozen=True)
class Tokens:
    """Optional pre-issued token pair from a user (code) flow."""

    access: str = ""
    refresh: str = ""

    def token(self) -> OAuthToken | None:
        """Return the stored pair as a token, or ``None`` when none is stored.

        Raises
        ------
        TronityConfigError
            If only one half of the pair is set.
        """
        if not self.access and not self.refresh:
            return None
        if not self.access:
            raise TronityConfigError("missing access token")
        if not self.refresh:
            raise TronityConfigError("missing refresh token")
        # No expiry is known; the first 401 triggers a refresh.
        return OAuthToken(access_token=self.access, refresh_token=self.refresh)


@dataclasses.dataclass(frozen=True)
class TronityConfig:
    """Adapter configuration.

    Parameters
    ----------
    credentials : ClientCredentials
        OAuth client id and secret. Both are required.
    tokens : Tokens
        Pre-issued token pair. When empty the app flow is used.
    vin : str
        VIN of the vehicle to select. May be empty if the account has
        exactly one vehicle.
    cache : float
        Telemetry cache lifetime in seconds.
    base_url : str
        API root.
    request_timeout : float
        Total per-request timeout applied to the HTTP session, in seconds.
    invalidate_cache_on_command : bool
        Drop cached telemetry after a successful start/stop command.
    title, capacity, phases, identifiers, icon
        Generic vehicle settings reported back unchanged.
    """

    credentials: ClientCredentials = dataclasses.field(default_factory=ClientCredentials)
    tokens: Tokens = dataclasses.field(default_factory=Tokens)
    vin: str = ""
    cache: float = DEFAULT_CACHE_TTL
    base_url: str = BASE_URL
    request_timeout: float = 30.0
    invalidate_cache_on_command: bool = False
    title: str = ""
    capacity: float = 0.0
    phases: int = 0
    identifiers: tuple[str, ...] = ()
    icon: str = ""

    def validate(self) -> None:
        """Check everything that can be checked without touching the network."""
        self.credentials.validate()
        self.tokens.token()
        if self.cache < 0:
            raise TronityConfigError(f"cache must not be negative, got {self.cache}")
        if self.request_timeout <= 0:
            raise TronityConfigError(f"request_timeout must be positive, got {self.request_timeout}")

    @property
    def secrets(self) -> tuple[str, ...]:
        """Values that must never appear in logs."""
        return tuple(
            s
            for s in (
                self.credentials.id,
                self.credentials.secret,
                self.tokens.access,
                self.tokens.refresh,
            )
            if s
        )

    @classmethod
    def from_dict(cls, other: Mapping[str, Any]) -> TronityConfig:
        """Decode loosely formatted user configuration.

        Keys are matched case-insensitively with ``_`` and ``-`` ignored, so
        ``baseURL``, ``base_url`` and ``base-url`` are equivalent. Unknown
        keys raise :class:`TronityConfigError`.
        """
        values = _normalized(other, "config")
        kwargs: dict[str, Any] = {}

        creds = values.pop("credentials", None)
        if creds is not None:
            c = _normalized(creds, "credentials")
            unknown = set(c) - {"id", "secret"}
            if unknown:
                raise TronityConfigError(f"credentials: unknown keys {sorted(unknown)}")
            kwargs["credentials"] = ClientCredentials(id=str(c.get("id") or ""), secret=str(c.get("secret") or ""))

        tokens = values.pop("tokens", None)
        if tokens is not None:
            t = _normalized(tokens, "tokens")
            unknown = set(t) - {"access", "refresh"}
            if unknown:
                raise TronityConfigError(f"tokens: unknown keys {sorted(unknown)}")
            kwargs["tokens"] = Tokens(access=str(t.get("access") or ""), refresh=str(t.get("refresh") or ""))
        for key, value in values.items():
            field_name = _FIELD_MAP.get(key)
            if field_name is None:
                raise TronityConfigError(f"config: unknown key {key!r}")
            if value is None:
                continue
            kwargs[field_name] = value

        try:
            if "cache" in kwargs:
                kwargs["cache"] = parse_duration(kwargs["cache"])
            if "request_timeout" in kwargs:
                kwargs["request_timeout"] = parse_duration(kwargs["request_timeout"])
            if "capacity" in kwargs:
                kwargs["capacity"] = float(kwargs["capacity"])
            if "phases" in kwargs:
                kwargs["phases"] = int(kwargs["phases"])
        except (TypeError, ValueError) as exc:
            raise TronityConfigError(f"config: {exc}") from exc

        if "invalidate_cache_on_command" in kwargs:
            flag = kwargs["invalidate_cache_on_command"]
            kwargs["invalidate_cache_on_command"] = (
                _env_bool(flag, False) if isinstance(flag, str) else bool(flag)
            )
        if "identifiers" in kwargs:
            ids = kwargs["identifiers"]
            kwargs["identifiers"] = (str(ids),) if isinstance(ids, str) else tuple(str(i) for i in ids)
        for name in ("vin", "title", "icon", "base_url"):
            if name in kwargs:
                kwargs[name] = str(kwargs[name])

        return cls(**kwargs)

    @classmethod
    def from_env(cls, **overrides: Any) -> TronityConfig:
        """Create configuration from environment variables.

        Reads ``TRONITY_CLIENT_ID``, ``TRONITY_CLIENT_SECRET`` and the
        optional ``TRONITY_*`` variables below. Explicit keyword arguments
        override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        if "credentials" not in overrides:
            config_kwargs["credentials"] = ClientCredentials(
                id=env.get("TRONITY_CLIENT_ID", ""),
                secret=env.get("TRONITY_CLIENT_SECRET", ""),
            )
        if "tokens" not in overrides:
            config_kwargs["tokens"] = Tokens(
                access=env.get("TRONITY_ACCESS_TOKEN", ""),
                refresh=env.get("TRONITY_REFRESH_TOKEN", ""),
            )

        vin = env.get("TRONITY_VIN")
        if vin is not None:
            config_kwargs["vin"] = vin

        base_url = env.get("TRONITY_BASE_URL")
        if base_url is not None:
            config_kwargs["base_url"] = base_url

        # durations are numeric, handle separately
        cache_env = env.get("TRONITY_CACHE")
        if cache_env is not None and "cache" not in overrides:
            config_kwargs["cache"] = parse_duration(cache_env)

        timeout_env = env.get("TRONITY_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = parse_duration(timeout_env)

        if "invalidate_cache_on_command" not in overrides:
            config_kwargs["invalidate_cache_on_command"] = _env_bool(
                env.get("TRONITY_INVALIDATE_CACHE_ON_COMMAND"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
