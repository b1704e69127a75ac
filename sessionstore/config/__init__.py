"""
Config Module - Black Box Interface

Purpose: Session engine configuration
Interface: SessionOptions, SessionOptions.from_env()
Hidden: Default resolution, environment parsing, validation

Options are immutable and set once at startup; the manager is always fully
configured after construction.
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Tuple

DEFAULT_ADDRESS = "127.0.0.1:6379"
DEFAULT_COOKIE_NAME = "session"
DEFAULT_KEY_PREFIX = "c_session:"
DEFAULT_MAX_AGE = 3600
DEFAULT_IDLE_TIMEOUT = 3600

# Zero or empty values for these fields fall back to the defaults above.
_FALLBACKS = {
    "address": DEFAULT_ADDRESS,
    "cookie_name": DEFAULT_COOKIE_NAME,
    "key_prefix": DEFAULT_KEY_PREFIX,
    "max_age": DEFAULT_MAX_AGE,
    "idle_timeout": DEFAULT_IDLE_TIMEOUT,
}


@dataclass(frozen=True)
class SessionOptions:
    """Redis, pool and cookie settings for the session engine."""

    # Redis settings
    address: str = DEFAULT_ADDRESS
    username: Optional[str] = None
    password: Optional[str] = None
    db: int = 0
    socket_timeout: Optional[float] = None
    socket_connect_timeout: Optional[float] = None

    # Pool settings
    max_active: int = 0
    max_idle: int = 10
    idle_timeout: int = DEFAULT_IDLE_TIMEOUT
    wait_timeout: float = 5.0

    # Session settings
    key_prefix: str = DEFAULT_KEY_PREFIX
    serializer: str = "pickle"

    # Cookie settings
    cookie_name: str = DEFAULT_COOKIE_NAME
    domain: Optional[str] = None
    path: Optional[str] = None
    max_age: int = DEFAULT_MAX_AGE
    secure: bool = False
    http_only: bool = False

    def __post_init__(self):
        for name, default in _FALLBACKS.items():
            if not getattr(self, name):
                object.__setattr__(self, name, default)
        self._validate()

    def _validate(self) -> None:
        """
        Reject settings the pool or Redis cannot honour.

        Raises:
            ValueError: If a size, timeout or address is invalid
        """
        for name in ("max_active", "max_idle", "idle_timeout", "max_age", "db"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")
        for name in ("wait_timeout", "socket_timeout", "socket_connect_timeout"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must not be negative, got {value}")
        # Raises on a malformed address
        self.host_port

    @property
    def host_port(self) -> Tuple[str, int]:
        """Split ``address`` into host and port."""
        host, sep, port = self.address.rpartition(":")
        if not sep:
            return self.address, 6379
        try:
            return host or "127.0.0.1", int(port)
        except ValueError:
            raise ValueError(f"Invalid Redis address: {self.address!r}") from None

    def cookie_attributes(self) -> Dict[str, Any]:
        """Cookie keyword arguments shared by every emitted session cookie."""
        return {
            "key": self.cookie_name,
            "max_age": self.max_age,
            "domain": self.domain or None,
            "path": self.path or None,
            "secure": self.secure,
            "httponly": self.http_only,
        }

    def with_overrides(self, **changes: Any) -> "SessionOptions":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "SessionOptions":
        """
        Load options from environment variables.

        Unset variables keep the dataclass defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            SessionOptions instance
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for field in fields(cls):
            raw = env.get(ENV_VARS[field.name])
            if raw is None or raw == "":
                continue
            values[field.name] = _parse(field.name, raw)
        return cls(**values)


ENV_VARS = {
    "address": "SESSION_REDIS_ADDRESS",
    "username": "SESSION_REDIS_USERNAME",
    "password": "SESSION_REDIS_PASSWORD",
    "db": "SESSION_REDIS_DB",
    "socket_timeout": "SESSION_SOCKET_TIMEOUT",
    "socket_connect_timeout": "SESSION_SOCKET_CONNECT_TIMEOUT",
    "max_active": "SESSION_POOL_MAX_ACTIVE",
    "max_idle": "SESSION_POOL_MAX_IDLE",
    "idle_timeout": "SESSION_POOL_IDLE_TIMEOUT",
    "wait_timeout": "SESSION_POOL_WAIT_TIMEOUT",
    "key_prefix": "SESSION_KEY_PREFIX",
    "serializer": "SESSION_SERIALIZER",
    "cookie_name": "SESSION_COOKIE_NAME",
    "domain": "SESSION_COOKIE_DOMAIN",
    "path": "SESSION_COOKIE_PATH",
    "max_age": "SESSION_MAX_AGE",
    "secure": "SESSION_COOKIE_SECURE",
    "http_only": "SESSION_COOKIE_HTTP_ONLY",
}

_INT_FIELDS = {"db", "max_active", "max_idle", "idle_timeout", "max_age"}
_FLOAT_FIELDS = {"socket_timeout", "socket_connect_timeout", "wait_timeout"}
_BOOL_FIELDS = {"secure", "http_only"}


def _parse(name: str, raw: str) -> Any:
    if name in _BOOL_FIELDS:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    try:
        if name in _INT_FIELDS:
            return int(raw)
        if name in _FLOAT_FIELDS:
            return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_VARS[name]} must be numeric, got {raw!r}") from None
    return raw


__all__ = ["ENV_VARS", "SessionOptions"]
