"""
Sessionstore - Cookie Sessions Backed by Redis

Server-side sessions for FastAPI / Starlette applications: an opaque
identifier travels in a cookie, the session's key-value record lives in Redis.

Architecture:
- Each module is self-contained with clear interfaces
- Modules communicate only through defined interfaces

Modules:
- pool: Pooled Redis connections (auth, db select, idle eviction, probing)
- serializer: Value map <-> bytes encoding
- session: Per-request session record and the manager that issues them
- middleware: Request binding for FastAPI / Starlette
"""

from sessionstore.config import SessionOptions
from sessionstore.errors import (
    BackendConnectionError,
    BackendOperationError,
    PoolClosedError,
    PoolExhaustedError,
    SerializationError,
    SessionError,
    SessionNotBoundError,
)
from sessionstore.modules.middleware import (
    SessionMiddleware,
    create_session_middleware,
    get_session,
)
from sessionstore.modules.session import Session, SessionManager

__version__ = "1.0.0"

__all__ = [
    "BackendConnectionError",
    "BackendOperationError",
    "PoolClosedError",
    "PoolExhaustedError",
    "SerializationError",
    "Session",
    "SessionError",
    "SessionManager",
    "SessionMiddleware",
    "SessionNotBoundError",
    "SessionOptions",
    "create_session_middleware",
    "get_session",
]
