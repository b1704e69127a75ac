"""
Session Middleware Module - Black Box Interface

Purpose: Bind a session to every request of a FastAPI / Starlette application
Interface: SessionMiddleware, create_session_middleware(), get_session()
Hidden: Cookie lookup, load-or-create policy, cookie write-back

Register with @app.middleware("http"); handlers reach the session through
get_session(request) or Depends(get_session).
"""

import logging

from fastapi import Request

from sessionstore.errors import SessionError, SessionNotBoundError
from sessionstore.logging_config import mask_session_id
from sessionstore.modules.session import Session, SessionManager

logger = logging.getLogger(__name__)

# Attribute of request.state holding the bound session
SESSION_STATE_KEY = "session"


class SessionMiddleware:
    """
    Per-request session binding.

    Reads the session cookie, loads or creates the session, attaches it to
    request.state and, once the handler returns, writes the cookie emitted by
    session.save() onto the response.
    """

    def __init__(self, manager: SessionManager, log_failures: bool = True):
        """
        Initialize session middleware.

        Args:
            manager: SessionManager that loads and creates sessions
            log_failures: Whether to log load failures before starting a fresh session
        """
        self.manager = manager
        self.cookie_name = manager.options.cookie_name
        self.log_failures = log_failures

    async def resolve(self, request: Request) -> Session:
        """
        Load the session named by the request cookie, or start a new one.

        A failed load is logged and replaced by a fresh session, so an
        unreachable backend looks like a new visitor to the handler.
        """
        session_id = request.cookies.get(self.cookie_name)
        if not session_id:
            return self.manager.create()

        try:
            return await self.manager.load(session_id)
        except SessionError as e:
            if self.log_failures:
                logger.error(
                    f"Failed to load session {mask_session_id(session_id)}, "
                    f"starting a new one ({type(e).__name__}: {e})"
                )
            return self.manager.create()

    async def __call__(self, request: Request, call_next):
        """Process the request with a session bound to request.state."""
        session = await self.resolve(request)
        setattr(request.state, SESSION_STATE_KEY, session)

        response = await call_next(request)
        session.apply_cookie(response)
        return response


def create_session_middleware(manager: SessionManager) -> SessionMiddleware:
    """
    Factory function to create session middleware.

    Args:
        manager: SessionManager instance

    Returns:
        Configured SessionMiddleware instance
    """
    return SessionMiddleware(manager=manager)


def get_session(request: Request) -> Session:
    """
    Return the session bound to this request.

    Raises:
        SessionNotBoundError: If SessionMiddleware did not handle the request
    """
    session = getattr(request.state, SESSION_STATE_KEY, None)
    if session is None:
        raise SessionNotBoundError(
            "No session bound to this request; is SessionMiddleware installed?"
        )
    return session


__all__ = [
    "SESSION_STATE_KEY",
    "SessionMiddleware",
    "create_session_middleware",
    "get_session",
]
