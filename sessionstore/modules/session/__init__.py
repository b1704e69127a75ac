"""
Session Module - Black Box Interface

Purpose: Manage the per-request session lifecycle
Interface: SessionManager.create(), load(); Session.get(), set(), delete(), clear(), save()
Hidden: Storage keys, TTL refresh, dirty tracking, cookie emission

Sessions are owned by a single request and never shared.
"""

from .manager import SessionManager
from .session import Session

__all__ = ["Session", "SessionManager"]
