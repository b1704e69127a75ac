"""
Pool Module - Black Box Interface

Purpose: Share a bounded set of live Redis connections between requests
Interface: ConnectionPool.acquire(), release(), connection(), close()
Hidden: Dialing (AUTH, SELECT), idle eviction, liveness probing, wait limits

Every backend operation borrows one connection through connection() and
hands it back on every exit path.
"""

from .pool import LIVENESS_THRESHOLD, ConnectionPool, PooledConnection

__all__ = ["LIVENESS_THRESHOLD", "ConnectionPool", "PooledConnection"]
