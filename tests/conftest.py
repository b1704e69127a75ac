"""
Shared pytest fixtures for sessionstore tests.

This module provides common fixtures including:
- FakeRedisServer: in-memory Redis speaking GET / SET EX / DEL / PING
- FakeConnection: stands in for redis.asyncio.Connection
- Pool and manager fixtures wired to the fake server
"""

import asyncio
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import pytest
from redis.exceptions import AuthenticationError, ConnectionError, ResponseError

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sessionstore.config import SessionOptions
from sessionstore.modules.pool import ConnectionPool
from sessionstore.modules.session import SessionManager


# =============================================================================
# Redis Faking Infrastructure
# =============================================================================

class FakeRedisServer:
    """
    In-memory Redis with just enough of the protocol for the session engine.

    Usage:
        def test_something(fake_redis, manager):
            fake_redis.fail("SET", ResponseError("OOM"))
            ...
            assert fake_redis.called("GET")
    """

    def __init__(self, password: Optional[str] = None):
        self.password = password
        self.data: Dict[str, bytes] = {}
        self.ttls: Dict[str, int] = {}
        self.commands: List[Tuple[Any, ...]] = []
        self.connections: List["FakeConnection"] = []
        self.refuse_connections = False
        # When set, connect() waits on this event before dialing
        self.stall_connect: Optional[asyncio.Event] = None
        self._failures: Dict[str, Exception] = {}

    @property
    def dials(self) -> int:
        return len(self.connections)

    def fail(self, command: str, error: Exception) -> "FakeRedisServer":
        """Make every later call of command fail with error."""
        self._failures[command.upper()] = error
        return self

    def recover(self, command: str) -> None:
        self._failures.pop(command.upper(), None)

    def called(self, command: str) -> bool:
        return any(c[0] == command.upper() for c in self.commands)

    def calls(self, command: str) -> List[Tuple[Any, ...]]:
        return [c for c in self.commands if c[0] == command.upper()]

    def execute(self, args: Tuple[Any, ...]) -> Any:
        command = str(args[0]).upper()
        self.commands.append((command,) + tuple(args[1:]))
        if command in self._failures:
            return self._failures[command]

        if command == "PING":
            return b"PONG"
        if command == "GET":
            return self.data.get(args[1])
        if command == "SET":
            key, value = args[1], args[2]
            self.data[key] = value
            if len(args) >= 5 and str(args[3]).upper() == "EX":
                self.ttls[key] = int(args[4])
            return b"OK"
        if command == "DEL":
            removed = 0
            for key in args[1:]:
                if key in self.data:
                    del self.data[key]
                    self.ttls.pop(key, None)
                    removed += 1
            return removed
        return ResponseError(f"unknown command '{command}'")

    def connection_factory(self, options: SessionOptions):
        """Return a factory building connections the way the pool's default does."""
        def factory():
            return FakeConnection(self, password=options.password, db=options.db)
        return factory


class FakeConnection:
    """Minimal stand-in for redis.asyncio.Connection."""

    def __init__(self, server: FakeRedisServer, password: Optional[str] = None, db: int = 0):
        self.server = server
        self.password = password
        self.db = db
        self.connected = False
        self.disconnected = False
        self.broken = False
        # When set, send_command() waits on this event first
        self.stall: Optional[asyncio.Event] = None
        self._replies: List[Any] = []

    async def connect(self):
        self.server.connections.append(self)
        if self.server.stall_connect is not None:
            await self.server.stall_connect.wait()
        if self.server.refuse_connections:
            raise ConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")
        if self.password is not None:
            self.server.commands.append(("AUTH", self.password))
            if self.password != self.server.password:
                raise AuthenticationError("invalid username-password pair or user is disabled.")
        if self.db:
            self.server.commands.append(("SELECT", self.db))
        self.connected = True

    async def send_command(self, *args, **kwargs):
        if self.stall is not None:
            await self.stall.wait()
        if not self.connected or self.broken:
            raise ConnectionError("Connection closed by server.")
        self._replies.append(self.server.execute(args))

    async def read_response(self, **kwargs):
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def disconnect(self, **kwargs):
        self.connected = False
        self.disconnected = True


class FakeClock:
    """Controllable monotonic clock for pool idle bookkeeping."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_redis():
    """In-memory Redis server shared by every connection of a test."""
    return FakeRedisServer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def options():
    """Options with small pool limits so tests hit them quickly."""
    return SessionOptions(
        max_active=4,
        max_idle=2,
        wait_timeout=0.2,
        path="/",
        http_only=True,
    )


@pytest.fixture
def make_pool(fake_redis, clock):
    """Build a pool over the fake server for the given options."""
    def build(opts: SessionOptions) -> ConnectionPool:
        return ConnectionPool(opts, connection_factory=fake_redis.connection_factory(opts), clock=clock)
    return build


@pytest.fixture
def pool(make_pool, options):
    return make_pool(options)


@pytest.fixture
def manager(options, pool):
    return SessionManager(options, pool=pool)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring a live Redis"
    )
