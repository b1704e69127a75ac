import asyncio
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Deque, Optional

from redis.asyncio import Connection
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from sessionstore.config import SessionOptions
from sessionstore.errors import (
    BackendConnectionError,
    PoolClosedError,
    PoolExhaustedError,
)

logger = logging.getLogger(__name__)

# Idle connections borrowed after this many seconds are PINGed first.
LIVENESS_THRESHOLD = 60.0

# Errors after which a connection's stream state is unknown.
TRANSPORT_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class PooledConnection:
    """A physical Redis connection plus the bookkeeping the pool needs."""

    def __init__(self, connection, created_at: float):
        self.connection = connection
        self.created_at = created_at
        self.idle_since = created_at

    async def execute(self, *args: Any) -> Any:
        """
        Send one command and return its reply.

        Replies are raw RESP values (SET gives b"OK", GET gives bytes or None);
        redis-py response callbacks are not applied at this level.
        """
        await self.connection.send_command(*args)
        return await self.connection.read_response()

    async def ping(self) -> None:
        reply = await self.execute("PING")
        if reply not in (b"PONG", "PONG", True):
            raise RedisConnectionError(f"Unexpected PING reply: {reply!r}")

    async def close(self) -> None:
        try:
            await self.connection.disconnect()
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Ignoring error while closing connection: {e}")


class ConnectionPool:
    def __init__(
        self,
        options: SessionOptions,
        connection_factory: Optional[Callable[[], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize connection pool.

        Args:
            options: Session options carrying address, credentials and pool limits
            connection_factory: Callable returning an unconnected connection
                (defaults to redis.asyncio.Connection built from options)
            clock: Monotonic time source in seconds
        """
        self.options = options
        self.max_active = options.max_active
        self.max_idle = options.max_idle
        self.idle_timeout = float(options.idle_timeout)
        self.wait_timeout = options.wait_timeout
        self._connection_factory = connection_factory or self._build_connection
        self._clock = clock

        # Most recently released connection first
        self._idle: Deque[PooledConnection] = deque()
        # Borrowed connections plus slots reserved for in-progress dials
        self._active = 0
        self._closed = False
        self._cond = asyncio.Condition()

    @property
    def active_count(self) -> int:
        """Connections currently borrowed or being dialed."""
        return self._active

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def closed(self) -> bool:
        return self._closed

    def _build_connection(self) -> Connection:
        host, port = self.options.host_port
        # AUTH and SELECT are issued by Connection.connect()
        return Connection(
            host=host,
            port=port,
            db=self.options.db,
            username=self.options.username,
            password=self.options.password,
            socket_timeout=self.options.socket_timeout,
            socket_connect_timeout=self.options.socket_connect_timeout,
        )

    async def _dial(self) -> PooledConnection:
        """
        Open a new physical connection.

        Raises:
            BackendConnectionError: If connect, AUTH or SELECT fails
        """
        connection = self._connection_factory()
        pooled = PooledConnection(connection, self._clock())
        try:
            await connection.connect()
        except (RedisError, OSError) as e:
            await pooled.close()
            raise BackendConnectionError(
                f"Failed to connect to Redis at {self.options.address}: {e}"
            ) from e
        except BaseException:
            await pooled.close()
            raise
        logger.debug(f"Opened Redis connection to {self.options.address} db={self.options.db}")
        return pooled

    def _has_capacity(self) -> bool:
        if self.max_active <= 0:
            return True
        return self._active + len(self._idle) < self.max_active

    def _evict_expired(self) -> list:
        """Detach idle connections past the idle timeout. Caller holds the lock."""
        expired = []
        now = self._clock()
        while self._idle and now - self._idle[-1].idle_since >= self.idle_timeout:
            expired.append(self._idle.pop())
        return expired

    async def acquire(self) -> PooledConnection:
        """
        Borrow a connection.

        Returns:
            A live PooledConnection; must be handed back with release()

        Raises:
            PoolClosedError: If the pool was closed
            PoolExhaustedError: If max_active was reached and no connection
                was released within wait_timeout
            BackendConnectionError: If dialing a new connection failed
        """
        loop = asyncio.get_running_loop()
        deadline = None if self.wait_timeout is None else loop.time() + self.wait_timeout

        while True:
            async with self._cond:
                expired = self._evict_expired()
            for stale in expired:
                logger.debug("Closing idle connection past idle timeout")
                await stale.close()

            async with self._cond:
                candidate = await self._reserve(loop, deadline)

            if candidate is None:
                try:
                    return await self._dial()
                except BaseException:
                    await self._give_back_slot()
                    raise

            if self._clock() - candidate.idle_since < LIVENESS_THRESHOLD:
                return candidate
            try:
                await candidate.ping()
                return candidate
            except (RedisError, OSError) as e:
                logger.warning(f"Discarding idle connection that failed liveness check: {e}")
                await candidate.close()
                await self._give_back_slot()
            except BaseException:
                await candidate.close()
                await self._give_back_slot()
                raise

    async def _reserve(self, loop, deadline):
        """
        Take an idle connection or a slot for dialing. Caller holds the lock.

        Returns:
            An idle connection, or None when a new one must be dialed
        """
        while True:
            if self._closed:
                raise PoolClosedError("Connection pool is closed")

            if self._idle:
                self._active += 1
                return self._idle.popleft()

            if self._has_capacity():
                self._active += 1
                return None

            if deadline is None:
                await self._cond.wait()
                continue
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise PoolExhaustedError(
                    f"No Redis connection available within {self.wait_timeout}s "
                    f"(max_active={self.max_active})"
                )
            try:
                await asyncio.wait_for(self._cond.wait(), remaining)
            except asyncio.TimeoutError:
                raise PoolExhaustedError(
                    f"No Redis connection available within {self.wait_timeout}s "
                    f"(max_active={self.max_active})"
                ) from None

    async def _give_back_slot(self) -> None:
        async with self._cond:
            self._active -= 1
            self._cond.notify_all()

    async def release(self, pooled: PooledConnection, discard: bool = False) -> None:
        """
        Return a borrowed connection.

        Args:
            pooled: Connection obtained from acquire()
            discard: Close the connection instead of keeping it idle
        """
        to_close = []
        async with self._cond:
            self._active -= 1
            if discard or self._closed or self.max_idle <= 0:
                to_close.append(pooled)
            else:
                pooled.idle_since = self._clock()
                self._idle.appendleft(pooled)
                while len(self._idle) > self.max_idle:
                    to_close.append(self._idle.pop())
            self._cond.notify_all()

        for connection in to_close:
            await connection.close()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[PooledConnection]:
        """
        Borrow a connection for one logical operation.

        The connection is released on every exit path; after a transport
        error it is closed instead of reused.
        """
        pooled = await self.acquire()
        discard = False
        try:
            yield pooled
        except TRANSPORT_ERRORS + (asyncio.CancelledError,):
            discard = True
            raise
        finally:
            await self.release(pooled, discard=discard)

    async def close(self) -> None:
        """Close idle connections and refuse further acquires."""
        async with self._cond:
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            self._cond.notify_all()
        for pooled in idle:
            await pooled.close()
        logger.debug(f"Connection pool for {self.options.address} closed")
