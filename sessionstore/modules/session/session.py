import logging
from typing import Any, Dict, ItemsView, Optional

from redis.exceptions import RedisError

from sessionstore.config import SessionOptions
from sessionstore.errors import BackendOperationError
from sessionstore.logging_config import mask_session_id
from sessionstore.modules.pool import ConnectionPool
from sessionstore.modules.serializer import Serializer

logger = logging.getLogger(__name__)


class Session:
    """
    One client's session state for the lifetime of one request.

    A Session is owned by the request that loaded or created it and is never
    shared, so it carries no locking. Mutations only touch memory; save()
    reconciles them with Redis and records the cookie to send back.
    """

    def __init__(
        self,
        session_id: str,
        pool: ConnectionPool,
        options: SessionOptions,
        serializer: Serializer,
    ):
        self._session_id = session_id
        self._pool = pool
        self._options = options
        self._serializer = serializer
        self._values: Dict[str, Any] = {}
        self.dirty = False
        self.cleared = False
        # Cookie attributes emitted by the last successful save()
        self.cookie: Optional[Dict[str, Any]] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def storage_key(self) -> str:
        """Redis key holding this session's payload."""
        return f"{self._options.key_prefix}{self._session_id}"

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under key, or default when unset."""
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self.dirty = True

    def delete(self, key: str) -> None:
        """
        Remove key if present.

        The session is marked dirty even when the key was absent; the next
        save() rewrites the whole map rather than deleting a single field.
        """
        self._values.pop(key, None)
        self.dirty = True

    def clear(self) -> None:
        """Drop every value; save() will delete the record from Redis."""
        self._values.clear()
        self.cleared = True

    def items(self) -> ItemsView[str, Any]:
        return self._values.items()

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        if key not in self._values:
            raise KeyError(key)
        self.delete(key)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return (
            f"Session(session_id={self._session_id!r}, keys={sorted(self._values)!r}, "
            f"dirty={self.dirty}, cleared={self.cleared})"
        )

    async def save(self) -> None:
        """
        Reconcile in-memory state with Redis.

        Logic:
        1. Cleared: DEL the record (a missing key is fine), emit the cookie
        2. Dirty and non-empty: SET the encoded map with the TTL, emit the cookie
        3. Otherwise: no I/O and no cookie. A session that was modified but
           ends up empty is not persisted and its stored record is left as is.

        Raises:
            BackendConnectionError: If no connection could be obtained
            BackendOperationError: If DEL or SET failed
            SerializationError: If the values could not be encoded
        """
        if self.cleared:
            await self._delete()
            self._emit_cookie()
            return

        if self.dirty and self._values:
            payload = self._serializer.encode(self._values)
            await self._store(payload)
            self._emit_cookie()

    def apply_cookie(self, response) -> None:
        """Write the emitted cookie onto a Starlette response, if any."""
        if self.cookie is not None:
            response.set_cookie(**self.cookie)

    def _emit_cookie(self) -> None:
        self.cookie = dict(self._options.cookie_attributes(), value=self._session_id)

    async def _execute(self, action: str, *args) -> Any:
        """Run one command on a pooled connection, wrapping Redis failures."""
        try:
            async with self._pool.connection() as conn:
                return await conn.execute(*args)
        except RedisError as e:
            raise BackendOperationError(
                f"Failed to {action} session {mask_session_id(self._session_id)}: {e}"
            ) from e

    async def _store(self, payload: bytes) -> None:
        logger.debug(f"Saving session {mask_session_id(self._session_id)} ({len(payload)} bytes)")
        await self._execute("save", "SET", self.storage_key, payload, "EX", self._options.max_age)

    async def _delete(self) -> None:
        logger.debug(f"Deleting session {mask_session_id(self._session_id)}")
        await self._execute("delete", "DEL", self.storage_key)

    async def _load(self) -> None:
        """
        Populate values from Redis. Called once by SessionManager.load().

        A missing or expired record leaves the session empty.

        Raises:
            BackendConnectionError: If no connection could be obtained
            BackendOperationError: If GET failed
            SerializationError: If the stored payload could not be decoded
        """
        logger.debug(f"Loading session {mask_session_id(self._session_id)}")
        payload = await self._execute("load", "GET", self.storage_key)
        if payload:
            self._values = self._serializer.decode(payload)
