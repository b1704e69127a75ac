import uuid
from typing import Optional

from sessionstore.config import SessionOptions
from sessionstore.modules.pool import ConnectionPool
from sessionstore.modules.serializer import Serializer, get_serializer

from .session import Session


class SessionManager:
    def __init__(
        self,
        options: Optional[SessionOptions] = None,
        pool: Optional[ConnectionPool] = None,
        serializer: Optional[Serializer] = None,
    ):
        """
        Initialize session manager.

        Args:
            options: Session options (defaults applied to every unset field)
            pool: Connection pool (built from options if not provided)
            serializer: Value encoder (looked up by options.serializer if not provided)
        """
        self.options = options or SessionOptions()
        self.pool = pool or ConnectionPool(self.options)
        self.serializer = serializer or get_serializer(self.options.serializer)

    @staticmethod
    def new_session_id() -> str:
        """Issue a random 128-bit session identifier."""
        return str(uuid.uuid4())

    def create(self) -> Session:
        """
        Start a fresh, empty session.

        Redis is not touched until the session is saved.
        """
        return Session(self.new_session_id(), self.pool, self.options, self.serializer)

    async def load(self, session_id: str) -> Session:
        """
        Load the session stored under an existing identifier.

        Args:
            session_id: Identifier presented by the client

        Returns:
            Session populated from Redis, empty if the record is missing or expired

        Raises:
            BackendConnectionError: If no connection could be obtained
            BackendOperationError: If the GET failed
            SerializationError: If the stored payload could not be decoded
        """
        session = Session(session_id, self.pool, self.options, self.serializer)
        await session._load()
        return session

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()
