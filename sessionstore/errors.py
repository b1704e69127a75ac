"""Error taxonomy for the session engine."""


class SessionError(Exception):
    """Base class for recoverable session engine errors."""


class BackendConnectionError(SessionError):
    """Dialing, authenticating or selecting the database failed."""


class PoolExhaustedError(BackendConnectionError):
    """No connection became available within the pool's wait timeout."""


class PoolClosedError(BackendConnectionError):
    """The pool was closed before the connection was requested."""


class BackendOperationError(SessionError):
    """A GET, SET or DEL failed on an established connection."""


class SerializationError(SessionError):
    """The session values could not be encoded or decoded."""


class SessionNotBoundError(RuntimeError):
    """
    The session was requested outside a request handled by the middleware.

    This is a programming error and is intentionally not a SessionError.
    """
