import base64
import json
import pickle
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Protocol

from sessionstore.errors import SerializationError

TYPE_TAG = "__type__"


class Serializer(Protocol):
    """Protocol for session value encoders."""

    def encode(self, values: Dict[str, Any]) -> bytes:
        """
        Encode the session values.

        Raises:
            SerializationError: If a value cannot be encoded
        """
        ...

    def decode(self, payload: bytes) -> Dict[str, Any]:
        """
        Decode a stored payload; an empty payload yields an empty dict.

        Raises:
            SerializationError: If the payload is not a valid encoding
        """
        ...


class PickleSerializer:
    """
    Pickle based serializer.

    Round-trips any picklable value. Payloads are only ever read back from
    the session backend this process writes to.
    """

    protocol = pickle.HIGHEST_PROTOCOL

    def encode(self, values: Dict[str, Any]) -> bytes:
        try:
            return pickle.dumps(dict(values), protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f"Cannot pickle session values: {e}") from e

    def decode(self, payload: bytes) -> Dict[str, Any]:
        if not payload:
            return {}
        try:
            values = pickle.loads(payload)
        except Exception as e:
            # pickle.loads raises a wide range of errors on corrupt input
            raise SerializationError(f"Cannot unpickle session payload: {e}") from e
        if not isinstance(values, dict):
            raise SerializationError(
                f"Session payload decoded to {type(values).__name__}, expected dict"
            )
        return values


class JSONSerializer:
    """
    Tagged JSON serializer.

    Plain JSON types pass through unchanged; datetime, date, bytes, tuple,
    set and Decimal are written as {"__type__": ..., "value": ...} objects.
    """

    def encode(self, values: Dict[str, Any]) -> bytes:
        try:
            return json.dumps(
                self._tag(dict(values)),
                separators=(",", ":"),
            ).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode session values as JSON: {e}") from e

    def decode(self, payload: bytes) -> Dict[str, Any]:
        if not payload:
            return {}
        try:
            values = json.loads(payload, object_hook=self._untag)
        except (ValueError, KeyError, TypeError, ArithmeticError) as e:
            raise SerializationError(f"Cannot decode JSON session payload: {e}") from e
        if not isinstance(values, dict):
            raise SerializationError(
                f"Session payload decoded to {type(values).__name__}, expected dict"
            )
        return values

    def _tag(self, value: Any) -> Any:
        # datetime before date: datetime is a date subclass
        if isinstance(value, datetime):
            return {TYPE_TAG: "datetime", "value": value.isoformat()}
        if isinstance(value, date):
            return {TYPE_TAG: "date", "value": value.isoformat()}
        if isinstance(value, (bytes, bytearray)):
            return {TYPE_TAG: "bytes", "value": base64.b64encode(bytes(value)).decode("ascii")}
        if isinstance(value, Decimal):
            return {TYPE_TAG: "decimal", "value": str(value)}
        if isinstance(value, tuple):
            return {TYPE_TAG: "tuple", "value": [self._tag(v) for v in value]}
        if isinstance(value, (set, frozenset)):
            return {TYPE_TAG: "set", "value": [self._tag(v) for v in value]}
        if isinstance(value, list):
            return [self._tag(v) for v in value]
        if isinstance(value, dict):
            if TYPE_TAG in value:
                raise ValueError(f"Reserved key {TYPE_TAG!r} in session value")
            for k in value:
                if not isinstance(k, str):
                    # json.dumps would silently turn the key into a string
                    raise TypeError(f"Dict keys must be str, got {type(k).__name__}")
            return {k: self._tag(v) for k, v in value.items()}
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        raise TypeError(f"Unsupported session value type: {type(value).__name__}")

    @staticmethod
    def _untag(obj: Dict[str, Any]) -> Any:
        kind = obj.get(TYPE_TAG)
        if kind is None:
            return obj
        value = obj["value"]
        if kind == "datetime":
            return datetime.fromisoformat(value)
        if kind == "date":
            return date.fromisoformat(value)
        if kind == "bytes":
            return base64.b64decode(value)
        if kind == "decimal":
            return Decimal(value)
        if kind == "tuple":
            return tuple(value)
        if kind == "set":
            return set(value)
        raise ValueError(f"Unknown type tag: {kind!r}")


SERIALIZERS = {
    "pickle": PickleSerializer,
    "json": JSONSerializer,
}


def get_serializer(name: str) -> Serializer:
    """
    Build a registered serializer by name.

    Raises:
        ValueError: If no serializer is registered under the name
    """
    try:
        return SERIALIZERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown serializer: {name}. Available: {sorted(SERIALIZERS)}"
        ) from None
