"""
Serializer Module - Black Box Interface

Purpose: Convert a session's value map to and from bytes
Interface: encode(), decode(), get_serializer()
Hidden: Encoding format, type tagging

Replaceable with any encoder that round-trips the values it accepts.
"""

from .serializer import (
    SERIALIZERS,
    JSONSerializer,
    PickleSerializer,
    Serializer,
    get_serializer,
)

__all__ = [
    "SERIALIZERS",
    "JSONSerializer",
    "PickleSerializer",
    "Serializer",
    "get_serializer",
]
