"""Opaque, text-safe encoding of a metadata uri.

A token is ``base64(bincode(Option<String>))``: a one byte option tag
(0 = None, 1 = Some), then for Some a little-endian u64 byte length and
the UTF-8 bytes. Standard base64 alphabet with padding.
"""
import base64
import binascii
import struct
from typing import Optional

_LENGTH = struct.Struct("<Q")


class UriTokenError(ValueError):
    """Token is not valid base64 or not a serialized optional string"""


def serialize_optional_string(value: Optional[str]) -> bytes:
    if value is None:
        return b"\x00"
    raw = value.encode("utf-8")
    return b"\x01" + _LENGTH.pack(len(raw)) + raw


def deserialize_optional_string(data: bytes) -> Optional[str]:
    if not data:
        raise UriTokenError("empty payload")
    tag = data[0]
    if tag == 0:
        body = data[1:]
        if body:
            raise UriTokenError(f"{len(body)} trailing bytes after None")
        return None
    if tag != 1:
        raise UriTokenError(f"invalid option tag {tag}")
    if len(data) < 1 + _LENGTH.size:
        raise UriTokenError("truncated length prefix")
    (length,) = _LENGTH.unpack_from(data, 1)
    raw = data[1 + _LENGTH.size:]
    if len(raw) != length:
        raise UriTokenError(f"declared length {length} but {len(raw)} bytes follow")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise UriTokenError(f"string is not valid UTF-8: {e}") from e


def encode_uri_token(uri: Optional[str]) -> str:
    return base64.b64encode(serialize_optional_string(uri)).decode("ascii")


def decode_uri_token(token: str) -> Optional[str]:
    try:
        data = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UriTokenError(f"token is not valid base64: {e}") from e
    return deserialize_optional_string(data)
