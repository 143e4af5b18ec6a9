"""Byte and integer normalization for values arriving from RPCs and transports"""

from typing import Any, Sequence, Union

from eth_utils import decode_hex
from hexbytes import HexBytes

from storage_relayer.shared.exceptions import MalformedInputError

BytesLike = Union[str, bytes, bytearray, memoryview, Sequence[int]]


def to_bytes(data: BytesLike) -> bytes:
    """
    Normalize a hex string, raw byte buffer or byte-element list to bytes.

    These are the three shapes an encoded value arrives in from a transport.
    """
    if isinstance(data, str):
        try:
            return decode_hex(data)
        except ValueError as e:
            raise MalformedInputError(f"Invalid hex string: {e}") from e
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, (list, tuple)):
        try:
            return bytes(data)
        except (TypeError, ValueError) as e:
            raise MalformedInputError(f"Invalid byte list: {e}") from e
    raise MalformedInputError(
        f"Expected hex string, bytes or byte list, got {type(data).__name__}"
    )


def to_fixed_bytes(data: BytesLike, length: int, name: str = "value") -> bytes:
    """Normalize to bytes and check the length."""
    value = to_bytes(data)
    if len(value) != length:
        raise MalformedInputError(
            f"{name} must be {length} bytes, got {len(value)}"
        )
    return value


def to_int(value: Any, name: str = "value") -> int:
    """Normalize an RPC quantity (int, hex string or big-endian bytes)."""
    if isinstance(value, bool):
        raise MalformedInputError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
        except ValueError as e:
            raise MalformedInputError(f"Invalid {name}: {value!r}") from e
    if isinstance(value, (bytes, bytearray, memoryview)):
        return int.from_bytes(bytes(value), "big")
    raise MalformedInputError(
        f"Invalid {name} of type {type(value).__name__}"
    )


def to_word(value: BytesLike) -> bytes:
    """Left-pad a short big-endian value (e.g. an RPC slot key) to 32 bytes."""
    if isinstance(value, str):
        # Keys may come back unpadded and with odd length ("0x12e")
        try:
            raw = bytes(HexBytes(value))
        except ValueError as e:
            raise MalformedInputError(f"Invalid hex string: {e}") from e
    else:
        raw = to_bytes(value)
    if len(raw) > 32:
        raise MalformedInputError(f"Word longer than 32 bytes: {len(raw)}")
    return raw.rjust(32, b"\x00")


def to_hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def to_quantity(value: int) -> str:
    return hex(value)
