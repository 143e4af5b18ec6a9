"""
Unit tests for byte and quantity normalization.
"""

import pytest
from hexbytes import HexBytes

from storage_relayer.shared.exceptions import MalformedInputError
from storage_relayer.utils.encoding import (
    to_bytes,
    to_fixed_bytes,
    to_hex,
    to_int,
    to_quantity,
    to_word,
)


@pytest.mark.parametrize(
    "value",
    ["0xdeadbeef", "deadbeef", b"\xde\xad\xbe\xef", HexBytes("0xdeadbeef"), [0xDE, 0xAD, 0xBE, 0xEF]],
)
def test_to_bytes_shapes(value):
    assert to_bytes(value) == b"\xde\xad\xbe\xef"


@pytest.mark.parametrize("value", ["0xzz", [256], 12, None])
def test_to_bytes_rejects(value):
    with pytest.raises(MalformedInputError):
        to_bytes(value)


def test_to_fixed_bytes():
    assert to_fixed_bytes("0x" + "00" * 20, 20) == b"\x00" * 20
    with pytest.raises(MalformedInputError, match="anchor must be 32 bytes"):
        to_fixed_bytes("0x01", 32, "anchor")


@pytest.mark.parametrize(
    "value,expected",
    [(5, 5), ("0x1f", 31), ("42", 42), (b"\x01\x00", 256), (b"", 0)],
)
def test_to_int(value, expected):
    assert to_int(value) == expected


@pytest.mark.parametrize("value", [True, "0xgg", 1.5])
def test_to_int_rejects(value):
    with pytest.raises(MalformedInputError):
        to_int(value)


def test_to_word_pads():
    assert to_word("0x12e") == b"\x00" * 30 + b"\x01\x2e"
    assert to_word(b"\x01") == b"\x00" * 31 + b"\x01"
    with pytest.raises(MalformedInputError):
        to_word(b"\x01" * 33)


def test_hex_helpers():
    assert to_hex(b"\x00\xff") == "0x00ff"
    assert to_quantity(255) == "0xff"
