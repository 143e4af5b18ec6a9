"""Block header codec with a cached RLP encoding"""

import dataclasses
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    Generic,
    Optional,
    Protocol,
    Tuple,
    Type,
    TypeVar,
    Union,
)

import rlp
from eth_utils import keccak
from hexbytes import HexBytes
from rlp.exceptions import DecodingError, DeserializationError, SerializationError
from rlp.sedes import Binary, List, big_endian_int, binary

from storage_relayer.proofs.types import BlockInfo
from storage_relayer.shared.exceptions import MalformedInputError
from storage_relayer.utils.encoding import BytesLike, to_bytes, to_int

hash32 = Binary.fixed_length(32)
address20 = Binary.fixed_length(20)

# (RPC field name, attribute, sedes), in canonical encoding order
HEADER_FIELDS: Tuple[Tuple[str, str, Any], ...] = (
    ("parentHash", "parent_hash", hash32),
    ("sha3Uncles", "ommers_hash", hash32),
    ("miner", "beneficiary", address20),
    ("stateRoot", "state_root", hash32),
    ("transactionsRoot", "transactions_root", hash32),
    ("receiptsRoot", "receipts_root", hash32),
    ("logsBloom", "logs_bloom", Binary.fixed_length(256)),
    ("difficulty", "difficulty", big_endian_int),
    ("number", "number", big_endian_int),
    ("gasLimit", "gas_limit", big_endian_int),
    ("gasUsed", "gas_used", big_endian_int),
    ("timestamp", "timestamp", big_endian_int),
    ("extraData", "extra_data", binary),
    ("mixHash", "mix_hash", hash32),
    ("nonce", "nonce", Binary.fixed_length(8)),
    # Fork-dependent trailing fields
    ("baseFeePerGas", "base_fee_per_gas", big_endian_int),
    ("withdrawalsRoot", "withdrawals_root", hash32),
    ("blobGasUsed", "blob_gas_used", big_endian_int),
    ("excessBlobGas", "excess_blob_gas", big_endian_int),
    ("parentBeaconBlockRoot", "parent_beacon_block_root", hash32),
    ("requestsHash", "requests_hash", hash32),
)

REQUIRED_FIELD_COUNT = 15

H = TypeVar("H", bound="HeaderCodec")


class HeaderCodec(Protocol):
    """Capabilities a header type needs to be wrapped by RlpHeader."""

    def encode(self) -> bytes:
        ...

    @classmethod
    def decode(cls: Type[H], data: bytes) -> H:
        ...

    def replace(self: H, **changes: Any) -> H:
        ...


@dataclass(frozen=True)
class BlockHeader:
    """
    Ethereum execution-layer block header.

    Optional trailing fields are encoded only when set and must be set
    contiguously (a fork field implies all earlier fork fields).
    """

    parent_hash: bytes
    ommers_hash: bytes
    beneficiary: bytes
    state_root: bytes
    transactions_root: bytes
    receipts_root: bytes
    logs_bloom: bytes
    difficulty: int
    number: int
    gas_limit: int
    gas_used: int
    timestamp: int
    extra_data: bytes
    mix_hash: bytes
    nonce: bytes
    base_fee_per_gas: Optional[int] = None
    withdrawals_root: Optional[bytes] = None
    blob_gas_used: Optional[int] = None
    excess_blob_gas: Optional[int] = None
    parent_beacon_block_root: Optional[bytes] = None
    requests_hash: Optional[bytes] = None

    def __post_init__(self) -> None:
        values = self._field_values()
        for (_, attr, _), value in zip(
            HEADER_FIELDS[:REQUIRED_FIELD_COUNT], values
        ):
            if value is None:
                raise MalformedInputError(f"Header field {attr} is required")
        present = self._present_count()
        if any(value is not None for value in values[present:]):
            raise MalformedInputError(
                "Header fork fields must be set contiguously"
            )

    def _field_values(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, attr) for _, attr, _ in HEADER_FIELDS)

    def _present_count(self) -> int:
        count = 0
        for value in self._field_values():
            if value is None:
                break
            count += 1
        return count

    def encode(self) -> bytes:
        """Canonical RLP encoding of the header."""
        count = self._present_count()
        sedes = List([s for _, _, s in HEADER_FIELDS[:count]])
        try:
            return rlp.encode(list(self._field_values()[:count]), sedes=sedes)
        except SerializationError as e:
            raise MalformedInputError(f"Cannot encode header: {e}") from e

    @classmethod
    def decode(cls, data: bytes) -> "BlockHeader":
        """Decode a canonical RLP header; trailing bytes are rejected."""
        try:
            items = rlp.decode(data, strict=True)
        except DecodingError as e:
            raise MalformedInputError(f"Invalid header RLP: {e}") from e

        if not isinstance(items, list) or not (
            REQUIRED_FIELD_COUNT <= len(items) <= len(HEADER_FIELDS)
        ):
            raise MalformedInputError(
                "Header RLP must be a list of "
                f"{REQUIRED_FIELD_COUNT}-{len(HEADER_FIELDS)} items"
            )

        fields = HEADER_FIELDS[: len(items)]
        try:
            values = List([s for _, _, s in fields]).deserialize(items)
        except DeserializationError as e:
            raise MalformedInputError(f"Invalid header field: {e}") from e

        return cls(**{attr: value for (_, attr, _), value in zip(fields, values)})

    def replace(self, **changes: Any) -> "BlockHeader":
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_block(cls, block: Dict[str, Any]) -> "BlockHeader":
        """Build a header from an RPC block (web3 AttributeDict or raw JSON)."""
        values: Dict[str, Any] = {}
        for index, (key, attr, sedes) in enumerate(HEADER_FIELDS):
            value = block.get(key)
            if value is None:
                if index < REQUIRED_FIELD_COUNT:
                    raise MalformedInputError(f"Block is missing {key}")
                continue
            values[attr] = _coerce(value, sedes, key)
        return cls(**values)


def _coerce(value: Any, sedes: Any, key: str) -> Union[int, bytes]:
    if sedes is big_endian_int:
        return to_int(value, key)
    try:
        return bytes(HexBytes(value))
    except (TypeError, ValueError) as e:
        raise MalformedInputError(f"Invalid {key}: {e}") from e


class RlpHeader(Generic[H]):
    """
    A header wrapper that caches its RLP encoding.

    The cache is filled when the header is deserialized from transport and
    is reused for hashing. Any field change made through ``update`` and any
    ``seal`` drop the cache so it can never disagree with the fields.
    """

    def __init__(self, inner: H, rlp_bytes: Optional[bytes] = None):
        self._inner = inner
        self._rlp = rlp_bytes

    def __getattr__(self, name: str) -> Any:
        # Field access falls through to the wrapped header
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._inner, name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RlpHeader):
            return NotImplemented
        return self._inner == other._inner

    def __repr__(self) -> str:
        cached = "cached" if self._rlp is not None else "uncached"
        return f"RlpHeader({self._inner!r}, {cached})"

    @property
    def inner(self) -> H:
        return self._inner

    @property
    def cached_rlp(self) -> Optional[bytes]:
        return self._rlp

    def update(self, **changes: Any) -> None:
        """Change header fields, invalidating the cached encoding."""
        self._inner = self._inner.replace(**changes)
        self._rlp = None

    def encode(self) -> bytes:
        if self._rlp is not None:
            return self._rlp
        return self._inner.encode()

    def hash_slow(self) -> bytes:
        """keccak256 of the RLP header, using the cached encoding when present."""
        return keccak(self.encode())

    def seal(self, block_hash: bytes) -> "SealedHeader[H]":
        """Attach an externally supplied hash without checking it."""
        self._rlp = None
        return SealedHeader(header=self, block_hash=bytes(block_hash))

    def seal_slow(self) -> "SealedHeader[H]":
        return self.seal(self.hash_slow())

    def serialize(self, human_readable: bool = True) -> Union[str, bytes]:
        """
        Transport form of the header.

        - Human-readable formats: 0x-prefixed hex of the RLP encoding
        - Binary formats: raw RLP bytes
        """
        encoded = self._inner.encode()
        if human_readable:
            return "0x" + encoded.hex()
        return encoded

    @classmethod
    def deserialize(
        cls,
        data: BytesLike,
        header_type: Type[H],
    ) -> "RlpHeader[H]":
        raw = to_bytes(data)
        inner = header_type.decode(raw)
        return cls(inner, raw)


@dataclass(frozen=True)
class SealedHeader(Generic[H]):
    """A header paired with a hash that was not recomputed."""

    header: RlpHeader[H]
    block_hash: bytes

    def unseal(self) -> RlpHeader[H]:
        return self.header


def get_block_info(block: Dict[str, Any]) -> BlockInfo:
    """Get block info -> block number, block hash, block timestamp, rlp encoded block header"""
    header = RlpHeader(BlockHeader.from_block(block))
    encoded_header = header.encode()

    return {
        "block_number": header.number,
        "block_hash": "0x" + bytes(HexBytes(block["hash"])).hex(),
        "computed_hash": "0x" + header.hash_slow().hex(),
        "block_timestamp": header.timestamp,
        "rlp_block_header": "0x" + encoded_header.hex(),
    }
