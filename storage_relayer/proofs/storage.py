"""Storage slot proofs against an account's storage trie"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import rlp
from eth_utils import keccak
from rlp.sedes import Binary, CountableList, List, big_endian_int, binary

from storage_relayer.proofs.trie import verify_proof
from storage_relayer.proofs.types import RpcStorageProof
from storage_relayer.shared.exceptions import (
    MalformedInputError,
    ProofVerificationError,
    TrieErrorContext,
    TrieVerificationError,
)
from storage_relayer.utils.encoding import (
    to_bytes,
    to_fixed_bytes,
    to_hex,
    to_int,
    to_quantity,
    to_word,
)

STORAGE_PROOF_SEDES = List(
    [Binary.fixed_length(32), big_endian_int, CountableList(binary)]
)


@dataclass(frozen=True)
class StorageProof:
    """
    Proof for one storage slot.

    Attributes:
        key: The slot key, 32 bytes big-endian (not hashed)
        value: The 256-bit slot value
        proof: Storage trie nodes, root first
    """

    key: bytes
    value: int
    proof: Tuple[bytes, ...]

    def __post_init__(self) -> None:
        if len(self.key) != 32:
            raise MalformedInputError(
                f"Storage key must be 32 bytes, got {len(self.key)}"
            )
        if not 0 <= self.value < 2**256:
            raise MalformedInputError("Storage value out of uint256 range")

    @classmethod
    def from_rpc(cls, entry: RpcStorageProof) -> "StorageProof":
        """Convert one ``storageProof`` entry of an eth_getProof response."""
        try:
            return cls(
                key=to_word(entry["key"]),
                value=to_int(entry["value"], "storage value"),
                proof=tuple(to_bytes(node) for node in entry["proof"]),
            )
        except KeyError as e:
            raise MalformedInputError(
                f"Storage proof is missing {e.args[0]}"
            ) from e
        except (TypeError, AttributeError) as e:
            raise MalformedInputError(
                f"Storage proof has an invalid shape: {e}"
            ) from e

    def encoded_value(self) -> Optional[bytes]:
        """
        The bytes the storage trie holds for this slot.

        Slots store rlp(value) with leading zero bytes trimmed; a zero slot
        is not stored at all, so it is proven by exclusion.
        """
        if self.value == 0:
            return None
        return rlp.encode(self.value)

    def verify(self, storage_root: bytes) -> None:
        """
        Verify the slot against a storage root.

        Raises:
            TrieVerificationError: tagged ``TrieErrorContext.STORAGE_ROOT``
        """
        try:
            verify_proof(
                storage_root, keccak(self.key), self.encoded_value(), self.proof
            )
        except ProofVerificationError as e:
            raise TrieVerificationError(TrieErrorContext.STORAGE_ROOT, e) from e

    # Transport forms

    def to_dict(self, human_readable: bool = True) -> Dict[str, Any]:
        if human_readable:
            return {
                "key": to_hex(self.key),
                "value": to_quantity(self.value),
                "proof": [to_hex(node) for node in self.proof],
            }
        return {"key": self.key, "value": self.value, "proof": list(self.proof)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageProof":
        try:
            return cls(
                key=to_fixed_bytes(data["key"], 32, "storage key"),
                value=to_int(data["value"], "storage value"),
                proof=tuple(to_bytes(node) for node in data["proof"]),
            )
        except KeyError as e:
            raise MalformedInputError(
                f"Storage proof is missing {e.args[0]}"
            ) from e
        except (TypeError, AttributeError) as e:
            raise MalformedInputError(
                f"Storage proof has an invalid shape: {e}"
            ) from e

    def to_rlp_items(self) -> list:
        return [self.key, self.value, list(self.proof)]

    @classmethod
    def from_rlp_items(cls, items: Sequence[Any]) -> "StorageProof":
        key, value, proof = items
        return cls(key=key, value=value, proof=tuple(proof))
