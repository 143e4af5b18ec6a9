"""Account proofs against the state trie"""

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

import rlp
from eth_utils import keccak, to_checksum_address
from rlp.sedes import Binary, CountableList, List, big_endian_int, binary

from storage_relayer.proofs.storage import STORAGE_PROOF_SEDES, StorageProof
from storage_relayer.proofs.trie import verify_proof
from storage_relayer.proofs.types import RpcAccountProof
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
)

ACCOUNT_PROOF_SEDES = List(
    [
        Binary.fixed_length(20),  # address
        big_endian_int,  # nonce
        big_endian_int,  # balance
        Binary.fixed_length(32),  # storage root
        Binary.fixed_length(32),  # code hash
        CountableList(binary),  # proof
        STORAGE_PROOF_SEDES,
    ]
)


@dataclass(frozen=True)
class AccountRecord:
    """The four-field account value held by the state trie."""

    nonce: int
    balance: int
    storage_root: bytes
    code_hash: bytes

    def __post_init__(self) -> None:
        if len(self.storage_root) != 32 or len(self.code_hash) != 32:
            raise MalformedInputError(
                "Account storage root and code hash must be 32 bytes"
            )
        if self.nonce < 0 or not 0 <= self.balance < 2**256:
            raise MalformedInputError("Account nonce/balance out of range")

    def encode(self) -> bytes:
        """rlp([nonce, balance, storage_root, code_hash])"""
        return rlp.encode(
            [self.nonce, self.balance, self.storage_root, self.code_hash]
        )


@dataclass(frozen=True)
class AccountProof:
    """
    Proof of one account in the state trie plus one of its storage slots.

    Only a single storage slot is carried; multi-slot proofs are not modeled.
    """

    address: bytes
    account: AccountRecord
    proof: Tuple[bytes, ...]
    storage_proof: StorageProof

    def __post_init__(self) -> None:
        if len(self.address) != 20:
            raise MalformedInputError(
                f"Address must be 20 bytes, got {len(self.address)}"
            )

    @property
    def checksum_address(self) -> str:
        return to_checksum_address(self.address)

    @classmethod
    def from_rpc(cls, response: RpcAccountProof) -> "AccountProof":
        """
        Convert an eth_getProof response.

        Only the first ``storageProof`` entry is used.
        """
        try:
            storage_proofs = response["storageProof"]
            if not storage_proofs:
                raise MalformedInputError("Proof response has no storage proof")
            return cls(
                address=to_fixed_bytes(response["address"], 20, "address"),
                account=AccountRecord(
                    nonce=to_int(response["nonce"], "nonce"),
                    balance=to_int(response["balance"], "balance"),
                    storage_root=to_fixed_bytes(
                        response["storageHash"], 32, "storageHash"
                    ),
                    code_hash=to_fixed_bytes(
                        response["codeHash"], 32, "codeHash"
                    ),
                ),
                proof=tuple(to_bytes(node) for node in response["accountProof"]),
                storage_proof=StorageProof.from_rpc(storage_proofs[0]),
            )
        except KeyError as e:
            raise MalformedInputError(
                f"Proof response is missing {e.args[0]}"
            ) from e
        except (TypeError, AttributeError) as e:
            raise MalformedInputError(
                f"Proof response has an invalid shape: {e}"
            ) from e

    def verify(self, state_root: bytes) -> None:
        """
        Verify the account record against a state root.

        The trie key is keccak256(address) and the value is the RLP account
        record. The nested storage proof is not checked here.

        Raises:
            TrieVerificationError: tagged ``TrieErrorContext.ACCOUNT_ROOT``
        """
        try:
            verify_proof(
                state_root,
                keccak(self.address),
                self.account.encode(),
                self.proof,
            )
        except ProofVerificationError as e:
            raise TrieVerificationError(TrieErrorContext.ACCOUNT_ROOT, e) from e

    # Transport forms

    def to_dict(self, human_readable: bool = True) -> Dict[str, Any]:
        if human_readable:
            return {
                "address": self.checksum_address,
                "nonce": to_quantity(self.account.nonce),
                "balance": to_quantity(self.account.balance),
                "storage_hash": to_hex(self.account.storage_root),
                "code_hash": to_hex(self.account.code_hash),
                "proof": [to_hex(node) for node in self.proof],
                "storage_proof": self.storage_proof.to_dict(True),
            }
        return {
            "address": self.address,
            "nonce": self.account.nonce,
            "balance": self.account.balance,
            "storage_hash": self.account.storage_root,
            "code_hash": self.account.code_hash,
            "proof": list(self.proof),
            "storage_proof": self.storage_proof.to_dict(False),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountProof":
        try:
            return cls(
                address=to_fixed_bytes(data["address"], 20, "address"),
                account=AccountRecord(
                    nonce=to_int(data["nonce"], "nonce"),
                    balance=to_int(data["balance"], "balance"),
                    storage_root=to_fixed_bytes(
                        data["storage_hash"], 32, "storage_hash"
                    ),
                    code_hash=to_fixed_bytes(data["code_hash"], 32, "code_hash"),
                ),
                proof=tuple(to_bytes(node) for node in data["proof"]),
                storage_proof=StorageProof.from_dict(data["storage_proof"]),
            )
        except KeyError as e:
            raise MalformedInputError(
                f"Account proof is missing {e.args[0]}"
            ) from e
        except (TypeError, AttributeError) as e:
            raise MalformedInputError(
                f"Account proof has an invalid shape: {e}"
            ) from e

    def to_rlp_items(self) -> list:
        return [
            self.address,
            self.account.nonce,
            self.account.balance,
            self.account.storage_root,
            self.account.code_hash,
            list(self.proof),
            self.storage_proof.to_rlp_items(),
        ]

    @classmethod
    def from_rlp_items(cls, items: Sequence[Any]) -> "AccountProof":
        address, nonce, balance, storage_root, code_hash, proof, storage = items
        return cls(
            address=address,
            account=AccountRecord(nonce, balance, storage_root, code_hash),
            proof=tuple(proof),
            storage_proof=StorageProof.from_rlp_items(storage),
        )
