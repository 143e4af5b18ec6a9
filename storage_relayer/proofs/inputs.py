"""
Prover input and output, and their wire formats.

The prover input travels to the proving backend in one of two shapes:
- human-readable: JSON with the header as hex RLP text
- binary: a single RLP list with the header as raw RLP bytes

The output ("journal") is the ABI encoding of (uint64 block_number,
uint256 value), the only data the proof discloses.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Union

import rlp
from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError as AbiDecodingError
from rlp.exceptions import DecodingError, DeserializationError, SerializationError
from rlp.sedes import Binary, List, binary

from storage_relayer.proofs.account import ACCOUNT_PROOF_SEDES, AccountProof
from storage_relayer.proofs.header import BlockHeader, RlpHeader
from storage_relayer.shared.exceptions import MalformedInputError
from storage_relayer.utils.encoding import to_fixed_bytes, to_hex

PROVER_INPUT_SEDES = List(
    [binary, Binary.fixed_length(32), ACCOUNT_PROOF_SEDES]
)

JOURNAL_TYPES = ["uint64", "uint256"]


@dataclass(frozen=True)
class ProverInput:
    """
    Everything the guest verification needs for one relay cycle.

    Attributes:
        header: The block header at the event's block
        anchor_hash: Independently sourced hash of that block
        account_proof: Account proof carrying the single slot proof
    """

    header: RlpHeader[BlockHeader]
    anchor_hash: bytes
    account_proof: AccountProof

    def __post_init__(self) -> None:
        if len(self.anchor_hash) != 32:
            raise MalformedInputError("Anchor hash must be 32 bytes")

    @property
    def block_number(self) -> int:
        return self.header.number

    def to_dict(self, human_readable: bool = True) -> Dict[str, Any]:
        return {
            "header": self.header.serialize(human_readable),
            "anchor_hash": (
                to_hex(self.anchor_hash) if human_readable else self.anchor_hash
            ),
            "account_proof": self.account_proof.to_dict(human_readable),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProverInput":
        try:
            return cls(
                header=RlpHeader.deserialize(data["header"], BlockHeader),
                anchor_hash=to_fixed_bytes(
                    data["anchor_hash"], 32, "anchor_hash"
                ),
                account_proof=AccountProof.from_dict(data["account_proof"]),
            )
        except KeyError as e:
            raise MalformedInputError(
                f"Prover input is missing {e.args[0]}"
            ) from e
        except (TypeError, AttributeError) as e:
            raise MalformedInputError(
                f"Prover input has an invalid shape: {e}"
            ) from e


def encode_prover_input(
    prover_input: ProverInput, human_readable: bool = True
) -> bytes:
    """Serialize a prover input as JSON text or as RLP bytes."""
    if human_readable:
        return json.dumps(prover_input.to_dict(True)).encode()

    items = [
        prover_input.header.serialize(False),
        prover_input.anchor_hash,
        prover_input.account_proof.to_rlp_items(),
    ]
    try:
        return rlp.encode(items, sedes=PROVER_INPUT_SEDES)
    except SerializationError as e:
        raise MalformedInputError(f"Cannot encode prover input: {e}") from e


def decode_prover_input(payload: Union[bytes, str]) -> ProverInput:
    """
    Deserialize either wire shape.

    A payload starting with ``{`` is JSON; anything else is RLP.
    """
    if isinstance(payload, str):
        payload = payload.encode()

    if payload.lstrip()[:1] == b"{":
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise MalformedInputError(f"Invalid prover input JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedInputError("Prover input JSON must be an object")
        return ProverInput.from_dict(data)

    try:
        header_rlp, anchor_hash, account_items = rlp.decode(
            payload, sedes=PROVER_INPUT_SEDES, strict=True
        )
    except (DecodingError, DeserializationError) as e:
        raise MalformedInputError(f"Invalid prover input RLP: {e}") from e

    return ProverInput(
        header=RlpHeader.deserialize(header_rlp, BlockHeader),
        anchor_hash=anchor_hash,
        account_proof=AccountProof.from_rlp_items(account_items),
    )


@dataclass(frozen=True)
class ProverOutput:
    """The public journal: which block, and the value proven at it."""

    block_number: int
    value: int

    def encode(self) -> bytes:
        return abi_encode(JOURNAL_TYPES, [self.block_number, self.value])

    @classmethod
    def decode(cls, journal: bytes) -> "ProverOutput":
        try:
            block_number, value = abi_decode(JOURNAL_TYPES, bytes(journal))
        except AbiDecodingError as e:
            raise MalformedInputError(f"Invalid journal: {e}") from e
        return cls(block_number=block_number, value=value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "block_number": self.block_number,
            "value": to_hex(self.value.to_bytes(32, "big")),
        }
