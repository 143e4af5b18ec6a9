"""
Pytest configuration and shared fixtures.

Trie fixtures are built with py-trie's HexaryTrie so every proof in the
tests is a real Merkle-Patricia proof.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import rlp
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes
from trie import HexaryTrie

from storage_relayer.proofs.account import AccountProof
from storage_relayer.proofs.header import HEADER_FIELDS, BlockHeader, RlpHeader
from storage_relayer.proofs.inputs import ProverInput
from storage_relayer.shared.constants import TrieConstants

CONTRACT = "0xf7134CE138832c1456F2a91D64621eE90c2bddEa"
OTHER_ACCOUNTS = [
    "0x0000000000000000000000000000000000000001",
    "0x00000000219ab540356cBB839Cbe05303d7705Fa",
    "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "0xdAC17F958D2ee523a2206206994597C13D831ec7",
]
LATEST_ROOT_SLOT = 302
BLOCK_NUMBER = 21000000


def encode_proof(nodes) -> List[bytes]:
    # py-trie also lists embedded (< 32 byte) nodes as proof elements
    encoded = [rlp.encode(node) for node in nodes]
    return [node for node in encoded if len(node) >= 32]


def slot_key(slot: int) -> bytes:
    return slot.to_bytes(32, "big")


def make_header(state_root: bytes, number: int = BLOCK_NUMBER, **changes) -> BlockHeader:
    fields = dict(
        parent_hash=b"\x01" * 32,
        ommers_hash=keccak(rlp.encode([])),
        beneficiary=b"\x02" * 20,
        state_root=state_root,
        transactions_root=TrieConstants.EMPTY_ROOT,
        receipts_root=TrieConstants.EMPTY_ROOT,
        logs_bloom=b"\x00" * 256,
        difficulty=0,
        number=number,
        gas_limit=30_000_000,
        gas_used=12_345_678,
        timestamp=1_730_000_000,
        extra_data=b"storage-relayer",
        mix_hash=b"\x03" * 32,
        nonce=b"\x00" * 8,
        base_fee_per_gas=7_000_000_000,
        withdrawals_root=TrieConstants.EMPTY_ROOT,
        blob_gas_used=0,
        excess_blob_gas=131072,
        parent_beacon_block_root=b"\x04" * 32,
    )
    fields.update(changes)
    return BlockHeader(**fields)


def header_to_rpc_block(header: BlockHeader) -> Dict[str, Any]:
    """The block as web3 returns it (HexBytes and ints)."""
    block: Dict[str, Any] = {}
    for key, attr, _ in HEADER_FIELDS:
        value = getattr(header, attr)
        if value is None:
            continue
        block[key] = HexBytes(value) if isinstance(value, bytes) else value
    block["miner"] = to_checksum_address(header.beneficiary)
    block["hash"] = HexBytes(keccak(header.encode()))
    return block


@dataclass
class ChainState:
    """A state trie holding the contract account and its storage."""

    header: BlockHeader
    block_hash: bytes
    account_proof: AccountProof
    rpc_proof: Dict[str, Any]
    rpc_block: Dict[str, Any]
    storage_trie: HexaryTrie
    state_trie: HexaryTrie

    def prover_input(self, anchor_hash: Optional[bytes] = None) -> ProverInput:
        return ProverInput(
            header=RlpHeader(self.header),
            anchor_hash=anchor_hash or self.block_hash,
            account_proof=self.account_proof,
        )


def build_chain_state(
    value: int = 0x2A7C3B1E9D,
    slot: int = LATEST_ROOT_SLOT,
    number: int = BLOCK_NUMBER,
    nonce: int = 1,
    balance: int = 0,
) -> ChainState:
    storage = HexaryTrie(db={})
    for other_slot in range(8):
        storage[keccak(slot_key(other_slot))] = rlp.encode(1000 + other_slot)
    if value:
        storage[keccak(slot_key(slot))] = rlp.encode(value)
    storage_proof_nodes = encode_proof(storage.get_proof(keccak(slot_key(slot))))

    code_hash = keccak(b"\x60\x80\x60\x40")
    state = HexaryTrie(db={})
    for index, address in enumerate(OTHER_ACCOUNTS):
        state[keccak(HexBytes(address))] = rlp.encode(
            [index, 10**18 * (index + 1), TrieConstants.EMPTY_ROOT, TrieConstants.EMPTY_CODE_HASH]
        )
    address = bytes(HexBytes(CONTRACT))
    state[keccak(address)] = rlp.encode(
        [nonce, balance, storage.root_hash, code_hash]
    )
    account_proof_nodes = encode_proof(state.get_proof(keccak(address)))

    rpc_proof = {
        "address": CONTRACT,
        "balance": balance,
        "codeHash": HexBytes(code_hash),
        "nonce": nonce,
        "storageHash": HexBytes(storage.root_hash),
        "accountProof": [HexBytes(node) for node in account_proof_nodes],
        "storageProof": [
            {
                "key": HexBytes(slot_key(slot)),
                "value": value,
                "proof": [HexBytes(node) for node in storage_proof_nodes],
            }
        ],
    }
    header = make_header(state.root_hash, number=number)
    return ChainState(
        header=header,
        block_hash=keccak(header.encode()),
        account_proof=AccountProof.from_rpc(rpc_proof),
        rpc_proof=rpc_proof,
        rpc_block=header_to_rpc_block(header),
        storage_trie=storage,
        state_trie=state,
    )


@pytest.fixture
def chain_state() -> ChainState:
    return build_chain_state()


@pytest.fixture
def make_chain_state() -> Callable[..., ChainState]:
    return build_chain_state


@pytest.fixture
def sample_header() -> BlockHeader:
    return make_header(b"\x05" * 32)


@pytest.fixture
def mock_web3_service(chain_state):
    """Mock Web3Service for unit tests, serving ``chain_state``."""
    service = MagicMock()
    service.get_block = AsyncMock(return_value=chain_state.rpc_block)
    service.get_block_hash = AsyncMock(return_value=chain_state.block_hash)
    service.get_proof = AsyncMock(return_value=chain_state.rpc_proof)
    service.get_finalized_block_number = AsyncMock(return_value=BLOCK_NUMBER)
    service.get_logs = AsyncMock(return_value=[])
    return service
