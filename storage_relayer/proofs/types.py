"""
Type definitions for RPC and transport shapes used by the proofs package.
"""

from typing import List, TypedDict, Union

HexLike = Union[str, bytes]


# =============================================================================
# RPC PROOF TYPES (EIP-1186)
# =============================================================================


class RpcStorageProof(TypedDict):
    """One entry of ``storageProof`` in an eth_getProof response."""

    key: HexLike  # Slot key, possibly without left padding
    value: Union[int, HexLike]  # Slot value
    proof: List[HexLike]  # Storage trie nodes, root first


class RpcAccountProof(TypedDict):
    """An eth_getProof response."""

    address: str
    balance: Union[int, str]
    codeHash: HexLike
    nonce: Union[int, str]
    storageHash: HexLike
    accountProof: List[HexLike]  # State trie nodes, root first
    storageProof: List[RpcStorageProof]


# =============================================================================
# BLOCK TYPES
# =============================================================================


class BlockInfo(TypedDict):
    """Ethereum block information for proof verification."""

    block_number: int  # Block number
    block_hash: str  # Block hash reported by the RPC (hex string)
    computed_hash: str  # keccak256 of the re-encoded header (hex string)
    block_timestamp: int  # Block timestamp
    rlp_block_header: str  # RLP encoded block header


# =============================================================================
# PROVING BACKEND TYPES
# =============================================================================


class ProvingServiceResponse(TypedDict):
    """JSON body returned by a remote proving service."""

    proof: str  # Opaque seal (hex)
    journal: str  # Public output (hex)
    calldata: str  # Destination-ready calldata (hex)
