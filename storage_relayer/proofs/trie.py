"""
Merkle-Patricia trie proof verification.

A proof is the list of RLP-encoded trie nodes on the path from the root
towards a key, root first. Nodes whose encoding is shorter than 32 bytes are
embedded in their parent instead of being referenced by hash, so a walk can
visit more nodes than the proof contains.

Verification is all-or-nothing: ``verify_proof`` either returns or raises
ProofVerificationError. There is no partial result.
"""

from typing import List, Optional, Sequence, Tuple, Union

import rlp
from eth_utils import keccak
from rlp.exceptions import DecodingError

from storage_relayer.shared.constants import TrieConstants
from storage_relayer.shared.exceptions import ProofVerificationError

Nibbles = Tuple[int, ...]
Reference = Union[bytes, list]


# =============================================================================
# PATH ENCODING
# =============================================================================


def bytes_to_nibbles(data: bytes) -> Nibbles:
    """Split each byte into its high and low nibble."""
    nibbles: List[int] = []
    for byte in data:
        nibbles.append(byte >> 4)
        nibbles.append(byte & 0x0F)
    return tuple(nibbles)


def nibbles_to_bytes(nibbles: Sequence[int]) -> bytes:
    if len(nibbles) % 2:
        raise ValueError("Nibble sequence must have even length")
    return bytes(
        (nibbles[i] << 4) | nibbles[i + 1] for i in range(0, len(nibbles), 2)
    )


def nibbles_to_compact(nibbles: Sequence[int], is_leaf: bool) -> bytes:
    """Hex-prefix encode a partial path (the first item of a 2-item node)."""
    flag = 2 if is_leaf else 0
    if len(nibbles) % 2:
        prefixed = [flag + 1, *nibbles]
    else:
        prefixed = [flag, 0, *nibbles]
    return nibbles_to_bytes(prefixed)


def compact_to_nibbles(encoded: bytes) -> Tuple[Nibbles, bool]:
    """Decode a hex-prefix partial path into (nibbles, is_leaf)."""
    if not encoded:
        raise ProofVerificationError("Node path is empty")

    flag = encoded[0] >> 4
    if flag > 3:
        raise ProofVerificationError(f"Invalid node path flag {flag}")

    nibbles = bytes_to_nibbles(encoded)
    if flag & 1:
        path = nibbles[1:]
    else:
        if nibbles[1] != 0:
            raise ProofVerificationError("Invalid node path padding")
        path = nibbles[2:]
    return path, flag >= 2


# =============================================================================
# PROOF WALK
# =============================================================================


def _decode_node(raw: bytes, index: int) -> list:
    try:
        node = rlp.decode(raw, strict=True)
    except DecodingError as e:
        raise ProofVerificationError(
            f"Proof node {index} is not valid RLP: {e}"
        ) from e
    if not isinstance(node, list):
        raise ProofVerificationError(f"Proof node {index} is not a list")
    return node


def _as_bytes(item: Reference, what: str) -> bytes:
    if not isinstance(item, bytes):
        raise ProofVerificationError(f"{what} must be a byte string")
    return item


def _resolve(
    reference: Reference, proof: Sequence[bytes], consumed: int
) -> Tuple[Optional[list], int]:
    """Turn a child reference into a decoded node, consuming a proof element for hashes."""
    if isinstance(reference, list):
        return reference, consumed
    if reference == b"":
        return None, consumed
    if len(reference) != TrieConstants.HASH_LENGTH:
        raise ProofVerificationError(
            f"Invalid child reference of {len(reference)} bytes"
        )
    if consumed >= len(proof):
        raise ProofVerificationError(
            f"Proof ended before node 0x{reference.hex()}"
        )

    raw = proof[consumed]
    if keccak(raw) != reference:
        raise ProofVerificationError(
            f"Proof node {consumed} does not match hash 0x{reference.hex()}"
        )
    return _decode_node(raw, consumed), consumed + 1


def walk_proof(
    root: bytes, key: bytes, proof: Sequence[bytes]
) -> Optional[bytes]:
    """
    Follow ``key`` from ``root`` through the proof nodes.

    Returns the value stored under the key, or None when the proof shows the
    key is absent. Raises ProofVerificationError when the proof is broken:
    a node that does not hash to its reference, a malformed node, a missing
    node, or proof elements left over after the walk ends.
    """
    root = bytes(root)
    nodes = [bytes(node) for node in proof]
    path = bytes_to_nibbles(bytes(key))

    if not nodes:
        if root == TrieConstants.EMPTY_ROOT:
            return None
        raise ProofVerificationError(
            f"Empty proof for non-empty root 0x{root.hex()}"
        )

    reference: Reference = root
    position = 0
    consumed = 0
    value: Optional[bytes]

    while True:
        node, consumed = _resolve(reference, nodes, consumed)
        if node is None:
            value = None
            break

        if len(node) == TrieConstants.BRANCH_NODE_LENGTH:
            if position == len(path):
                value = _as_bytes(node[16], "Branch value") or None
                break
            reference = node[path[position]]
            position += 1

        elif len(node) == TrieConstants.SHORT_NODE_LENGTH:
            partial, is_leaf = compact_to_nibbles(
                _as_bytes(node[0], "Node path")
            )
            remaining = path[position:]
            if is_leaf:
                # A leaf for a different key proves absence
                value = (
                    _as_bytes(node[1], "Leaf value")
                    if remaining == partial
                    else None
                )
                break
            if not partial:
                raise ProofVerificationError("Extension node with empty path")
            if remaining[: len(partial)] != partial:
                value = None
                break
            position += len(partial)
            reference = node[1]

        else:
            raise ProofVerificationError(
                f"Node with {len(node)} items is neither branch nor leaf/extension"
            )

    if consumed != len(nodes):
        raise ProofVerificationError(
            f"{len(nodes) - consumed} proof node(s) left after the walk"
        )
    return value


def _describe(value: Optional[bytes]) -> str:
    if value is None:
        return "absent"
    text = value.hex()
    if len(text) > 72:
        text = f"{text[:32]}...{text[-32:]}"
    return f"0x{text}"


def verify_proof(
    root: bytes,
    key: bytes,
    expected_value: Optional[bytes],
    proof: Sequence[bytes],
) -> None:
    """
    Verify that ``proof`` shows ``key -> expected_value`` under ``root``.

    ``expected_value`` of None asks for an exclusion proof. The value is
    compared byte for byte with what the trie stores, so callers pass the
    RLP encoding the trie uses for its values.
    """
    actual = walk_proof(root, key, proof)
    if actual != expected_value:
        raise ProofVerificationError(
            f"Value mismatch: expected {_describe(expected_value)}, "
            f"proof shows {_describe(actual)}"
        )
