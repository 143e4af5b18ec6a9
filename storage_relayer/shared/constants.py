"""All constants for the project"""

from eth_utils import keccak


class TrieConstants:
    """Merkle-Patricia trie constants"""

    # keccak256(rlp(b"")): root of a trie with no entries
    EMPTY_ROOT = bytes.fromhex(
        "56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"
    )
    # keccak256(b""): code hash of an account without code
    EMPTY_CODE_HASH = keccak(b"")

    BRANCH_NODE_LENGTH = 17
    SHORT_NODE_LENGTH = 2
    HASH_LENGTH = 32


class RelayConstants:
    """Global class constants for the relay"""

    TREE_CHANGED_SIGNATURE = "TreeChanged(bytes32,bytes32)"
    TREE_CHANGED_TOPIC = "0x" + keccak(text=TREE_CHANGED_SIGNATURE).hex()

    # Storage slot of `latestRoot` in the identity manager contract
    DEFAULT_LATEST_ROOT_SLOT = 302

    # One slot on Ethereum mainnet
    DEFAULT_POLL_INTERVAL = 12.0

    DEFAULT_VERIFIER_FUNCTION = "verifyLatestRootProof(bytes,bytes)"

    FINALIZED = "finalized"
