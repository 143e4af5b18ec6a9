"""
Exception hierarchy for the storage relayer.

Exception Categories:
- RetryableException: Transient failures that may succeed on retry (RPC, network)
- NonRetryableException: Permanent failures that won't benefit from retry (bad data)
- ConfigurationException: Startup/config errors that prevent operation

Relay exceptions are categorized:
- TransientChainError -> RetryableException (RPC failures while polling or assembling)
- MalformedInputError -> NonRetryableException (undecodable header/proof bytes)
- VerificationError -> NonRetryableException (anchor or trie check rejected the input)
- ProvingBackendError / PublishError -> NonRetryableException (halt the relay)
"""

from enum import Enum


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on retry.

    Use for transient failures like:
    - RPC timeouts
    - Rate limiting
    - Temporary network issues
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from retry.

    Use for permanent failures like:
    - Invalid input data
    - Proofs that do not verify
    - Failures of external collaborators the relay cannot recover from
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing
    - Invalid configuration values (addresses, URLs, slot index)
    """

    pass


class TransientChainError(RetryableException):
    """
    Exception for chain data source failures.

    Raised by the chain client when a block, proof or log query fails at the
    network/RPC level. The watcher retries these on its next poll tick.
    """

    pass


class MalformedInputError(NonRetryableException):
    """
    Exception for decode/deserialize failures.

    Covers header RLP, hex text, trie node bytes, RPC proof responses and
    serialized prover inputs. Nothing is mutated when this is raised.
    """

    pass


class ProofVerificationError(NonRetryableException):
    """A Merkle-Patricia proof walk rejected the proof."""

    pass


class TrieErrorContext(Enum):
    """Which trie level a verification failure happened in."""

    ACCOUNT_ROOT = "account_root"
    STORAGE_ROOT = "storage_root"

    def __str__(self) -> str:
        if self is TrieErrorContext.ACCOUNT_ROOT:
            return "Account state trie"
        return "Storage trie"


class VerificationError(NonRetryableException):
    """Base class for rejections produced by the guest verification checks."""

    pass


class AnchorMismatchError(VerificationError):
    """The header hash disagrees with the independently sourced anchor hash."""

    def __init__(self, expected: bytes, found: bytes):
        super().__init__(
            f"Block hash mismatch (expected 0x{expected.hex()}, "
            f"found 0x{found.hex()})"
        )
        self.expected = expected
        self.found = found


class TrieVerificationError(VerificationError):
    """A trie proof failed, tagged with the trie level it failed in."""

    def __init__(
        self, context: TrieErrorContext, source: ProofVerificationError
    ):
        super().__init__(f"{context} verification failed: {source.message}")
        self.context = context
        self.source = source


class ProvingBackendError(NonRetryableException):
    """
    Exception for proving backend failures.

    The relay treats this as fatal: the process halts and relies on external
    supervision to restart it.
    """

    pass


class PublishError(NonRetryableException):
    """
    Exception for destination-chain submission failures.

    Signing, network and chain-rejection errors are all surfaced as-is; there
    is no internal retry.
    """

    pass
