"""
Proving backends.

A backend turns a serialized prover input into a proof artifact. Backends are
synchronous and may be CPU heavy; ``Prover`` runs them on a dedicated
single-worker executor so the polling task is never blocked.
"""

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from eth_abi import encode as abi_encode

from storage_relayer.proofs.guest import verify_prover_input
from storage_relayer.proofs.inputs import (
    ProverInput,
    ProverOutput,
    decode_prover_input,
    encode_prover_input,
)
from storage_relayer.proofs.types import ProvingServiceResponse
from storage_relayer.shared.exceptions import MalformedInputError, ProvingBackendError
from storage_relayer.shared.logging import get_logger
from storage_relayer.shared.services.http_client import get_client, proving_timeout
from storage_relayer.utils.encoding import to_bytes, to_hex

_logger = get_logger(__name__)

CALLDATA_TYPES = ["bytes", "bytes"]


@dataclass(frozen=True)
class ProofArtifact:
    """
    What a backend returns.

    Attributes:
        proof: Opaque proof (seal) bytes
        journal: ABI-encoded ProverOutput
        calldata: Destination-ready call arguments
    """

    proof: bytes
    journal: bytes
    calldata: bytes

    @property
    def output(self) -> ProverOutput:
        return ProverOutput.decode(self.journal)


def encode_calldata(seal: bytes, journal: bytes) -> bytes:
    """ABI-encode (bytes seal, bytes journal) for the verifier call."""
    return abi_encode(CALLDATA_TYPES, [seal, journal])


class ProvingBackend(Protocol):
    # Which prover input wire format the backend accepts
    human_readable: bool

    def prove(self, payload: bytes) -> ProofArtifact:
        ...


class HttpProvingBackend:
    """
    Remote proving service taking the JSON prover input.

    ``timeout`` bounds the wait for the proof in seconds; None waits until
    the service answers.
    """

    human_readable = True

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    def prove(self, payload: bytes) -> ProofArtifact:
        client = self._client or get_client()
        try:
            response = client.post(
                self.url,
                content=payload,
                headers={"Content-Type": "application/json"},
                timeout=proving_timeout(self.timeout),
            )
            response.raise_for_status()
            data: ProvingServiceResponse = response.json()
        except httpx.HTTPError as e:
            raise ProvingBackendError(f"Proving service request failed: {e}") from e
        except ValueError as e:
            raise ProvingBackendError(
                f"Proving service returned invalid JSON: {e}"
            ) from e

        try:
            return ProofArtifact(
                proof=to_bytes(data["proof"]),
                journal=to_bytes(data["journal"]),
                calldata=to_bytes(data["calldata"]),
            )
        except (KeyError, TypeError, MalformedInputError) as e:
            raise ProvingBackendError(
                f"Unexpected proving service response: {e}"
            ) from e


class LocalExecutionBackend:
    """
    Execute-only backend for development.

    Runs the guest verification in-process and returns an empty seal, so the
    artifact carries a real journal but no succinct proof.
    """

    human_readable = False

    def prove(self, payload: bytes) -> ProofArtifact:
        try:
            prover_input = decode_prover_input(payload)
        except MalformedInputError as e:
            raise ProvingBackendError(f"Cannot decode prover input: {e}") from e

        result = verify_prover_input(prover_input)
        if not result.success:
            raise ProvingBackendError(
                "Guest rejected input: " + "; ".join(result.get_error_messages())
            )

        journal = result.unwrap().encode()
        seal = b""
        return ProofArtifact(
            proof=seal, journal=journal, calldata=encode_calldata(seal, journal)
        )


class Prover:
    """Dispatches proving to a dedicated worker and awaits the artifact."""

    def __init__(
        self, backend: ProvingBackend, executor: Optional[Executor] = None
    ):
        self.backend = backend
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="prover"
        )

    async def prove(self, prover_input: ProverInput) -> ProofArtifact:
        """
        Prove one input.

        Raises:
            ProvingBackendError: on any backend failure, or when the journal
                does not commit to the input's block
        """
        block_number = prover_input.block_number
        _logger.info(f"Starting proof generation for block {block_number}")

        payload = encode_prover_input(prover_input, self.backend.human_readable)
        loop = asyncio.get_running_loop()
        try:
            artifact = await loop.run_in_executor(
                self._executor, self.backend.prove, payload
            )
        except ProvingBackendError:
            raise
        except Exception as e:
            raise ProvingBackendError(f"Proving failed: {e}") from e

        try:
            output = artifact.output
        except MalformedInputError as e:
            raise ProvingBackendError(str(e)) from e
        if output.block_number != block_number:
            raise ProvingBackendError(
                f"Journal commits to block {output.block_number}, "
                f"expected {block_number}"
            )

        _logger.info(
            f"Proof generated for block {block_number}, value "
            f"{to_hex(output.value.to_bytes(32, 'big'))}"
        )
        return artifact

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
