"""Publishing proofs to the destination verifier contract"""

import asyncio
from functools import partial
from typing import Any, Dict, Optional, Protocol

from eth_utils import function_signature_to_4byte_selector, to_checksum_address
from web3 import Web3
from web3.exceptions import Web3Exception

from storage_relayer.relay.prover import ProofArtifact
from storage_relayer.shared.constants import RelayConstants
from storage_relayer.shared.exceptions import PublishError
from storage_relayer.shared.logging import get_logger
from storage_relayer.utils.encoding import to_hex

_logger = get_logger(__name__)


class SubmissionClient(Protocol):
    async def submit(self, to: str, selector: bytes, calldata: bytes) -> str:
        ...


class Web3SubmissionClient:
    """
    Signs and sends destination-chain transactions with a local key.

    The key is held by the eth-account object only and never logged.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        chain_id: Optional[int] = None,
        request_timeout: float = 30.0,
    ):
        self.w3 = Web3(
            Web3.HTTPProvider(
                rpc_url, request_kwargs={"timeout": request_timeout}
            )
        )
        self.account = self.w3.eth.account.from_key(private_key)
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        return self.account.address

    def _build_transaction(self, to: str, data: bytes) -> Dict[str, Any]:
        tx: Dict[str, Any] = {
            "from": self.account.address,
            "to": to_checksum_address(to),
            "data": data,
            "value": 0,
            "nonce": self.w3.eth.get_transaction_count(
                self.account.address, "pending"
            ),
            "chainId": self.chain_id or self.w3.eth.chain_id,
        }
        tx["gas"] = self.w3.eth.estimate_gas(tx)

        base_fee = self.w3.eth.get_block("latest").get("baseFeePerGas")
        if base_fee is None:
            tx["gasPrice"] = self.w3.eth.gas_price
        else:
            priority_fee = self.w3.eth.max_priority_fee
            tx["maxPriorityFeePerGas"] = priority_fee
            tx["maxFeePerGas"] = 2 * base_fee + priority_fee
        return tx

    def _send(self, to: str, data: bytes) -> str:
        tx = self._build_transaction(to, data)
        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return to_hex(bytes(tx_hash))

    async def submit(self, to: str, selector: bytes, calldata: bytes) -> str:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, partial(self._send, to, selector + calldata)
            )
        except (Web3Exception, OSError, ValueError) as e:
            raise PublishError(f"Transaction submission failed: {e}") from e


class ProofPublisher:
    """
    Calls the verifier function with a proof artifact's calldata.

    Failures are surfaced as PublishError; nothing is retried here.
    """

    def __init__(
        self,
        client: SubmissionClient,
        verifier_address: str,
        function_signature: str = RelayConstants.DEFAULT_VERIFIER_FUNCTION,
    ):
        self.client = client
        self.verifier_address = to_checksum_address(verifier_address)
        self.function_signature = function_signature
        self.selector = function_signature_to_4byte_selector(function_signature)

    async def publish(self, artifact: ProofArtifact) -> str:
        try:
            tx_hash = await self.client.submit(
                self.verifier_address, self.selector, artifact.calldata
            )
        except PublishError:
            raise
        except Exception as e:
            raise PublishError(f"Publishing failed: {e}") from e

        _logger.info(
            f"Proof published to {self.verifier_address} "
            f"({self.function_signature}): {tx_hash}"
        )
        return tx_hash
