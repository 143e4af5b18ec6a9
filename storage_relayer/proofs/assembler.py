"""Prover input assembly from the source chain"""

from typing import Optional

from storage_relayer.proofs.account import AccountProof
from storage_relayer.proofs.header import BlockHeader, RlpHeader
from storage_relayer.proofs.inputs import ProverInput
from storage_relayer.shared.exceptions import ConfigurationException
from storage_relayer.shared.logging import get_logger
from storage_relayer.shared.retry import RPC_RETRY_CONFIG, RetryConfig
from storage_relayer.shared.services.web3_service import Web3Service
from storage_relayer.utils.encoding import to_hex

_logger = get_logger(__name__)


def slot_to_key(slot: int) -> bytes:
    """
    Convert a storage slot index to its 32-byte big-endian key.

    Args:
        slot (int): The storage slot index.

    Returns:
        bytes: The unhashed slot key.
    """
    if not 0 <= slot < 2**256:
        raise ConfigurationException(f"Slot out of range: {slot}")
    return slot.to_bytes(32, "big")


class ProofAssembler:
    """
    Builds the prover input for one block.

    The header and the account/storage proof come from the primary chain
    client. The anchor hash comes from the anchor client when one is set so
    the header and its anchor are not trusted from the same endpoint.
    """

    def __init__(
        self,
        chain: Web3Service,
        contract_address: str,
        slot: int,
        anchor_source: Optional[Web3Service] = None,
        retry_config: RetryConfig = RPC_RETRY_CONFIG,
    ):
        self.chain = chain
        self.contract_address = contract_address
        self.slot = slot
        self.slot_key = slot_to_key(slot)
        self.anchor_source = anchor_source
        self.retry_config = retry_config

    async def fetch_header(self, block_number: int) -> RlpHeader[BlockHeader]:
        block = await self.retry_config.run(
            self.chain.get_block, block_number, operation_name="get_block"
        )
        return RlpHeader(BlockHeader.from_block(block))

    async def fetch_anchor(self, block_number: int) -> bytes:
        if self.anchor_source is None:
            _logger.warning(
                f"No anchor RPC configured, block {block_number} hash is "
                "taken from the primary RPC"
            )
            source = self.chain
        else:
            source = self.anchor_source
        return await self.retry_config.run(
            source.get_block_hash, block_number, operation_name="get_block_hash"
        )

    async def fetch_account_proof(self, block_number: int) -> AccountProof:
        response = await self.retry_config.run(
            self.chain.get_proof,
            self.contract_address,
            [to_hex(self.slot_key)],
            block_number,
            operation_name="get_proof",
        )
        return AccountProof.from_rpc(response)

    async def assemble(self, block_number: int) -> ProverInput:
        """
        Assemble a prover input at a block.

        Raises:
            TransientChainError: when the RPCs keep failing after retries
            MalformedInputError: when a response cannot be converted
        """
        header = await self.fetch_header(block_number)
        anchor_hash = await self.fetch_anchor(block_number)
        account_proof = await self.fetch_account_proof(block_number)

        _logger.debug(
            f"Assembled input for block {block_number}: "
            f"{len(account_proof.proof)} account nodes, "
            f"{len(account_proof.storage_proof.proof)} storage nodes"
        )
        return ProverInput(
            header=header,
            anchor_hash=anchor_hash,
            account_proof=account_proof,
        )
