"""
Web3 Service module for reading the source chain.

This module provides a Web3Service class that wraps a synchronous Web3
connection and exposes the handful of queries the relay needs as coroutines.
Blocking RPC calls run in the event loop's default executor so the polling
task stays responsive, and every network/RPC failure surfaces as a
TransientChainError.
"""

import asyncio
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import Web3Exception

from storage_relayer.shared.constants import RelayConstants
from storage_relayer.shared.exceptions import TransientChainError

BlockIdentifier = Union[int, str]


class Web3Service:
    """
    A service class for managing a Web3 connection to one chain.

    Instances are read-only after construction and can be shared by the
    watcher and the proof assembler.
    """

    def __init__(self, rpc_url: str, request_timeout: float = 20.0):
        """
        Initialize the Web3Service.

        Args:
            rpc_url (str): The RPC URL to use.
            request_timeout (float): Per-request HTTP timeout in seconds.
        """
        self.rpc_url = rpc_url
        self.w3 = self._initialize_web3(rpc_url, request_timeout)

    def _initialize_web3(self, rpc_url: str, request_timeout: float) -> Web3:
        """Initialize Web3 instance"""
        return Web3(
            Web3.HTTPProvider(
                rpc_url, request_kwargs={"timeout": request_timeout}
            )
        )

    async def _call(
        self, description: str, fn: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, *args, **kwargs))
        except (Web3Exception, OSError) as e:
            raise TransientChainError(f"{description} failed: {e}") from e

    async def get_block(self, block_identifier: BlockIdentifier) -> Dict[str, Any]:
        """Get block information for a block number or tag"""
        block = await self._call(
            f"get_block({block_identifier})",
            self.w3.eth.get_block,
            block_identifier,
        )
        if block is None:
            raise TransientChainError(f"Block {block_identifier} not found")
        return block

    async def get_finalized_block_number(self) -> int:
        """Get the number of the latest finalized block"""
        block = await self.get_block(RelayConstants.FINALIZED)
        return int(block["number"])

    async def get_block_hash(self, block_number: int) -> bytes:
        """Get the hash this endpoint reports for a block"""
        block = await self.get_block(block_number)
        return bytes(block["hash"])

    async def get_proof(
        self, address: str, slots: Sequence[Union[int, str]], block_number: int
    ) -> Dict[str, Any]:
        """Get an EIP-1186 account and storage proof at a block"""
        return await self._call(
            f"get_proof({address}, block={block_number})",
            self.w3.eth.get_proof,
            to_checksum_address(address),
            list(slots),
            block_number,
        )

    async def get_logs(
        self,
        address: str,
        from_block: int,
        to_block: int,
        topics: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Get event logs emitted by a contract over an inclusive block range"""
        filter_params: Dict[str, Any] = {
            "address": to_checksum_address(address),
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        if topics:
            filter_params["topics"] = topics
        return await self._call(
            f"get_logs({from_block}-{to_block})",
            self.w3.eth.get_logs,
            filter_params,
        )
