"""
Unit tests for the chain client.
"""

from unittest.mock import MagicMock

import pytest
from hexbytes import HexBytes
from web3.exceptions import Web3Exception

from storage_relayer.shared.exceptions import TransientChainError
from storage_relayer.shared.services.web3_service import Web3Service

CONTRACT = "0xf7134CE138832c1456F2a91D64621eE90c2bddEa"


@pytest.fixture
def service():
    service = Web3Service("http://source.local")
    service.w3 = MagicMock()
    return service


@pytest.mark.asyncio
async def test_finalized_block_number(service):
    service.w3.eth.get_block.return_value = {"number": 21000000}
    assert await service.get_finalized_block_number() == 21000000
    service.w3.eth.get_block.assert_called_once_with("finalized")


@pytest.mark.asyncio
async def test_block_hash(service):
    service.w3.eth.get_block.return_value = {"hash": HexBytes(b"\x01" * 32)}
    assert await service.get_block_hash(5) == b"\x01" * 32


@pytest.mark.asyncio
async def test_missing_block_is_transient(service):
    service.w3.eth.get_block.return_value = None
    with pytest.raises(TransientChainError, match="not found"):
        await service.get_block(5)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error", [Web3Exception("rate limited"), ConnectionError("reset"), TimeoutError()]
)
async def test_rpc_failures_are_transient(service, error):
    service.w3.eth.get_block.side_effect = error
    with pytest.raises(TransientChainError, match="get_block"):
        await service.get_block("finalized")


@pytest.mark.asyncio
async def test_get_proof(service):
    service.w3.eth.get_proof.return_value = {"address": CONTRACT}
    await service.get_proof(CONTRACT.lower(), ["0x" + "00" * 32], 7)
    service.w3.eth.get_proof.assert_called_once_with(
        CONTRACT, ["0x" + "00" * 32], 7
    )


@pytest.mark.asyncio
async def test_get_logs_filter(service):
    service.w3.eth.get_logs.return_value = []
    await service.get_logs(CONTRACT.lower(), 10, 20, topics=["0xabc"])
    service.w3.eth.get_logs.assert_called_once_with(
        {
            "address": CONTRACT,
            "fromBlock": 10,
            "toBlock": 20,
            "topics": ["0xabc"],
        }
    )
