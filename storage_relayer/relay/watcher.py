"""
TreeChanged event watcher.

Polls the source chain for newly finalized blocks and scans the contract's
TreeChanged logs over each newly finalized range. The cursor is an explicit
value threaded through every poll; the async generator in
``EventWatcher.events`` is the only place it lives between polls.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError as AbiDecodingError
from hexbytes import HexBytes

from storage_relayer.shared.constants import RelayConstants
from storage_relayer.shared.exceptions import MalformedInputError, TransientChainError
from storage_relayer.shared.logging import get_logger
from storage_relayer.shared.services.web3_service import Web3Service
from storage_relayer.utils.encoding import to_hex

_logger = get_logger(__name__)

TREE_CHANGED_DATA_TYPES = ["bytes32", "bytes32"]


@dataclass(frozen=True)
class TreeChangedEvent:
    """A root change emitted by the source contract."""

    pre_root: bytes
    post_root: bytes
    block_number: int
    transaction_hash: Optional[bytes] = None
    log_index: int = 0

    @property
    def is_noop(self) -> bool:
        return self.pre_root == self.post_root

    @classmethod
    def from_log(cls, log: Dict[str, Any]) -> "TreeChangedEvent":
        """Decode a TreeChanged log entry returned by eth_getLogs."""
        try:
            pre_root, post_root = abi_decode(
                TREE_CHANGED_DATA_TYPES, bytes(HexBytes(log["data"]))
            )
            tx_hash = log.get("transactionHash")
            return cls(
                pre_root=pre_root,
                post_root=post_root,
                block_number=int(log["blockNumber"]),
                transaction_hash=bytes(HexBytes(tx_hash)) if tx_hash else None,
                log_index=int(log.get("logIndex") or 0),
            )
        except (KeyError, TypeError, ValueError, AbiDecodingError) as e:
            raise MalformedInputError(f"Invalid TreeChanged log: {e}") from e

    def __str__(self) -> str:
        return (
            f"TreeChanged(block={self.block_number}, "
            f"pre={to_hex(self.pre_root)}, post={to_hex(self.post_root)})"
        )


@dataclass(frozen=True)
class RelayCursor:
    """The last finalized block whose logs have been scanned."""

    last_block: int

    def advance(self, finalized_block: int) -> "RelayCursor":
        if finalized_block < self.last_block:
            raise ValueError(
                f"Cursor cannot move backwards ({self.last_block} -> "
                f"{finalized_block})"
            )
        return RelayCursor(last_block=finalized_block)


class EventWatcher:
    """
    Produces qualifying TreeChanged events from a live chain.

    Args:
        chain: Chain client used for finalized-block and log queries
        contract_address: Contract emitting TreeChanged
        poll_interval: Seconds to sleep before every poll
        sleep: Awaitable sleep function (replaced in tests)
    """

    def __init__(
        self,
        chain: Web3Service,
        contract_address: str,
        poll_interval: float = RelayConstants.DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.chain = chain
        self.contract_address = contract_address
        self.poll_interval = poll_interval
        self._sleep = sleep
        self.suppressed = 0

    async def wait_tick(self) -> None:
        await self._sleep(self.poll_interval)

    async def start_cursor(self) -> RelayCursor:
        finalized = await self.chain.get_finalized_block_number()
        _logger.info(f"Starting relay from finalized block {finalized}")
        return RelayCursor(last_block=finalized)

    async def poll(
        self, cursor: RelayCursor
    ) -> Tuple[RelayCursor, List[TreeChangedEvent]]:
        """
        Scan the range finalized since ``cursor``.

        The returned cursor is advanced only when both queries succeed; a
        TransientChainError propagates and leaves the caller's cursor as is.
        """
        finalized = await self.chain.get_finalized_block_number()
        if finalized <= cursor.last_block:
            return cursor, []

        from_block = cursor.last_block + 1
        _logger.info(f"Checking for events from blocks {from_block} to {finalized}")
        logs = await self.chain.get_logs(
            self.contract_address,
            from_block,
            finalized,
            topics=[RelayConstants.TREE_CHANGED_TOPIC],
        )
        events = sorted(
            (TreeChangedEvent.from_log(log) for log in logs),
            key=lambda event: (event.block_number, event.log_index),
        )
        return cursor.advance(finalized), events

    async def events(
        self, cursor: Optional[RelayCursor] = None
    ) -> AsyncIterator[TreeChangedEvent]:
        """
        Yield qualifying events forever.

        No-op events (pre root == post root) are logged and dropped. Poll
        failures are logged and the same range is scanned on the next tick.
        """
        if cursor is None:
            cursor = await self.start_cursor()

        while True:
            await self.wait_tick()

            try:
                cursor, events = await self.poll(cursor)
            except TransientChainError as e:
                _logger.error(f"Poll failed, retrying next tick: {e.message}")
                continue

            for event in events:
                if event.is_noop:
                    self.suppressed += 1
                    _logger.info(
                        f"Root unchanged at block {event.block_number}, ignoring"
                    )
                    continue
                _logger.info(f"New {event}")
                yield event
