"""
Relay pipeline: watcher -> assembler -> prover -> publisher.

Events are handled strictly one at a time; the next poll does not start
until the current event has been published or has failed.
"""

from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, Dict, Optional

from storage_relayer.proofs.assembler import ProofAssembler
from storage_relayer.proofs.guest import rejection_error, verify_prover_input
from storage_relayer.proofs.inputs import ProverInput
from storage_relayer.relay.prover import (
    HttpProvingBackend,
    LocalExecutionBackend,
    Prover,
    ProvingBackend,
)
from storage_relayer.relay.publisher import ProofPublisher, Web3SubmissionClient
from storage_relayer.relay.watcher import EventWatcher, RelayCursor, TreeChangedEvent
from storage_relayer.shared.config import RelayConfig
from storage_relayer.shared.exceptions import TransientChainError
from storage_relayer.shared.logging import get_logger
from storage_relayer.shared.services.web3_service import Web3Service
from storage_relayer.utils.encoding import to_hex

_logger = get_logger(__name__)


@dataclass
class RelayStats:
    events_seen: int = 0
    events_suppressed: int = 0
    events_rejected: int = 0
    assembly_retries: int = 0
    proofs_published: int = 0
    last_block: Optional[int] = None
    last_tx_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events_seen": self.events_seen,
            "events_suppressed": self.events_suppressed,
            "events_rejected": self.events_rejected,
            "assembly_retries": self.assembly_retries,
            "proofs_published": self.proofs_published,
            "last_block": self.last_block,
            "last_tx_hash": self.last_tx_hash,
        }


class RelayPipeline:
    """
    Drives events through assembly, proving and publishing.

    Args:
        watcher: Source of qualifying TreeChanged events
        assembler: Builds the prover input at an event's block
        prover: Proof generation on a dedicated worker
        publisher: Destination-chain submission
        preflight: Run the guest checks locally before proving
    """

    def __init__(
        self,
        watcher: EventWatcher,
        assembler: ProofAssembler,
        prover: Prover,
        publisher: ProofPublisher,
        preflight: bool = True,
    ):
        self.watcher = watcher
        self.assembler = assembler
        self.prover = prover
        self.publisher = publisher
        self.preflight = preflight
        self.stats = RelayStats()

    async def process_event(self, event: TreeChangedEvent) -> Optional[str]:
        """
        Relay one event and return the transaction id.

        Returns None when the event is skipped (no-op root change, or the
        assembled input fails the pre-flight guest checks). Assembly RPC
        failures hold the event and retry it on the watcher's next tick.

        Raises:
            ProvingBackendError: the prover failed
            PublishError: the submission failed
        """
        self.stats.events_seen += 1
        if event.is_noop:
            self.stats.events_suppressed += 1
            _logger.info(f"Root unchanged at block {event.block_number}, ignoring")
            return None

        _logger.info(f"New root detected: {to_hex(event.post_root)}")
        prover_input = await self._assemble(event)

        if self.preflight:
            result = verify_prover_input(prover_input)
            if not result.success:
                self.stats.events_rejected += 1
                error = rejection_error(result)
                _logger.error(
                    f"Pre-flight {result.errors[0].source} rejected block "
                    f"{event.block_number}: {error}"
                )
                return None

        artifact = await self.prover.prove(prover_input)
        tx_hash = await self.publisher.publish(artifact)

        self.stats.proofs_published += 1
        self.stats.last_block = event.block_number
        self.stats.last_tx_hash = tx_hash
        return tx_hash

    async def _assemble(self, event: TreeChangedEvent) -> ProverInput:
        # The watcher cursor is already past this block; the event is only
        # held here, so it is retried until assembly succeeds.
        while True:
            try:
                return await self.assembler.assemble(event.block_number)
            except TransientChainError as e:
                self.stats.assembly_retries += 1
                _logger.error(
                    f"Assembly failed at block {event.block_number}, "
                    f"retrying next tick: {e.message}"
                )
                await self.watcher.wait_tick()

    async def run(self, cursor: Optional[RelayCursor] = None) -> None:
        """Relay events until a fatal error is raised."""
        try:
            async with aclosing(self.watcher.events(cursor)) as events:
                async for event in events:
                    await self.process_event(event)
        finally:
            self.stats.events_suppressed += self.watcher.suppressed
            self.watcher.suppressed = 0
            _logger.info(f"Relay stopped: {self.stats.to_dict()}")


class RelayerBuilder:
    """Builds a RelayPipeline from a RelayConfig."""

    def __init__(self, config: RelayConfig):
        self.config = config

    def build_backend(self) -> ProvingBackend:
        if self.config.prover_url:
            return HttpProvingBackend(self.config.prover_url)
        _logger.warning(
            "PROVER_URL is not set, using local execution (proofs carry an empty seal)"
        )
        return LocalExecutionBackend()

    def build(self) -> RelayPipeline:
        config = self.config
        config.require_destination()

        chain = Web3Service(config.eth_rpc_url)
        anchor_source = (
            Web3Service(config.anchor_rpc_url) if config.anchor_rpc_url else None
        )
        client = Web3SubmissionClient(
            config.dest_rpc_url,
            config.dest_private_key,
            chain_id=config.dest_chain_id,
        )
        _logger.info(f"Publishing from {client.address} to {config.dest_verifier}")

        return RelayPipeline(
            watcher=EventWatcher(
                chain, config.source_contract, poll_interval=config.poll_interval
            ),
            assembler=ProofAssembler(
                chain,
                config.source_contract,
                config.latest_root_slot,
                anchor_source=anchor_source,
            ),
            prover=Prover(self.build_backend()),
            publisher=ProofPublisher(
                client, config.dest_verifier, config.dest_function
            ),
        )
