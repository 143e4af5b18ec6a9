"""Relay module - event watching, proving and publishing."""

from .pipeline import RelayerBuilder, RelayPipeline, RelayStats
from .prover import (
    HttpProvingBackend,
    LocalExecutionBackend,
    ProofArtifact,
    Prover,
)
from .publisher import ProofPublisher, Web3SubmissionClient
from .watcher import EventWatcher, RelayCursor, TreeChangedEvent

__all__ = [
    "EventWatcher",
    "HttpProvingBackend",
    "LocalExecutionBackend",
    "ProofArtifact",
    "ProofPublisher",
    "Prover",
    "RelayCursor",
    "RelayPipeline",
    "RelayStats",
    "RelayerBuilder",
    "TreeChangedEvent",
    "Web3SubmissionClient",
]
