"""Storage Relayer - prove a contract storage slot at a finalized block and relay it."""

__version__ = "0.1.0"

from .proofs import ProofAssembler, ProverInput, ProverOutput, verify_prover_input
from .relay import RelayPipeline, RelayerBuilder

__all__ = [
    "ProofAssembler",
    "ProverInput",
    "ProverOutput",
    "RelayPipeline",
    "RelayerBuilder",
    "verify_prover_input",
]
