from storage_relayer.proofs.account import AccountProof, AccountRecord
from storage_relayer.proofs.assembler import ProofAssembler, slot_to_key
from storage_relayer.proofs.guest import verify_prover_input
from storage_relayer.proofs.header import (
    BlockHeader,
    HeaderCodec,
    RlpHeader,
    SealedHeader,
    get_block_info,
)
from storage_relayer.proofs.inputs import (
    ProverInput,
    ProverOutput,
    decode_prover_input,
    encode_prover_input,
)
from storage_relayer.proofs.storage import StorageProof
from storage_relayer.proofs.trie import verify_proof, walk_proof

__all__ = [
    "AccountProof",
    "AccountRecord",
    "BlockHeader",
    "HeaderCodec",
    "ProofAssembler",
    "ProverInput",
    "ProverOutput",
    "RlpHeader",
    "SealedHeader",
    "StorageProof",
    "decode_prover_input",
    "encode_prover_input",
    "get_block_info",
    "slot_to_key",
    "verify_proof",
    "verify_prover_input",
    "walk_proof",
]
