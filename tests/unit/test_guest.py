"""
Unit tests for the guest verification sequence.
"""

from dataclasses import replace

from storage_relayer.proofs.account import AccountProof, AccountRecord
from storage_relayer.proofs.guest import rejection_error, verify_prover_input
from storage_relayer.proofs.header import RlpHeader
from storage_relayer.proofs.inputs import ProverInput, ProverOutput
from storage_relayer.proofs.storage import StorageProof
from storage_relayer.shared.exceptions import (
    AnchorMismatchError,
    TrieErrorContext,
    TrieVerificationError,
)
from tests.conftest import BLOCK_NUMBER, make_header


def test_valid_input_commits_block_and_value(chain_state):
    result = verify_prover_input(chain_state.prover_input())

    assert result.success is True
    assert result.errors == []
    assert result.data == ProverOutput(block_number=BLOCK_NUMBER, value=0x2A7C3B1E9D)


def test_zero_slot_commits_zero(make_chain_state):
    state = make_chain_state(value=0)
    result = verify_prover_input(state.prover_input())
    assert result.success is True
    assert result.data.value == 0


def test_anchor_mismatch_rejects_without_output(chain_state):
    result = verify_prover_input(chain_state.prover_input(anchor_hash=b"\x99" * 32))

    assert result.success is False
    assert result.data is None
    assert result.errors[0].source == "anchor_check"
    error = rejection_error(result)
    assert isinstance(error, AnchorMismatchError)
    assert error.found == chain_state.block_hash
    assert result.errors[0].context["block"] == BLOCK_NUMBER


def test_cached_header_bytes_are_what_get_hashed(chain_state):
    # A header whose cache disagrees with the anchor must not pass
    other = make_header(chain_state.header.state_root, number=BLOCK_NUMBER + 1)
    header = RlpHeader(chain_state.header, other.encode())
    prover_input = ProverInput(
        header=header,
        anchor_hash=chain_state.block_hash,
        account_proof=chain_state.account_proof,
    )
    result = verify_prover_input(prover_input)
    assert result.errors[0].source == "anchor_check"


def test_account_failure_is_tagged(chain_state):
    # Header anchored correctly but committing to a different state root
    header = make_header(b"\x77" * 32)
    prover_input = ProverInput(
        header=RlpHeader(header),
        anchor_hash=RlpHeader(header).hash_slow(),
        account_proof=chain_state.account_proof,
    )
    result = verify_prover_input(prover_input)

    assert result.success is False
    assert result.data is None
    assert result.errors[0].source == "account_check"
    error = rejection_error(result)
    assert isinstance(error, TrieVerificationError)
    assert error.context is TrieErrorContext.ACCOUNT_ROOT


def test_storage_failure_is_tagged(chain_state):
    proof = chain_state.account_proof
    bad_storage = StorageProof(
        key=proof.storage_proof.key,
        value=proof.storage_proof.value + 1,
        proof=proof.storage_proof.proof,
    )
    prover_input = replace(
        chain_state.prover_input(),
        account_proof=replace(proof, storage_proof=bad_storage),
    )
    result = verify_prover_input(prover_input)

    assert result.success is False
    assert result.errors[0].source == "storage_check"
    assert rejection_error(result).context is TrieErrorContext.STORAGE_ROOT


def test_storage_root_must_come_from_verified_account(chain_state, make_chain_state):
    # Swapping in another storage root breaks the account check first, so a
    # storage proof can never be checked against an unverified root
    other = make_chain_state(value=5)
    proof = chain_state.account_proof
    forged = AccountProof(
        address=proof.address,
        account=AccountRecord(
            nonce=proof.account.nonce,
            balance=proof.account.balance,
            storage_root=other.storage_trie.root_hash,
            code_hash=proof.account.code_hash,
        ),
        proof=proof.proof,
        storage_proof=other.account_proof.storage_proof,
    )
    result = verify_prover_input(
        replace(chain_state.prover_input(), account_proof=forged)
    )

    assert result.success is False
    assert result.errors[0].source == "account_check"
