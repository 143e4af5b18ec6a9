"""
The verification sequence run inside the proving backend.

1. Anchor check: keccak(header) must equal the trusted anchor hash
2. Account check: the account proof must verify against header.state_root
3. Storage check: the slot proof must verify against the storage root of
   the account record that step 2 verified
4. Commit: the output is (block number, slot value)

The sequence is linear and total: it always returns a Result, and a failed
Result never carries output.
"""

from typing import Any, Dict

from storage_relayer.proofs.inputs import ProverInput, ProverOutput
from storage_relayer.shared.exceptions import (
    AnchorMismatchError,
    MalformedInputError,
    VerificationError,
)
from storage_relayer.shared.results import ErrorSeverity, Result
from storage_relayer.utils.encoding import to_hex


def _reject(
    step: str, error: Exception, context: Dict[str, Any]
) -> Result[ProverOutput]:
    return Result.fail_with_message(
        source=step,
        message=str(error),
        severity=ErrorSeverity.ERROR,
        context=context,
        exception=error,
    )


def verify_prover_input(prover_input: ProverInput) -> Result[ProverOutput]:
    """Run the anchor, account and storage checks and commit the output."""
    header = prover_input.header
    account_proof = prover_input.account_proof
    storage_proof = account_proof.storage_proof
    context = {
        "block": header.number,
        "account": account_proof.checksum_address,
        "slot": to_hex(storage_proof.key),
    }

    try:
        found = header.hash_slow()
    except MalformedInputError as e:
        return _reject("anchor_check", e, context)
    if found != prover_input.anchor_hash:
        return _reject(
            "anchor_check",
            AnchorMismatchError(expected=prover_input.anchor_hash, found=found),
            context,
        )

    try:
        account_proof.verify(header.state_root)
    except VerificationError as e:
        return _reject("account_check", e, context)

    # The storage root comes from the record verified above, never from input
    verified_storage_root = account_proof.account.storage_root
    try:
        storage_proof.verify(verified_storage_root)
    except VerificationError as e:
        return _reject("storage_check", e, context)

    return Result.ok(
        ProverOutput(block_number=header.number, value=storage_proof.value)
    )


def rejection_error(result: Result[ProverOutput]) -> Exception:
    """The exception behind a rejected verification result."""
    error = result.errors[0]
    if error.exception is not None:
        return error.exception
    return VerificationError(error.message)
