"""
Unit tests for prover input and output wire formats.
"""

import json

import pytest
from eth_abi import encode as abi_encode

from storage_relayer.proofs.inputs import (
    ProverInput,
    ProverOutput,
    decode_prover_input,
    encode_prover_input,
)
from storage_relayer.shared.exceptions import MalformedInputError


class TestProverInputCodec:
    def test_json_shape(self, chain_state):
        prover_input = chain_state.prover_input()
        payload = json.loads(encode_prover_input(prover_input, True))
        assert payload["header"] == "0x" + chain_state.header.encode().hex()
        assert payload["anchor_hash"] == "0x" + chain_state.block_hash.hex()
        assert payload["account_proof"]["address"] == chain_state.rpc_proof["address"]

    @pytest.mark.parametrize("human_readable", [True, False])
    def test_round_trip(self, chain_state, human_readable):
        prover_input = chain_state.prover_input()
        payload = encode_prover_input(prover_input, human_readable)
        decoded = decode_prover_input(payload)

        assert decoded == prover_input
        # Decoding fills the header cache with the transported bytes
        assert decoded.header.cached_rlp == chain_state.header.encode()
        assert decoded.header.hash_slow() == chain_state.block_hash

    def test_decode_accepts_text(self, chain_state):
        payload = encode_prover_input(chain_state.prover_input(), True)
        assert decode_prover_input(payload.decode()).block_number == (
            chain_state.header.number
        )

    def test_missing_field(self, chain_state):
        data = chain_state.prover_input().to_dict()
        del data["anchor_hash"]
        with pytest.raises(MalformedInputError, match="anchor_hash"):
            ProverInput.from_dict(data)

    @pytest.mark.parametrize(
        "payload",
        [b"{not json", b"[1, 2]", b"\xc2\x01", b""],
    )
    def test_malformed_payloads(self, payload):
        with pytest.raises(MalformedInputError):
            decode_prover_input(payload)

    @pytest.mark.parametrize(
        "path, value",
        [
            (("account_proof",), "oops"),
            (("account_proof",), None),
            (("account_proof", "proof"), 5),
            (("account_proof", "storage_proof"), ["key"]),
            (("account_proof", "storage_proof", "proof"), 7),
        ],
    )
    def test_wrongly_typed_fields(self, chain_state, path, value):
        data = json.loads(encode_prover_input(chain_state.prover_input(), True))
        target = data
        for key in path[:-1]:
            target = target[key]
        target[path[-1]] = value

        with pytest.raises(MalformedInputError):
            decode_prover_input(json.dumps(data))

    def test_anchor_must_be_32_bytes(self, chain_state):
        with pytest.raises(MalformedInputError):
            chain_state.prover_input(anchor_hash=b"\x01" * 20)


class TestProverOutput:
    def test_journal_layout(self):
        output = ProverOutput(block_number=21000000, value=7)
        assert output.encode() == abi_encode(
            ["uint64", "uint256"], [21000000, 7]
        )
        assert ProverOutput.decode(output.encode()) == output

    def test_decode_rejects_short_journal(self):
        with pytest.raises(MalformedInputError):
            ProverOutput.decode(b"\x00" * 10)

    def test_to_dict(self):
        output = ProverOutput(block_number=5, value=255)
        assert output.to_dict() == {
            "block_number": 5,
            "value": "0x" + "00" * 31 + "ff",
        }
