"""
Unit tests for the command line interface.
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storage_relayer.cli import build_parser, main
from storage_relayer.proofs.inputs import encode_prover_input
from storage_relayer.shared.config import RelayConfig
from storage_relayer.shared.exceptions import (
    ConfigurationException,
    ProvingBackendError,
)
from storage_relayer.shared.logging import get_logger, set_level
from tests.conftest import BLOCK_NUMBER, CONTRACT


@pytest.fixture
def config():
    return RelayConfig(eth_rpc_url="http://source.local", source_contract=CONTRACT)


def test_parser_subcommands():
    parser = build_parser()
    args = parser.parse_args(["prove-slot", "--block-number", "5", "--slot", "3"])
    assert args.block_number == 5
    assert args.slot == 3
    args = parser.parse_args(["relay", "--poll-interval", "1.5"])
    assert args.poll_interval == 1.5


@pytest.mark.parametrize("human_readable", [True, False])
def test_verify_input_accepts_both_formats(tmp_path, chain_state, human_readable):
    path = tmp_path / "input.bin"
    path.write_bytes(encode_prover_input(chain_state.prover_input(), human_readable))
    main(["verify-input", "--input", str(path)])


def test_verify_input_json_output(tmp_path, chain_state, capsys):
    path = tmp_path / "input.json"
    path.write_bytes(encode_prover_input(chain_state.prover_input(), True))
    main(["verify-input", "--input", str(path), "--json"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is True
    assert payload["output"]["block_number"] == BLOCK_NUMBER


def test_verify_input_rejection_exits(tmp_path, chain_state):
    path = tmp_path / "input.json"
    path.write_bytes(
        encode_prover_input(chain_state.prover_input(anchor_hash=b"\x01" * 32), True)
    )
    with pytest.raises(SystemExit) as exc_info:
        main(["verify-input", "--input", str(path)])
    assert exc_info.value.code == 1


def test_malformed_input_exits(tmp_path):
    path = tmp_path / "input.json"
    path.write_text('{"header": "0x00"}')
    with pytest.raises(SystemExit) as exc_info:
        main(["verify-input", "--input", str(path)])
    assert exc_info.value.code == 1


def test_wrongly_typed_input_exits(tmp_path, chain_state):
    data = json.loads(encode_prover_input(chain_state.prover_input(), True))
    data["account_proof"] = "oops"
    path = tmp_path / "input.json"
    path.write_text(json.dumps(data))
    with pytest.raises(SystemExit) as exc_info:
        main(["verify-input", "--input", str(path)])
    assert exc_info.value.code == 1


def test_missing_input_file_exits(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        main(["verify-input", "--input", str(tmp_path / "missing.json")])
    assert exc_info.value.code == 2


def test_relay_releases_prover_and_http_client(config):
    pipeline = MagicMock()
    pipeline.run = AsyncMock(side_effect=ProvingBackendError("oom"))
    with patch(
        "storage_relayer.cli.RelayConfig.from_env", return_value=config
    ), patch(
        "storage_relayer.cli.RelayerBuilder"
    ) as builder, patch("storage_relayer.cli.close_client") as close_client:
        builder.return_value.build.return_value = pipeline
        with pytest.raises(SystemExit) as exc_info:
            main(["relay"])

    assert exc_info.value.code == 1
    pipeline.prover.shutdown.assert_called_once()
    close_client.assert_called_once()


def test_log_level_flag(tmp_path, chain_state):
    path = tmp_path / "input.json"
    path.write_bytes(encode_prover_input(chain_state.prover_input(), True))
    try:
        main(["--log-level", "debug", "verify-input", "--input", str(path)])
        assert get_logger().level == logging.DEBUG
    finally:
        set_level("INFO")


def test_configuration_error_exits(monkeypatch):
    with patch(
        "storage_relayer.cli.RelayConfig.from_env",
        side_effect=ConfigurationException("ETH_RPC_URL is not set"),
    ):
        with pytest.raises(SystemExit) as exc_info:
            main(["block-info", "--block-number", "5"])
    assert exc_info.value.code == 2


def test_prove_slot(tmp_path, config, mock_web3_service, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with patch(
        "storage_relayer.cli.RelayConfig.from_env", return_value=config
    ), patch("storage_relayer.cli.Web3Service", return_value=mock_web3_service):
        main(
            [
                "prove-slot",
                "--block-number",
                str(BLOCK_NUMBER),
                "--output",
                "input.json",
            ]
        )

    saved = json.loads((tmp_path / "output" / "input.json").read_text())
    assert saved["anchor_hash"].startswith("0x")
    mock_web3_service.get_proof.assert_awaited_once()


def test_block_info(tmp_path, config, mock_web3_service, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    with patch(
        "storage_relayer.cli.RelayConfig.from_env", return_value=config
    ), patch("storage_relayer.cli.Web3Service", return_value=mock_web3_service):
        main(["block-info", "--block-number", str(BLOCK_NUMBER)])

    assert str(BLOCK_NUMBER) in capsys.readouterr().out
