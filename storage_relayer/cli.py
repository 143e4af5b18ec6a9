#!/usr/bin/env python3
"""
Unified CLI for the storage relayer.

Examples:
  - Run the relay (settings from the environment / .env)
    storage-relayer relay [--poll-interval 12] [--prover-url http://...]

  - Inspect a block header
    storage-relayer block-info --block-number 21000000

  - Assemble and check a prover input without proving
    storage-relayer prove-slot --block-number 21000000 [--slot 302] [--output input.json]

  - Re-verify a saved prover input
    storage-relayer verify-input --input output/input.json
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from rich.panel import Panel
from rich.table import Table

from storage_relayer.commands.validation import (
    validate_block_number,
    validate_eth_address,
    validate_slot,
)
from storage_relayer.proofs import (
    ProofAssembler,
    ProverInput,
    decode_prover_input,
    get_block_info,
    verify_prover_input,
)
from storage_relayer.relay import RelayerBuilder
from storage_relayer.shared.config import RelayConfig
from storage_relayer.shared.exceptions import (
    ConfigurationException,
    NonRetryableException,
    RetryableException,
)
from storage_relayer.shared.logging import set_level
from storage_relayer.shared.results import Result
from storage_relayer.shared.services.http_client import close_client
from storage_relayer.shared.services.web3_service import Web3Service
from storage_relayer.utils.formatters import (
    console,
    format_address,
    save_json_output,
)


def _load_config(args: argparse.Namespace) -> RelayConfig:
    return RelayConfig.from_env().with_overrides(
        source_contract=getattr(args, "contract", None),
        latest_root_slot=getattr(args, "slot", None),
        poll_interval=getattr(args, "poll_interval", None),
        prover_url=getattr(args, "prover_url", None),
    )


def _print_verification(prover_input: ProverInput, result: Result) -> None:
    table = Table(title=f"Block {prover_input.block_number}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    account = prover_input.account_proof
    table.add_row("Account", account.checksum_address)
    table.add_row("Anchor hash", "0x" + prover_input.anchor_hash.hex())
    table.add_row("State root", "0x" + prover_input.header.state_root.hex())
    table.add_row("Storage root", "0x" + account.account.storage_root.hex())
    table.add_row("Slot", "0x" + account.storage_proof.key.hex())
    console.print(table)

    if result.success:
        output = result.unwrap()
        console.print(
            f"[green]✓ Verified[/green] block {output.block_number}, value "
            f"{output.to_dict()['value']}"
        )
    else:
        for error in result.errors:
            console.print(f"[red]✗ {error.source}:[/red] {error.message}")


def cmd_relay(args: argparse.Namespace) -> None:
    config = _load_config(args)
    console.print(Panel("Storage Relayer", style="bold magenta"))
    console.print(f"Config: {config!r}")

    pipeline = RelayerBuilder(config).build()
    try:
        asyncio.run(pipeline.run())
    finally:
        pipeline.prover.shutdown()
        close_client()


def cmd_block_info(args: argparse.Namespace) -> None:
    block_number = validate_block_number(args.block_number)
    config = _load_config(args)

    async def run():
        return await Web3Service(config.eth_rpc_url).get_block(block_number)

    info = get_block_info(asyncio.run(run()))
    console.print("[cyan]Block Info:[/cyan]")
    console.print(f'Block Number: {info["block_number"]}')
    console.print(f'Block Hash: {info["block_hash"]}')
    console.print(f'Computed Hash: {info["computed_hash"]}')
    console.print(f'Block Timestamp: {info["block_timestamp"]}')
    console.print("[cyan]RLP Block Header:[/cyan]")
    console.print(f'[green]{info["rlp_block_header"]}[/green]')

    if info["block_hash"] != info["computed_hash"]:
        console.print(
            "[yellow]Warning:[/yellow] header does not hash to the reported "
            "block hash"
        )
    if args.output:
        save_json_output(dict(info), args.output)


def cmd_prove_slot(args: argparse.Namespace) -> None:
    block_number = validate_block_number(args.block_number)
    if args.contract:
        validate_eth_address(args.contract, "contract")
    if args.slot is not None:
        validate_slot(args.slot)
    config = _load_config(args)

    chain = Web3Service(config.eth_rpc_url)
    anchor = (
        Web3Service(config.anchor_rpc_url) if config.anchor_rpc_url else None
    )
    assembler = ProofAssembler(
        chain,
        config.source_contract,
        config.latest_root_slot,
        anchor_source=anchor,
    )
    console.print(
        f"Assembling proof of slot {config.latest_root_slot} of "
        f"{format_address(config.source_contract)} at block {block_number}"
    )

    prover_input = asyncio.run(assembler.assemble(block_number))
    result = verify_prover_input(prover_input)
    _print_verification(prover_input, result)

    if args.output:
        save_json_output(prover_input.to_dict(human_readable=True), args.output)
    if not result.success:
        sys.exit(1)


def cmd_verify_input(args: argparse.Namespace) -> None:
    with open(args.input, "rb") as f:
        prover_input = decode_prover_input(f.read())

    result = verify_prover_input(prover_input)
    if args.json:
        payload = {
            "success": result.success,
            "output": result.data.to_dict() if result.success else None,
            "errors": [error.to_dict() for error in result.errors],
        }
        console.print_json(json.dumps(payload))
    else:
        _print_verification(prover_input, result)

    if not result.success:
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storage-relayer",
        description="Prove a contract storage slot and relay it to a verifier",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Log level (default: RELAY_LOG_LEVEL or INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # relay
    p_relay = sub.add_parser("relay", help="Watch, prove and publish")
    p_relay.add_argument("--contract", type=str, help="Source contract")
    p_relay.add_argument("--slot", type=int, help="Storage slot index")
    p_relay.add_argument("--poll-interval", type=float)
    p_relay.add_argument("--prover-url", type=str)
    p_relay.set_defaults(func=cmd_relay)

    # block-info
    p_block = sub.add_parser("block-info", help="Get block header info")
    p_block.add_argument("--block-number", type=int, required=True)
    p_block.add_argument("--output", type=str, help="Output filename")
    p_block.set_defaults(func=cmd_block_info)

    # prove-slot
    p_prove = sub.add_parser(
        "prove-slot",
        help="Assemble a prover input and run the verification locally",
    )
    p_prove.add_argument("--block-number", type=int, required=True)
    p_prove.add_argument("--contract", type=str, help="Source contract")
    p_prove.add_argument("--slot", type=int, help="Storage slot index")
    p_prove.add_argument("--output", type=str, help="Output filename")
    p_prove.set_defaults(func=cmd_prove_slot)

    # verify-input
    p_verify = sub.add_parser(
        "verify-input", help="Re-verify a saved prover input"
    )
    p_verify.add_argument("--input", type=str, required=True)
    p_verify.add_argument("--json", action="store_true", help="Output JSON")
    p_verify.set_defaults(func=cmd_verify_input)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        set_level(args.log_level)
    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
    except (ValueError, ConfigurationException, OSError) as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        sys.exit(2)
    except (RetryableException, NonRetryableException) as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
