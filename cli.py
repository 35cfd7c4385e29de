#!/usr/bin/env python3
"""
TerraLand Deploy: CLI for the TLAND launch pipeline.

Usage:
    tland-deploy store-codes [--artifacts <dir>]
    tland-deploy deploy
    tland-deploy register [--members-dir <dir>] [--role <role> ...]
                          [--group-size <n>] [--batch-size <n>] [--batch-delay-ms <ms>]
    tland-deploy create-pair
    tland-deploy provide-liquidity
    tland-deploy send-tokens
    tland-deploy swap --pool <address> --amount <uusd>
    tland-deploy validate --file <path>
    tland-deploy airdrop-amounts --stakers <path> --output <path>

Examples:
    # Full launch, one stage at a time (testnet config)
    tland-deploy --config config/config.json store-codes
    tland-deploy --config config/config.json deploy
    tland-deploy --config config/config.json register

    # Retry registration for the contracts that were not reached
    tland-deploy register --role pubsale --role airdrop

    # Check a beneficiary list before registering it
    tland-deploy validate --file files/team_members.json

Mnemonics are read from TERRALAND_<ROLE> environment variables (or .env).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tland_deploy import __version__
from tland_deploy import pipeline
from tland_deploy.airdrop import (
    DEFAULT_AIRDROP_POOL,
    MIN_STAKE,
    calculate_airdrop_amounts,
    find_duplicate_addresses,
    parse_stakers,
    sum_amounts,
    write_beneficiaries,
)
from tland_deploy.chain import ChainContext
from tland_deploy.config import DEFAULT_CONFIG_PATH, ROLE_ENV_VARS, Config, load_config
from tland_deploy.errors import TerraLandError
from tland_deploy.manifest import Manifest
from tland_deploy.registrar import (
    BATCH_SIZE,
    GROUP_SIZE,
    BatchResult,
    parse_beneficiaries,
    validate_beneficiaries,
)


BANNER = r"""
  _____                    _                    _
 |_   _|__ _ _ _ _ __ _   | |   __ _ _ _  __| |
   | |/ -_) '_| '_/ _` |  | |__/ _` | ' \/ _` |
   |_|\___|_| |_| \__,_|  |____\__,_|_||_\__,_|
  TLAND launch pipeline
"""


def _print_batch(result: BatchResult) -> None:
    print(f"  ✓ {result.summary()}")


def _context(args: argparse.Namespace) -> tuple[Config, ChainContext, Manifest]:
    config = load_config(args.config)
    print(f"Network: {config.chain_id} ({config.url})")
    return config, ChainContext.from_config(config), Manifest(args.files_dir)


def cmd_store_codes(args: argparse.Namespace) -> int:
    """Upload contract bytecode."""
    _, ctx, manifest = _context(args)
    code_ids = pipeline.store_codes(ctx, manifest, args.artifacts)
    for key, code_id in code_ids.items():
        print(f"  {key}: {code_id}")
    return 0


def cmd_deploy(args: argparse.Namespace) -> int:
    """Instantiate all contracts."""
    config, ctx, manifest = _context(args)
    addresses = pipeline.deploy_contracts(ctx, config, manifest)
    for key, address in addresses.items():
        print(f"  {key}: {address}")
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    """Register beneficiaries with vesting and airdrop contracts."""
    config, ctx, manifest = _context(args)
    results = pipeline.register_all_members(
        ctx, config, manifest,
        members_dir=args.members_dir or args.files_dir,
        roles=args.role,
        group_size=args.group_size,
        batch_size=args.batch_size,
        inter_batch_delay_ms=args.batch_delay_ms,
        on_result=_print_batch,
    )
    total = sum(len(batches) for batches in results.values())
    print(f"\nRegistered members for {len(results)} contracts in {total} transactions")
    return 0


def cmd_create_pair(args: argparse.Namespace) -> int:
    config, ctx, manifest = _context(args)
    pair_address = pipeline.create_pair(ctx, config, manifest)
    print(f"  terraswap_pair_address: {pair_address}")
    return 0


def cmd_provide_liquidity(args: argparse.Namespace) -> int:
    config, ctx, manifest = _context(args)
    result = pipeline.provide_liquidity(ctx, config, manifest)
    print(f"  tx_hash: {getattr(result, 'txhash', '')}")
    return 0


def cmd_send_tokens(args: argparse.Namespace) -> int:
    config, ctx, manifest = _context(args)
    results = pipeline.send_tokens_to_contracts(ctx, config, manifest)
    for result in results:
        print(f"  tx_hash: {getattr(result, 'txhash', '')}")
    return 0


def cmd_swap(args: argparse.Namespace) -> int:
    _, ctx, _ = _context(args)
    result = pipeline.swap(ctx, args.pool, args.amount, role=args.signer)
    print(f"  tx_hash: {getattr(result, 'txhash', '')}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a beneficiary list."""
    try:
        records = parse_beneficiaries(args.file)
    except (OSError, ValueError) as e:
        print(f"Error parsing file: {e}")
        return 1

    print(f"Loaded {len(records)} beneficiaries from {args.file}")

    for address in find_duplicate_addresses(records):
        print(f"  ! repeated: {address}")

    is_valid, errors = validate_beneficiaries(records)
    if not is_valid:
        print(f"\n✗ Found {len(errors)} validation errors:")
        for err in errors:
            print(f"  ✗ {err}")
        return 1

    print(f"\n✓ All {len(records)} beneficiaries are valid")
    print(f"  Total amount: {sum_amounts(records)}")
    return 0


def cmd_airdrop_amounts(args: argparse.Namespace) -> int:
    """Compute airdrop allocations from staker weights."""
    stakers = parse_stakers(args.stakers)
    print(f"Loaded {len(stakers)} stakers from {args.stakers}")

    records = calculate_airdrop_amounts(stakers, total=args.total, minimum=args.minimum)
    write_beneficiaries(records, args.output)

    print(f"  {len(records)} eligible stakers, {sum_amounts(records)} allocated")
    print(f"  Written to {args.output}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="tland-deploy",
        description=BANNER,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"tland-deploy {__version__}"
    )
    parser.add_argument(
        "--config", "-c", default=str(DEFAULT_CONFIG_PATH),
        help=f"Path to config.json. Default: {DEFAULT_CONFIG_PATH}"
    )
    parser.add_argument(
        "--files-dir", default="files",
        help="Directory holding code_ids.json / contract_addresses.json. Default: files"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    store_parser = subparsers.add_parser("store-codes", help="Upload contract wasm")
    store_parser.add_argument(
        "--artifacts", default="artifacts", help="Directory with the .wasm files"
    )

    subparsers.add_parser("deploy", help="Instantiate all contracts")

    register_parser = subparsers.add_parser(
        "register", help="Register vesting/airdrop beneficiaries"
    )
    register_parser.add_argument(
        "--members-dir", help="Directory with the *_members.json files. Default: --files-dir"
    )
    register_parser.add_argument(
        "--role", action="append", choices=[r for r, *_ in pipeline.REGISTRATIONS],
        help="Only register for this contract (repeatable)"
    )
    register_parser.add_argument(
        "--group-size", type=int, default=GROUP_SIZE,
        help=f"Members per register_members message. Default: {GROUP_SIZE}"
    )
    register_parser.add_argument(
        "--batch-size", type=int, default=BATCH_SIZE,
        help=f"Messages per transaction. Default: {BATCH_SIZE}"
    )
    register_parser.add_argument(
        "--batch-delay-ms", type=int, default=None,
        help="Pause between transactions in ms. Default: stage_delay from config"
    )

    subparsers.add_parser("create-pair", help="Create the TLAND/UST Terraswap pair")
    subparsers.add_parser("provide-liquidity", help="Seed the Terraswap pair")
    subparsers.add_parser("send-tokens", help="Fund vesting, staking and airdrop contracts")

    swap_parser = subparsers.add_parser("swap", help="Swap UST on a Terraswap pool")
    swap_parser.add_argument("--pool", required=True, help="Pool contract address")
    swap_parser.add_argument("--amount", required=True, help="Offer amount in uusd")
    swap_parser.add_argument(
        "--signer", default="lp", choices=sorted(ROLE_ENV_VARS), help="Signing role"
    )

    validate_parser = subparsers.add_parser(
        "validate", help="Validate a beneficiary list"
    )
    validate_parser.add_argument(
        "--file", "-f", required=True, help="Path to beneficiary list (JSON or CSV)"
    )

    airdrop_parser = subparsers.add_parser(
        "airdrop-amounts", help="Compute airdrop allocations from staker weights"
    )
    airdrop_parser.add_argument("--stakers", required=True, help="Staker weights JSON")
    airdrop_parser.add_argument(
        "--output", "-o", default=str(Path("files") / "stt_and_lp_stakers.json"),
        help="Output beneficiary list"
    )
    airdrop_parser.add_argument(
        "--total", type=int, default=DEFAULT_AIRDROP_POOL, help="Pool size in uTLAND"
    )
    airdrop_parser.add_argument(
        "--minimum", type=float, default=MIN_STAKE, help="Minimum stake to qualify"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "store-codes": cmd_store_codes,
        "deploy": cmd_deploy,
        "register": cmd_register,
        "create-pair": cmd_create_pair,
        "provide-liquidity": cmd_provide_liquidity,
        "send-tokens": cmd_send_tokens,
        "swap": cmd_swap,
        "validate": cmd_validate,
        "airdrop-amounts": cmd_airdrop_amounts,
    }

    try:
        return commands[args.command](args)
    except (TerraLandError, KeyError, OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
