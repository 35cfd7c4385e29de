"""
TerraLand launch pipeline.

Each stage is one step of the launch, run in order:

    0. store_codes               -> files/code_ids.json
    1. deploy_contracts          -> files/contract_addresses.json
    2. register_all_members
    3. create_pair               -> adds terraswap_pair_address
    4. provide_liquidity
    5. send_tokens_to_contracts

Stages share nothing but the manifest files and the ChainContext passed
in by the caller. Every stage stops at the first failed transaction.
"""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from terra_sdk.core.wasm import MsgInstantiateContract, MsgStoreCode

from tland_deploy.chain import ChainContext, ContractCall, extract_event_attribute
from tland_deploy.config import Config
from tland_deploy.manifest import CODE_IDS_FILE, CONTRACT_ADDRESSES_FILE, Manifest
from tland_deploy.registrar import (
    BATCH_SIZE,
    GROUP_SIZE,
    BatchResult,
    parse_beneficiaries,
    register_members,
)

logger = logging.getLogger(__name__)

MONTH = 30 * 24 * 3600
WEEK = 7 * 24 * 3600

UST_DENOM = "uusd"

# Flat 1 UST fee charged by the contracts per operation.
OPERATION_FEE = "1000000"

ARTIFACTS = {
    "token_code_id": "tland_token.wasm",
    "staking_code_id": "staking.wasm",
    "airdrop_code_id": "airdrop.wasm",
    "vesting_code_id": "vesting.wasm",
}

# (address, amount in uTLAND); 100 000 000 TLAND total supply.
TOKEN_INITIAL_BALANCES = [
    ("terra1ly5glvd0xv5x5s4vd5x6a8p8n4pcmwn839pcep", "25000000000000"),  # Treasury
    ("terra1hek3fzkmke5pe6lvcv48frwvchc04fz6y22fyj", "17000000000000"),  # Team
    ("terra1yjwlg6dy3dkq3qlhv0feyqe7wrt3q0h0ghlwcy", "13000000000000"),  # Staking incentives
    ("terra1ksawlatvhqmm3lg9uc7w6z20zvvuegmwxgjtpm", "20000000000000"),  # Private sale
    ("terra1wcuvasqx8zf69e9jhnnxgk4em7dnemqappugwj", "1111555000000"),  # Public sale Subme
    ("terra1ylng8sxnkghx4grp3auvln6g5ugql7kw29d4h2", "8888445000000"),  # Public sale Starterra
    ("terra1z43ptner54dvkpz2cuyu67wjkzmqzs2kq8wsu5", "5000000000000"),  # Development fund
    ("terra1u4cukjhadget74ugc4antvca0v0jzlxxmjp5t7", "4000000000000"),  # Advisors
    ("terra1w6402sdfcu4smfhunqvwyv6kwq87f2kvnc4z0m", "1750000000000"),  # Liquidity, contract
    ("terra1xr50nhz5ecqswaehnxf7f7nvfeu0zh7424vzwe", "3250000000000"),  # Liquidity, rest
    ("terra1amskskeaput62xdahpp59yrw4fm7g7ndgsc20u", "1000000000000"),  # Airdrop
]

LP_BURN_ADDRESS = "terra17hk7d34mg77w6ujcr6n58p8hjl9ez8w9gj6auk"
LP_UNBONDING_PERIOD = 5 * 24 * 3600
LP_INSTANT_CLAIM_LOSS = 5  # percent

# (amount in uTLAND, start week, end week) relative to TGE.
LP_DISTRIBUTION_SCHEDULE = [
    ("600000000000", 0, 4),
    ("202000000000", 4, 6),
    ("205500000000", 6, 8),
    ("210000000000", 8, 10),
    ("430000000000", 10, 14),
    ("440000000000", 14, 18),
    ("900000000000", 18, 26),
    ("920000000000", 26, 34),
    ("1527500000000", 34, 47),
    ("980000000000", 47, 55),
    ("1560000000000", 55, 68),
    ("1495000000000", 68, 81),
    ("2530000000000", 81, 104),
]

# TLAND paired against UST when seeding the pool.
LIQUIDITY_TOKEN_AMOUNT = "1750000000000"


@dataclass(frozen=True)
class VestingPlan:
    """Instantiation parameters of one vesting contract."""

    role: str
    manifest_key: str
    name: str
    memo: str
    duration_months: int
    cliff_months: int
    initial_percentage: int

    def init_msg(self, owner: str, token_address: str, tge: int) -> dict[str, Any]:
        return {
            "owner": owner,
            "terraland_token": token_address,
            "name": self.name,
            "fee_config": [_fee("claim")],
            "vesting": {
                "start_time": tge,
                "end_time": tge + self.duration_months * MONTH,
                "initial_percentage": self.initial_percentage,
                "cliff_end_time": tge + self.cliff_months * MONTH,
            },
        }


VESTING_PLANS = [
    VestingPlan(
        "devfund", "devfund_address", "TERRALAND_DEVELOPMENT_FUND_VESTING",
        "INSTANTIATE TERRALAND DEVELOPMENT FUND VESTING", 39, 3, 0,
    ),
    VestingPlan(
        "advisors", "advisors_address", "TERRALAND_ADVISORS_VESTING",
        "INSTANTIATE TERRALAND ADVISORS VESTING", 13, 1, 0,
    ),
    VestingPlan(
        "privsale", "privsale_address", "TERRALAND_PRIVATE_SALE_VESTING",
        "INSTANTIATE TERRALAND PRIVATE SALE VESTING", 10, 1, 10,
    ),
    VestingPlan(
        "pubsale", "pubsale_address", "TERRALAND_PUBLIC_SALE_VESTING",
        "INSTANTIATE TERRALAND PUBLIC SALE VESTING", 6, 0, 20,
    ),
    VestingPlan(
        "team", "team_address", "TERRALAND_TEAM_VESTING",
        "INSTANTIATE TERRALAND TEAM VESTING", 24, 6, 0,
    ),
]

# (role, members file, manifest key, memo) in registration order.
REGISTRATIONS = [
    ("devfund", "devfund_members.json", "devfund_address", "REGISTER DEVELOPMENT FUND ADDRESSES"),
    ("team", "team_members.json", "team_address", "REGISTER TEAM ADDRESSES"),
    ("advisors", "advisors_members.json", "advisors_address", "REGISTER ADVISORS ADDRESSES"),
    ("privsale", "privsale_members.json", "privsale_address", "REGISTER PRIVATE SALE ADDRESSES"),
    ("pubsale", "pubsale_members.json", "pubsale_address", "REGISTER PUBLIC SALE ADDRESSES"),
    ("airdrop", "stt_and_lp_stakers.json", "airdrop_address", "REGISTER AIRDROP ADDRESSES"),
]

# (role, manifest key of the receiving contract, amount in uTLAND).
TOKEN_TRANSFERS = [
    ("team", "team_address", "17000000000000"),
    ("staking", "lp_staking_address", "12000000000000"),
    ("privsale", "privsale_address", "20000000000000"),
    ("pubsale", "pubsale_address", "1111111120000"),
    ("devfund", "devfund_address", "5000000000000"),
    ("advisors", "advisors_address", "4000000000000"),
    ("airdrop", "airdrop_address", "1000000000000"),
]


def _fee(operation: str) -> dict[str, str]:
    return {"fee": OPERATION_FEE, "operation": operation, "denom": UST_DENOM}


def _token_asset(token_address: str) -> dict[str, Any]:
    return {"token": {"contract_addr": token_address}}


def _native_asset(denom: str = UST_DENOM) -> dict[str, Any]:
    return {"native_token": {"denom": denom}}


def _pause(wait: Callable[[float], Any], seconds: float) -> None:
    if seconds > 0:
        wait(seconds)


# ── Stage 0: store codes ─────────────────────────────────────────


def store_code(ctx: ChainContext, role: str, wasm_path: str | Path) -> str:
    """Upload one wasm artifact and return its code id."""
    signer = ctx.signer(role)
    with open(Path(wasm_path), "rb") as f:
        wasm = base64.b64encode(f.read()).decode()

    result = signer.send([MsgStoreCode(signer.address, wasm)], action="store code")
    code_id = extract_event_attribute(result, "store_code", "code_id")
    logger.info("Stored %s as code_id %s", wasm_path, code_id)
    return code_id


def store_codes(
    ctx: ChainContext,
    manifest: Manifest,
    artifacts_dir: str | Path = "artifacts",
    role: str = "token",
) -> dict[str, str]:
    artifacts_dir = Path(artifacts_dir)
    code_ids = {
        key: store_code(ctx, role, artifacts_dir / filename)
        for key, filename in ARTIFACTS.items()
    }
    manifest.update(CODE_IDS_FILE, code_ids)
    return code_ids


# ── Stage 1: instantiate contracts ───────────────────────────────


def instantiate(
    ctx: ChainContext, role: str, code_id: str | int, init_msg: dict[str, Any], memo: str
) -> str:
    """Instantiate a contract owned (and administered) by ``role``; return its address."""
    signer = ctx.signer(role)
    msg = MsgInstantiateContract(
        sender=signer.address,
        admin=signer.address,
        code_id=int(code_id),
        init_msg=init_msg,
    )
    result = signer.send([msg], memo=memo, action="instantiate")
    address = extract_event_attribute(result, "instantiate_contract", "contract_address")
    logger.info("%s: %s", memo, address)
    return address


def token_init_msg(owner: str) -> dict[str, Any]:
    return {
        "owner": owner,
        "decimals": 6,
        "name": "TerraLand token",
        "symbol": "TLAND",
        "marketing": {"marketing": owner},
        "initial_balances": [
            {"address": address, "amount": amount}
            for address, amount in TOKEN_INITIAL_BALANCES
        ],
    }


def lp_staking_init_msg(owner: str, token_address: str, tge: int) -> dict[str, Any]:
    return {
        "owner": owner,
        # The LP token does not exist until the pair is created.
        "staking_token": owner,
        "terraland_token": token_address,
        "unbonding_period": LP_UNBONDING_PERIOD,
        "burn_address": LP_BURN_ADDRESS,
        "instant_claim_percentage_loss": LP_INSTANT_CLAIM_LOSS,
        "fee_config": [
            _fee("claim"), _fee("unbond"), _fee("instant_claim"), _fee("withdraw"),
        ],
        "distribution_schedule": [
            {
                "amount": amount,
                "start_time": tge + start * WEEK,
                "end_time": tge + end * WEEK,
            }
            for amount, start, end in LP_DISTRIBUTION_SCHEDULE
        ],
    }


def airdrop_init_msg(owner: str, token_address: str, lp_staking_address: str) -> dict[str, Any]:
    return {
        "owner": owner,
        "terraland_token": token_address,
        "fee_config": [_fee("claim")],
        "mission_smart_contracts": {"lp_staking": lp_staking_address},
    }


def deploy_contracts(
    ctx: ChainContext,
    config: Config,
    manifest: Manifest,
    wait: Callable[[float], Any] = time.sleep,
) -> dict[str, str]:
    """Instantiate token, vesting, LP staking and airdrop contracts."""
    code_ids = manifest.code_ids()
    tge = config.tge

    token_owner = ctx.signer("token").address
    addresses = {
        "token_address": instantiate(
            ctx, "token", code_ids["token_code_id"], token_init_msg(token_owner),
            "INSTANTIATE TERRALAND TLAND TOKEN",
        )
    }
    token_address = addresses["token_address"]

    for plan in VESTING_PLANS:
        _pause(wait, config.stage_delay)
        owner = ctx.signer(plan.role).address
        addresses[plan.manifest_key] = instantiate(
            ctx, plan.role, code_ids["vesting_code_id"],
            plan.init_msg(owner, token_address, tge), plan.memo,
        )

    _pause(wait, config.stage_delay)
    staking_owner = ctx.signer("staking").address
    addresses["lp_staking_address"] = instantiate(
        ctx, "staking", code_ids["staking_code_id"],
        lp_staking_init_msg(staking_owner, token_address, tge),
        "INSTANTIATE TERRALAND LP STAKING",
    )

    _pause(wait, config.stage_delay)
    airdrop_owner = ctx.signer("airdrop").address
    addresses["airdrop_address"] = instantiate(
        ctx, "airdrop", code_ids["airdrop_code_id"],
        airdrop_init_msg(airdrop_owner, token_address, addresses["lp_staking_address"]),
        "INSTANTIATE TERRALAND AIRDROP",
    )

    manifest.update(CONTRACT_ADDRESSES_FILE, addresses)
    return addresses


# ── Stage 2: register members ────────────────────────────────────


def register_all_members(
    ctx: ChainContext,
    config: Config,
    manifest: Manifest,
    members_dir: str | Path = "files",
    roles: Optional[Sequence[str]] = None,
    group_size: int = GROUP_SIZE,
    batch_size: int = BATCH_SIZE,
    inter_batch_delay_ms: Optional[int] = None,
    wait: Callable[[float], Any] = time.sleep,
    on_result: Optional[Callable[[BatchResult], Any]] = None,
) -> dict[str, list[BatchResult]]:
    """
    Register beneficiaries with every vesting contract and the airdrop.

    ``roles`` restricts the run to some contracts, e.g. to pick up after
    a failure part way through. ``inter_batch_delay_ms`` defaults to the
    config's ``stage_delay``.
    """
    addresses = manifest.contract_addresses()
    members_dir = Path(members_dir)
    if inter_batch_delay_ms is None:
        inter_batch_delay_ms = int(config.stage_delay * 1000)

    results = {}
    first = True
    for role, members_file, manifest_key, memo in REGISTRATIONS:
        if roles is not None and role not in roles:
            continue
        if not first:
            _pause(wait, config.stage_delay)
        first = False

        records = parse_beneficiaries(members_dir / members_file)
        results[role] = register_members(
            records,
            ctx.signer(role),
            addresses[manifest_key],
            memo,
            group_size=group_size,
            batch_size=batch_size,
            inter_batch_delay_ms=inter_batch_delay_ms,
            wait=wait,
            on_result=on_result,
        )
    return results


# ── Stage 3: create the Terraswap pair ───────────────────────────


def create_pair(ctx: ChainContext, config: Config, manifest: Manifest) -> str:
    addresses = manifest.contract_addresses()
    signer = ctx.signer("lp")
    call = ContractCall(
        sender=signer.address,
        contract=config.terraswap_factory_address,
        msg={
            "create_pair": {
                "asset_infos": [_token_asset(addresses["token_address"]), _native_asset()]
            }
        },
    )
    result = signer.send([call])
    pair_address = extract_event_attribute(result, "wasm", "pair_contract_addr")
    logger.info("pair_contract_address: %s", pair_address)

    manifest.update(CONTRACT_ADDRESSES_FILE, {"terraswap_pair_address": pair_address})
    return pair_address


# ── Stage 4: provide liquidity ───────────────────────────────────


def provide_liquidity(
    ctx: ChainContext,
    config: Config,
    manifest: Manifest,
    token_amount: str = LIQUIDITY_TOKEN_AMOUNT,
) -> Any:
    """Approve the pair to pull TLAND and deposit TLAND + UST, in one transaction."""
    addresses = manifest.contract_addresses()
    token_address = addresses["token_address"]
    pair_address = addresses["terraswap_pair_address"]
    ust_amount = config.ust_liquidity_amount
    signer = ctx.signer("lp")

    increase_allowance = ContractCall(
        sender=signer.address,
        contract=token_address,
        msg={"increase_allowance": {"amount": token_amount, "spender": pair_address}},
    )
    provide = ContractCall(
        sender=signer.address,
        contract=pair_address,
        msg={
            "provide_liquidity": {
                "assets": [
                    {"info": _token_asset(token_address), "amount": token_amount},
                    {"info": _native_asset(), "amount": ust_amount},
                ]
            }
        },
        coins={UST_DENOM: ust_amount},
    )
    result = signer.send([increase_allowance, provide])
    logger.info("Provided liquidity: tx_hash %s", getattr(result, "txhash", ""))
    return result


# ── Stage 5: fund contracts ──────────────────────────────────────


def send_tokens(ctx: ChainContext, role: str, token_address: str, recipient: str, amount: str) -> Any:
    signer = ctx.signer(role)
    call = ContractCall(
        sender=signer.address,
        contract=token_address,
        msg={"transfer": {"amount": amount, "recipient": recipient}},
    )
    result = signer.send([call])
    logger.info("Sent %s uTLAND from %s to %s", amount, role, recipient)
    return result


def send_tokens_to_contracts(
    ctx: ChainContext,
    config: Config,
    manifest: Manifest,
    wait: Callable[[float], Any] = time.sleep,
) -> list[Any]:
    addresses = manifest.contract_addresses()
    results = []
    for i, (role, manifest_key, amount) in enumerate(TOKEN_TRANSFERS):
        if i > 0:
            _pause(wait, config.stage_delay)
        results.append(
            send_tokens(ctx, role, addresses["token_address"], addresses[manifest_key], amount)
        )
    return results


# ── One-off: swap UST for the pool's token ───────────────────────


def swap(ctx: ChainContext, pool_address: str, ust_amount: str, role: str = "lp") -> Any:
    signer = ctx.signer(role)
    call = ContractCall(
        sender=signer.address,
        contract=pool_address,
        msg={"swap": {"offer_asset": {"info": _native_asset(), "amount": ust_amount}}},
        coins={UST_DENOM: ust_amount},
    )
    return signer.send([call])
