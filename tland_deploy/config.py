"""
Deployment configuration.

Network settings and launch parameters come from a JSON file; signing
mnemonics come only from the environment (a local ``.env`` is loaded
with python-dotenv) so they never end up in the repository.

Expected ``config.json``:
    {
        "url": "https://bombay-lcd.terra.dev",
        "chainID": "bombay-12",
        "tge": 1640995200,
        "terraswap_factory_address": "terra18qpjm4zkvqnpjpw0zn0tdr8gdzvt8au35v45xf",
        "ust_liquidity_amount": "350000000000"
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from tland_deploy.errors import ConfigError


DEFAULT_CONFIG_PATH = Path("config") / "config.json"

# Seconds to wait between two transactions from the same pipeline stage.
DEFAULT_STAGE_DELAY = 10.0

# Signing roles and the environment variable holding each mnemonic.
ROLE_ENV_VARS = {
    "token": "TERRALAND_TOKEN",
    "devfund": "TERRALAND_DEVFUND",
    "advisors": "TERRALAND_ADVISORS",
    "privsale": "TERRALAND_PRIVSALE",
    "pubsale": "TERRALAND_PUBSALE",
    "team": "TERRALAND_TEAM",
    "staking": "TERRALAND_STAKING",
    "lp": "TERRALAND_LP",
    "airdrop": "TERRALAND_AIRDROP",
}


@dataclass(frozen=True)
class Config:
    """Network and launch settings for one deployment run."""

    url: str
    chain_id: str
    tge: int  # token generation event, unix seconds
    terraswap_factory_address: str = ""
    ust_liquidity_amount: str = "0"
    gas_prices: Optional[str] = None
    gas_adjustment: Optional[float] = None
    stage_delay: float = DEFAULT_STAGE_DELAY


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate ``config.json``."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain an object")

    missing = [key for key in ("url", "chainID", "tge") if key not in data]
    if missing:
        raise ConfigError(f"Config file {path} is missing: {', '.join(missing)}")

    try:
        tge = int(data["tge"])
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid tge '{data['tge']}' in {path}")

    gas_adjustment = data.get("gas_adjustment")
    return Config(
        url=str(data["url"]),
        chain_id=str(data["chainID"]),
        tge=tge,
        terraswap_factory_address=str(data.get("terraswap_factory_address", "")),
        ust_liquidity_amount=str(data.get("ust_liquidity_amount", "0")),
        gas_prices=data.get("gas_prices"),
        gas_adjustment=float(gas_adjustment) if gas_adjustment is not None else None,
        stage_delay=float(data.get("stage_delay", DEFAULT_STAGE_DELAY)),
    )


def load_mnemonic(role: str, dotenv_path: Optional[str | Path] = None) -> str:
    """Return the mnemonic for a signing role from the environment."""
    if role not in ROLE_ENV_VARS:
        raise ConfigError(
            f"Unknown role '{role}'. Known roles: {', '.join(ROLE_ENV_VARS)}"
        )
    # .env is looked up from the working directory, not the installed package.
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))
    var = ROLE_ENV_VARS[role]
    mnemonic = os.environ.get(var, "").strip()
    if not mnemonic:
        raise ConfigError(f"Environment variable {var} is not set (mnemonic for '{role}')")
    return mnemonic
