"""
Airdrop allocation from staker weights.

Stakers above a minimum stake share a fixed pool proportionally to the
square root of their stake, which flattens the advantage of large holders.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Sequence

from tland_deploy.registrar import BeneficiaryRecord

# 500 000 TLAND in micro-units.
DEFAULT_AIRDROP_POOL = 500_000_000_000

MIN_STAKE = 250


@dataclass(frozen=True)
class StakerWeight:
    staker: str
    ste: float


def parse_stakers(filepath: str | Path) -> list[StakerWeight]:
    """Parse ``[{"staker": "terra1...", "ste": 1234.5}, ...]``."""
    with open(Path(filepath), "r") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("JSON must contain a list of staker objects")
    stakers = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict) or "staker" not in entry or "ste" not in entry:
            raise ValueError(f"Entry {i}: expected an object with 'staker' and 'ste'")
        stakers.append(StakerWeight(staker=str(entry["staker"]), ste=float(entry["ste"])))
    return stakers


def calculate_airdrop_amounts(
    stakers: Sequence[StakerWeight],
    total: int = DEFAULT_AIRDROP_POOL,
    minimum: float = MIN_STAKE,
) -> list[BeneficiaryRecord]:
    """
    Split ``total`` among stakers with ``ste > minimum``, weighted by sqrt(ste).

    Amounts are floored, so the sum may fall short of ``total`` by less
    than one micro-unit per recipient. Input order is preserved.
    """
    eligible = [s for s in stakers if s.ste > minimum]
    weight_sum = sum(math.sqrt(s.ste) for s in eligible)
    if weight_sum == 0:
        return []

    ratio = total / weight_sum
    return [
        BeneficiaryRecord(address=s.staker, amount=str(math.floor(math.sqrt(s.ste) * ratio)))
        for s in eligible
    ]


def find_duplicate_addresses(records: Iterable[BeneficiaryRecord]) -> list[str]:
    """Return each address that appears more than once, in order of its first repeat."""
    seen = set()
    repeated = []
    for r in records:
        if r.address in seen and r.address not in repeated:
            repeated.append(r.address)
        seen.add(r.address)
    return repeated


def sum_amounts(records: Iterable[BeneficiaryRecord]) -> int:
    return sum(int(Decimal(r.amount)) for r in records)


def write_beneficiaries(records: Sequence[BeneficiaryRecord], filepath: str | Path) -> None:
    """Write records in the ``[{address, amount}]`` format the registrar reads."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as f:
        json.dump([{"address": r.address, "amount": r.amount} for r in records], f, indent=2)
