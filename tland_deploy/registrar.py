"""
Batch registration of vesting and airdrop beneficiaries.

A beneficiary list is too large for one contract call, and too many calls
do not fit in one transaction, so registration is split twice:

- records are chunked into groups of GROUP_SIZE, each wrapped in one
  ``register_members`` contract call;
- calls are chunked into batches of BATCH_SIZE, each signed and broadcast
  as one transaction.

Batches are submitted strictly one after another from a single signer,
with a pause between them, because every transaction consumes the next
account sequence number. Any failed submission aborts the run; batches
already broadcast stay on chain.
"""

from __future__ import annotations

import csv
import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TypeVar

from terra_sdk.core.bech32 import is_acc_address

from tland_deploy.chain import ContractCall

logger = logging.getLogger(__name__)

T = TypeVar("T")

_AMOUNT_RE = re.compile(r"[0-9]+")

# Records per register_members call. Larger payloads exceed the
# contract's gas budget per message.
GROUP_SIZE = 40

# Contract calls per transaction, kept under the node's tx size limit.
BATCH_SIZE = 25

# Pause between two batches from the same signer.
DEFAULT_BATCH_DELAY_MS = 10_000


@dataclass(frozen=True)
class BeneficiaryRecord:
    """A single vesting/airdrop beneficiary."""

    address: str
    amount: str  # micro-units, decimal string
    claimed: str = "0"

    def validate(self) -> list[str]:
        """Validate this record. Returns list of error strings."""
        errors = []
        if not is_acc_address(self.address):
            errors.append(f"Invalid terra address: {self.address}")
        if not _AMOUNT_RE.fullmatch(self.amount):
            errors.append(f"Amount must be an integer string, got '{self.amount}'")
        elif int(self.amount) <= 0:
            errors.append(f"Amount must be positive, got {self.amount}")
        return errors

    def as_member(self) -> dict[str, str]:
        """Payload entry for register_members. Registration always resets ``claimed``."""
        return {"address": self.address, "amount": self.amount, "claimed": "0"}


@dataclass
class BatchResult:
    """Result of one submitted registration transaction."""

    batch_index: int
    memo: str
    tx_hash: str
    message_count: int
    record_count: int
    duration_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"memo: {self.memo} tx_hash: {self.tx_hash} "
            f"({self.message_count} msgs, {self.record_count} members, "
            f"{self.duration_seconds:.1f}s)"
        )


def parse_beneficiaries_json(filepath: str | Path) -> list[BeneficiaryRecord]:
    """
    Parse a JSON file of beneficiaries.

    Expected format:
        [
            {"address": "terra1...", "amount": "1000000"},
            {"address": "terra1...", "amount": "2500000"}
        ]
    """
    filepath = Path(filepath)
    with open(filepath, "r") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError("JSON must contain a list of beneficiary objects")

    records = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"Entry {i}: must be an object")
        if "address" not in entry:
            raise ValueError(f"Entry {i}: missing 'address' field")
        if "amount" not in entry:
            raise ValueError(f"Entry {i}: missing 'amount' field")
        records.append(_make_record(entry["address"], entry["amount"], f"Entry {i}"))

    return records


def parse_beneficiaries_csv(filepath: str | Path) -> list[BeneficiaryRecord]:
    """
    Parse a CSV file of beneficiaries.

    Expected format:
        address,amount
        terra1ly5glvd0xv5x5s4vd5x6a8p8n4pcmwn839pcep,25000000000000
    """
    records = []
    with open(Path(filepath), "r", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError("CSV file is empty or has no headers")

        for row_num, row in enumerate(reader, start=2):
            normalized = {k.strip().lower(): (v or "").strip() for k, v in row.items()}
            address = normalized.get("address", "")
            if not address:
                raise ValueError(f"Row {row_num}: missing address")
            records.append(
                _make_record(address, normalized.get("amount", ""), f"Row {row_num}")
            )

    return records


def parse_beneficiaries(filepath: str | Path) -> list[BeneficiaryRecord]:
    """Parse a beneficiary list, picking the format from the file suffix."""
    filepath = Path(filepath)
    if filepath.suffix.lower() == ".csv":
        return parse_beneficiaries_csv(filepath)
    return parse_beneficiaries_json(filepath)


def _make_record(address: Any, amount: Any, where: str) -> BeneficiaryRecord:
    # Amounts are micro-units; floats would lose precision.
    if isinstance(amount, float) or isinstance(amount, bool):
        raise ValueError(f"{where}: amount must be an integer or decimal string, got {amount!r}")
    amount_str = str(amount).strip()
    if not _AMOUNT_RE.fullmatch(amount_str):
        raise ValueError(f"{where}: invalid amount '{amount_str}'")
    return BeneficiaryRecord(address=str(address).strip(), amount=amount_str)


def validate_beneficiaries(records: Sequence[BeneficiaryRecord]) -> tuple[bool, list[str]]:
    """
    Validate all records. Returns (is_valid, list_of_errors).

    Duplicate addresses are not an error here; see
    ``tland_deploy.airdrop.find_duplicate_addresses`` for that diagnostic.
    """
    errors = []
    for i, r in enumerate(records):
        for err in r.validate():
            errors.append(f"Beneficiary {i + 1} ({r.address[:14]}...): {err}")
    return len(errors) == 0, errors


def chunk_into_groups(items: Sequence[T], group_size: int = GROUP_SIZE) -> list[list[T]]:
    """Split ``items`` into consecutive groups of ``group_size``; the last holds the rest."""
    if group_size <= 0:
        raise ValueError(f"group_size must be positive, got {group_size}")
    return [
        list(items[i: i + group_size])
        for i in range(0, len(items), group_size)
    ]


def build_call_message(
    group: Sequence[BeneficiaryRecord], sender_address: str, contract_address: str
) -> ContractCall:
    """Wrap one group of records in a ``register_members`` contract call."""
    return ContractCall(
        sender=sender_address,
        contract=contract_address,
        msg={"register_members": [r.as_member() for r in group]},
    )


def submit_batches(
    messages: Sequence[Any],
    signer: Any,
    batch_size: int = BATCH_SIZE,
    inter_batch_delay_ms: int = DEFAULT_BATCH_DELAY_MS,
    memo_prefix: str = "",
    wait: Callable[[float], Any] = time.sleep,
    on_result: Optional[Callable[[BatchResult], Any]] = None,
) -> list[BatchResult]:
    """
    Submit contract calls in batches of ``batch_size``, one transaction each.

    Parameters:
        messages: Contract calls in submission order.
        signer: Anything with ``send(msgs, memo=...)`` returning a broadcast
            result with a ``txhash``; it raises on a non-zero result code.
        batch_size: Maximum number of calls per transaction.
        inter_batch_delay_ms: Pause between two consecutive batches.
        memo_prefix: Memo text; each batch is tagged ``"<prefix> #<n>"``
            with n counting from 1.
        wait: Called with the pause in seconds between batches.
        on_result: Called with each BatchResult right after its broadcast.

    Returns:
        One BatchResult per submitted transaction. An error from the
        signer propagates immediately; later batches are not built.
    """
    if inter_batch_delay_ms < 0:
        raise ValueError(f"inter_batch_delay_ms must be non-negative, got {inter_batch_delay_ms}")

    batches = chunk_into_groups(messages, batch_size)
    results = []

    for batch_idx, batch in enumerate(batches, start=1):
        if batch_idx > 1:
            wait(inter_batch_delay_ms / 1000.0)

        memo = f"{memo_prefix} #{batch_idx}".strip()
        start_time = time.time()
        response = signer.send(batch, memo=memo)

        result = BatchResult(
            batch_index=batch_idx,
            memo=memo,
            tx_hash=str(getattr(response, "txhash", "")),
            message_count=len(batch),
            record_count=sum(_record_count(m) for m in batch),
            duration_seconds=time.time() - start_time,
        )
        logger.info("Batch %d/%d %s", batch_idx, len(batches), result.summary())
        if on_result is not None:
            on_result(result)
        results.append(result)

    return results


def _record_count(message: Any) -> int:
    payload = getattr(message, "msg", None)
    if isinstance(payload, dict):
        return len(payload.get("register_members", []))
    return 0


def register_members(
    records: Sequence[BeneficiaryRecord],
    signer: Any,
    contract_address: str,
    memo_prefix: str,
    group_size: int = GROUP_SIZE,
    batch_size: int = BATCH_SIZE,
    inter_batch_delay_ms: int = DEFAULT_BATCH_DELAY_MS,
    wait: Callable[[float], Any] = time.sleep,
    on_result: Optional[Callable[[BatchResult], Any]] = None,
) -> list[BatchResult]:
    """Register ``records`` with a vesting/airdrop contract: chunk, wrap, submit."""
    messages = [
        build_call_message(group, signer.address, contract_address)
        for group in chunk_into_groups(records, group_size)
    ]
    logger.info(
        "Registering %d members in %d messages with %s",
        len(records), len(messages), contract_address,
    )
    return submit_batches(
        messages,
        signer,
        batch_size=batch_size,
        inter_batch_delay_ms=inter_batch_delay_ms,
        memo_prefix=memo_prefix,
        wait=wait,
        on_result=on_result,
    )
