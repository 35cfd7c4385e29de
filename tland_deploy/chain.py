"""
Chain access for the deployment pipeline.

Wraps the terra-sdk LCD client and wallets behind a small ``Signer``
interface: build messages, sign them with the role's mnemonic, broadcast,
and raise ``TxError`` when the ledger reports a non-zero result code.
The registrar and pipeline stages only ever see ``Signer`` objects, so
tests can pass a stub with the same two members (``address``, ``send``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from terra_sdk.client.lcd import LCDClient
from terra_sdk.client.lcd.api.tx import CreateTxOptions
from terra_sdk.core import Coins
from terra_sdk.core.wasm import MsgExecuteContract
from terra_sdk.key.mnemonic import MnemonicKey

from tland_deploy.config import Config, load_mnemonic
from tland_deploy.errors import EventNotFound, TxError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractCall:
    """A contract execution, kept as plain data until it is signed."""

    sender: str
    contract: str
    msg: dict[str, Any]
    coins: Optional[dict[str, str]] = None  # denom -> amount

    def to_msg(self) -> MsgExecuteContract:
        if self.coins:
            coins = Coins.from_str(
                ",".join(f"{amount}{denom}" for denom, amount in self.coins.items())
            )
            return MsgExecuteContract(self.sender, self.contract, self.msg, coins)
        return MsgExecuteContract(self.sender, self.contract, self.msg)


def check_result(result: Any, action: str = "execute") -> Any:
    """Raise ``TxError`` if a broadcast result carries a non-zero code."""
    code = getattr(result, "code", None) or 0
    if code:
        raise TxError(
            action,
            code,
            getattr(result, "codespace", "") or "",
            getattr(result, "raw_log", "") or "",
        )
    return result


def extract_event_attribute(
    result: Any, event_type: str, attribute: str, log_index: int = 0
) -> str:
    """
    Read the first value of ``event_type.attribute`` from a tx log.

    Used to pull created code ids (``store_code.code_id``), contract
    addresses (``instantiate_contract.contract_address``) and pair
    addresses (``wasm.pair_contract_addr``) out of broadcast results.
    """
    try:
        values = result.logs[log_index].events_by_type[event_type][attribute]
        return str(values[0])
    except (AttributeError, IndexError, KeyError, TypeError):
        raise EventNotFound(event_type, attribute)


class Signer:
    """One signing identity (mnemonic wallet) bound to an LCD client."""

    def __init__(self, client: LCDClient, wallet: Any, role: str = ""):
        self.client = client
        self.wallet = wallet
        self.role = role

    @property
    def address(self) -> str:
        return self.wallet.key.acc_address

    def send(
        self,
        msgs: Sequence[Any],
        memo: Optional[str] = None,
        action: str = "execute",
    ) -> Any:
        """
        Sign ``msgs`` as one transaction, broadcast it and check the result.

        ``ContractCall`` items are converted to ``MsgExecuteContract``;
        anything else is passed to the SDK unchanged. Blocks until the
        node answers; no timeout beyond the SDK's own is applied.
        """
        sdk_msgs = [m.to_msg() if isinstance(m, ContractCall) else m for m in msgs]
        options = CreateTxOptions(msgs=sdk_msgs, memo=memo or "")
        tx = self.wallet.create_and_sign_tx(options)
        result = self.client.tx.broadcast(tx)
        logger.debug("broadcast %s (%s): %s", action, self.role or self.address, result)
        return check_result(result, action)


class ChainContext:
    """
    LCD client plus lazily created signers, one per deployment role.

    Built once by the caller and threaded through every stage; nothing
    here is module-level state.
    """

    def __init__(
        self,
        client: LCDClient,
        mnemonic_source: Callable[[str], str] = load_mnemonic,
    ):
        self.client = client
        self._mnemonic_source = mnemonic_source
        self._signers: dict[str, Signer] = {}

    @classmethod
    def from_config(cls, config: Config) -> "ChainContext":
        kwargs: dict[str, Any] = {}
        if config.gas_prices:
            kwargs["gas_prices"] = Coins.from_str(config.gas_prices)
        if config.gas_adjustment is not None:
            kwargs["gas_adjustment"] = config.gas_adjustment
        client = LCDClient(url=config.url, chain_id=config.chain_id, **kwargs)
        return cls(client)

    def signer(self, role: str) -> Signer:
        if role not in self._signers:
            key = MnemonicKey(mnemonic=self._mnemonic_source(role))
            self._signers[role] = Signer(self.client, self.client.wallet(key), role)
        return self._signers[role]
