from types import SimpleNamespace

import pytest

from tland_deploy.config import Config
from tland_deploy.errors import TxError
from tland_deploy.manifest import Manifest


def make_result(txhash="TXHASH", code=0, events=None, codespace="", raw_log=""):
    return SimpleNamespace(
        txhash=txhash,
        code=code,
        codespace=codespace,
        raw_log=raw_log,
        logs=[SimpleNamespace(events_by_type=events or {})],
    )


class StubSigner:
    """Records every send; optionally fails on the n-th call (1-based)."""

    def __init__(self, address="terra1sender", fail_on=None, events=None):
        self.address = address
        self.fail_on = fail_on
        self.events = events or []
        self.sent = []

    def send(self, msgs, memo=None, action="execute"):
        self.sent.append(SimpleNamespace(msgs=list(msgs), memo=memo, action=action))
        n = len(self.sent)
        if n == self.fail_on:
            raise TxError(action, 5, "wasm", "out of gas")
        events = self.events[n - 1] if n <= len(self.events) else {}
        return make_result(txhash=f"HASH{n}", events=events)


class StubContext:
    def __init__(self, signers=None):
        self.signers = signers or {}

    def signer(self, role):
        if role not in self.signers:
            self.signers[role] = StubSigner(address=f"terra1{role}")
        return self.signers[role]


@pytest.fixture
def config():
    return Config(
        url="http://localhost:1317",
        chain_id="localterra",
        tge=1_000_000,
        terraswap_factory_address="terra1factory",
        ust_liquidity_amount="350000000000",
        stage_delay=10.0,
    )


@pytest.fixture
def manifest(tmp_path):
    return Manifest(tmp_path / "files")


@pytest.fixture
def waits():
    return []
