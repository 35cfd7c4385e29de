import json

import pytest

from tests.conftest import StubSigner
from tland_deploy.errors import TxError
from tland_deploy.registrar import (
    BATCH_SIZE,
    GROUP_SIZE,
    BeneficiaryRecord,
    build_call_message,
    chunk_into_groups,
    parse_beneficiaries,
    register_members,
    submit_batches,
    validate_beneficiaries,
)

VALID_ADDRESS = "terra1ly5glvd0xv5x5s4vd5x6a8p8n4pcmwn839pcep"


def records(n):
    return [BeneficiaryRecord(address=f"terra1member{i}", amount=str(1000 + i)) for i in range(n)]


@pytest.mark.parametrize("n,g", [(0, 40), (1, 40), (39, 40), (40, 40), (41, 40), (87, 40), (100, 7), (5, 1)])
def test_chunk_sizes_and_order(n, g):
    items = records(n)
    groups = chunk_into_groups(items, g)

    assert len(groups) == -(-n // g)
    assert all(len(group) == g for group in groups[: n // g])
    if n % g:
        assert len(groups[-1]) == n % g
    assert [r for group in groups for r in group] == items


def test_rechunking_is_idempotent():
    groups = chunk_into_groups(records(87), 40)
    flattened = [r for group in groups for r in group]
    assert chunk_into_groups(flattened, 40) == groups


def test_chunk_rejects_non_positive_size():
    with pytest.raises(ValueError):
        chunk_into_groups(records(3), 0)


def test_build_call_message_resets_claimed():
    group = [
        BeneficiaryRecord(address="terra1a", amount="10", claimed="7"),
        BeneficiaryRecord(address="terra1b", amount="20"),
    ]
    call = build_call_message(group, "terra1owner", "terra1vesting")

    assert call.sender == "terra1owner"
    assert call.contract == "terra1vesting"
    assert call.msg == {
        "register_members": [
            {"address": "terra1a", "amount": "10", "claimed": "0"},
            {"address": "terra1b", "amount": "20", "claimed": "0"},
        ]
    }


def test_register_87_members_is_one_transaction(waits):
    signer = StubSigner()
    results = register_members(records(87), signer, "terra1vesting", "REGISTER TEAM ADDRESSES", wait=waits.append)

    assert [len(m.msg["register_members"]) for m in signer.sent[0].msgs] == [40, 40, 7]
    assert len(signer.sent) == 1
    assert signer.sent[0].memo == "REGISTER TEAM ADDRESSES #1"
    assert results[0].tx_hash == "HASH1"
    assert results[0].record_count == 87
    assert waits == []


def test_batches_count_memos_and_delays(waits):
    signer = StubSigner()
    messages = [build_call_message(g, signer.address, "terra1c") for g in chunk_into_groups(records(60), 1)]

    results = submit_batches(messages, signer, batch_size=25, inter_batch_delay_ms=10_000,
                             memo_prefix="REGISTER", wait=waits.append)

    assert len(signer.sent) == 3
    assert [len(s.msgs) for s in signer.sent] == [25, 25, 10]
    assert sum(r.message_count for r in results) == 60
    assert [s.memo for s in signer.sent] == ["REGISTER #1", "REGISTER #2", "REGISTER #3"]
    assert waits == [10.0, 10.0]


def test_empty_list_makes_no_network_call(waits):
    signer = StubSigner()
    assert register_members([], signer, "terra1c", "REGISTER", wait=waits.append) == []
    assert signer.sent == []
    assert waits == []


def test_failure_aborts_remaining_batches(waits):
    signer = StubSigner(fail_on=2)
    reported = []
    messages = [build_call_message(g, signer.address, "terra1c") for g in chunk_into_groups(records(5 * BATCH_SIZE), 1)]

    with pytest.raises(TxError) as excinfo:
        submit_batches(messages, signer, memo_prefix="REGISTER", wait=waits.append, on_result=reported.append)

    assert excinfo.value.code == 5
    assert len(signer.sent) == 2
    assert [r.tx_hash for r in reported] == ["HASH1"]


def test_negative_delay_rejected():
    with pytest.raises(ValueError):
        submit_batches([], StubSigner(), inter_batch_delay_ms=-1)


def test_parse_beneficiaries_json(tmp_path):
    path = tmp_path / "members.json"
    path.write_text(json.dumps([
        {"address": "terra1a", "amount": "100"},
        {"address": "terra1b", "amount": 200},
    ]))

    parsed = parse_beneficiaries(path)
    assert parsed == [
        BeneficiaryRecord(address="terra1a", amount="100"),
        BeneficiaryRecord(address="terra1b", amount="200"),
    ]
    assert all(r.claimed == "0" for r in parsed)


@pytest.mark.parametrize("entry,message", [
    ({"address": "terra1a"}, "missing 'amount'"),
    ({"amount": "1"}, "missing 'address'"),
    ({"address": "terra1a", "amount": 1.5}, "amount"),
    ({"address": "terra1a", "amount": "12abc"}, "invalid amount"),
])
def test_parse_beneficiaries_json_errors(tmp_path, entry, message):
    path = tmp_path / "members.json"
    path.write_text(json.dumps([entry]))
    with pytest.raises(ValueError, match=message):
        parse_beneficiaries(path)


def test_parse_beneficiaries_csv(tmp_path):
    path = tmp_path / "members.csv"
    path.write_text("Address, Amount\nterra1a,100\nterra1b,200\n")
    assert [r.amount for r in parse_beneficiaries(path)] == ["100", "200"]


def test_validate_beneficiaries():
    ok, errors = validate_beneficiaries([BeneficiaryRecord(address=VALID_ADDRESS, amount="5")])
    assert ok and errors == []

    ok, errors = validate_beneficiaries([
        BeneficiaryRecord(address="not-an-address", amount="5"),
        BeneficiaryRecord(address=VALID_ADDRESS, amount="0"),
    ])
    assert not ok
    assert len(errors) == 2


def test_duplicates_are_not_validation_errors():
    duplicate = BeneficiaryRecord(address=VALID_ADDRESS, amount="5")
    ok, _ = validate_beneficiaries([duplicate, duplicate])
    assert ok


def test_defaults():
    assert GROUP_SIZE == 40
    assert BATCH_SIZE == 25


@pytest.mark.parametrize("amount", ["١٢", "²", "+5", "-3"])
def test_non_ascii_or_signed_amounts_rejected(tmp_path, amount):
    path = tmp_path / "members.json"
    path.write_text(json.dumps([{"address": "terra1a", "amount": amount}]))
    with pytest.raises(ValueError, match="invalid amount"):
        parse_beneficiaries(path)


@pytest.mark.parametrize("amount", ["١٢", "²"])
def test_validate_rejects_non_ascii_digits(amount):
    errors = BeneficiaryRecord(address=VALID_ADDRESS, amount=amount).validate()
    assert errors == [f"Amount must be an integer string, got '{amount}'"]
