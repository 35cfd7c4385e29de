import json

import pytest

from tland_deploy.manifest import CONTRACT_ADDRESSES_FILE, Manifest


def test_update_creates_and_merges(tmp_path):
    manifest = Manifest(tmp_path / "files")
    manifest.update(CONTRACT_ADDRESSES_FILE, {"token_address": "terra1token"})
    merged = manifest.update(CONTRACT_ADDRESSES_FILE, {"terraswap_pair_address": "terra1pair"})

    assert merged == {"token_address": "terra1token", "terraswap_pair_address": "terra1pair"}
    on_disk = json.loads((tmp_path / "files" / CONTRACT_ADDRESSES_FILE).read_text())
    assert on_disk == merged
    assert manifest.contract_addresses() == merged


def test_read_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Manifest(tmp_path).code_ids()


def test_read_rejects_non_object(tmp_path):
    (tmp_path / "code_ids.json").write_text("[]")
    with pytest.raises(ValueError):
        Manifest(tmp_path).code_ids()
