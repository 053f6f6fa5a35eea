"""Tests for the JSON file store of signed off-chain attestations."""

import json

import pytest

from eas_kit.errors import StorageError
from eas_kit.storage.models import OffchainAttestationQuery
from eas_kit.storage.offchain_store import OffchainAttestationStore, default_store_path

from conftest import RECIPIENT, SCHEMA_UID


@pytest.fixture
def store(tmp_path):
    return OffchainAttestationStore(tmp_path / "offchain-attestations.json")


class TestSave:

    def test_save_creates_file(self, store, make_signed):
        signed = make_signed()
        assert store.save(signed) is True
        records = json.loads(store.path.read_text())
        assert records[0]["uid"] == signed.uid
        assert len(store) == 1

    def test_duplicate_uid_is_skipped(self, store, make_signed):
        signed = make_signed()
        store.save(signed)
        upper = signed.model_copy(update={"uid": "0x" + signed.uid[2:].upper()})
        assert store.save(upper) is False
        assert len(store) == 1

    def test_no_temp_files_left_behind(self, store, make_signed):
        store.save(make_signed())
        store.save(make_signed())
        assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]


class TestLoad:

    def test_missing_file_is_empty(self, store):
        assert store.load() == []

    def test_blank_file_is_empty(self, store):
        store.path.write_text("  \n")
        assert store.load() == []

    def test_non_list_is_empty(self, store):
        store.path.write_text('{"uid": "0x01"}')
        assert store.load() == []

    def test_invalid_json_raises(self, store):
        store.path.write_text("[{")
        with pytest.raises(StorageError):
            store.load()

    def test_malformed_record_raises(self, store):
        store.path.write_text('[{"uid": "0x01"}]')
        with pytest.raises(StorageError):
            store.load()

    def test_filters_are_case_insensitive(self, store, make_signed):
        signed = make_signed()
        store.save(signed)
        store.save(make_signed(recipient="0x" + "00" * 19 + "01"))

        found = store.load(OffchainAttestationQuery(recipient=RECIPIENT.lower()))
        assert [a.uid for a in found] == [signed.uid]
        assert len(store.load(OffchainAttestationQuery(schema_uid=SCHEMA_UID.upper().replace("0X", "0x")))) == 2

    def test_filter_by_uid_and_get(self, store, make_signed):
        first, second = make_signed(), make_signed()
        store.save(first)
        store.save(second)
        assert [a.uid for a in store.load(OffchainAttestationQuery(uid=second.uid))] == [second.uid]
        assert store.get(first.uid.upper().replace("0X", "0x")) == first
        assert store.get("0x" + "00" * 32) is None

    def test_filter_by_attester(self, store, make_signed, account, other_account):
        mine = make_signed()
        theirs = make_signed(signer=other_account)
        store.save(mine)
        store.save(theirs)
        found = store.load(OffchainAttestationQuery(attester=other_account.address))
        assert [a.uid for a in found] == [theirs.uid]

    def test_empty_query_returns_everything(self, store, make_signed):
        store.save(make_signed())
        store.save(make_signed())
        assert len(store.load(OffchainAttestationQuery())) == 2


class TestDefaultPath:

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("EAS_KIT_STORE", str(tmp_path / "custom.json"))
        assert default_store_path() == tmp_path / "custom.json"

    def test_cwd_default(self, monkeypatch, tmp_path):
        monkeypatch.delenv("EAS_KIT_STORE", raising=False)
        monkeypatch.chdir(tmp_path)
        assert default_store_path().name == "offchain-attestations.json"
