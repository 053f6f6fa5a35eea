"""Tests for the examples configuration loader."""

import textwrap

import pytest

from eas_kit.config import (
    ZERO_ADDRESS,
    ZERO_HASH,
    BatchEntry,
    ExampleEntry,
    default_config_path,
    get_batch,
    get_entry,
    load_config,
    load_credentials,
    parse_config,
    require_address,
    require_fields,
    require_uid,
    save_config,
)
from eas_kit.errors import ConfigError, ValidationError

EXPECTED_SECTIONS = {
    "attest-onchain",
    "attest-offchain",
    "register-schema",
    "fetch-schema",
    "get-attestation",
    "revoke-attestation",
    "timestamp-offchain",
    "save-offchain",
    "load-offchain",
    "verify-offchain",
    "chained-attestation",
    "list-items",
    "private-data",
    "private-data-proofs",
    "private-data-proofs-onchain",
    "gas-comparison",
    "impact-monitoring",
    "event-checkin",
    "event-checkin-workflow-alternate",
    "geocaching",
    "proofmode",
    "qr",
    "monitor",
}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "examples.yaml"
    path.write_text(textwrap.dedent("""\
        network:
          chain: sepolia
          explorerUrl: "https://example.test"
        attest-offchain:
          - schemaUid: "0xabc"
            schemaString: "uint256 eventId, uint8 voteIndex"
            recipient: "0xFD50b031E778fAb33DfD2Fc3Ca66a1EeF0652165"
            fields:
              eventId: 999
              voteIndex: 2
        chained-attestation:
          - attestations:
              - schemaUid: "0x01"
                fields: {a: 1}
              - schemaUid: "0x02"
                referenceUid: null
                fields: {b: 2}
        notes: "ignored, not a list"
    """))
    return path


# =============================================================================
# Loading
# =============================================================================

class TestLoadConfig:

    def test_single_entry(self, config_file):
        config = load_config(config_file)
        entry = get_entry(config, "attest-offchain")
        assert entry.schema_uid == "0xabc"
        assert entry.data == {"eventId": 999, "voteIndex": 2}
        assert entry.revocable is True
        assert entry.expiration_time == 0
        assert entry.reference_uid == ZERO_HASH

    def test_network_override(self, config_file):
        config = load_config(config_file)
        assert config.network.explorer_url == "https://example.test"
        assert config.network.attestation_url("0x01") == "https://example.test/attestation/view/0x01"
        # Untouched keys keep their defaults
        assert config.network.eas_address == "0xC2679fBD37d54388Ce493F1DB75320D236e1815e"

    def test_batch_entries_and_null_defaults(self, config_file):
        config = load_config(config_file)
        assert isinstance(config.examples["chained-attestation"][0], BatchEntry)
        batch = get_batch(config, "chained-attestation")
        assert [a.schema_uid for a in batch] == ["0x01", "0x02"]
        assert batch[1].reference_uid == ZERO_HASH
        assert batch[0].recipient == ZERO_ADDRESS

    def test_non_list_sections_skipped(self, config_file):
        assert "notes" not in load_config(config_file).examples

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("a: [unclosed")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="top-level mapping"):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path).examples == {}

    def test_entry_must_be_mapping(self):
        with pytest.raises(ConfigError):
            parse_config({"attest-onchain": ["just a string"]})

    def test_wrong_field_type(self):
        with pytest.raises(ConfigError, match="Invalid configuration"):
            parse_config({"attest-onchain": [{"expirationTime": "soon"}]})

    def test_env_expansion(self, monkeypatch):
        monkeypatch.setenv("EAS_TEST_RECIPIENT", "0x" + "12" * 20)
        config = parse_config({"list-items": [{"recipient": "${EAS_TEST_RECIPIENT}"}]})
        assert get_entry(config, "list-items").recipient == "0x" + "12" * 20

    def test_unset_env_left_as_is(self, monkeypatch):
        monkeypatch.delenv("EAS_TEST_UNSET", raising=False)
        config = parse_config({"list-items": [{"recipient": "${EAS_TEST_UNSET}"}]})
        assert get_entry(config, "list-items").recipient == "${EAS_TEST_UNSET}"

    def test_packaged_preset_has_every_section(self, monkeypatch, tmp_path):
        monkeypatch.delenv("EAS_KIT_CONFIG", raising=False)
        path = default_config_path(base=tmp_path)
        assert path.name == "examples.yaml"
        config = load_config(path)
        assert EXPECTED_SECTIONS <= set(config.examples)
        assert len(get_batch(config, "event-checkin-workflow-alternate")) == 2


class TestSections:

    def test_missing_section(self, config_file):
        with pytest.raises(ConfigError, match="not found or is empty"):
            get_entry(load_config(config_file), "fetch-schema")

    def test_entry_on_batch_section(self, config_file):
        with pytest.raises(ConfigError, match="single entry"):
            get_entry(load_config(config_file), "chained-attestation")

    def test_batch_on_single_section(self, config_file):
        with pytest.raises(ConfigError, match="No attestations"):
            get_batch(load_config(config_file), "attest-offchain")


class TestSaveConfig:

    def test_round_trip(self, config_file, tmp_path):
        config = load_config(config_file)
        out = tmp_path / "out" / "examples.yaml"
        save_config(config, out)
        text = out.read_text()
        assert "schemaUid" in text and "fields" in text
        reloaded = load_config(out)
        assert get_entry(reloaded, "attest-offchain") == get_entry(config, "attest-offchain")
        assert get_batch(reloaded, "chained-attestation") == get_batch(config, "chained-attestation")


class TestDefaultPath:

    def test_env_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("EAS_KIT_CONFIG", str(tmp_path / "x.yaml"))
        assert default_config_path() == tmp_path / "x.yaml"

    def test_local_config_dir(self, monkeypatch, tmp_path):
        monkeypatch.delenv("EAS_KIT_CONFIG", raising=False)
        local = tmp_path / "config" / "examples.yaml"
        local.parent.mkdir()
        local.write_text("{}")
        assert default_config_path(base=tmp_path) == local


class TestCredentials:

    def test_reads_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PRIVATE_KEY", "0xkey")
        monkeypatch.setenv("INFURA_API_KEY", "infura")
        monkeypatch.setenv("RPC_URL", "")
        creds = load_credentials(tmp_path / ".env")
        assert creds.private_key == "0xkey"
        assert creds.infura_api_key == "infura"
        assert creds.rpc_url is None

    def test_env_file_does_not_override(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("PRIVATE_KEY=0xfromfile\n")
        monkeypatch.setenv("PRIVATE_KEY", "0xfromenv")
        assert load_credentials(env_file).private_key == "0xfromenv"


class TestRequire:

    def test_require_uid(self):
        assert require_uid("0x01", "schemaUid") == "0x01"
        with pytest.raises(ValidationError, match="schemaUid"):
            require_uid("", "schemaUid")
        with pytest.raises(ValidationError):
            require_uid("abc", "schemaUid")

    def test_require_address(self):
        assert require_address(ZERO_ADDRESS, "recipient") == ZERO_ADDRESS
        with pytest.raises(ValidationError):
            require_address("0x1234", "recipient")

    def test_require_fields(self):
        assert require_fields(ExampleEntry(fields={"a": 1})) == {"a": 1}
        with pytest.raises(ValidationError, match="fields"):
            require_fields(ExampleEntry())
