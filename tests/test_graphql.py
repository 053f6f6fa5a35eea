"""Tests for the EAS GraphQL client and its table rendering."""

import json

import httpx
import pytest
from rich.console import Console

from eas_kit.config import ZERO_HASH
from eas_kit.eas.graphql import EASGraphQLClient, format_decoded_data, render_attestations, render_schemas
from eas_kit.errors import GraphQLError

ENDPOINT = "https://sepolia.easscan.org/graphql"
ADDRESS = "0xFD50b031E778fAb33DfD2Fc3Ca66a1EeF0652165"

ATTESTATION = {
    "id": "0x" + "ab" * 32,
    "attester": ADDRESS,
    "recipient": ADDRESS,
    "refUID": ZERO_HASH,
    "revocable": True,
    "timeCreated": 1700000000,
    "expirationTime": 0,
    "schemaId": "0x" + "cd" * 32,
    "decodedDataJson": json.dumps([
        {"name": "eventId", "type": "uint256", "value": {"name": "eventId", "type": "uint256", "value": 999}},
    ]),
}


def make_client(handler):
    return EASGraphQLClient(ENDPOINT, client=httpx.Client(transport=httpx.MockTransport(handler)))


class Recorder:
    """MockTransport handler that stores request bodies and replies with *data*."""

    def __init__(self, data):
        self.data = data
        self.bodies = []

    def __call__(self, request):
        self.bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"data": self.data})


@pytest.fixture
def wide_console(monkeypatch):
    console = Console(width=400)
    monkeypatch.setattr("eas_kit.eas.graphql.console", console)
    return console


# =============================================================================
# Queries
# =============================================================================

class TestExecute:

    def test_returns_data(self):
        recorder = Recorder({"ok": 1})
        with make_client(recorder) as client:
            assert client.execute("query { ok }") == {"ok": 1}
        assert recorder.bodies == [{"query": "query { ok }", "variables": {}}]

    def test_graphql_errors(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "bad field"}]})

        with pytest.raises(GraphQLError, match="bad field"):
            make_client(handler).execute("query { nope }")

    def test_http_status(self):
        with pytest.raises(GraphQLError, match="status: 500"):
            make_client(lambda request: httpx.Response(500, text="boom")).execute("query { ok }")

    def test_non_json(self):
        with pytest.raises(GraphQLError, match="non-JSON"):
            make_client(lambda request: httpx.Response(200, text="<html>")).execute("query { ok }")

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GraphQLError, match="request failed"):
            make_client(handler).execute("query { ok }")


class TestListings:

    @pytest.mark.parametrize("filter_by, where", [
        ("attester", {"attester": {"equals": ADDRESS}}),
        ("recipient", {"recipient": {"equals": ADDRESS}}),
        ("either", {"OR": [{"attester": {"equals": ADDRESS}}, {"recipient": {"equals": ADDRESS}}]}),
    ])
    def test_attestation_filters(self, filter_by, where):
        recorder = Recorder({"attestations": [ATTESTATION]})
        result = make_client(recorder).list_attestations_for_address(ADDRESS, filter_by, limit=5)
        assert result == [ATTESTATION]
        assert recorder.bodies[0]["variables"] == {"where": where, "take": 5}

    def test_unknown_filter(self):
        with pytest.raises(ValueError):
            make_client(Recorder({})).list_attestations_for_address(ADDRESS, "owner")

    def test_schemas_by_creator(self):
        recorder = Recorder({"schemata": None})
        assert make_client(recorder).list_schemas_for_address(ADDRESS) == []
        assert recorder.bodies[0]["variables"]["where"] == {"creator": {"equals": ADDRESS}}

    def test_referencing(self):
        recorder = Recorder({"attestations": [ATTESTATION]})
        uid = "0x" + "01" * 32
        assert make_client(recorder).list_referencing_attestations(uid) == [ATTESTATION]
        assert recorder.bodies[0]["variables"]["where"] == {"refUID": {"equals": uid}}

    def test_zero_ref_uid_skips_request(self):
        recorder = Recorder({})
        assert make_client(recorder).list_referencing_attestations(ZERO_HASH) == []
        assert recorder.bodies == []


# =============================================================================
# Rendering
# =============================================================================

class TestRendering:

    def test_format_decoded_data(self):
        assert format_decoded_data(ATTESTATION["decodedDataJson"]) == "eventId (uint256): 999"

    def test_format_decoded_data_bad_json(self):
        assert format_decoded_data("{oops").startswith("(Error parsing JSON")

    def test_attestation_table(self, wide_console):
        with wide_console.capture() as capture:
            render_attestations([ATTESTATION], "Attestations By Me")
        output = capture.get()
        assert ATTESTATION["id"] in output
        assert "eventId (uint256): 999" in output
        assert "Never" in output

    def test_empty_attestations(self, wide_console):
        with wide_console.capture() as capture:
            render_attestations([], "Attestations By Me")
        assert "No attestations found for attestations by me." in capture.get()

    def test_schema_table(self, wide_console):
        schema = {
            "id": "0x" + "ef" * 32,
            "schema": "uint256 eventId",
            "resolver": "0x0000000000000000000000000000000000000000",
            "revocable": True,
            "time": 1700000000,
            "index": "42",
            "schemaNames": [{"name": "Vote"}],
        }
        with wide_console.capture() as capture:
            render_schemas([schema], "Schemas")
        output = capture.get()
        assert "uint256 eventId" in output
        assert "Vote" in output
