"""Read-only queries against the EAS GraphQL indexer (easscan)."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Literal, Optional

import httpx
from rich.table import Table

from eas_kit.config import ZERO_ADDRESS, ZERO_HASH
from eas_kit.errors import GraphQLError
from eas_kit.helpers import console

logger = logging.getLogger("eas_kit.eas.graphql")

FilterBy = Literal["attester", "recipient", "either"]

_ATTESTATION_FIELDS = """
    id
    attester
    recipient
    refUID
    revocable
    timeCreated
    expirationTime
    schemaId
    decodedDataJson
"""

ATTESTATIONS_QUERY = f"""
query Attestations($where: AttestationWhereInput, $take: Int) {{
  attestations(where: $where, take: $take, orderBy: {{ timeCreated: desc }}) {{{_ATTESTATION_FIELDS}  }}
}}
"""

SCHEMATA_QUERY = """
query SchemasByCreator($where: SchemaWhereInput, $take: Int) {
  schemata(where: $where, take: $take, orderBy: { time: desc }) {
    id
    schema
    creator
    resolver
    revocable
    time
    index
    schemaNames { name }
  }
}
"""


class EASGraphQLClient:
    """Small synchronous GraphQL client over ``httpx``."""

    def __init__(self, endpoint: str, client: Optional[httpx.Client] = None, timeout: float = 15.0) -> None:
        self.endpoint = endpoint
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> EASGraphQLClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def execute(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """POST *query* and return its ``data`` member.

        Raises ``GraphQLError`` on transport errors, non-2xx responses,
        non-JSON bodies, and GraphQL ``errors``.
        """
        try:
            resp = self._client.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise GraphQLError(f"GraphQL request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.error("GraphQL request failed with status %s: %s", resp.status_code, resp.text)
            raise GraphQLError(f"HTTP error! status: {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as exc:
            logger.error("Raw response text: %s", resp.text)
            raise GraphQLError("Received non-JSON response from GraphQL endpoint.") from exc

        if payload.get("errors"):
            messages = ", ".join(str(e.get("message", e)) for e in payload["errors"])
            raise GraphQLError(f"GraphQL query failed: {messages}")
        return payload.get("data") or {}

    def list_attestations_for_address(
        self, address: str, filter_by: FilterBy = "either", limit: int = 10
    ) -> list[dict[str, Any]]:
        if filter_by == "attester":
            where: dict[str, Any] = {"attester": {"equals": address}}
        elif filter_by == "recipient":
            where = {"recipient": {"equals": address}}
        elif filter_by == "either":
            where = {"OR": [{"attester": {"equals": address}}, {"recipient": {"equals": address}}]}
        else:
            raise ValueError(f"Unknown filter: {filter_by!r}")
        data = self.execute(ATTESTATIONS_QUERY, {"where": where, "take": limit})
        return data.get("attestations") or []

    def list_schemas_for_address(self, address: str, limit: int = 10) -> list[dict[str, Any]]:
        data = self.execute(SCHEMATA_QUERY, {"where": {"creator": {"equals": address}}, "take": limit})
        return data.get("schemata") or []

    def list_referencing_attestations(self, ref_uid: str, limit: int = 10) -> list[dict[str, Any]]:
        if not ref_uid or ref_uid in (ZERO_HASH, ZERO_ADDRESS):
            logger.info("Invalid or zero refUID provided.")
            return []
        data = self.execute(ATTESTATIONS_QUERY, {"where": {"refUID": {"equals": ref_uid}}, "take": limit})
        return data.get("attestations") or []


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _format_time(value: Any) -> str:
    seconds = int(value or 0)
    if seconds == 0:
        return "Never"
    return datetime.fromtimestamp(seconds).strftime("%Y-%m-%d %H:%M:%S")


def format_decoded_data(decoded_json: Optional[str]) -> str:
    """Render ``decodedDataJson`` as ``name (type): value`` lines."""
    try:
        items = json.loads(decoded_json or "[]")
    except ValueError:
        return f"(Error parsing JSON: {decoded_json})"
    lines = []
    for item in items:
        value = item.get("value")
        if isinstance(value, dict) and "value" in value:
            value = value["value"]
        lines.append(f"{item.get('name')} ({item.get('type')}): {json.dumps(value)}")
    return "\n".join(lines)


def render_attestations(attestations: list[dict[str, Any]], title: str) -> None:
    if not attestations:
        console.print(f"[yellow]No attestations found for {title.lower()}.[/yellow]")
        return
    table = Table(title=title, show_lines=True)
    table.add_column("UID", style="cyan", overflow="fold")
    table.add_column("Schema", overflow="fold")
    table.add_column("Attester", overflow="fold")
    table.add_column("Recipient", overflow="fold")
    table.add_column("Created")
    table.add_column("Expires")
    table.add_column("Revocable")
    table.add_column("Reference UID", overflow="fold")
    table.add_column("Decoded Data", overflow="fold")
    for att in attestations:
        ref = att.get("refUID")
        table.add_row(
            att.get("id", ""),
            att.get("schemaId", ""),
            att.get("attester", ""),
            att.get("recipient", ""),
            _format_time(att.get("timeCreated")),
            _format_time(att.get("expirationTime")),
            str(att.get("revocable")),
            ref if ref and ref != ZERO_HASH else "None",
            format_decoded_data(att.get("decodedDataJson")),
        )
    console.print(table)


def render_schemas(schemas: list[dict[str, Any]], title: str) -> None:
    if not schemas:
        console.print("[yellow]No schemas found registered by this address.[/yellow]")
        return
    table = Table(title=title, show_lines=True)
    table.add_column("UID", style="cyan", overflow="fold")
    table.add_column("Definition", overflow="fold")
    table.add_column("Resolver", overflow="fold")
    table.add_column("Revocable")
    table.add_column("Created")
    table.add_column("Index")
    table.add_column("Names")
    for schema in schemas:
        resolver = schema.get("resolver")
        table.add_row(
            schema.get("id", ""),
            schema.get("schema", ""),
            resolver if resolver and resolver != ZERO_ADDRESS else "None",
            str(schema.get("revocable")),
            _format_time(schema.get("time")),
            str(schema.get("index", "")),
            ", ".join(n.get("name", "") for n in schema.get("schemaNames") or []),
        )
    console.print(table)
