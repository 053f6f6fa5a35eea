"""Event ticketing and check-in attestations.

``run_event_checkin`` records a single check-in carrying the attendee's
approximate location. ``run_event_checkin_chained`` records a ticket
purchase first, then a check-in whose ``refUID`` points at the ticket.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

import httpx
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.config import ExampleEntry, NetworkConfig, require_fields
from eas_kit.errors import ConfigError
from eas_kit.helpers import console
from eas_kit.workflows.base import WorkflowResult, attest_entry, confirm_attestation

logger = logging.getLogger("eas_kit.workflows.event_checkin")

SECTION_NAME = "event-checkin"
CHAINED_SECTION_NAME = "event-checkin-workflow-alternate"

PUBLIC_IP_URL = "https://api.ipify.org"
GEOIP_URL = "http://ip-api.com/json/{ip}"
FALLBACK_IP = "0.0.0.0"
EMPTY_GEOJSON = "{}"


def lookup_location(client: Optional[httpx.Client] = None, timeout: float = 10.0) -> tuple[str, str]:
    """Return ``(public_ip, geojson_point)`` for this machine.

    Lookup failures are logged and yield ``"0.0.0.0"`` and ``"{}"``.
    """
    owns_client = client is None
    client = client or httpx.Client(timeout=timeout)
    ip_address = FALLBACK_IP
    try:
        response = client.get(PUBLIC_IP_URL, params={"format": "json"})
        response.raise_for_status()
        ip_address = response.json()["ip"]
        logger.info("Fetched public IP address: %s", ip_address)

        response = client.get(GEOIP_URL.format(ip=ip_address))
        response.raise_for_status()
        geo = response.json()
        if geo.get("status") != "success" or "lat" not in geo or "lon" not in geo:
            logger.warning("Could not determine geolocation from IP address %s.", ip_address)
            return ip_address, EMPTY_GEOJSON

        logger.info("Geolocation lookup successful: Lat=%s, Lon=%s", geo["lat"], geo["lon"])
        # GeoJSON order is [longitude, latitude]
        point = {"type": "Point", "coordinates": [geo["lon"], geo["lat"]]}
        return ip_address, json.dumps(point)
    except (httpx.HTTPError, ValueError, KeyError) as exc:
        logger.warning("Error fetching public IP or geolocation: %s. Using default values.", exc)
        return ip_address, EMPTY_GEOJSON
    finally:
        if owns_client:
            client.close()


def new_ticket_id() -> str:
    """A throwaway address standing in for a unique ticket id."""
    return Account.create().address


def run_event_checkin(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entry: ExampleEntry,
    locate: Callable[[], tuple[str, str]] = lookup_location,
) -> WorkflowResult:
    console.print("\n[bold]--- Starting Event Check-In Workflow ---[/bold]")
    _, geojson = locate()

    data = dict(require_fields(entry))
    data.setdefault("ticketId", new_ticket_id())
    data.setdefault("timestamp", int(time.time()))
    data["geoJson"] = geojson
    logger.info("Prepared attestation data: %s", data)

    result = attest_entry(w3, account, network, entry, data, SECTION_NAME)
    confirm_attestation(w3, network, result.attestation_uid)

    console.print("\n[green]--- Event Check-In Workflow Completed Successfully ---[/green]")
    return result


def wait_between_attestations(ticks: int = 5, interval: float = 1.0, sleep: Callable[[float], None] = time.sleep) -> None:
    """Simulate the time between buying a ticket and arriving at the event."""
    console.print("Waiting before check-in", end="")
    for _ in range(ticks):
        sleep(interval)
        console.print("...", end="")
    console.print()


def run_event_checkin_chained(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entries: list[ExampleEntry],
    locate: Callable[[], tuple[str, str]] = lookup_location,
    delay_ticks: int = 5,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[WorkflowResult, WorkflowResult]:
    """Attest a ticket purchase, wait, then attest a check-in referencing it."""
    if len(entries) != 2:
        raise ConfigError(
            f"Configuration for '{CHAINED_SECTION_NAME}' must contain exactly two attestations, got {len(entries)}."
        )
    ticket_entry, checkin_entry = entries

    console.print("\n[bold]--- Step 1: Ticket Purchase ---[/bold]")
    ticket_data = dict(require_fields(ticket_entry))
    ticket_data.setdefault("ticketId", new_ticket_id())
    ticket_data.setdefault("timestamp", int(time.time()))
    ticket = attest_entry(w3, account, network, ticket_entry, ticket_data, f"{CHAINED_SECTION_NAME}[0]")
    console.print(f"Ticket Purchase Attestation UID: [cyan]{ticket.attestation_uid}[/cyan]")

    wait_between_attestations(ticks=delay_ticks, sleep=sleep)

    console.print("\n[bold]--- Step 2: Event Check-In ---[/bold]")
    _, geojson = locate()
    checkin_data = dict(require_fields(checkin_entry))
    checkin_data["location"] = geojson
    checkin = attest_entry(
        w3,
        account,
        network,
        checkin_entry,
        checkin_data,
        f"{CHAINED_SECTION_NAME}[1]",
        ref_uid=ticket.attestation_uid,
    )
    console.print(f"Event Check-in Attestation UID: [cyan]{checkin.attestation_uid}[/cyan]")
    console.print(f"It references the ticket purchase: {network.attestation_url(ticket.attestation_uid)}")
    return ticket, checkin
