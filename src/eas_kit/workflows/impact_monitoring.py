"""Attest the geospatial bounds of a monitored area."""

from __future__ import annotations

import logging

from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.config import ExampleEntry, NetworkConfig, require_fields
from eas_kit.helpers import console
from eas_kit.workflows.base import WorkflowResult, attest_entry, confirm_attestation

logger = logging.getLogger("eas_kit.workflows.impact_monitoring")

SECTION_NAME = "impact-monitoring"


def run_impact_monitoring(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entry: ExampleEntry,
) -> WorkflowResult:
    console.print("\n[bold]--- Starting Impact Monitoring Workflow ---[/bold]")
    data = dict(require_fields(entry))
    logger.info("Prepared attestation data: %s", data)

    result = attest_entry(w3, account, network, entry, data, SECTION_NAME)
    confirm_attestation(w3, network, result.attestation_uid)

    console.print("\n[green]--- Impact Monitoring Workflow Completed Successfully ---[/green]")
    return result
