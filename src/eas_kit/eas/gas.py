"""Gas estimation before sending and gas reporting after confirmation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from web3 import Web3
from web3.types import TxParams, TxReceipt

from eas_kit.errors import GasEstimationError
from eas_kit.helpers import console

logger = logging.getLogger("eas_kit.eas.gas")


@dataclass(frozen=True)
class GasEstimate:
    estimated_gas: int
    gas_price_wei: int
    estimated_cost_eth: Decimal


def estimate_gas_cost(w3: Web3, tx: TxParams) -> GasEstimate:
    """Estimate gas units and cost (at the current gas price) for *tx*.

    Raises
    ------
    GasEstimationError
        If the node cannot estimate the transaction or report a gas price.
    """
    try:
        estimated_gas = w3.eth.estimate_gas(tx)
        gas_price = w3.eth.gas_price
    except Exception as exc:
        logger.error("Gas estimation failed: %s", exc)
        raise GasEstimationError("Failed to estimate gas for the transaction.") from exc

    if not gas_price:
        raise GasEstimationError("Failed to retrieve gas price for cost estimation.")

    cost = Decimal(str(Web3.from_wei(estimated_gas * gas_price, "ether")))
    console.print("\n[bold]--- Estimated Gas Cost ---[/bold]")
    console.print(f"Estimated Gas Units: {estimated_gas}")
    console.print(f"Current Gas Price (Wei): {gas_price}")
    console.print(f"Estimated Transaction Cost (ETH): {cost}")
    console.print("----------------------------")
    return GasEstimate(estimated_gas=estimated_gas, gas_price_wei=gas_price, estimated_cost_eth=cost)


def report_actual_gas_cost(receipt: TxReceipt) -> Decimal | None:
    """Print ``gasUsed * effectiveGasPrice`` from a receipt; return the ETH cost."""
    gas_used = receipt.get("gasUsed")
    effective_price = receipt.get("effectiveGasPrice")

    console.print("\n[bold]--- Actual Gas Cost Report ---[/bold]")
    if not gas_used or not effective_price:
        logger.warning(
            "Could not determine actual gas cost from receipt (missing gasUsed or effectiveGasPrice)."
        )
        console.print("----------------------------")
        return None

    cost = Decimal(str(Web3.from_wei(gas_used * effective_price, "ether")))
    console.print(f"Actual Gas Used: {gas_used}")
    console.print(f"Effective Gas Price (Wei): {effective_price}")
    console.print(f"Actual Transaction Cost (ETH): {cost}")
    console.print("----------------------------")
    return cost


def compare_gas(string_estimate: GasEstimate, int_estimate: GasEstimate) -> str:
    """Describe which encoding is cheaper, string or int40 array."""
    difference = string_estimate.estimated_gas - int_estimate.estimated_gas
    cost_difference = string_estimate.estimated_cost_eth - int_estimate.estimated_cost_eth
    if difference > 0:
        return (
            f"Attesting as int40 array is potentially cheaper by {difference:,} gas units "
            f"({cost_difference:.6f} ETH)."
        )
    if difference < 0:
        return (
            f"Attesting as string is potentially cheaper by {-difference:,} gas units "
            f"({-cost_difference:.6f} ETH)."
        )
    return "Estimated gas cost is the same for both methods."
