"""Tests for gas estimation, reporting and the coordinate gas comparison."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from eas_kit.config import ExampleEntry, NetworkConfig, get_entry, load_config
from eas_kit.eas.gas import GasEstimate, compare_gas, estimate_gas_cost, report_actual_gas_cost
from eas_kit.eas.gas_comparison import (
    INT_SCHEMA_MULTI_UID,
    INT_SCHEMA_SINGLE_UID,
    STRING_SCHEMA_UID,
    parse_geojson,
    run_gas_comparison,
)
from eas_kit.errors import GasEstimationError, ValidationError


def estimate(gas, cost="0.001"):
    return GasEstimate(estimated_gas=gas, gas_price_wei=10**9, estimated_cost_eth=Decimal(cost))


@pytest.fixture
def w3():
    mock = MagicMock()
    mock.eth.estimate_gas.return_value = 50_000
    mock.eth.gas_price = 10**9
    return mock


# =============================================================================
# Estimation and reporting
# =============================================================================

class TestEstimateGasCost:

    def test_cost_is_gas_times_price(self, w3):
        result = estimate_gas_cost(w3, {"to": "0x01", "data": "0x"})
        assert result.estimated_gas == 50_000
        assert result.gas_price_wei == 10**9
        assert result.estimated_cost_eth == Decimal("0.00005")

    def test_node_failure(self, w3):
        w3.eth.estimate_gas.side_effect = ValueError("execution reverted")
        with pytest.raises(GasEstimationError, match="Failed to estimate gas"):
            estimate_gas_cost(w3, {})

    def test_missing_gas_price(self, w3):
        w3.eth.gas_price = 0
        with pytest.raises(GasEstimationError, match="gas price"):
            estimate_gas_cost(w3, {})


class TestReportActualGasCost:

    def test_reports_cost(self):
        assert report_actual_gas_cost({"gasUsed": 21_000, "effectiveGasPrice": 2 * 10**9}) == Decimal("0.000042")

    @pytest.mark.parametrize("receipt", [{}, {"gasUsed": 21_000}, {"effectiveGasPrice": 1}])
    def test_incomplete_receipt(self, receipt):
        assert report_actual_gas_cost(receipt) is None


class TestCompareGas:

    def test_int_cheaper(self):
        summary = compare_gas(estimate(120_000, "0.003"), estimate(100_000, "0.001"))
        assert "int40 array is potentially cheaper by 20,000 gas units" in summary
        assert "0.002000 ETH" in summary

    def test_string_cheaper(self):
        summary = compare_gas(estimate(90_000), estimate(100_000))
        assert "string is potentially cheaper by 10,000" in summary

    def test_equal(self):
        assert compare_gas(estimate(1), estimate(1)) == "Estimated gas cost is the same for both methods."


# =============================================================================
# Coordinate gas comparison
# =============================================================================

class TestParseGeojson:

    def test_mapping_passes_through(self):
        value = {"type": "Polygon"}
        assert parse_geojson(value) is value

    def test_trailing_commas_tolerated(self):
        assert parse_geojson('{"type": "Polygon", "coordinates": [[1, 2],],}')["type"] == "Polygon"

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", 42])
    def test_invalid(self, raw):
        with pytest.raises(ValidationError):
            parse_geojson(raw)


class TestRunGasComparison:

    @pytest.fixture
    def contract(self):
        eas = MagicMock()
        eas.address = "0xC2679fBD37d54388Ce493F1DB75320D236e1815e"
        eas.encode_abi.return_value = "0xdeadbeef"
        return eas

    def test_preset_is_multi_feature(self, account, w3, contract, monkeypatch):
        monkeypatch.delenv("EAS_KIT_CONFIG", raising=False)
        entry = get_entry(load_config(), "gas-comparison")
        estimates = [estimate(140_000, "0.0014"), estimate(90_000, "0.0009")]

        with patch("eas_kit.eas.gas_comparison.eas_contract", return_value=contract), \
                patch("eas_kit.eas.gas_comparison.estimate_gas_cost", side_effect=estimates) as estimator:
            result = run_gas_comparison(w3, account, NetworkConfig(), entry, check_schemas=False)

        assert result.multi_feature is True
        assert result.string_estimate.estimated_gas == 140_000
        assert "int40 array is potentially cheaper by 50,000" in result.summary
        assert estimator.call_count == 2
        requests = [c.kwargs["args"][0] for c in contract.encode_abi.call_args_list]
        assert [r[0] for r in requests] == [STRING_SCHEMA_UID, INT_SCHEMA_MULTI_UID]
        assert estimator.call_args_list[0].args[1]["from"] == account.address

    def test_single_polygon_uses_flat_schema(self, account, w3, contract):
        entry = ExampleEntry(fields={
            "coordinates": {"type": "Polygon", "coordinates": [[[1.0, 2.0], [3.0, 4.0], [1.0, 2.0]]]},
        })
        with patch("eas_kit.eas.gas_comparison.eas_contract", return_value=contract), \
                patch("eas_kit.eas.gas_comparison.estimate_gas_cost", side_effect=[estimate(1), estimate(1)]):
            result = run_gas_comparison(w3, account, NetworkConfig(), entry, check_schemas=False)

        assert result.multi_feature is False
        assert contract.encode_abi.call_args_list[1].kwargs["args"][0][0] == INT_SCHEMA_SINGLE_UID

    def test_missing_coordinates(self, account, w3):
        with pytest.raises(ValidationError, match="coordinates"):
            run_gas_comparison(w3, account, NetworkConfig(), ExampleEntry(fields={}), check_schemas=False)

    def test_unscalable_geojson(self, account, w3):
        entry = ExampleEntry(fields={"coordinates": {"type": "Point", "coordinates": [1, 2]}})
        with pytest.raises(ValidationError, match="scaling failed"):
            run_gas_comparison(w3, account, NetworkConfig(), entry, check_schemas=False)
