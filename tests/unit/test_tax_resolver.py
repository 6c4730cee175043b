"""Unit tests for tax rate resolution.

Tests cover:
- Lookup order (company table, fallback table, default rate)
- State name normalization
- Exempt bill types
- Contract violations on negative rates
"""

from decimal import Decimal

import pytest

from billing.invoice.schema import Bill, BillType
from billing.tax.resolver import (
    FALLBACK_STATE_RATES,
    build_rate_table,
    lookup_rate,
    normalize_state,
    resolve_bill_rate,
    resolve_rate,
    state_code,
)
from billing.tax.schema import CompanySettings, StateTaxRate


@pytest.fixture
def company_rates() -> list[StateTaxRate]:
    """Company table overriding Maharashtra and adding Goa."""
    return [
        StateTaxRate(state_name="Maharashtra", gst_rate_percent=Decimal("12"), pincode="400001"),
        StateTaxRate(state_name="Goa", gst_rate_percent=Decimal("5")),
    ]


class TestResolveRate:
    """Test the three-layer lookup."""

    def test_fallback_table_without_company_rates(self) -> None:
        """Test that a known state resolves from the fallback table."""
        assert resolve_rate("  MAHARASHTRA ", []) == Decimal("10")
        assert resolve_rate("Karnataka", []) == Decimal("9")

    def test_company_rate_overrides_fallback(self, company_rates: list[StateTaxRate]) -> None:
        """Test that the company table is consulted before the fallback table."""
        resolution = lookup_rate("maharashtra", company_rates)

        assert resolution.rate == Decimal("12")
        assert resolution.source == "company"

    def test_company_zero_rate_is_honoured(self) -> None:
        """Test that a configured 0% rate is not treated as missing."""
        rates = [StateTaxRate(state_name="Kerala", gst_rate_percent=Decimal("0"))]

        assert resolve_rate("Kerala", rates) == Decimal("0")

    def test_unknown_state_uses_default(self, company_rates: list[StateTaxRate]) -> None:
        """Test that a state in no table falls back to the default rate."""
        resolution = lookup_rate("Assam", company_rates, Decimal("12"))

        assert resolution.rate == Decimal("12")
        assert resolution.source == "default"

    @pytest.mark.parametrize("state", [None, "", "   ", "N/A", "n/a"])
    def test_missing_state_uses_default(self, state: str | None) -> None:
        """Test that an absent or placeholder state uses the default rate."""
        assert resolve_rate(state, []) == Decimal("18")

    def test_explicit_zero_default_is_honoured(self) -> None:
        """Test that a 0% company default stays 0."""
        assert resolve_rate("Assam", [], Decimal("0")) == Decimal("0")

    def test_every_fallback_state_resolves(self) -> None:
        """Test that each fallback entry resolves through the public lookup."""
        for state, rate in FALLBACK_STATE_RATES.items():
            assert lookup_rate(state.title()).rate == rate

    def test_negative_default_rate_raises(self) -> None:
        """Test that a negative default rate is a contract violation."""
        with pytest.raises(ValueError, match="Default GST rate"):
            resolve_rate("Goa", [], Decimal("-1"))


class TestBuildRateTable:
    """Test company rate table construction."""

    def test_first_entry_wins(self) -> None:
        """Test that the first configured rate for a state is kept."""
        table = build_rate_table(
            [
                StateTaxRate(state_name="Goa", gst_rate_percent=Decimal("5")),
                StateTaxRate(state_name=" goa ", gst_rate_percent=Decimal("28")),
            ]
        )

        assert table == {"goa": Decimal("5")}

    def test_negative_rate_raises(self) -> None:
        """Test that a negative rate that bypassed validation is rejected."""
        entry = StateTaxRate.model_construct(
            state_name="Goa", gst_rate_percent=Decimal("-3"), pincode=""
        )

        with pytest.raises(ValueError, match="Goa"):
            build_rate_table([entry])


class TestResolveBillRate:
    """Test bill-level resolution."""

    def test_non_gst_bill_is_exempt(self, company_rates: list[StateTaxRate]) -> None:
        """Test that NON_GST bills resolve to 0 regardless of state."""
        bill = Bill(bill_type=BillType.NON_GST, customer_state="Maharashtra")

        resolution = resolve_bill_rate(bill, CompanySettings(states=company_rates))

        assert resolution.rate == Decimal("0")
        assert resolution.source == "exempt"

    @pytest.mark.parametrize("bill_type", [BillType.GST, BillType.QUOTATION, BillType.DEMO])
    def test_taxed_bill_types_use_state_rate(self, bill_type: BillType) -> None:
        """Test that GST, quotation and demo bills resolve the state rate."""
        bill = Bill(bill_type=bill_type, customer_state="Maharashtra")

        assert resolve_bill_rate(bill).rate == Decimal("10")

    def test_company_default_rate(self) -> None:
        """Test that the company default applies to unknown states."""
        bill = Bill(customer_state="Sikkim")

        resolution = resolve_bill_rate(bill, CompanySettings(default_gst_rate=Decimal("5")))

        assert resolution.rate == Decimal("5")


def test_normalize_state() -> None:
    """Test that state names are trimmed and lower-cased."""
    assert normalize_state("  Tamil Nadu ") == "tamil nadu"
    assert normalize_state(None) == ""


def test_state_code() -> None:
    """Test GSTIN state code lookup."""
    assert state_code("Maharashtra") == "27"
    assert state_code(" delhi ") == "07"
    assert state_code("Atlantis") is None
    assert state_code(None) is None
