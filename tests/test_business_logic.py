"""
Tests for shared business rules
Numbering, quantity formatting, CSV merging and RRP costing
"""

from decimal import Decimal
from datetime import date

import pandas as pd

from gims.services.business_logic import (
    calculate_rrp_line_costs, expand_equipment_numbers, format_quantity,
    fuel_week_number, merge_csv, receive_status_label, round_currency
)
from gims.services.prediction import compute_metrics, confidence_level
from gims.services.procurement.request_workflow import compute_next_request_number
from gims.services.procurement.rrp import split_rrp_number


class TestQuantities:

    def test_format_quantity_drops_trailing_zeros(self):
        assert format_quantity(Decimal("5.00")) == "5"
        assert format_quantity(Decimal("2.50")) == "2.5"
        assert format_quantity(None) == "0"

    def test_round_currency_half_up(self):
        assert round_currency(Decimal("1.005")) == Decimal("1.01")
        assert round_currency(Decimal("2.344")) == Decimal("2.34")

    def test_receive_status_label(self):
        assert receive_status_label(10, 6) == "Partially Received"
        assert receive_status_label(10, 10) == "Received"
        assert receive_status_label(10, 0) == "Not Received"


class TestCsvFields:

    def test_merge_appends_new_values_only(self):
        assert merge_csv("A,B", ["B", "C"]) == "A,B,C"

    def test_merge_prepend(self):
        assert merge_csv("A,B", ["C", " "], prepend=True) == "C,A,B"

    def test_expand_equipment_ranges(self):
        assert expand_equipment_numbers("101-103, 200, GPU1") == ["101", "102", "103", "200", "GPU1"]

    def test_expand_keeps_descending_range_as_token(self):
        assert expand_equipment_numbers("105-103") == ["105-103"]


class TestNumbering:

    def test_next_request_number_increments_counters(self):
        assert compute_next_request_number("GSEY82T4F81RN7", "GSE", "2081/82") == "GSEY81T5F81RN8"

    def test_next_request_number_without_history(self):
        assert compute_next_request_number(None, "GSE", "2081/82") == "GSEY82T1F81RN1"

    def test_fuel_weeks_end_on_saturday(self):
        first = date(2025, 4, 2)  # Wednesday

        assert fuel_week_number(date(2025, 4, 5), first) == 1
        assert fuel_week_number(date(2025, 4, 6), first) == 2
        assert fuel_week_number(date(2025, 4, 12), first) == 2
        assert fuel_week_number(date(2025, 4, 13), first) == 3

    def test_fuel_week_starting_on_saturday(self):
        assert fuel_week_number(date(2025, 4, 5), date(2025, 4, 5)) == 1
        assert fuel_week_number(date(2025, 4, 6), date(2025, 4, 5)) == 2

    def test_split_rrp_number(self):
        assert split_rrp_number("L001T3") == ("L001", 3)
        assert split_rrp_number("F010") == ("F010", 0)


class TestRRPCosting:

    def test_charges_shared_by_price(self):
        costs = calculate_rrp_line_costs(
            prices=[Decimal("100"), Decimal("300")],
            customs_charges=[Decimal("0"), Decimal("0")],
            vat_flags=[False, False],
            freight_charge=Decimal("40"),
            custom_service_charge=Decimal("20"),
            vat_rate=Decimal("13"),
        )
        assert costs[0].freight_charge == Decimal("10.00")
        assert costs[1].freight_charge == Decimal("30.00")
        assert costs[0].customs_service_charge == Decimal("5.00")
        assert costs[0].total_amount == Decimal("115.00")

    def test_vat_and_forex(self):
        costs = calculate_rrp_line_costs(
            prices=[Decimal("10")],
            customs_charges=[Decimal("50")],
            vat_flags=[True],
            freight_charge=Decimal("0"),
            custom_service_charge=Decimal("0"),
            vat_rate=Decimal("13"),
            forex_rate=Decimal("100"),
        )
        assert costs[0].item_price == Decimal("1000.00")
        assert costs[0].vat_amount == Decimal("136.50")
        assert costs[0].total_amount == Decimal("1186.50")


class TestLeadTimeMetrics:

    def test_confidence_levels(self):
        assert confidence_level(20) == "HIGH"
        assert confidence_level(10) == "MEDIUM"
        assert confidence_level(9) == "LOW"

    def test_compute_metrics(self):
        samples = pd.DataFrame({
            "request_date": [date(2025, 1, 1), date(2025, 2, 1), date(2025, 3, 1)],
            "receive_date": [date(2025, 1, 11), date(2025, 2, 21), date(2025, 3, 31)],
            "lead_days": [10.0, 20.0, 30.0],
        })
        metrics = compute_metrics(samples)

        assert metrics["sample_size"] == 3
        assert metrics["mean_days"] == 20.0
        assert metrics["median_days"] == 20.0
        # weights 1, 2, 3 oldest first
        assert metrics["weighted_average_days"] == round(140 / 6, 2)
        assert metrics["percentile_10_days"] == 12.0
        assert metrics["percentile_90_days"] == 28.0
        assert metrics["min_days"] == 10.0
        assert metrics["max_days"] == 30.0
        assert metrics["confidence_level"] == "LOW"
        assert metrics["last_receive_date"] == date(2025, 3, 31)
