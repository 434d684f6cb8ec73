"""Tests for the prescription refill estimator."""

import pytest

from projector import InvalidInput
from refills import Prescription, estimate_refills


class TestPrescription:
    @pytest.mark.parametrize("freq,refills", [("monthly", 12), ("90-day", 4), ("annually", 1)])
    def test_refills_per_year(self, freq, refills):
        assert Prescription("Rx", 10, freq).refills_per_year == refills

    def test_unknown_frequency(self):
        with pytest.raises(InvalidInput):
            Prescription("Rx", 10, "weekly")

    def test_non_positive_cost(self):
        with pytest.raises(InvalidInput):
            Prescription("Rx", 0)

    def test_negative_copay(self):
        with pytest.raises(InvalidInput):
            Prescription("Rx", 10, insurance_copay=-5)

    def test_blank_name(self):
        with pytest.raises(InvalidInput):
            Prescription("", 10)


class TestEstimateRefills:
    def test_uninsured_pays_full_cost(self):
        est = estimate_refills([Prescription("Atorvastatin", 30, "monthly")])
        row = est.rows[0]
        assert row.annual_cost == 360
        assert row.out_of_pocket == 360
        assert row.insurance_pays == 0

    def test_copay_splits_cost(self):
        est = estimate_refills([Prescription("Eliquis", 500, "90-day", insurance_copay=45)])
        row = est.rows[0]
        assert row.annual_cost == 2000
        assert row.out_of_pocket == 180
        assert row.insurance_pays == 1820

    def test_copay_above_cost_never_negative(self):
        est = estimate_refills([Prescription("Generic", 5, "monthly", insurance_copay=10)])
        assert est.rows[0].insurance_pays == 0

    def test_totals(self):
        est = estimate_refills([
            Prescription("A", 100, "monthly", insurance_copay=20),
            Prescription("B", 300, "annually"),
        ])
        assert est.total_annual_cost == 1500
        assert est.total_annual_copay == 540
        assert est.total_insurance_pays == 960

    def test_empty_list(self):
        with pytest.raises(InvalidInput):
            estimate_refills([])
