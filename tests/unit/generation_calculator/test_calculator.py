"""Tests for calculator module."""

import pandas as pd
import pytest

from src.functions.generation_calculator.calculator import (
    build_output,
    calculate_actual_heat_rates,
    calculate_max_emissions,
    calculate_totals,
)
from src.functions.generation_calculator.codec import decode_report
from src.functions.generation_calculator.errors import ComputationError
from src.functions.generation_calculator.models import (
    CoalGenerator,
    Day,
    GasGenerator,
    GenerationReport,
    Tier,
    WindGenerator,
)
from src.functions.generation_calculator.reference import ReferenceData

JAN_1 = pd.Timestamp("2017-01-01", tz="UTC")
JAN_2 = pd.Timestamp("2017-01-02", tz="UTC")
JAN_3 = pd.Timestamp("2017-01-03", tz="UTC")


def make_reference(low: float = 0.25, medium: float = 0.5, high: float = 1.5) -> ReferenceData:
    """Same tiers for both tables, easy numbers."""
    tiers = {Tier.LOW: low, Tier.MEDIUM: medium, Tier.HIGH: high}
    return ReferenceData.from_factors(value_factor=tiers, emissions_factor=tiers)


class TestCalculateTotals:
    """Tests for calculate_totals function."""

    def test_onshore_wind_single_day(self) -> None:
        """Onshore wind with energy 100, price 2 and High factor 1.5 totals 300."""
        report = GenerationReport(wind=(WindGenerator("W", (Day(JAN_1, 100, 2),), "Onshore"),))

        totals = calculate_totals(report, make_reference(high=1.5))

        assert totals[0].name == "W"
        assert totals[0].total == 300.0

    def test_offshore_wind_uses_low(self) -> None:
        report = GenerationReport(wind=(WindGenerator("W", (Day(JAN_1, 100, 2),), "Offshore"),))

        totals = calculate_totals(report, make_reference(low=0.25))

        assert totals[0].total == 50.0

    @pytest.mark.parametrize("location", ["", "Inland"])
    def test_unknown_wind_location_totals_zero(self, location: str) -> None:
        report = GenerationReport(wind=(WindGenerator("W", (Day(JAN_1, 100, 2),), location),))

        assert calculate_totals(report, make_reference())[0].total == 0.0

    def test_sums_all_days(self) -> None:
        days = (Day(JAN_1, 10, 2), Day(JAN_2, 5, 4), Day(JAN_3, 1, 1))
        report = GenerationReport(gas=(GasGenerator("G", days, 0.1),))

        totals = calculate_totals(report, make_reference(medium=0.5))

        assert totals[0].total == pytest.approx((20 + 20 + 1) * 0.5)

    def test_empty_series_totals_zero(self) -> None:
        report = GenerationReport(
            wind=(WindGenerator("W", (), "Onshore"),),
            gas=(GasGenerator("G", (), 0.1),),
            coal=(CoalGenerator("C", (), 0.1, 10, 5),),
        )

        totals = calculate_totals(report, make_reference())

        assert [t.total for t in totals] == [0.0, 0.0, 0.0]

    def test_order_is_wind_gas_coal(self) -> None:
        report = GenerationReport(
            wind=(WindGenerator("W1", (), "Onshore"), WindGenerator("W2", (), "Offshore")),
            gas=(GasGenerator("G1", (), 0.1),),
            coal=(CoalGenerator("C1", (), 0.1, 10, 5), CoalGenerator("C2", (), 0.1, 10, 5)),
        )

        totals = calculate_totals(report, make_reference())

        assert [t.name for t in totals] == ["W1", "W2", "G1", "C1", "C2"]

    def test_gas_and_coal_ignore_low_and_high(self) -> None:
        """Changing Low/High reference values does not affect Gas/Coal totals."""
        report = GenerationReport(
            gas=(GasGenerator("G", (Day(JAN_1, 10, 3),), 0.1),),
            coal=(CoalGenerator("C", (Day(JAN_1, 7, 2),), 0.1, 10, 5),),
        )

        first = calculate_totals(report, make_reference(low=0.1, medium=0.5, high=0.9))
        second = calculate_totals(report, make_reference(low=9.0, medium=0.5, high=42.0))

        assert first == second
        assert [t.total for t in first] == [15.0, 7.0]


class TestCalculateMaxEmissions:
    """Tests for calculate_max_emissions function."""

    def test_gas_uses_medium_coal_uses_high(self) -> None:
        report = GenerationReport(
            gas=(GasGenerator("G", (Day(JAN_1, 10, 1),), 2.0),),
            coal=(CoalGenerator("C", (Day(JAN_2, 10, 1),), 2.0, 1, 1),),
        )

        result, _ = calculate_max_emissions(report, make_reference(medium=0.5, high=1.5))

        assert [(r.name, r.date, r.emission) for r in result] == [("G", JAN_1, 10.0), ("C", JAN_2, 30.0)]

    def test_single_generator_per_date(self) -> None:
        report = GenerationReport(gas=(GasGenerator("G", (Day(JAN_1, 4, 1),), 1.0),))

        result, _ = calculate_max_emissions(report, make_reference())

        assert len(result) == 1
        assert result[0].name == "G"

    def test_highest_emission_wins(self) -> None:
        report = GenerationReport(
            gas=(GasGenerator("G1", (Day(JAN_1, 1, 1),), 1.0), GasGenerator("G2", (Day(JAN_1, 5, 1),), 1.0)),
        )

        result, _ = calculate_max_emissions(report, make_reference())

        assert result[0].name == "G2"

    def test_tie_keeps_first_in_traversal_order(self) -> None:
        """Gas is traversed before Coal, so an equal Coal emission does not replace the Gas winner."""
        # Gas: 20 * 1.0 * 0.5 = 10; Coal: 10 * 1.0 * 1.0 = 10
        report = GenerationReport(
            gas=(GasGenerator("A", (Day(JAN_1, 20, 1),), 1.0),),
            coal=(CoalGenerator("B", (Day(JAN_1, 10, 1),), 1.0, 1, 1),),
        )

        result, _ = calculate_max_emissions(report, make_reference(medium=0.5, high=1.0))

        assert result[0].emission == 10.0
        assert result[0].name == "A"

    def test_tie_within_category_keeps_report_order(self) -> None:
        report = GenerationReport(
            coal=(
                CoalGenerator("C1", (Day(JAN_1, 10, 1),), 1.0, 1, 1),
                CoalGenerator("C2", (Day(JAN_1, 10, 1),), 1.0, 1, 1),
            ),
        )

        result, _ = calculate_max_emissions(report, make_reference())

        assert result[0].name == "C1"

    def test_one_entry_per_date_sorted(self) -> None:
        report = GenerationReport(
            gas=(GasGenerator("G", (Day(JAN_3, 1, 1), Day(JAN_1, 1, 1)), 1.0),),
            coal=(CoalGenerator("C", (Day(JAN_2, 1, 1), Day(JAN_1, 9, 1)), 1.0, 1, 1),),
        )

        result, _ = calculate_max_emissions(report, make_reference())

        assert [r.date for r in result] == [JAN_1, JAN_2, JAN_3]
        assert [r.name for r in result] == ["C", "C", "G"]

    def test_wind_never_contributes(self) -> None:
        report = GenerationReport(wind=(WindGenerator("W", (Day(JAN_1, 100, 2),), "Onshore"),))

        assert calculate_max_emissions(report, make_reference()) == ((), ())

    def test_empty_series_contributes_nothing(self) -> None:
        report = GenerationReport(
            gas=(GasGenerator("G", (), 1.0),),
            coal=(CoalGenerator("C", (Day(JAN_1, 1, 1),), 1.0, 1, 1),),
        )

        result, _ = calculate_max_emissions(report, make_reference())

        assert [r.name for r in result] == ["C"]

    def test_non_finite_emission_is_skipped(self) -> None:
        """An emission that overflows to NaN is skipped without hiding the other generators."""
        # 1e200 * 1e200 overflows to inf, and inf * 0.0 is NaN
        report = GenerationReport(
            gas=(GasGenerator("G", (Day(JAN_1, 1e200, 1.0),), 1e200),),
            coal=(CoalGenerator("C", (Day(JAN_2, 2, 1),), 1.0, 1, 1),),
        )
        tiers = {Tier.LOW: 0.25, Tier.MEDIUM: 0.0, Tier.HIGH: 1.5}
        reference = ReferenceData.from_factors(value_factor=tiers, emissions_factor=tiers)

        result, skipped = calculate_max_emissions(report, reference)

        assert [(r.name, r.date, r.emission) for r in result] == [("C", JAN_2, 3.0)]
        assert len(skipped) == 1
        assert isinstance(skipped[0], ComputationError)
        assert skipped[0].generator == "G"

    def test_all_emissions_non_finite(self) -> None:
        report = GenerationReport(gas=(GasGenerator("G", (Day(JAN_1, 1e200, 1.0),), 1e200),))

        result, skipped = calculate_max_emissions(report, make_reference(medium=1.0))

        assert result == ()
        assert [s.generator for s in skipped] == ["G"]


class TestCalculateActualHeatRates:
    """Tests for calculate_actual_heat_rates function."""

    @pytest.mark.parametrize(
        ("heat_input", "net_generation", "expected"),
        [(500, 100, 5.0), (1000, 250, 4.0)],
    )
    def test_heat_rate(self, heat_input: float, net_generation: float, expected: float) -> None:
        report = GenerationReport(coal=(CoalGenerator("C", (), 0.1, heat_input, net_generation),))

        rates, skipped = calculate_actual_heat_rates(report)

        assert rates[0].name == "C"
        assert rates[0].heat_rate == expected
        assert skipped == ()

    def test_zero_net_generation_is_skipped(self) -> None:
        """A zero denominator skips that generator and keeps the others."""
        report = GenerationReport(
            coal=(
                CoalGenerator("C1", (), 0.1, 100, 0),
                CoalGenerator("C2", (), 0.1, 100, 50),
            ),
        )

        rates, skipped = calculate_actual_heat_rates(report)

        assert [r.name for r in rates] == ["C2"]
        assert len(skipped) == 1
        assert isinstance(skipped[0], ComputationError)
        assert skipped[0].generator == "C1"

    def test_overflowing_heat_rate_is_skipped(self) -> None:
        report = GenerationReport(coal=(CoalGenerator("C", (), 0.1, 1e300, 1e-300),))

        rates, skipped = calculate_actual_heat_rates(report)

        assert rates == ()
        assert skipped[0].generator == "C"

    def test_no_coal(self) -> None:
        assert calculate_actual_heat_rates(GenerationReport()) == ((), ())


class TestBuildOutput:
    """Tests for build_output against the sample report."""

    def test_sample_report(self, generation_report_file: str, reference: ReferenceData) -> None:
        with open(generation_report_file, "rb") as f:
            report = decode_report(f.read())

        output = build_output(report, reference)

        totals = {t.name: t.total for t in output.totals}
        assert list(totals) == ["Wind[Offshore]", "Wind[Onshore]", "Gas[1]", "Coal[1]"]
        assert totals["Wind[Offshore]"] == pytest.approx(2500 * 0.265)
        assert totals["Wind[Onshore]"] == pytest.approx(100 * 0.946)
        assert totals["Gas[1]"] == pytest.approx(3000 * 0.696)
        assert totals["Coal[1]"] == pytest.approx(1060 * 0.696)

        days = [(d.name, d.date, d.emission) for d in output.max_emission_days]
        assert days == [
            ("Gas[1]", JAN_1, pytest.approx(200 * 0.038 * 0.562)),
            ("Coal[1]", JAN_2, pytest.approx(100 * 0.482 * 0.812)),
            ("Coal[1]", JAN_3, pytest.approx(1 * 0.482 * 0.812)),
        ]

        assert [(h.name, h.heat_rate) for h in output.actual_heat_rates] == [("Coal[1]", 4.0)]
        assert output.skipped_emissions == ()
        assert output.skipped_heat_rates == ()
