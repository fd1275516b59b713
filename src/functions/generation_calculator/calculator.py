"""Aggregation of a decoded generation report into totals, max emissions and heat rates."""

import math

import pandas as pd

from src.functions.generation_calculator.errors import ComputationError
from src.functions.generation_calculator.models import (
    ActualHeatRate,
    GenerationOutput,
    GenerationReport,
    GeneratorTotal,
    MaxEmissionDay,
    WindGenerator,
)
from src.functions.generation_calculator.reference import ReferenceData


def calculate_totals(report: GenerationReport, reference: ReferenceData) -> tuple[GeneratorTotal, ...]:
    """
    Revenue total per generator: sum of energy * price * value factor over its days.

    Order is Wind, Gas, Coal, each in report order. A generator with no days totals 0.0.
    """
    totals = []
    for generator in (*report.wind, *report.gas, *report.coal):
        location = generator.location if isinstance(generator, WindGenerator) else ""
        factor = reference.value_factor_for(generator.category, location)
        total = 0.0
        for day in generator.generation:
            total += day.energy * day.price * factor
        totals.append(GeneratorTotal(name=generator.name, total=total))
    return tuple(totals)


def calculate_max_emissions(
    report: GenerationReport,
    reference: ReferenceData,
) -> tuple[tuple[MaxEmissionDay, ...], tuple[ComputationError, ...]]:
    """
    Highest-emitting Gas/Coal generator for each distinct date, sorted by date.

    Emission is energy * emissions rating * category emissions factor. On an exact tie the
    generator seen first wins, traversing Gas before Coal and each in report order.

    Returns:
        (days, skipped). Days whose emission overflows to a non-finite value are left out
        of the grouping and reported in skipped instead.
    """
    rows = []
    skipped = []
    for generator in (*report.gas, *report.coal):
        factor = reference.emissions_factor_for(generator.category)
        for day in generator.generation:
            emission = day.energy * generator.emissions_rating * factor
            if not math.isfinite(emission):
                skipped.append(
                    ComputationError(generator.name, f"emission on {day.date.isoformat()} is not finite: {emission!r}")
                )
                continue
            rows.append({"name": generator.name, "date": day.date, "emission": emission})

    if not rows:
        return (), tuple(skipped)

    # Index is traversal order; idxmax returns the first index on ties
    df = pd.DataFrame(rows)
    winners = df.loc[df.groupby("date", sort=True)["emission"].idxmax()]

    days = tuple(
        MaxEmissionDay(name=row.name, date=row.date, emission=float(row.emission))
        for row in winners.itertuples(index=False)
    )
    return days, tuple(skipped)


def calculate_actual_heat_rates(
    report: GenerationReport,
) -> tuple[tuple[ActualHeatRate, ...], tuple[ComputationError, ...]]:
    """
    Heat rate per Coal generator: total heat input / actual net generation.

    Returns:
        (rates, skipped). Generators with zero actual net generation, or whose rate
        overflows, have no rate and are reported in skipped instead.
    """
    rates = []
    skipped = []
    for generator in report.coal:
        if generator.actual_net_generation == 0:
            skipped.append(ComputationError(generator.name, "actual net generation is zero, heat rate undefined"))
            continue
        heat_rate = generator.total_heat_input / generator.actual_net_generation
        if not math.isfinite(heat_rate):
            skipped.append(ComputationError(generator.name, f"heat rate is not finite: {heat_rate!r}"))
            continue
        rates.append(ActualHeatRate(name=generator.name, heat_rate=heat_rate))
    return tuple(rates), tuple(skipped)


def build_output(report: GenerationReport, reference: ReferenceData) -> GenerationOutput:
    """Run all three calculations for one report."""
    max_emission_days, skipped_emissions = calculate_max_emissions(report, reference)
    heat_rates, skipped_heat_rates = calculate_actual_heat_rates(report)
    return GenerationOutput(
        totals=calculate_totals(report, reference),
        max_emission_days=max_emission_days,
        actual_heat_rates=heat_rates,
        skipped_emissions=skipped_emissions,
        skipped_heat_rates=skipped_heat_rates,
    )
