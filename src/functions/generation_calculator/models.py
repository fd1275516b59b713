"""Typed records for generation reports, reference data and results."""

from dataclasses import dataclass, field
from enum import Enum

import pandas as pd

from src.functions.generation_calculator.errors import ComputationError


class Tier(Enum):
    """Factor tier in the reference tables."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Category(Enum):
    """Fuel category of a generator."""

    WIND = "Wind"
    GAS = "Gas"
    COAL = "Coal"


@dataclass(frozen=True)
class Day:
    date: pd.Timestamp
    energy: float
    price: float


@dataclass(frozen=True)
class WindGenerator:
    name: str
    generation: tuple[Day, ...]
    location: str = ""

    category = Category.WIND


@dataclass(frozen=True)
class GasGenerator:
    name: str
    generation: tuple[Day, ...]
    emissions_rating: float

    category = Category.GAS


@dataclass(frozen=True)
class CoalGenerator:
    name: str
    generation: tuple[Day, ...]
    emissions_rating: float
    total_heat_input: float
    actual_net_generation: float

    category = Category.COAL


@dataclass(frozen=True)
class GenerationReport:
    """One decoded input file. Generators keep document order."""

    wind: tuple[WindGenerator, ...] = ()
    gas: tuple[GasGenerator, ...] = ()
    coal: tuple[CoalGenerator, ...] = ()


@dataclass(frozen=True)
class GeneratorTotal:
    name: str
    total: float


@dataclass(frozen=True)
class MaxEmissionDay:
    name: str
    date: pd.Timestamp
    emission: float


@dataclass(frozen=True)
class ActualHeatRate:
    name: str
    heat_rate: float


@dataclass(frozen=True)
class GenerationOutput:
    """Combined result for one report."""

    totals: tuple[GeneratorTotal, ...] = ()
    max_emission_days: tuple[MaxEmissionDay, ...] = ()
    actual_heat_rates: tuple[ActualHeatRate, ...] = ()
    # Rows left out of max_emission_days and actual_heat_rates; logged, never encoded
    skipped_emissions: tuple[ComputationError, ...] = field(default=(), compare=False)
    skipped_heat_rates: tuple[ComputationError, ...] = field(default=(), compare=False)
