"""Reference data: valuation and emissions factor tables, loaded once at startup."""

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from src.functions.generation_calculator.codec import parse_document, read_float
from src.functions.generation_calculator.errors import ConfigError, DecodeError
from src.functions.generation_calculator.models import Category, Tier

REFERENCE_ROOT = "ReferenceData"

# Fixed pricing policy, not data driven
WIND_LOCATION_VALUE_TIERS: Mapping[str, Tier] = MappingProxyType(
    {
        "Offshore": Tier.LOW,
        "Onshore": Tier.HIGH,
    }
)
VALUE_TIERS: Mapping[Category, Tier] = MappingProxyType(
    {
        Category.GAS: Tier.MEDIUM,
        Category.COAL: Tier.MEDIUM,
    }
)
EMISSIONS_TIERS: Mapping[Category, Tier] = MappingProxyType(
    {
        Category.GAS: Tier.MEDIUM,
        Category.COAL: Tier.HIGH,
    }
)


@dataclass(frozen=True)
class ReferenceData:
    """Immutable factor tables. Build with load_reference_data() or from_factors()."""

    value_factor: Mapping[Tier, float]
    emissions_factor: Mapping[Tier, float]

    @classmethod
    def from_factors(
        cls,
        value_factor: Mapping[Tier, float],
        emissions_factor: Mapping[Tier, float],
    ) -> "ReferenceData":
        """
        Validate and freeze factor tables.

        Raises:
            ConfigError: If a tier is missing or a factor is negative
        """
        tables = {"ValueFactor": value_factor, "EmissionsFactor": emissions_factor}
        for table_name, table in tables.items():
            missing = [tier.value for tier in Tier if tier not in table]
            if missing:
                raise ConfigError(f"{table_name} is missing tiers: {', '.join(missing)}")
            negative = [tier.value for tier in Tier if table[tier] < 0]
            if negative:
                raise ConfigError(f"{table_name} has negative tiers: {', '.join(negative)}")

        return cls(
            value_factor=MappingProxyType({tier: float(value_factor[tier]) for tier in Tier}),
            emissions_factor=MappingProxyType({tier: float(emissions_factor[tier]) for tier in Tier}),
        )

    def value_factor_for(self, category: Category, location: str = "") -> float:
        """
        Valuation multiplier for a generator.

        Wind is priced by location; unknown locations (including empty) price at zero.
        Gas and Coal use the fixed VALUE_TIERS policy.
        """
        if category is Category.WIND:
            tier = WIND_LOCATION_VALUE_TIERS.get(location)
            if tier is None:
                return 0.0
            return self.value_factor[tier]
        return self.value_factor[VALUE_TIERS[category]]

    # Single lookup used for revenue valuation
    factor_for = value_factor_for

    def emissions_factor_for(self, category: Category) -> float:
        """Emissions multiplier for a Gas or Coal generator. Raises KeyError for Wind."""
        return self.emissions_factor[EMISSIONS_TIERS[category]]


def _read_tiers(factors: ET.Element, table_name: str) -> dict[Tier, float]:
    table = factors.find(table_name)
    if table is None:
        raise ConfigError(f"Reference data is missing <{table_name}>")

    tiers: dict[Tier, float] = {}
    for tier in Tier:
        if table.find(tier.value) is None:
            raise ConfigError(f"<{table_name}> is missing tier <{tier.value}>")
        try:
            tiers[tier] = read_float(table, tier.value)
        except DecodeError as e:
            raise ConfigError(f"Invalid reference data: {e}") from e
    return tiers


def load_reference_data(file_path: str) -> ReferenceData:
    """
    Load reference data from an XML file.

    Expected layout:
        <ReferenceData><Factors>
          <ValueFactor><High/><Medium/><Low/></ValueFactor>
          <EmissionsFactor><High/><Medium/><Low/></EmissionsFactor>
        </Factors></ReferenceData>

    Args:
        file_path: Path to the reference data file

    Returns:
        Immutable ReferenceData

    Raises:
        ConfigError: If the file is missing, unreadable or incomplete
    """
    path = Path(file_path)
    if not path.is_file():
        raise ConfigError(f"Reference data file not found: {file_path}")

    try:
        data = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Reference data file unreadable: {file_path}: {e}") from e

    try:
        root = parse_document(data, REFERENCE_ROOT)
    except DecodeError as e:
        raise ConfigError(f"Invalid reference data in {file_path}: {e}") from e

    factors = root.find("Factors")
    if factors is None:
        raise ConfigError(f"Reference data is missing <Factors>: {file_path}")

    return ReferenceData.from_factors(
        value_factor=_read_tiers(factors, "ValueFactor"),
        emissions_factor=_read_tiers(factors, "EmissionsFactor"),
    )
