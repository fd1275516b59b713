"""Shared pytest fixtures for generation calculator tests."""

from pathlib import Path

import pytest

from src.functions.generation_calculator.models import Tier
from src.functions.generation_calculator.reference import ReferenceData

FIXTURES_DIR = Path(__file__).parent / "unit" / "generation_calculator" / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def reference_data_file(fixtures_dir: Path) -> str:
    """Return path to the sample reference data file."""
    return str(fixtures_dir / "ReferenceData.xml")


@pytest.fixture
def generation_report_file(fixtures_dir: Path) -> str:
    """Return path to the sample generation report."""
    return str(fixtures_dir / "GenerationReport.xml")


@pytest.fixture
def reference() -> ReferenceData:
    """Reference data matching fixtures/ReferenceData.xml."""
    return ReferenceData.from_factors(
        value_factor={Tier.HIGH: 0.946, Tier.MEDIUM: 0.696, Tier.LOW: 0.265},
        emissions_factor={Tier.HIGH: 0.812, Tier.MEDIUM: 0.562, Tier.LOW: 0.312},
    )


