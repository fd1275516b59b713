"""
XML codec for generation reports and generation output.

Input reports look like:

    <GenerationReport>
      <Wind>
        <WindGenerator>
          <Name>Wind[Offshore]</Name>
          <Generation>
            <Day><Date>2017-01-01T00:00:00+00:00</Date><Energy>100.3</Energy><Price>20.1</Price></Day>
          </Generation>
          <Location>Offshore</Location>
        </WindGenerator>
      </Wind>
      <Gas><GasGenerator>... <EmissionsRating>0.038</EmissionsRating></GasGenerator></Gas>
      <Coal><CoalGenerator>... <TotalHeatInput/><ActualNetGeneration/><EmissionsRating/></CoalGenerator></Coal>
    </GenerationReport>

Elements are looked up by tag, so their order inside a generator does not matter.
"""

import math
import re
import xml.etree.ElementTree as ET

import pandas as pd

from src.functions.generation_calculator.errors import DecodeError, EncodeError
from src.functions.generation_calculator.models import (
    ActualHeatRate,
    CoalGenerator,
    Day,
    GasGenerator,
    GenerationOutput,
    GenerationReport,
    GeneratorTotal,
    MaxEmissionDay,
    WindGenerator,
)

REPORT_ROOT = "GenerationReport"
OUTPUT_ROOT = "GenerationOutput"

# Calendar date at the start of an ISO 8601 value; keeps words like "now" out of the parser
ISO_DATE_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}")

# ---------------------- Shared helpers ---------------------- #


def parse_document(data: bytes, root_tag: str) -> ET.Element:
    """Parse XML bytes and check the root element name."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise DecodeError(f"Malformed XML: {e}") from e

    if root.tag != root_tag:
        raise DecodeError(f"Expected root element <{root_tag}>, found <{root.tag}>")
    return root


def read_text(element: ET.Element, tag: str, required: bool = True) -> str:
    child = element.find(tag)
    if child is None:
        if required:
            raise DecodeError(f"Missing <{tag}> in <{element.tag}>")
        return ""
    return (child.text or "").strip()


def read_float(element: ET.Element, tag: str) -> float:
    """Read a required, finite, non-negative number."""
    raw = read_text(element, tag)
    try:
        value = float(raw)
    except ValueError as e:
        raise DecodeError(f"Invalid number in <{element.tag}>/<{tag}>: {raw!r}") from e

    if not math.isfinite(value) or value < 0:
        raise DecodeError(f"<{element.tag}>/<{tag}> must be a finite non-negative number, got {raw!r}")
    return value


def read_timestamp(element: ET.Element, tag: str) -> pd.Timestamp:
    """Read a required ISO 8601 timestamp, normalised to UTC (naive values are taken as UTC)."""
    raw = read_text(element, tag)
    if not ISO_DATE_PREFIX.match(raw):
        raise DecodeError(f"Invalid date in <{element.tag}>/<{tag}>: {raw!r}")
    try:
        ts = pd.to_datetime(raw, format="ISO8601")
    except ValueError as e:
        raise DecodeError(f"Invalid date in <{element.tag}>/<{tag}>: {raw!r}") from e

    if pd.isna(ts):
        raise DecodeError(f"Invalid date in <{element.tag}>/<{tag}>: {raw!r}")
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


# ---------------------- Report decoding ---------------------- #


def _decode_days(generator: ET.Element) -> tuple[Day, ...]:
    generation = generator.find("Generation")
    if generation is None:
        return ()
    return tuple(
        Day(
            date=read_timestamp(day, "Date"),
            energy=read_float(day, "Energy"),
            price=read_float(day, "Price"),
        )
        for day in generation.findall("Day")
    )


def _read_name(generator: ET.Element, seen: set[str]) -> str:
    name = read_text(generator, "Name")
    if not name:
        raise DecodeError(f"Blank <Name> in <{generator.tag}>")
    if name in seen:
        raise DecodeError(f"Duplicate generator name {name!r} in <{generator.tag}>")
    seen.add(name)
    return name


def _section(root: ET.Element, section: str, generator_tag: str) -> list[ET.Element]:
    element = root.find(section)
    if element is None:
        return []
    return element.findall(generator_tag)


def decode_report(data: bytes) -> GenerationReport:
    """
    Decode a generation report.

    Args:
        data: Raw XML bytes

    Returns:
        Fully populated GenerationReport. Missing Wind/Gas/Coal sections decode to empty tuples.

    Raises:
        DecodeError: On any structural or value problem; no partial report is returned
    """
    root = parse_document(data, REPORT_ROOT)

    seen: set[str] = set()
    wind = tuple(
        WindGenerator(
            name=_read_name(g, seen),
            generation=_decode_days(g),
            location=read_text(g, "Location", required=False),
        )
        for g in _section(root, "Wind", "WindGenerator")
    )

    seen = set()
    gas = tuple(
        GasGenerator(
            name=_read_name(g, seen),
            generation=_decode_days(g),
            emissions_rating=read_float(g, "EmissionsRating"),
        )
        for g in _section(root, "Gas", "GasGenerator")
    )

    seen = set()
    coal = tuple(
        CoalGenerator(
            name=_read_name(g, seen),
            generation=_decode_days(g),
            emissions_rating=read_float(g, "EmissionsRating"),
            total_heat_input=read_float(g, "TotalHeatInput"),
            actual_net_generation=read_float(g, "ActualNetGeneration"),
        )
        for g in _section(root, "Coal", "CoalGenerator")
    )

    return GenerationReport(wind=wind, gas=gas, coal=coal)


# ---------------------- Output encoding ---------------------- #


def _format_number(value: float, field_name: str, name: str) -> str:
    if not math.isfinite(value):
        raise EncodeError(f"Cannot encode {field_name}={value!r} for generator {name!r}")
    return repr(float(value))


def _add_text(parent: ET.Element, tag: str, text: str) -> None:
    ET.SubElement(parent, tag).text = text


def encode_output(output: GenerationOutput) -> bytes:
    """
    Encode a GenerationOutput as UTF-8 XML.

    Raises:
        EncodeError: If any number is NaN or infinite
    """
    root = ET.Element(OUTPUT_ROOT)

    totals = ET.SubElement(root, "Totals")
    for row in output.totals:
        generator = ET.SubElement(totals, "Generator")
        _add_text(generator, "Name", row.name)
        _add_text(generator, "Total", _format_number(row.total, "Total", row.name))

    max_emissions = ET.SubElement(root, "MaxEmissionGenerators")
    for row in output.max_emission_days:
        day = ET.SubElement(max_emissions, "Day")
        _add_text(day, "Name", row.name)
        _add_text(day, "Date", row.date.isoformat())
        _add_text(day, "Emission", _format_number(row.emission, "Emission", row.name))

    heat_rates = ET.SubElement(root, "ActualHeatRates")
    for row in output.actual_heat_rates:
        heat_rate = ET.SubElement(heat_rates, "ActualHeatRate")
        _add_text(heat_rate, "Name", row.name)
        _add_text(heat_rate, "HeatRate", _format_number(row.heat_rate, "HeatRate", row.name))

    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def decode_output(data: bytes) -> GenerationOutput:
    """Decode a GenerationOutput document written by encode_output."""
    root = parse_document(data, OUTPUT_ROOT)

    totals = tuple(
        GeneratorTotal(name=read_text(g, "Name"), total=read_float(g, "Total"))
        for g in _section(root, "Totals", "Generator")
    )
    max_emission_days = tuple(
        MaxEmissionDay(
            name=read_text(d, "Name"),
            date=read_timestamp(d, "Date"),
            emission=read_float(d, "Emission"),
        )
        for d in _section(root, "MaxEmissionGenerators", "Day")
    )
    actual_heat_rates = tuple(
        ActualHeatRate(name=read_text(h, "Name"), heat_rate=read_float(h, "HeatRate"))
        for h in _section(root, "ActualHeatRates", "ActualHeatRate")
    )
    return GenerationOutput(
        totals=totals,
        max_emission_days=max_emission_days,
        actual_heat_rates=actual_heat_rates,
    )
