"""Configuration management for the generation calculator."""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from src.functions.generation_calculator.errors import ConfigError

DEFAULT_OUTPUT_FILE_NAME = "GenerationOutput.xml"
DEFAULT_FILE_EXTENSION = ".xml"

# appsettings.json key -> config field
SETTINGS_KEYS = {
    "ReferenceDataPath": "reference_data_path",
    "Input": "input_dir",
    "Output": "output_dir",
    "OutputFileName": "output_file_name",
    "FileExtension": "file_extension",
}

# environment variable -> config field
ENV_KEYS = {
    "REFERENCE_DATA_PATH": "reference_data_path",
    "INPUT_DIR": "input_dir",
    "OUTPUT_DIR": "output_dir",
    "OUTPUT_FILE_NAME": "output_file_name",
    "FILE_EXTENSION": "file_extension",
}

REQUIRED_FIELDS = ("reference_data_path", "input_dir", "output_dir")


@dataclass(frozen=True)
class AppConfig:
    reference_data_path: str
    input_dir: str
    output_dir: str
    output_file_name: str = DEFAULT_OUTPUT_FILE_NAME
    file_extension: str = DEFAULT_FILE_EXTENSION

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir) / self.output_file_name


def read_settings_file(settings_path: str) -> dict[str, str]:
    """
    Read an appsettings.json style file.

    Args:
        settings_path: Path to JSON settings file

    Returns:
        Dict of config field -> value for the recognised keys

    Raises:
        ConfigError: If the file is missing or is not a JSON object
    """
    path = Path(settings_path)
    if not path.is_file():
        raise ConfigError(f"Settings file not found: {settings_path}")

    try:
        with path.open() as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Settings file unreadable: {settings_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file must contain a JSON object: {settings_path}")

    return {field: raw[key] for key, field in SETTINGS_KEYS.items() if raw.get(key) is not None}


def load_config(
    settings_path: str | None = None,
    overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> AppConfig:
    """
    Build the application config.

    Sources, later wins: settings file, environment variables, explicit overrides.

    Args:
        settings_path: Optional appsettings.json path
        overrides: Field values from the command line; None values are ignored
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: If a required value is missing or blank
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    if settings_path:
        values.update(read_settings_file(settings_path))

    for key, field in ENV_KEYS.items():
        if env.get(key):
            values[field] = env[key]

    values.update({k: v for k, v in (overrides or {}).items() if v is not None})

    missing = [f for f in REQUIRED_FIELDS if not isinstance(values.get(f), str) or not values[f].strip()]
    if missing:
        raise ConfigError(f"Missing or blank configuration values: {', '.join(missing)}")

    extension = str(values.get("file_extension") or DEFAULT_FILE_EXTENSION).strip()
    if not extension.startswith("."):
        extension = f".{extension}"

    config = AppConfig(
        reference_data_path=values["reference_data_path"].strip(),
        input_dir=values["input_dir"].strip(),
        output_dir=values["output_dir"].strip(),
        output_file_name=str(values.get("output_file_name") or DEFAULT_OUTPUT_FILE_NAME).strip(),
        file_extension=extension.lower(),
    )
    logger.bind(**asdict(config)).debug("Configuration loaded")
    return config
