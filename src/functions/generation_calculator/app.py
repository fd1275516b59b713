"""
Generation Calculator

Watches an input directory for generation report XML files and writes revenue totals,
max emission generators per day and coal heat rates to a single output XML file.

Configuration (later wins): appsettings.json, environment variables, command line.
    REFERENCE_DATA_PATH, INPUT_DIR, OUTPUT_DIR, OUTPUT_FILE_NAME, FILE_EXTENSION

Local usage:
    uv run python -m src.functions.generation_calculator.app --settings appsettings.json
    uv run python -m src.functions.generation_calculator.app --settings appsettings.json --once report.xml
"""

import argparse
import os
import signal
import sys
import threading

from loguru import logger

from src.functions.generation_calculator.config import AppConfig, load_config
from src.functions.generation_calculator.errors import ConfigError
from src.functions.generation_calculator.pipeline import ReportProcessor, prepare_output_dir
from src.functions.generation_calculator.reference import load_reference_data
from src.functions.generation_calculator.watcher import GenerationWatcher

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level> | {extra}"
)


def setup_logging(level: str | None = None, serialize: bool = False) -> None:
    """
    Configure logging for the service.

    Args:
        level: Log level, defaults to LOG_LEVEL or INFO
        serialize: Emit one JSON object per record instead of text
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=(level or os.environ.get("LOG_LEVEL", "INFO")).upper(),
        serialize=serialize,
    )


def build_processor(config: AppConfig, check_stability: bool = True) -> ReportProcessor:
    """
    Load reference data, check the output directory and build the report processor.

    Raises:
        ConfigError: If the reference data cannot be loaded or the output directory is unusable
    """
    reference = load_reference_data(config.reference_data_path)
    prepare_output_dir(config.output_dir)
    logger.bind(path=config.reference_data_path).info("Reference data loaded")
    return ReportProcessor(
        reference=reference,
        output_dir=config.output_dir,
        output_file_name=config.output_file_name,
        check_stability=check_stability,
    )


def install_signal_handlers(stop_event: threading.Event) -> None:
    """Set stop_event on SIGINT/SIGTERM so the in-flight file can finish."""

    def _handle(signum: int, _frame: object) -> None:
        logger.bind(signal=signal.Signals(signum).name).info("Shutdown requested")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Calculate generation totals, emissions and heat rates")
    parser.add_argument(
        "--settings",
        help="Path to appsettings.json (keys: ReferenceDataPath, Input, Output)",
    )
    parser.add_argument(
        "--reference-data",
        dest="reference_data_path",
        help="Path to reference data XML",
    )
    parser.add_argument(
        "--input-dir",
        help="Directory to watch for generation reports",
    )
    parser.add_argument(
        "--output-dir",
        help="Directory for the generation output file",
    )
    parser.add_argument(
        "--once",
        metavar="FILE",
        help="Process a single report file and exit instead of watching",
    )
    parser.add_argument(
        "--log-level",
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )

    return parser.parse_args(args)


def main(args: list[str] | None = None) -> int:
    """Entry point. Returns the process exit code."""
    parsed = parse_args(args)
    setup_logging(level=parsed.log_level, serialize=parsed.json_logs)

    try:
        config = load_config(
            settings_path=parsed.settings,
            overrides={
                "reference_data_path": parsed.reference_data_path,
                "input_dir": parsed.input_dir,
                "output_dir": parsed.output_dir,
            },
        )
        # A file named on the command line is already complete
        processor = build_processor(config, check_stability=not parsed.once)

        if parsed.once:
            result = processor.process_file(parsed.once)
            return 0 if result.succeeded else 1

        stop_event = threading.Event()
        install_signal_handlers(stop_event)
        watcher = GenerationWatcher(processor, config.input_dir, extension=config.file_extension)
        watcher.run_forever(stop_event)

    except ConfigError as e:
        logger.error("Startup failed: {}", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
