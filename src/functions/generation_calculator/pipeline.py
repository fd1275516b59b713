"""
Per-file processing: read -> decode -> aggregate -> encode -> atomic write.

Every file either replaces the output artifact completely or leaves it untouched.
Errors never escape process_file(); they are logged and returned as a FAILED result.
"""

import os
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from loguru import logger

from src.functions.generation_calculator.calculator import build_output
from src.functions.generation_calculator.codec import decode_report, encode_output
from src.functions.generation_calculator.config import DEFAULT_OUTPUT_FILE_NAME
from src.functions.generation_calculator.errors import ConfigError, DecodeError, EncodeError
from src.functions.generation_calculator.reference import ReferenceData

# Size polling for files that may still be written
FILE_STABILITY_CHECK_INTERVAL = 0.2  # seconds between checks
FILE_STABILITY_MAX_WAIT = 10  # max seconds to wait for file to stabilize
FILE_STABILITY_REQUIRED_CHECKS = 2  # consecutive stable checks required


class Stage(Enum):
    """Pipeline stage a file was in when it finished or failed."""

    READING = "reading"
    DECODING = "decoding"
    AGGREGATING = "aggregating"
    ENCODING = "encoding"
    WRITING = "writing"


class ProcessingStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ProcessingResult:
    """Outcome of processing a single report file."""

    file_path: str
    status: ProcessingStatus
    stage: Stage
    error: str | None = None
    output_path: str | None = None
    totals_count: int = 0
    max_emission_days_count: int = 0
    heat_rates_count: int = 0
    skipped_emissions_count: int = 0
    skipped_heat_rates_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status is ProcessingStatus.SUCCESS


def wait_for_stable_file(file_path: Path) -> tuple[bool, int]:
    """
    Check if a file has finished being written by verifying size stability.

    Files can appear in the watch directory before the writer has finished.
    Waits until the size is non-zero and unchanged for FILE_STABILITY_REQUIRED_CHECKS polls.

    Returns:
        tuple: (is_stable, file_size)
    """
    last_size = -1
    stable_count = 0
    deadline = time.monotonic() + FILE_STABILITY_MAX_WAIT

    while True:
        try:
            current_size = file_path.stat().st_size
        except FileNotFoundError:
            logger.bind(file=str(file_path)).warning("File not found")
            return False, 0

        if current_size > 0 and current_size == last_size:
            stable_count += 1
            if stable_count >= FILE_STABILITY_REQUIRED_CHECKS:
                return True, current_size
        else:
            stable_count = 0

        last_size = current_size
        if time.monotonic() >= deadline:
            break
        time.sleep(FILE_STABILITY_CHECK_INTERVAL)

    logger.bind(file=str(file_path), last_size=last_size, waited=FILE_STABILITY_MAX_WAIT).warning(
        "File stability check timed out"
    )
    return False, 0


def prepare_output_dir(output_dir: str) -> Path:
    """
    Create the output directory if needed and check it is writable.

    Raises:
        ConfigError: If the directory cannot be created or written to
    """
    path = Path(output_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Output directory unusable: {output_dir}: {e}") from e

    if not os.access(path, os.W_OK | os.X_OK):
        raise ConfigError(f"Output directory is not writable: {output_dir}")
    return path


def write_atomic(output_path: Path, data: bytes) -> None:
    """Write data to a temp file next to output_path, then replace output_path in one step."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=output_path.parent, prefix=f".{output_path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, output_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ReportProcessor:
    """Runs one report file through the pipeline and writes the shared output artifact."""

    def __init__(
        self,
        reference: ReferenceData,
        output_dir: str,
        output_file_name: str = DEFAULT_OUTPUT_FILE_NAME,
        check_stability: bool = True,
    ) -> None:
        self.reference = reference
        self.output_path = Path(output_dir) / output_file_name
        self.check_stability = check_stability

    def process_file(self, file_path: str | Path) -> ProcessingResult:
        path = Path(file_path)
        logger.bind(file=str(path)).info("Processing file")

        stage = Stage.READING
        try:
            if self.check_stability:
                is_stable, _ = wait_for_stable_file(path)
                if not is_stable:
                    return self._failed(path, stage, "file missing, empty or still being written")
            data = path.read_bytes()

            stage = Stage.DECODING
            report = decode_report(data)

            stage = Stage.AGGREGATING
            output = build_output(report, self.reference)
            for skipped in output.skipped_emissions:
                logger.bind(file=str(path), generator=skipped.generator).warning("Emission skipped: {}", skipped)
            for skipped in output.skipped_heat_rates:
                logger.bind(file=str(path), generator=skipped.generator).warning("Heat rate skipped: {}", skipped)

            stage = Stage.ENCODING
            payload = encode_output(output)

            stage = Stage.WRITING
            write_atomic(self.output_path, payload)

        except (DecodeError, EncodeError, OSError) as e:
            return self._failed(path, stage, str(e))
        except Exception as e:
            logger.bind(file=str(path), stage=stage.value).exception("Unexpected error")
            return self._failed(path, stage, f"{type(e).__name__}: {e}")

        result = ProcessingResult(
            file_path=str(path),
            status=ProcessingStatus.SUCCESS,
            stage=stage,
            output_path=str(self.output_path),
            totals_count=len(output.totals),
            max_emission_days_count=len(output.max_emission_days),
            heat_rates_count=len(output.actual_heat_rates),
            skipped_emissions_count=len(output.skipped_emissions),
            skipped_heat_rates_count=len(output.skipped_heat_rates),
        )
        logger.bind(
            file=str(path),
            output=result.output_path,
            totals=result.totals_count,
            max_emission_days=result.max_emission_days_count,
            heat_rates=result.heat_rates_count,
        ).info("File processed")
        return result

    def _failed(self, path: Path, stage: Stage, error: str) -> ProcessingResult:
        logger.bind(file=str(path), stage=stage.value).error("File skipped: {}", error)
        return ProcessingResult(file_path=str(path), status=ProcessingStatus.FAILED, stage=stage, error=error)

