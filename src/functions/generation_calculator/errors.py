"""Error taxonomy for the generation calculator."""


class GenerationCalculatorError(Exception):
    """Base class for all calculator errors."""


class ConfigError(GenerationCalculatorError):
    """Startup configuration or reference data is missing or invalid. Fatal."""


class DecodeError(GenerationCalculatorError):
    """An input report could not be decoded. The file is skipped."""


class EncodeError(GenerationCalculatorError):
    """A result could not be encoded. Nothing is written."""


class ComputationError(GenerationCalculatorError):
    """A single result row could not be computed. The row is skipped."""

    def __init__(self, generator: str, message: str) -> None:
        super().__init__(f"{generator}: {message}")
        self.generator = generator
