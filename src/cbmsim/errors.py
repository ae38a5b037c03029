"""
Custom exception classes for CbmSim.

Exception Hierarchy:
====================
CbmSimError (base) - Base exception for all CbmSim-specific errors
├── ConfigurationError - Invalid configuration parameters
├── SequencingError - Setup steps performed out of order
├── CorruptStateError - Saved state stream ended before all fields were read
└── OutputFileError - An output file could not be opened for writing

Sequencing errors are recoverable: the session is left untouched and the
caller can redo setup in the correct order. Output file errors are fatal;
nothing inside the library catches them and the command-line entry point
turns them into a non-zero exit status.

Author: CbmSim Project
"""

from __future__ import annotations

from typing import Optional


class CbmSimError(Exception):
    """Base exception for all CbmSim-specific errors."""


class ConfigurationError(CbmSimError):
    """Invalid configuration parameters.

    Raised when configuration values are out of valid range or incompatible
    with each other.
    """


class SequencingError(CbmSimError):
    """A setup operation was attempted before its prerequisites.

    Examples: loading a state file before the connectivity/activity
    parameters, initializing the state twice, or writing a simulation that
    has not been built yet.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        self.hint = hint
        full = message if hint is None else f"{message} (Hint: {hint})"
        super().__init__(full)


class CorruptStateError(CbmSimError):
    """A positional state stream ended before every expected field was read."""

    def __init__(
        self,
        record: str,
        field_name: str,
        expected_bytes: int,
        got_bytes: int,
    ):
        self.record = record
        self.field_name = field_name
        self.expected_bytes = expected_bytes
        self.got_bytes = got_bytes
        super().__init__(
            f"Unexpected end of state stream while reading {record}.{field_name}: "
            f"expected {expected_bytes} bytes, got {got_bytes}"
        )


class OutputFileError(CbmSimError):
    """An output file could not be opened for writing."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"couldn't open '{path}' for writing: {reason}")


# =============================================================================
# Validation helpers
# =============================================================================


def validate_positive(value: float, name: str) -> None:
    """Raise ConfigurationError unless value > 0."""
    if value <= 0:
        raise ConfigurationError(f"{name}={value} must be positive")


def validate_non_negative(value: float, name: str) -> None:
    """Raise ConfigurationError unless value >= 0."""
    if value < 0:
        raise ConfigurationError(f"{name}={value} must be non-negative")


def validate_fan_in(fan_in: int, source_size: int, name: str) -> None:
    """Fan-in must be positive and no larger than the source population."""
    if fan_in <= 0:
        raise ConfigurationError(f"{name}={fan_in} must be positive")
    if fan_in > source_size:
        raise ConfigurationError(
            f"{name}={fan_in} exceeds the size of its source population ({source_size})"
        )
