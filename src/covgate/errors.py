"""Application specific exception hierarchy."""

from __future__ import annotations

from typing import Any


class CovgateError(RuntimeError):
    """Base exception that carries structured context."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(CovgateError):
    """Raised when required gate settings are missing or invalid."""


class StoreError(CovgateError):
    """Raised when the coverage store cannot be queried or provisioned."""


class RecordNotFoundError(StoreError):
    """Raised when no coverage record exists for a key."""


class ConditionFailedError(StoreError):
    """Raised when a conditional put finds an existing record."""


class RecordWriteError(CovgateError):
    """Raised when the gate cannot persist the new coverage record."""


class CoverageRegressionError(CovgateError):
    """Raised when build coverage falls below the prior build."""


__all__ = [
    "CovgateError",
    "ConfigurationError",
    "StoreError",
    "RecordNotFoundError",
    "ConditionFailedError",
    "RecordWriteError",
    "CoverageRegressionError",
]
