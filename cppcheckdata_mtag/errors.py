"""
cppcheckdata_mtag/errors.py
═══════════════════════════

Exception hierarchy for the memory-tag analysis.

The tagging operations themselves never raise: an expression of the wrong
shape, an unnamed destination or an ineligible symbol simply produces no
tag.  The exceptions below cover the infrastructure around the analysis:

    MtagError (base)
    ├── ConfigError        - invalid configuration file or values
    ├── SummaryStoreError  - unreadable / malformed persisted summaries
    └── HookRegistryError  - hook registration outside the set-up phase
"""

from __future__ import annotations

from typing import Optional


class MtagError(Exception):
    """Base class for every error raised by cppcheckdata_mtag."""

    def __init__(self, message: str, *, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class ConfigError(MtagError):
    """Raised when a configuration file or override is invalid."""


class SummaryStoreError(MtagError):
    """Raised when a persisted summary store cannot be loaded."""

    def __init__(self, message: str, *, path: Optional[str] = None,
                 hint: Optional[str] = None) -> None:
        if path:
            message = f"{path}: {message}"
        super().__init__(message, hint=hint)
        self.path = path


class HookRegistryError(MtagError):
    """Raised when hooks are registered after the registry was frozen."""


__all__ = [
    "MtagError",
    "ConfigError",
    "SummaryStoreError",
    "HookRegistryError",
]
