"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout Actwright,
one type per failure class so callers can branch on the type alone.
"""

from actwright.exceptions.base import (
    ActwrightError,
    ConfigurationError,
    InterpreterError,
)
from actwright.exceptions.snapshot import (
    SnapshotError,
    InvalidSnapshot,
    UnresolvableNode,
    SnapshotMismatch,
    StaleLocator,
)
from actwright.exceptions.action import (
    ActionError,
    InvalidProposal,
    OptionNotFound,
    ActionTimeout,
    DriverError,
)
from actwright.exceptions.extraction import (
    ExtractionError,
    SchemaMismatch,
)

__all__ = [
    # Base exceptions
    "ActwrightError",
    "ConfigurationError",
    "InterpreterError",
    # Snapshot exceptions
    "SnapshotError",
    "InvalidSnapshot",
    "UnresolvableNode",
    "SnapshotMismatch",
    "StaleLocator",
    # Action exceptions
    "ActionError",
    "InvalidProposal",
    "OptionNotFound",
    "ActionTimeout",
    "DriverError",
    # Extraction exceptions
    "ExtractionError",
    "SchemaMismatch",
]
