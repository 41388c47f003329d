"""
LECTIO - Core Module

Foundational components shared by every other package:
- Unified error taxonomy with structured context
- Bounded retry for store I/O

Core has no dependency on the other LECTIO packages.

Usage:
    from core import LectioError, RetryPolicy, RetryConfig
"""

from core.errors import (
    LectioError,
    ConfigError,
    ErrorContext,
    ErrorSeverity,
    MalformedDocumentError,
    MalformedReferenceError,
    UnknownDialectError,
    RegistryIntegrityError,
    InvalidStateTransitionError,
    IncompleteImportError,
    ImportCancelledError,
    ImportInProgressError,
    VerificationError,
    StoreError,
    TransientStoreError,
    FatalStoreError,
)
from core.resilience import (
    RetryConfig,
    RetryOutcome,
    RetryPolicy,
)

__all__ = [
    "LectioError",
    "ConfigError",
    "ErrorContext",
    "ErrorSeverity",
    "MalformedDocumentError",
    "MalformedReferenceError",
    "UnknownDialectError",
    "RegistryIntegrityError",
    "InvalidStateTransitionError",
    "IncompleteImportError",
    "ImportCancelledError",
    "ImportInProgressError",
    "VerificationError",
    "StoreError",
    "TransientStoreError",
    "FatalStoreError",
    "RetryConfig",
    "RetryOutcome",
    "RetryPolicy",
]
