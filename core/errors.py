"""
LECTIO - Unified Error Handling

Error hierarchy for the import and reconciliation engine.

Features:
- Hierarchical exception classes with context preservation
- Error severity levels for prioritized handling
- Structured error context for debugging
- OpenTelemetry integration for error tracing

Propagation rules:
- Parsing and registry errors abort a run immediately.
- Completeness problems are data (ImportReport) until the commit gate turns
  them into IncompleteImportError.
- TransientStoreError is retried; FatalStoreError surfaces with full context.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from data.schemas import ImportReport


class ErrorSeverity(Enum):
    """Error severity levels for prioritized handling."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Structured context for error debugging and tracing."""

    operation: str
    component: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    version_code: Optional[str] = None
    stage: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            "operation": self.operation,
            "component": self.component,
            "timestamp": self.timestamp.isoformat(),
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "version_code": self.version_code,
            "stage": self.stage,
            "metadata": self.metadata,
            "stack_trace": self.stack_trace,
        }

    @classmethod
    def from_current_span(
        cls,
        operation: str,
        component: str,
        **kwargs: Any
    ) -> "ErrorContext":
        """Create context from current OpenTelemetry span."""
        span = trace.get_current_span()
        trace_id = None
        span_id = None

        if span and span.is_recording():
            ctx = span.get_span_context()
            if ctx.is_valid:
                trace_id = format(ctx.trace_id, "032x")
                span_id = format(ctx.span_id, "016x")

        return cls(
            operation=operation,
            component=component,
            trace_id=trace_id,
            span_id=span_id,
            stack_trace=traceback.format_exc(),
            **kwargs
        )


class LectioError(Exception):
    """
    Base exception for all LECTIO-specific errors.

    Provides:
    - Structured error context
    - Severity level
    - Chained exception support
    - OpenTelemetry span recording
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "LECTIO_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[BaseException] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.severity = severity or self.default_severity
        self.cause = cause
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.timestamp = datetime.now(timezone.utc)

        self._record_to_span()

    def _record_to_span(self) -> None:
        """Record exception to current OpenTelemetry span."""
        span = trace.get_current_span()
        if span and span.is_recording():
            span.set_status(Status(StatusCode.ERROR, self.message))
            span.record_exception(self)
            span.set_attribute("error.code", self.error_code)
            span.set_attribute("error.severity", self.severity.value)
            span.set_attribute("error.recoverable", self.recoverable)
            if self.context:
                span.set_attribute("error.component", self.context.component)
                span.set_attribute("error.operation", self.context.operation)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for reports and CLI output."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "cause": repr(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.context:
            parts.append(f" (component: {self.context.component})")
        if self.cause:
            parts.append(f" [caused by: {self.cause!r}]")
        return "".join(parts)

    def with_context(self, **kwargs: Any) -> "LectioError":
        """Add additional context to the error."""
        if self.context:
            self.context.metadata.update(kwargs)
        else:
            self.context = ErrorContext(
                operation="unknown",
                component="unknown",
                metadata=kwargs
            )
        return self


class ConfigError(LectioError):
    """Configuration-related errors."""

    error_code = "CONFIG_ERROR"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[Type] = None,
        actual_value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.expected_type = expected_type
        self.actual_value = actual_value


# =============================================================================
# Parsing
# =============================================================================

class MalformedDocumentError(LectioError):
    """The source XML is not well-formed or violates the dialect's nesting."""

    error_code = "MALFORMED_DOCUMENT"

    def __init__(
        self,
        message: str,
        position: Optional[str] = None,
        source: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.position = position
        self.source = source


class MalformedReferenceError(LectioError):
    """A chapter/verse number or book token could not be read."""

    error_code = "MALFORMED_REFERENCE"

    def __init__(
        self,
        message: str,
        raw_value: Any = None,
        position: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.raw_value = raw_value
        self.position = position


class UnknownDialectError(LectioError):
    """A dialect name outside the supported set was requested."""

    error_code = "UNKNOWN_DIALECT"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, dialect: str, supported: List[str], **kwargs: Any):
        super().__init__(
            f"Unknown dialect '{dialect}' (supported: {', '.join(supported)})",
            **kwargs,
        )
        self.dialect = dialect
        self.supported = supported


# =============================================================================
# Configuration of the canon
# =============================================================================

class RegistryIntegrityError(LectioError):
    """The canonical book registry or an alias table is inconsistent."""

    error_code = "REGISTRY_INTEGRITY"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        message: str,
        violations: Optional[List[str]] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.violations = violations or []


# =============================================================================
# Import run
# =============================================================================

class InvalidStateTransitionError(LectioError):
    """An import state change that the state machine does not allow."""

    error_code = "INVALID_STATE_TRANSITION"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, version_code: str, current: Any, requested: Any, **kwargs: Any):
        super().__init__(
            f"Version {version_code}: cannot move from {current.value} to {requested.value}",
            **kwargs,
        )
        self.version_code = version_code
        self.current = current
        self.requested = requested


class IncompleteImportError(LectioError):
    """Commit blocked by the commit policy; carries the ImportReport."""

    error_code = "INCOMPLETE_IMPORT"
    default_severity = ErrorSeverity.WARNING

    def __init__(
        self,
        message: str,
        report: "ImportReport",
        reasons: Optional[List[str]] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.report = report
        self.reasons = reasons or []


class ImportCancelledError(LectioError):
    """The run was cancelled between stages or between write batches."""

    error_code = "CANCELLED"
    default_severity = ErrorSeverity.WARNING

    def __init__(self, version_code: str, stage: str, **kwargs: Any):
        super().__init__(f"Import of {version_code} cancelled during {stage}", **kwargs)
        self.version_code = version_code
        self.stage = stage


class ImportInProgressError(LectioError):
    """Another writer holds the version's import lock."""

    error_code = "IMPORT_IN_PROGRESS"
    default_severity = ErrorSeverity.WARNING

    def __init__(self, version_code: str, timeout_seconds: float, **kwargs: Any):
        super().__init__(
            f"Version {version_code} is being imported by another run "
            f"(waited {timeout_seconds:.1f}s)",
            recoverable=True,
            **kwargs,
        )
        self.version_code = version_code
        self.timeout_seconds = timeout_seconds


class VerificationError(LectioError):
    """Stored row count disagrees with what the run wrote."""

    error_code = "VERIFICATION_ERROR"

    def __init__(self, version_code: str, expected: int, actual: int, **kwargs: Any):
        super().__init__(
            f"Version {version_code}: expected {expected} stored verses, found {actual}",
            **kwargs,
        )
        self.version_code = version_code
        self.expected = expected
        self.actual = actual


# =============================================================================
# Store
# =============================================================================

class StoreError(LectioError):
    """Base for store failures."""

    error_code = "STORE_ERROR"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.operation = operation


class TransientStoreError(StoreError):
    """Timeouts, dropped connections: safe to retry (writes are upserts)."""

    error_code = "TRANSIENT_STORE_ERROR"
    default_severity = ErrorSeverity.WARNING

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class FatalStoreError(StoreError):
    """Retry ceiling exceeded, or a non-retryable store failure."""

    error_code = "FATAL_STORE_ERROR"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        message: str,
        version_code: Optional[str] = None,
        attempts: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.version_code = version_code
        self.attempts = attempts
