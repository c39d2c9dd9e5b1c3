"""Error Hierarchy — typed, categorized exceptions for all JobSync failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Input/auth errors are 400-level; external and configuration failures are 500-level
    - to_response() produces the REST envelope; secrets never appear in it
    - "Locked" is NOT an error — it is a SyncOutcome (intervention needed, nothing broke)

Design Decisions:
    - Single hierarchy with JobSyncError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ExternalApiError carries kind (transport | application): only transport failures
      are candidates for a future retry-with-backoff policy
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


class FailureKind(str, Enum):
    """How an external call failed — transport vs the remote's own error."""
    TRANSPORT = "transport"
    APPLICATION = "application"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source_system: str | None = None
    event_type: str | None = None
    job_id: str | None = None
    debug_info: dict[str, Any] | None = None


class JobSyncError(Exception):
    """Base exception for all JobSync errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.details = details

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        body: dict[str, Any] = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "source_system": self.context.source_system,
                    "event_type": self.context.event_type,
                    "job_id": self.context.job_id,
                },
            },
        }
        if self.details is not None:
            body["details"] = self.details
        return body


# ─── Request Errors (400-level) ─────────────────────────────────

class AuthenticationFailure(JobSyncError):
    """Signature or token mismatch. Never retried, no downstream call made."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "AUTHENTICATION_FAILURE", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 400,
        )


class MalformedPayload(JobSyncError):
    """Body is not valid JSON or matches no known payload shape."""
    def __init__(
        self, message: str, context: ErrorContext | None = None,
        details: Any = None,
    ):
        super().__init__(
            message, "MALFORMED_PAYLOAD", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400, details,
        )


class MalformedTokenError(JobSyncError):
    """Provided reference token is not a hex string."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Token must be a hexadecimal string",
            "MALFORMED_TOKEN", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class ReferenceResolutionFailure(JobSyncError):
    """Cross-system identifier lookup returned nothing or failed.

    400 when the inbound id simply has no counterpart; 500 when the lookup
    system itself failed.
    """
    def __init__(
        self,
        message: str,
        lookup_failed: bool = False,
        context: ErrorContext | None = None,
        details: Any = None,
    ):
        super().__init__(
            message, "REFERENCE_RESOLUTION_FAILURE",
            ErrorCategory.EXTERNAL_API if lookup_failed
            else ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context,
            500 if lookup_failed else 400, details,
        )
        self.lookup_failed = lookup_failed


# ─── Infrastructure Errors (500-level) ──────────────────────────

class ConfigurationError(JobSyncError):
    """A required secret or setting is absent — fail closed."""
    def __init__(self, setting: str, context: ErrorContext | None = None):
        super().__init__(
            f"{setting} not configured",
            "NOT_CONFIGURED", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.setting = setting


class ExternalApiError(JobSyncError):
    """An adapter call to an external system failed."""
    def __init__(
        self,
        system: str,
        operation: str,
        message: str,
        kind: FailureKind,
        raw: Any = None,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{system} {operation} failed ({kind.value}): {message}",
            "EXTERNAL_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502, raw,
        )
        self.system = system
        self.operation = operation
        self.kind = kind
        self.raw = raw
        self.status_code = status_code


class RecordLockedError(ExternalApiError):
    """The external system rejected a write because the record is locked."""
    def __init__(self, system: str, operation: str, raw: Any = None):
        super().__init__(
            system, operation, "record is locked",
            FailureKind.APPLICATION, raw,
        )


class ExternalReadFailure(JobSyncError):
    """Precondition read (lock state) could not be completed."""
    def __init__(
        self, message: str, context: ErrorContext | None = None,
        details: Any = None,
    ):
        super().__init__(
            message, "EXTERNAL_READ_FAILURE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 500, details,
        )


class ExternalWriteFailure(JobSyncError):
    """The authoritative write failed; raw external error attached."""
    def __init__(
        self, message: str, context: ErrorContext | None = None,
        details: Any = None,
    ):
        super().__init__(
            message, "EXTERNAL_WRITE_FAILURE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 500, details,
        )


class DatabaseError(JobSyncError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
