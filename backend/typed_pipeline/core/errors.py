"""Error Hierarchy — typed exceptions for pipeline assembly and contract violations.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Expected request failures are NEVER exceptions — they travel as Failure(envelope)
    - These errors describe programming faults: bad assembly at startup, or a
      middleware/handler breaking its contract at request time
    - Messages name the offending step and type only; request data never appears

Design Decisions:
    - Single hierarchy with PipelineError base: the adapter catches all of it in one
      clause and logs code/category/severity (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity — selects the log level the adapter reports at."""
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    ASSEMBLY = "assembly"
    CONTRACT = "contract"
    RENDER = "render"


@dataclass
class ErrorContext:
    """Where the error happened, for log correlation."""
    request_id: str | None = None
    middleware: str | None = None


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()


# ─── Startup Errors ─────────────────────────────────────────────

class PipelineAssemblyError(PipelineError):
    """Pipeline definition is invalid (raised at route registration)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PIPELINE_ASSEMBLY_ERROR", ErrorCategory.ASSEMBLY,
            ErrorSeverity.CRITICAL, context,
        )


# ─── Request-time Faults ────────────────────────────────────────

class MiddlewareContractError(PipelineError):
    """Middleware resolved to something other than Success / Failure(envelope)."""
    def __init__(
        self,
        middleware: str,
        got: object,
        context: ErrorContext | None = None,
        code: str = "MIDDLEWARE_CONTRACT_VIOLATION",
        message: str | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.middleware = middleware
        super().__init__(
            message or (
                f"Middleware '{middleware}' returned {type(got).__name__}, "
                f"expected Success or Failure(envelope)"
            ),
            code, ErrorCategory.CONTRACT, ErrorSeverity.ERROR, ctx,
        )


class UndeclaredFailureError(MiddlewareContractError):
    """Middleware failed with an envelope type missing from its `failures`."""
    def __init__(
        self,
        middleware: str,
        envelope: object,
        declared: tuple[type, ...],
        context: ErrorContext | None = None,
    ):
        names = ", ".join(kind.__name__ for kind in declared)
        super().__init__(
            middleware, envelope, context,
            code="UNDECLARED_FAILURE",
            message=(
                f"Middleware '{middleware}' failed with {type(envelope).__name__}, "
                f"declared failures are ({names})"
            ),
        )
        self.envelope = envelope


class HandlerContractError(PipelineError):
    """Handler resolved to something that is not a response envelope."""
    def __init__(self, handler: str, got: object, context: ErrorContext | None = None):
        super().__init__(
            f"Handler '{handler}' returned {type(got).__name__}, expected a response envelope",
            "HANDLER_CONTRACT_VIOLATION", ErrorCategory.CONTRACT,
            ErrorSeverity.ERROR, context,
        )


class DoubleRenderError(PipelineError):
    """A second render was attempted on a sink that already holds a response."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Response already rendered for this request",
            "DOUBLE_RENDER", ErrorCategory.RENDER,
            ErrorSeverity.CRITICAL, context,
        )
