"""Transport Adapter — turns a Pipeline into `(raw_request, sink) -> None`.

Invariants:
    - Exactly one response reaches the sink per request: short-circuit, normal
      completion, fault, and render failure all end in one status + one body
    - Unexpected faults (context build, middleware, handler, contract violation,
      timeout) are converted to the fault envelope — never re-raised to the router
    - asyncio.CancelledError is NOT a fault: it propagates (the transport is gone)
    - Expected failures are rendered as-is, never retried

Design Decisions:
    - RenderGuard wraps the transport sink: double writes raise DoubleRenderError
      inside the adapter instead of corrupting the response
    - Fault envelope built from settings once per endpoint, not per request
    - Timeout is adapter-level (asyncio.wait_for) and opt-in: the pipeline core
      stays timeout-free (ADR: stalled middleware handled at the boundary)
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from typed_pipeline.config import get_settings
from typed_pipeline.core.envelopes import ResponseEnvelope, ResponseSink, ServerFault
from typed_pipeline.core.errors import DoubleRenderError, ErrorSeverity, PipelineError
from typed_pipeline.core.pipeline import Pipeline
from typed_pipeline.core.request_context import RequestContext

logger = logging.getLogger(__name__)

ContextFactory = Callable[[Any], Union[RequestContext, Awaitable[RequestContext]]]
Endpoint = Callable[[Any, ResponseSink], Awaitable[None]]

FROM_SETTINGS: Any = object()

_SEVERITY_LEVELS = {
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class RenderGuard:
    """Sink wrapper enforcing one status and one body per request."""

    def __init__(self, sink: ResponseSink):
        self._sink = sink
        self.status_set = False
        self.body_written = False

    @property
    def untouched(self) -> bool:
        return not self.status_set and not self.body_written

    def set_status(self, status_code: int) -> None:
        if self.status_set:
            raise DoubleRenderError()
        self._sink.set_status(status_code)
        self.status_set = True

    def set_header(self, name: str, value: str) -> None:
        if self.body_written:
            raise DoubleRenderError()
        self._sink.set_header(name, value)

    def write_body(self, body: bytes) -> None:
        if self.body_written:
            raise DoubleRenderError()
        self._sink.write_body(body)
        self.body_written = True


def default_fault() -> ServerFault:
    settings = get_settings()
    return ServerFault(settings.fault_status_code, settings.fault_body)


def to_endpoint(
    pipeline: Pipeline,
    context_factory: ContextFactory,
    *,
    fault: ResponseEnvelope | None = None,
    timeout: float | None = FROM_SETTINGS,
) -> Endpoint:
    """Wrap a pipeline into the router-facing `(raw_request, sink)` signature."""
    fault_envelope = fault if fault is not None else default_fault()
    if timeout is FROM_SETTINGS:
        timeout = get_settings().pipeline_timeout_seconds

    async def endpoint(raw_request: Any, sink: ResponseSink) -> None:
        guard = RenderGuard(sink)
        envelope = await _evaluate(
            pipeline, context_factory, raw_request, timeout, fault_envelope,
        )
        _render_once(envelope, guard, fault_envelope, pipeline.name)

    endpoint.__name__ = pipeline.name.rsplit(".", 1)[-1]
    endpoint.pipeline = pipeline  # type: ignore[attr-defined]
    return endpoint


async def _evaluate(
    pipeline: Pipeline,
    context_factory: ContextFactory,
    raw_request: Any,
    timeout: float | None,
    fault_envelope: ResponseEnvelope,
) -> ResponseEnvelope:
    """Run the pipeline; any unexpected fault becomes the fault envelope."""
    request_id = None
    try:
        ctx = context_factory(raw_request)
        if inspect.isawaitable(ctx):
            ctx = await ctx
        request_id = ctx.request_id
        if timeout is None:
            return await pipeline.run(ctx)
        return await asyncio.wait_for(pipeline.run(ctx), timeout)
    except asyncio.TimeoutError as exc:
        if timeout is None:
            _log_unhandled(pipeline.name, request_id, exc)
        else:
            logger.error(
                f"Pipeline '{pipeline.name}' exceeded {timeout}s",
                extra={"pipeline": pipeline.name, "request_id": request_id,
                       "error_code": "PIPELINE_TIMEOUT"},
            )
    except PipelineError as exc:
        logger.log(
            _SEVERITY_LEVELS[exc.severity],
            f"PipelineError in '{pipeline.name}': {exc.message}",
            extra={"pipeline": pipeline.name, "request_id": request_id,
                   "middleware": exc.context.middleware,
                   "error_code": exc.code, "error_category": exc.category.value},
        )
    except Exception as exc:
        _log_unhandled(pipeline.name, request_id, exc)
    return fault_envelope


def _log_unhandled(pipeline_name: str, request_id: str | None, exc: BaseException) -> None:
    logger.error(
        f"Unhandled exception in '{pipeline_name}': {exc!r}",
        exc_info=exc,
        extra={"pipeline": pipeline_name, "request_id": request_id,
               "error_code": "INTERNAL_ERROR"},
    )


def _render_once(
    envelope: ResponseEnvelope,
    guard: RenderGuard,
    fault_envelope: ResponseEnvelope,
    pipeline_name: str,
) -> None:
    """Render envelope; fall back to the fault envelope only if nothing was written."""
    try:
        envelope.render(guard)
    except Exception as exc:
        logger.error(
            f"Render failed in '{pipeline_name}': {exc}",
            exc_info=not isinstance(exc, DoubleRenderError),
            extra={"pipeline": pipeline_name, "error_code": "RENDER_FAILED"},
        )
        if guard.untouched and envelope is not fault_envelope:
            _render_fault(fault_envelope, guard, pipeline_name)
    _complete(guard, fault_envelope)


def _render_fault(
    fault_envelope: ResponseEnvelope, guard: RenderGuard, pipeline_name: str,
) -> None:
    try:
        fault_envelope.render(guard)
    except Exception:
        logger.critical(
            f"Fault envelope failed to render in '{pipeline_name}'",
            exc_info=True,
            extra={"pipeline": pipeline_name, "error_code": "RENDER_FAILED"},
        )


def _complete(guard: RenderGuard, fault_envelope: ResponseEnvelope) -> None:
    """Fill in whatever part of the response a misbehaving render left out."""
    if not guard.status_set:
        guard.set_status(fault_envelope.status_code)
    if not guard.body_written:
        guard.write_body(b"")
