"""Pipeline Composer — ordered middlewares + one handler, short-circuit on first failure.

Invariants:
    - Middlewares run sequentially in declaration order, each against the SAME ctx
    - First Failure wins: later middlewares and the handler are never invoked
    - Handler is called exactly once, with extracted values in declaration order;
      sync or async, same as middlewares
    - A middleware declaring `failures` may only fail with those envelope types,
      so possible_responses never under-reports
    - Any arity: one loop over a tuple, no per-count definitions
    - Frozen after assembly; shared read-only across concurrent requests
    - Contract violations raise (MiddlewareContractError / HandlerContractError);
      raising is the adapter's concern, never converted here

Design Decisions:
    - Values flow through a local list, never through the request object
      (ADR: no smuggling extracted state via ctx mutation)
    - Handler arity checked with inspect.signature().bind at assembly time: a
      mismatched route fails at startup, not on first request
    - possible_responses computed from declared failure types + handler return
      annotation: "what can this endpoint produce" is readable off the definition
"""

import inspect
import logging
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Union

from typed_pipeline.core.envelopes import ResponseEnvelope, is_envelope
from typed_pipeline.core.errors import (
    ErrorContext,
    HandlerContractError,
    MiddlewareContractError,
    PipelineAssemblyError,
    UndeclaredFailureError,
)
from typed_pipeline.core.middleware import Middleware, lift
from typed_pipeline.core.request_context import RequestContext
from typed_pipeline.core.result import Failure, Success

logger = logging.getLogger(__name__)

Handler = Callable[..., Union[ResponseEnvelope, Awaitable[ResponseEnvelope]]]


@dataclass(frozen=True)
class Pipeline:
    """Immutable composition of middlewares and a terminal handler."""
    middlewares: tuple[Middleware, ...]
    handler: Handler
    name: str = ""
    possible_responses: frozenset[type] = field(default=frozenset(), init=False)

    def __post_init__(self):
        steps = tuple(lift(m) for m in self.middlewares)
        object.__setattr__(self, "middlewares", steps)
        _check_handler(self.handler, len(steps))
        if not self.name:
            object.__setattr__(self, "name", _callable_name(self.handler))
        object.__setattr__(
            self, "possible_responses",
            frozenset(_collect_responses(steps, self.handler)),
        )

    @property
    def arity(self) -> int:
        return len(self.middlewares)

    async def run(self, ctx: RequestContext) -> ResponseEnvelope:
        """Evaluate middlewares in order, then the handler."""
        values: list[Any] = []
        for step in self.middlewares:
            outcome = await step(ctx)
            match outcome:
                case Success(value=value):
                    values.append(value)
                case Failure(envelope=envelope) if is_envelope(envelope):
                    if step.failures and not isinstance(envelope, step.failures):
                        raise UndeclaredFailureError(
                            step.name, envelope, step.failures,
                            ErrorContext(request_id=ctx.request_id),
                        )
                    logger.info(
                        f"Pipeline '{self.name}' short-circuited at '{step.name}'",
                        extra={
                            "request_id": ctx.request_id,
                            "middleware": step.name,
                            "status_code": envelope.status_code,
                        },
                    )
                    return envelope
                case _:
                    raise MiddlewareContractError(
                        step.name, outcome,
                        ErrorContext(request_id=ctx.request_id),
                    )
            logger.debug(
                f"Middleware '{step.name}' succeeded",
                extra={"request_id": ctx.request_id, "middleware": step.name},
            )

        response = self.handler(*values)
        if inspect.isawaitable(response):
            response = await response
        if not is_envelope(response):
            raise HandlerContractError(
                self.name, response, ErrorContext(request_id=ctx.request_id),
            )
        return response


def compose(*middlewares: Any, name: str = "") -> Callable[[Handler], Pipeline]:
    """Decorator form: `@compose(m1, m2)` over `async def handler(v1, v2)`."""
    def wrap(handler: Handler) -> Pipeline:
        return Pipeline(tuple(middlewares), handler, name)
    return wrap


# ─── Assembly Checks ────────────────────────────────────────────

def _callable_name(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or type(fn).__name__


def _check_handler(handler: Any, arity: int) -> None:
    """Handler must be callable and accept exactly `arity` positional values."""
    if not callable(handler):
        raise PipelineAssemblyError(
            f"Handler must be callable, got {type(handler).__name__}",
        )
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return  # builtins / C callables: no signature to check
    try:
        sig.bind(*range(arity))
    except TypeError as exc:
        raise PipelineAssemblyError(
            f"Handler '{_callable_name(handler)}' cannot accept "
            f"{arity} extracted value(s): {exc}",
        ) from exc
    positional = [
        p for p in sig.parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    has_varargs = any(p.kind is p.VAR_POSITIONAL for p in sig.parameters.values())
    if len(positional) > arity and not has_varargs:
        # extra params with defaults would silently never receive a value
        raise PipelineAssemblyError(
            f"Handler '{_callable_name(handler)}' declares {len(positional)} "
            f"positional parameters but the pipeline extracts {arity}",
        )


def _collect_responses(steps: Iterable[Middleware], handler: Any) -> set[type]:
    kinds: set[type] = set()
    for step in steps:
        kinds.update(step.failures)
    kinds.update(_declared_return_types(handler))
    return kinds


def _declared_return_types(handler: Any) -> set[type]:
    """Envelope classes named in the handler's return annotation (unions expanded)."""
    try:
        hints = typing.get_type_hints(handler)
    except Exception:  # unresolved forward refs: nothing declared
        return set()
    ret = hints.get("return")
    if ret is None:
        return set()
    origin = typing.get_origin(ret)
    if origin is typing.Union or origin is types.UnionType:
        members = typing.get_args(ret)
    else:
        members = (ret,)
    return {m for m in members if isinstance(m, type)}
