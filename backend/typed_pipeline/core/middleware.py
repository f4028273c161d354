"""Middleware — typed extraction steps run against a read-only RequestContext.

Invariants:
    - A middleware resolves to Success(value) or Failure(envelope) — never mutates ctx
    - Failure always carries a renderable envelope (checked by the composer)
    - A non-empty `failures` is a contract: the composer rejects any other
      envelope type, so a route never answers with an undeclared failure
    - Raising is NOT a failure: it is an unexpected fault, handled by the adapter
    - Middleware descriptors are frozen and shared across all requests

Design Decisions:
    - Descriptor dataclass wrapping a plain callable: name + declared failure types
      travel with the function, so a pipeline can report its possible responses
    - Sync and async extract functions both accepted; sync results are not awaited
      (ADR: pure extractors like path_param need no event-loop hop)
    - Stock extractors are factories returning descriptors: configuration is closed
      over, never read from the request or from globals
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from pydantic import BaseModel, ValidationError

from typed_pipeline.core.envelopes import BadRequest, Unauthorized
from typed_pipeline.core.errors import PipelineAssemblyError
from typed_pipeline.core.request_context import RequestContext
from typed_pipeline.core.result import Failure, Result, Success

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

ExtractFn = Callable[
    [RequestContext], Union[Awaitable[Result[Any, T]], Result[Any, T]],
]

_MISSING: Any = object()


@dataclass(frozen=True)
class Middleware(Generic[T]):
    """A named extraction step with its declared failure envelope types."""
    extract: ExtractFn
    name: str
    failures: tuple[type, ...] = ()

    async def __call__(self, ctx: RequestContext) -> Result[Any, T]:
        outcome = self.extract(ctx)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome


def middleware(
    *, failures: tuple[type, ...] = (), name: str | None = None,
) -> Callable[[ExtractFn], Middleware]:
    """Decorator: turn an extract function into a Middleware descriptor."""
    def wrap(fn: ExtractFn) -> Middleware:
        return Middleware(
            extract=fn,
            name=name or getattr(fn, "__qualname__", repr(fn)),
            failures=tuple(failures),
        )
    return wrap


def lift(step: Any) -> Middleware:
    """Accept a descriptor as-is, wrap a bare callable, reject anything else."""
    if isinstance(step, Middleware):
        return step
    if callable(step):
        return Middleware(
            extract=step, name=getattr(step, "__qualname__", repr(step)),
        )
    raise PipelineAssemblyError(
        f"Middleware must be callable, got {type(step).__name__}",
    )


# ─── Stock Extractors ───────────────────────────────────────────

def path_param(name: str) -> Middleware[str]:
    """Extract a path parameter; BadRequest when the router did not supply it."""
    def extract(ctx: RequestContext) -> Result[BadRequest, str]:
        value = ctx.path_params.get(name)
        if value is None:
            return Failure(BadRequest(f"missing path parameter '{name}'"))
        return Success(value)
    return Middleware(extract, f"path_param:{name}", (BadRequest,))


def query_param(name: str, default: Any = _MISSING) -> Middleware[str]:
    """Extract a query parameter; BadRequest when absent and no default given."""
    def extract(ctx: RequestContext) -> Result[BadRequest, str]:
        value = ctx.query.get(name)
        if value is not None:
            return Success(value)
        if default is not _MISSING:
            return Success(default)
        return Failure(BadRequest(f"missing query parameter '{name}'"))
    return Middleware(extract, f"query_param:{name}", (BadRequest,))


def header(name: str, default: Any = _MISSING) -> Middleware[str]:
    """Extract a header (case-insensitive); BadRequest when absent and no default."""
    def extract(ctx: RequestContext) -> Result[BadRequest, str]:
        value = ctx.header(name)
        if value is not None:
            return Success(value)
        if default is not _MISSING:
            return Success(default)
        return Failure(BadRequest(f"missing header '{name.lower()}'"))
    return Middleware(extract, f"header:{name.lower()}", (BadRequest,))


def bearer_token() -> Middleware[str]:
    """Extract the token from `Authorization: Bearer <token>`."""
    def extract(ctx: RequestContext) -> Result[Unauthorized, str]:
        raw = ctx.header("authorization")
        if not raw:
            return Failure(Unauthorized("missing bearer token"))
        scheme, _, token = raw.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return Failure(Unauthorized("malformed authorization header"))
        return Success(token.strip())
    return Middleware(extract, "bearer_token", (Unauthorized,))


def json_body(model: type[M]) -> Middleware[M]:
    """Parse and validate the body against a pydantic model."""
    def extract(ctx: RequestContext) -> Result[BadRequest, M]:
        try:
            return Success(model.model_validate_json(ctx.body or b"null"))
        except ValidationError as exc:
            return Failure(BadRequest(_describe_validation_error(exc)))
    return Middleware(extract, f"json_body:{model.__name__}", (BadRequest,))


def _describe_validation_error(exc: ValidationError) -> str:
    """First error only, as `field: message` — no input values echoed back."""
    errors = exc.errors(include_input=False)
    if not errors:
        return "invalid request body"
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"invalid request body: {loc}: {first['msg']}" if loc else (
        f"invalid request body: {first['msg']}"
    )
