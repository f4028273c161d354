"""Pipeline Composer — tests for ordered, short-circuiting composition.

Tests cover:
    - For every N and every first-failing position i: later middlewares and the
      handler are never invoked, and the returned envelope is middleware i's
    - All-success: handler invoked once with values in declaration order (sync or async)
    - Middlewares all see the same, unmodified ctx
    - Arity beyond six, zero-arity pipelines
    - Assembly-time checks (non-callable, handler arity mismatch)
    - Contract violations raise (non-Result, Failure without envelope, undeclared
      failure type, non-envelope handler result)
    - possible_responses = declared failures ∪ handler return annotation
"""

import asyncio

import pytest

from typed_pipeline.core.envelopes import (
    BadRequest, Created, NotFound, OkJson, Unauthorized,
)
from typed_pipeline.core.errors import (
    HandlerContractError, MiddlewareContractError, PipelineAssemblyError,
    UndeclaredFailureError,
)
from typed_pipeline.core.middleware import middleware
from typed_pipeline.core.pipeline import Pipeline, compose
from typed_pipeline.core.request_context import RequestContext
from typed_pipeline.core.result import Failure, Success


class _Counter:
    """Middleware double: counts invocations, succeeds with `value` or fails."""

    def __init__(self, value, fail_with=None):
        self.value = value
        self.fail_with = fail_with
        self.calls = 0
        self.seen = []

    async def __call__(self, ctx):
        self.calls += 1
        self.seen.append(ctx)
        await asyncio.sleep(0)
        if self.fail_with is not None:
            return Failure(self.fail_with)
        return Success(self.value)


class _RecordingHandler:
    def __init__(self):
        self.calls = []

    async def __call__(self, *values):
        self.calls.append(values)
        return OkJson(list(values))


def _ctx() -> RequestContext:
    return RequestContext.build("GET", path="/things", path_params={"id": "7"})


# ─── Short-circuit ──────────────────────────────────────────────

@pytest.mark.parametrize("n", [1, 2, 3, 6, 9])
async def test_first_failure_stops_everything_after_it(n):
    for fail_at in range(n):
        envelope = NotFound(f"step {fail_at} failed")
        steps = [
            _Counter(i, fail_with=envelope if i == fail_at else None)
            for i in range(n)
        ]
        handler = _RecordingHandler()
        result = await Pipeline(tuple(steps), handler).run(_ctx())

        assert result is envelope
        assert [s.calls for s in steps[:fail_at + 1]] == [1] * (fail_at + 1)
        assert [s.calls for s in steps[fail_at + 1:]] == [0] * (n - fail_at - 1)
        assert handler.calls == []


async def test_two_middlewares_first_fails_second_never_runs():
    first = _Counter("a", fail_with=NotFound("failed to find user"))
    second = _Counter("b")
    handler = _RecordingHandler()
    result = await Pipeline((first, second), handler).run(_ctx())
    assert result == NotFound("failed to find user")
    assert second.calls == 0
    assert handler.calls == []


async def test_later_failure_wins_only_when_earlier_succeed():
    steps = (
        _Counter(1),
        _Counter(2, fail_with=BadRequest("second")),
        _Counter(3, fail_with=BadRequest("third")),
    )
    result = await Pipeline(steps, _RecordingHandler()).run(_ctx())
    assert result == BadRequest("second")


# ─── All success ────────────────────────────────────────────────

@pytest.mark.parametrize("n", [1, 2, 4, 7, 12])
async def test_handler_receives_values_in_declared_order(n):
    steps = tuple(_Counter(f"v{i}") for i in range(n))
    handler = _RecordingHandler()
    result = await Pipeline(steps, handler).run(_ctx())
    assert handler.calls == [tuple(f"v{i}" for i in range(n))]
    assert result == OkJson([f"v{i}" for i in range(n)])
    assert all(s.calls == 1 for s in steps)


async def test_every_middleware_sees_the_same_context():
    steps = tuple(_Counter(i) for i in range(3))
    ctx = _ctx()
    await Pipeline(steps, _RecordingHandler()).run(ctx)
    assert all(s.seen == [ctx] for s in steps)


async def test_zero_middlewares_calls_handler_with_no_args():
    handler = _RecordingHandler()
    result = await Pipeline((), handler).run(_ctx())
    assert handler.calls == [()]
    assert result == OkJson([])


async def test_sync_handler_is_called_not_awaited():
    calls = []

    def show(a, b):
        calls.append((a, b))
        return OkJson(a + b)

    result = await Pipeline((_Counter(1), _Counter(2)), show).run(_ctx())
    assert result == OkJson(3)
    assert calls == [(1, 2)]


async def test_compose_decorator_builds_pipeline():
    @compose(_Counter("tj"), _Counter(3))
    async def greet(name, times):
        return OkJson({"greeting": " ".join([f"hi {name}"] * times)})

    assert isinstance(greet, Pipeline)
    assert greet.arity == 2
    assert greet.name.endswith("greet")
    assert await greet.run(_ctx()) == OkJson({"greeting": "hi tj hi tj hi tj"})


async def test_pipeline_is_reusable_across_concurrent_requests():
    @middleware()
    async def echo_id(ctx):
        await asyncio.sleep(0)
        return Success(ctx.path_params["id"])

    @compose(echo_id)
    async def show(item_id):
        return OkJson({"id": item_id})

    ctxs = [RequestContext.build("GET", path_params={"id": str(i)}) for i in range(20)]
    results = await asyncio.gather(*(show.run(c) for c in ctxs))
    assert results == [OkJson({"id": str(i)}) for i in range(20)]


def test_pipeline_is_frozen():
    pipeline = Pipeline((), _RecordingHandler())
    with pytest.raises(AttributeError):
        pipeline.handler = None  # type: ignore[misc]


# ─── Assembly checks ────────────────────────────────────────────

def test_non_callable_middleware_rejected_at_assembly():
    with pytest.raises(PipelineAssemblyError):
        Pipeline(("nope",), _RecordingHandler())


def test_non_callable_handler_rejected_at_assembly():
    with pytest.raises(PipelineAssemblyError):
        Pipeline((), "nope")  # type: ignore[arg-type]


def test_handler_with_too_few_params_rejected():
    async def one(a):
        return OkJson(a)

    with pytest.raises(PipelineAssemblyError, match="cannot accept 2"):
        Pipeline((_Counter(1), _Counter(2)), one)


def test_handler_with_too_many_params_rejected():
    async def three(a, b, c=None):
        return OkJson(a)

    with pytest.raises(PipelineAssemblyError, match="declares 3"):
        Pipeline((_Counter(1), _Counter(2)), three)


def test_varargs_handler_accepts_any_arity():
    async def many(*values):
        return OkJson(values)

    assert Pipeline(tuple(_Counter(i) for i in range(8)), many).arity == 8


# ─── Contract violations ────────────────────────────────────────

async def test_middleware_returning_raw_value_is_contract_error():
    async def raw(ctx):
        return "not a result"

    with pytest.raises(MiddlewareContractError) as exc_info:
        await Pipeline((raw,), _RecordingHandler()).run(_ctx())
    assert exc_info.value.code == "MIDDLEWARE_CONTRACT_VIOLATION"


async def test_failure_without_envelope_is_contract_error():
    async def bad_failure(ctx):
        return Failure("just a string")

    handler = _RecordingHandler()
    with pytest.raises(MiddlewareContractError):
        await Pipeline((bad_failure,), handler).run(_ctx())
    assert handler.calls == []


async def test_handler_returning_non_envelope_is_contract_error():
    async def returns_dict(a):
        return {"a": a}

    with pytest.raises(HandlerContractError):
        await Pipeline((_Counter(1),), returns_dict).run(_ctx())


async def test_undeclared_failure_type_is_contract_error():
    @middleware(failures=(BadRequest,), name="parse_id")
    async def parse_id(ctx):
        return Failure(NotFound("x"))

    handler = _RecordingHandler()
    pipeline = Pipeline((parse_id,), handler)
    assert NotFound not in pipeline.possible_responses
    with pytest.raises(UndeclaredFailureError) as exc_info:
        await pipeline.run(_ctx())
    assert isinstance(exc_info.value, MiddlewareContractError)
    assert exc_info.value.code == "UNDECLARED_FAILURE"
    assert exc_info.value.context.middleware == "parse_id"
    assert isinstance(exc_info.value.envelope, NotFound)
    assert handler.calls == []


async def test_declared_failure_subclass_is_accepted():
    class Gone(NotFound):
        pass

    @middleware(failures=(NotFound,))
    async def find(ctx):
        return Failure(Gone("gone"))

    result = await Pipeline((find,), _RecordingHandler()).run(_ctx())
    assert isinstance(result, Gone)


async def test_undeclared_failures_not_checked_for_bare_callables():
    envelope = Unauthorized()
    result = await Pipeline((_Counter(1, fail_with=envelope),), _RecordingHandler()).run(_ctx())
    assert result is envelope


async def test_middleware_exception_propagates_from_run():
    async def boom(ctx):
        raise RuntimeError("store down")

    later = _Counter(2)
    with pytest.raises(RuntimeError, match="store down"):
        await Pipeline((boom, later), _RecordingHandler()).run(_ctx())
    assert later.calls == 0


# ─── Declared responses ─────────────────────────────────────────

def test_possible_responses_union_of_failures_and_handler_return():
    @middleware(failures=(NotFound,))
    async def find(ctx):
        return Success(1)

    @middleware(failures=(Unauthorized, BadRequest))
    async def auth(ctx):
        return Success(2)

    async def handler(a, b) -> OkJson | Created:
        return OkJson(a + b)

    pipeline = Pipeline((find, auth), handler)
    assert pipeline.possible_responses == {
        NotFound, Unauthorized, BadRequest, OkJson, Created,
    }


def test_possible_responses_without_annotations():
    pipeline = Pipeline((_Counter(1),), _RecordingHandler())
    assert pipeline.possible_responses == frozenset()
