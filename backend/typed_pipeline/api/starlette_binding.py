"""Starlette Binding — plugs pipeline endpoints into a FastAPI / Starlette router.

Invariants:
    - One BufferedSink per request; converted to exactly one starlette Response
    - RequestContext is built from a copy of the request — the Request object is
      never handed to middlewares
    - openapi_responses() derives documented statuses from Pipeline.possible_responses

Design Decisions:
    - Buffer then convert over streaming writes: envelopes render synchronously
      and bodies are small JSON/text (ADR: no streaming in the core contract)
    - Registration stays with the router (APIRouter.add_api_route): this module
      only produces the endpoint callable
"""

from typing import Any

from starlette.requests import Request
from starlette.responses import Response

from typed_pipeline.api.adapter import FROM_SETTINGS, to_endpoint
from typed_pipeline.core.envelopes import ResponseEnvelope
from typed_pipeline.core.pipeline import Pipeline
from typed_pipeline.core.request_context import RequestContext


class BufferedSink:
    """ResponseSink that accumulates one response in memory."""

    def __init__(self):
        self.status_code: int | None = None
        self.headers: dict[str, str] = {}
        self.body = b""

    def set_status(self, status_code: int) -> None:
        self.status_code = status_code

    def set_header(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    def write_body(self, body: bytes) -> None:
        self.body = body

    def to_response(self) -> Response:
        return Response(
            content=self.body,
            status_code=self.status_code or 500,
            headers=self.headers,
        )


async def context_from_starlette(request: Request) -> RequestContext:
    """Copy method, path params, query, headers and body out of a Request."""
    return RequestContext.build(
        method=request.method,
        path=request.url.path,
        path_params={k: str(v) for k, v in request.path_params.items()},
        query=dict(request.query_params),
        headers=dict(request.headers),
        body=await request.body(),
    )


def to_starlette_endpoint(
    pipeline: Pipeline,
    *,
    fault: ResponseEnvelope | None = None,
    timeout: float | None = FROM_SETTINGS,
):
    """Produce `async (Request) -> Response` for APIRouter.add_api_route."""
    endpoint = to_endpoint(
        pipeline, context_from_starlette, fault=fault, timeout=timeout,
    )

    async def route(request: Request) -> Response:
        sink = BufferedSink()
        await endpoint(request, sink)
        return sink.to_response()

    route.__name__ = endpoint.__name__
    route.__doc__ = getattr(pipeline.handler, "__doc__", None)
    return route


def openapi_responses(pipeline: Pipeline) -> dict[int | str, dict[str, Any]]:
    """OpenAPI `responses` mapping built from the pipeline's possible envelopes."""
    responses: dict[int | str, dict[str, Any]] = {}
    for kind in sorted(pipeline.possible_responses, key=lambda k: k.__name__):
        status_code = getattr(kind, "status_code", None)
        if isinstance(status_code, int):
            responses.setdefault(status_code, {"description": kind.__name__})
    return responses
