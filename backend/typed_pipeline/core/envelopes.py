"""Response Envelopes — closed set of self-rendering response variants.

Invariants:
    - Every variant is a frozen dataclass with a Literal `kind` discriminant
    - render(sink) is the ONLY code path that writes to a ResponseSink
    - render() writes status once, content-type once (when a body exists), body once
    - JSON bodies are compact: OkJson({"name": "tj"}) -> {"name":"tj"}

Design Decisions:
    - Protocol for ResponseEnvelope: applications add variants without subclassing
      (ADR: structural subtyping, same as repository protocols)
    - Literal `kind` field over isinstance dispatch: `match env.kind` narrows statically
    - pydantic_core.to_json for every body: models nested at any depth, datetimes
      and UUIDs serialize the same way pydantic/FastAPI responses do
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic_core import to_json

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@runtime_checkable
class ResponseSink(Protocol):
    """Transport-level response writer — supplied by the router."""
    def set_status(self, status_code: int) -> None: ...
    def set_header(self, name: str, value: str) -> None: ...
    def write_body(self, body: bytes) -> None: ...


@runtime_checkable
class ResponseEnvelope(Protocol):
    """Anything that knows its status and how to render itself."""
    kind: str
    status_code: int

    def render(self, sink: ResponseSink) -> None: ...


def encode_json(value: Any) -> bytes:
    """Serialize value to compact UTF-8 JSON.

    Raises pydantic_core.PydanticSerializationError for values with no JSON form.
    """
    return to_json(value)


def _write(sink: ResponseSink, status_code: int, body: bytes, content_type: str | None):
    sink.set_status(status_code)
    if content_type is not None:
        sink.set_header("content-type", content_type)
    sink.write_body(body)


# ─── Success Variants ───────────────────────────────────────────

@dataclass(frozen=True)
class Ok:
    """200 with an empty body."""
    kind: Literal["ok"] = field(default="ok", init=False)
    status_code: int = field(default=200, init=False)

    def render(self, sink: ResponseSink) -> None:
        _write(sink, self.status_code, b"", None)


@dataclass(frozen=True)
class OkJson:
    """200 with a JSON-serialized value."""
    value: Any
    kind: Literal["ok_json"] = field(default="ok_json", init=False)
    status_code: int = field(default=200, init=False)

    def render(self, sink: ResponseSink) -> None:
        _write(sink, self.status_code, encode_json(self.value), JSON_CONTENT_TYPE)


@dataclass(frozen=True)
class Created:
    """201 with a JSON-serialized value."""
    value: Any
    kind: Literal["created"] = field(default="created", init=False)
    status_code: int = field(default=201, init=False)

    def render(self, sink: ResponseSink) -> None:
        _write(sink, self.status_code, encode_json(self.value), JSON_CONTENT_TYPE)


@dataclass(frozen=True)
class NoContent:
    """204 — status only."""
    kind: Literal["no_content"] = field(default="no_content", init=False)
    status_code: int = field(default=204, init=False)

    def render(self, sink: ResponseSink) -> None:
        _write(sink, self.status_code, b"", None)


# ─── Failure Variants ───────────────────────────────────────────

@dataclass(frozen=True)
class BadRequest:
    """400 with a plain-text message."""
    message: str = "bad request"
    kind: Literal["bad_request"] = field(default="bad_request", init=False)
    status_code: int = field(default=400, init=False)

    def render(self, sink: ResponseSink) -> None:
        _write(sink, self.status_code, self.message.encode("utf-8"), TEXT_CONTENT_TYPE)


@dataclass(frozen=True)
class Unauthorized:
    """401 with a plain-text message."""
    message: str = "unauthorized"
    kind: Literal["unauthorized"] = field(default="unauthorized", init=False)
    status_code: int = field(default=401, init=False)

    def render(self, sink: ResponseSink) -> None:
        _write(sink, self.status_code, self.message.encode("utf-8"), TEXT_CONTENT_TYPE)


@dataclass(frozen=True)
class NotFound:
    """404 with a plain-text message."""
    message: str = "not found"
    kind: Literal["not_found"] = field(default="not_found", init=False)
    status_code: int = field(default=404, init=False)

    def render(self, sink: ResponseSink) -> None:
        _write(sink, self.status_code, self.message.encode("utf-8"), TEXT_CONTENT_TYPE)


@dataclass(frozen=True)
class ServerFault:
    """Generic fault response — fixed status, fixed (usually empty) body.

    Rendered by the transport adapter for unexpected faults only.
    """
    status_code: int = 500
    body: str = ""
    kind: Literal["server_fault"] = field(default="server_fault", init=False)

    def render(self, sink: ResponseSink) -> None:
        content_type = TEXT_CONTENT_TYPE if self.body else None
        _write(sink, self.status_code, self.body.encode("utf-8"), content_type)


def is_envelope(obj: object) -> bool:
    """True when obj satisfies the ResponseEnvelope protocol."""
    return (
        callable(getattr(obj, "render", None))
        and isinstance(getattr(obj, "status_code", None), int)
        and isinstance(getattr(obj, "kind", None), str)
    )
