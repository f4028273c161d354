"""Request Context — read-only view of one inbound request.

Invariants:
    - Frozen: no attribute can be reassigned after construction
    - Mapping fields are MappingProxyType views — middlewares cannot mutate them
    - Header names are lower-cased at construction; lookups are case-insensitive
    - Normalization runs in __post_init__, so direct construction and build()
      produce the same frozen view
    - Constructed by the transport adapter only, one per request

Design Decisions:
    - Copy-then-freeze on construction: the caller's dicts are never aliased, so a
      transport mutating its own request object cannot leak into a running pipeline
    - request_id minted here (uuid4 hex) for log correlation, like the chain context
      in gateway-style middleware stacks
"""

import json
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


def _freeze(values: Mapping[str, str] | None, lower: bool = False) -> Mapping[str, str]:
    items = dict(values or {})
    if lower:
        items = {k.lower(): v for k, v in items.items()}
    return MappingProxyType(items)


@dataclass(frozen=True)
class RequestContext:
    """Opaque carrier of method, path params, query, headers, body."""
    method: str
    path: str = "/"
    path_params: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "path_params", _freeze(self.path_params))
        object.__setattr__(self, "query", _freeze(self.query))
        object.__setattr__(self, "headers", _freeze(self.headers, lower=True))
        object.__setattr__(self, "body", bytes(self.body))

    @classmethod
    def build(
        cls,
        method: str,
        path: str = "/",
        path_params: Mapping[str, str] | None = None,
        query: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | str = b"",
    ) -> "RequestContext":
        """Build a context from optional plain mappings and a str or bytes body."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            method=method,
            path=path,
            path_params=path_params or {},
            query=query or {},
            headers=headers or {},
            body=body,
        )

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError on malformed input."""
        return json.loads(self.body.decode("utf-8")) if self.body else None
