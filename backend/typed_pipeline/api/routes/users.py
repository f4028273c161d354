"""User Routes — lookup and create, each built as one pipeline.

Invariants:
    - GET /{name}: known name -> 200 {"name": ...}; unknown -> 404 "failed to find user"
    - POST: missing/malformed bearer -> 401; invalid body -> 400; duplicate -> 409
    - Pipelines are assembled once per router, store injected at construction

Design Decisions:
    - Store passed to build_router() over a module global: tests build a router
      around their own store, no monkeypatching
    - Conflict defined here, not in core: envelope variants are the application's
      choice, core only requires render()
"""

import logging
from dataclasses import dataclass, field
from typing import Literal

from fastapi import APIRouter

from typed_pipeline.api.starlette_binding import openapi_responses, to_starlette_endpoint
from typed_pipeline.core.envelopes import (
    TEXT_CONTENT_TYPE, Created, NotFound, OkJson, ResponseSink,
)
from typed_pipeline.core.middleware import (
    Middleware, bearer_token, json_body, middleware, path_param,
)
from typed_pipeline.core.pipeline import Pipeline, compose
from typed_pipeline.core.request_context import RequestContext
from typed_pipeline.core.result import Failure, Result, Success
from typed_pipeline.schemas.user import User, UserCreate
from typed_pipeline.services.user_store import UserRepository

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "failed to find user"


@dataclass(frozen=True)
class Conflict:
    """409 with a plain-text message."""
    message: str = "conflict"
    kind: Literal["conflict"] = field(default="conflict", init=False)
    status_code: int = field(default=409, init=False)

    def render(self, sink: ResponseSink) -> None:
        sink.set_status(self.status_code)
        sink.set_header("content-type", TEXT_CONTENT_TYPE)
        sink.write_body(self.message.encode("utf-8"))


def load_user(store: UserRepository) -> Middleware[User]:
    """Resolve the `name` path parameter to a stored User."""
    name_param = path_param("name")

    @middleware(failures=(NotFound,) + name_param.failures, name="load_user")
    async def extract(ctx: RequestContext) -> Result[NotFound, User]:
        match await name_param(ctx):
            case Failure() as missing:
                return missing
            case Success(value=name):
                user = await store.get(name)
        if user is None:
            logger.info(f"User lookup miss: {name}", extra={"request_id": ctx.request_id})
            return Failure(NotFound(USER_NOT_FOUND))
        return Success(user)

    return extract


def build_pipelines(store: UserRepository) -> dict[str, Pipeline]:
    """Assemble the user pipelines around a store."""

    @compose(load_user(store), name="show_user")
    async def show_user(user: User) -> OkJson:
        return OkJson(user)

    @compose(bearer_token(), json_body(UserCreate), name="create_user")
    async def create_user(token: str, body: UserCreate) -> Created | Conflict:
        user = User(name=body.name)
        if not await store.add(user):
            return Conflict(f"user '{body.name}' already exists")
        return Created(user)

    return {"show_user": show_user, "create_user": create_user}


def build_router(store: UserRepository) -> APIRouter:
    pipelines = build_pipelines(store)
    router = APIRouter(prefix="/api/v1/users", tags=["users"])
    show_user = pipelines["show_user"]
    create_user = pipelines["create_user"]
    router.add_api_route(
        "/{name}", to_starlette_endpoint(show_user), methods=["GET"],
        responses=openapi_responses(show_user),
    )
    router.add_api_route(
        "", to_starlette_endpoint(create_user), methods=["POST"],
        responses=openapi_responses(create_user),
    )
    return router
