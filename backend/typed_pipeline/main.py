"""Typed Pipeline API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Every pipeline route answers through the transport adapter (one response per request)
    - No app-level exception handlers: every route is a pipeline route, and the
      adapter turns its faults into the fault envelope before FastAPI sees them
    - CORS configured from settings (not hardcoded)
    - Logging configured on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern
    - create_app(store) factory plus module-level `app`: tests build an app around
      their own store; uvicorn serves `typed_pipeline.main:app`
    - Demo store seeded with "tj" — the user store is a stand-in, not core
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from typed_pipeline.api.routes import health, users
from typed_pipeline.config import get_settings
from typed_pipeline.infrastructure.observability import setup_logging
from typed_pipeline.services.user_store import InMemoryUserStore, UserRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    logger.info(f"{settings.service_name} started")
    yield
    logger.info(f"{settings.service_name} shutting down")


def create_app(store: UserRepository | None = None) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Typed Pipeline API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router)
    app.include_router(users.build_router(store or InMemoryUserStore(["tj"])))
    return app


app = create_app()
