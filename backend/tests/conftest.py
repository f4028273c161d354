"""Root conftest — shared test configuration."""

import os

import pytest

# Plain-text logs in test output; no timeout unless a test asks for one
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("SERVICE_NAME", "typed-pipeline-test")

from typed_pipeline.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are lru_cached; tests that tweak env must not leak into others."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
