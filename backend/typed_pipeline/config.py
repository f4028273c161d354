"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache) — single instance per process
    - fault_status_code is a 5xx code: the fault envelope never masquerades as success

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - pipeline_timeout_seconds defaults to None: the core contract has no timeout,
      deployments opt in (ADR: stalled middleware is an explicit, configured decision)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    service_name: str = "typed-pipeline"

    # Fault envelope rendered for unexpected faults
    fault_status_code: int = 500
    fault_body: str = ""

    @field_validator("fault_status_code")
    @classmethod
    def require_server_error(cls, v: int) -> int:
        if not 500 <= v <= 599:
            raise ValueError("fault_status_code must be a 5xx status")
        return v

    # Adapter-level timeout around one pipeline evaluation (seconds)
    pipeline_timeout_seconds: float | None = None

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
