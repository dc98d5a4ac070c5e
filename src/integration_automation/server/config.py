"""Configuration for the REST server.

The server reads the same engine settings as the CLI (state path, harness
tuning) and adds the HTTP-only concerns.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from integration_automation.engine.config import EngineSettings


class ServerSettings(EngineSettings):
    """Settings for the REST API."""

    # Dev-friendly CORS (Vite). Override via AUTOMATION_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="AUTOMATION_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
