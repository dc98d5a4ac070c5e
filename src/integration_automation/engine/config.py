"""Configuration for the automation engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Nothing here is required: every setting has a working local default, so the CLI
and tests can run against a fresh checkout.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings for the engine, the CLI and the test harness.

    Environment variables:
    - LOG_LEVEL                         (optional)
    - AUTOMATION_STATE_PATH             (optional)
    - AUTOMATION_HARNESS_MIN_LATENCY_MS (optional)
    - AUTOMATION_HARNESS_MAX_LATENCY_MS (optional)
    - AUTOMATION_HARNESS_SEED           (optional)
    - AUTOMATION_*_PASS_RATE            (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `EngineSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    state_path: Path = Field(
        default=Path("automation_state"),
        validation_alias="AUTOMATION_STATE_PATH",
        description="Directory where workflow, template and installation records are persisted",
    )

    harness_min_latency_ms: int = Field(
        default=500,
        validation_alias="AUTOMATION_HARNESS_MIN_LATENCY_MS",
        description="Lower bound of the simulated per-step latency of a test run",
        ge=0,
    )
    harness_max_latency_ms: int = Field(
        default=2500,
        validation_alias="AUTOMATION_HARNESS_MAX_LATENCY_MS",
        description="Upper bound of the simulated per-step latency of a test run",
        ge=0,
    )
    harness_seed: int | None = Field(
        default=None,
        validation_alias="AUTOMATION_HARNESS_SEED",
        description="Seed for the simulated execution strategy (unset means nondeterministic)",
    )

    condition_pass_rate: float = Field(
        default=0.90,
        validation_alias="AUTOMATION_CONDITION_PASS_RATE",
        description="Probability that a simulated condition evaluation succeeds",
        ge=0.9,
        le=1.0,
    )
    action_pass_rate: float = Field(
        default=0.95,
        validation_alias="AUTOMATION_ACTION_PASS_RATE",
        description="Probability that a simulated action succeeds",
        ge=0.9,
        le=1.0,
    )
    integration_pass_rate: float = Field(
        default=0.90,
        validation_alias="AUTOMATION_INTEGRATION_PASS_RATE",
        description="Probability that the simulated end-to-end integration test succeeds",
        ge=0.9,
        le=1.0,
    )
    performance_pass_rate: float = Field(
        default=0.95,
        validation_alias="AUTOMATION_PERFORMANCE_PASS_RATE",
        description="Probability that the simulated performance check succeeds",
        ge=0.9,
        le=1.0,
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_latency_range(self) -> EngineSettings:
        if self.harness_min_latency_ms > self.harness_max_latency_ms:
            raise ValueError(
                "AUTOMATION_HARNESS_MIN_LATENCY_MS must not exceed AUTOMATION_HARNESS_MAX_LATENCY_MS"
            )
        return self

    @property
    def workflows_state_file(self) -> Path:
        """Path where workflow records are persisted."""

        return self.state_path / "workflows.json"

    @property
    def templates_state_file(self) -> Path:
        """Path where marketplace templates are persisted."""

        return self.state_path / "templates.json"

    @property
    def installations_state_file(self) -> Path:
        """Path where template installations are persisted."""

        return self.state_path / "installations.json"
