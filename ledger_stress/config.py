"""Harness configuration via environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "ledger-stress"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    log_json: bool = False

    # Target API. The only knob meant to change between runs.
    base_url: str = "http://localhost:9999"

    # HTTP client
    request_timeout_seconds: float = Field(default=60.0, gt=0)
    max_connections: int = Field(default=500, ge=1)

    # Scenario execution
    consistency_pause_seconds: float = Field(default=1.0, ge=0)
    ramp_tick_seconds: float = Field(default=0.1, gt=0)
    graceful_stop_seconds: float = Field(default=30.0, ge=0)

    # Output
    report_path: str = "stress-test-report.html"
    summary_path: str | None = None

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")
