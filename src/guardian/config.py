"""Configuration management for Guardian."""

from __future__ import annotations

import math
from typing import Any, Literal

from loguru import logger
from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SERVER_URL = "http://localhost:9200"
DEFAULT_MIN_INTERVAL_MS = 10_000
DEFAULT_PREMIUM_AMOUNT = 1.0
DEFAULT_RUN_COUNT = 4
DEFAULT_TOOL_TIMEOUT_MS = 480_000
DEFAULT_READY_TIMEOUT_MS = 30_000

_NUMERIC_DEFAULTS: dict[str, int | float] = {
    "min_interval_ms": DEFAULT_MIN_INTERVAL_MS,
    "premium_amount": DEFAULT_PREMIUM_AMOUNT,
    "run_count": DEFAULT_RUN_COUNT,
    "tool_timeout_ms": DEFAULT_TOOL_TIMEOUT_MS,
    "ready_timeout_ms": DEFAULT_READY_TIMEOUT_MS,
    "connect_timeout_seconds": 60.0,
    "read_timeout_seconds": 600.0,
}
_NUMERIC_FLOORS: dict[str, float] = {
    "min_interval_ms": 0,
    "run_count": 0,
    "tool_timeout_ms": 1,
    "ready_timeout_ms": 0,
    "connect_timeout_seconds": 0,
    "read_timeout_seconds": 0,
}


def _parse_number(value: Any, floor: float | None = None) -> float:
    """Parse a finite number no smaller than ``floor``; raise ``ValueError`` otherwise."""

    number = float(value if isinstance(value, int | float) else str(value).strip())
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not a finite number")
    if floor is not None and number < floor:
        raise ValueError(f"{value!r} is below {floor}")
    return number


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="HG_AGENT_",
        case_sensitive=False,
        env_file=(".env", ".env.health-guardian"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Server Configuration
    server_url: str = Field(
        default=DEFAULT_SERVER_URL,
        validation_alias=AliasChoices("HG_AGENT_MCP_URL", "EXPO_PUBLIC_MCP_URL"),
        description="Base URL of the capability server",
    )
    access_token: str | None = Field(default=None, description="Bearer token with 'mcp llm' scope")
    connect_timeout_seconds: float = Field(default=60.0, validation_alias=AliasChoices("HG_AGENT_CONNECT_TIMEOUT_S"))
    read_timeout_seconds: float = Field(default=600.0, validation_alias=AliasChoices("HG_AGENT_READ_TIMEOUT_S"))

    # Workflow Configuration
    min_interval_ms: int = Field(default=DEFAULT_MIN_INTERVAL_MS, ge=0, description="Minimum gap between tool calls")
    run_delay_ms: int | None = Field(default=None, ge=0, description="Delay between runs; defaults to min interval")
    premium_amount: float = Field(default=DEFAULT_PREMIUM_AMOUNT, description="Payment amount for premium access")
    run_count: int = Field(default=DEFAULT_RUN_COUNT, ge=0, description="Number of workflow runs")
    premium_receiver: str | None = Field(
        default=None,
        validation_alias=AliasChoices("HG_AGENT_PREMIUM_RECEIVER", "HG_PREMIUM_RECEIVER_ADDRESS"),
        description="Fixed receiver address for premium payments",
    )
    tool_timeout_ms: int = Field(default=DEFAULT_TOOL_TIMEOUT_MS, gt=0, description="Per-call tool timeout")
    ready_timeout_ms: int = Field(default=DEFAULT_READY_TIMEOUT_MS, ge=0, description="Tool readiness timeout")
    continue_on_error: bool = Field(default=False, description="Keep running after a failed run")
    dkg_explorer_url: str = Field(default="https://dkg-testnet.origintrail.io/explore")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_profile: Literal["default", "console"] = Field(default="console", description="Log output profile")

    @field_validator(*_NUMERIC_DEFAULTS, mode="before")
    @classmethod
    def _lenient_number(cls, value: Any, info: ValidationInfo) -> Any:
        default = _NUMERIC_DEFAULTS[info.field_name]
        if value is None or (isinstance(value, str) and not value.strip()):
            return default
        try:
            number = _parse_number(value, _NUMERIC_FLOORS.get(info.field_name))
            return int(number) if isinstance(default, int) else number
        except (TypeError, ValueError, OverflowError):
            logger.warning("config.parse_failed field={} value={!r} default={}", info.field_name, value, default)
            return default

    @field_validator("run_delay_ms", mode="before")
    @classmethod
    def _lenient_delay(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            return int(_parse_number(value, 0))
        except (TypeError, ValueError, OverflowError):
            logger.warning("config.parse_failed field=run_delay_ms value={!r}", value)
            return None

    @field_validator("access_token", "premium_receiver", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def mcp_url(self) -> str:
        return f"{self.server_url.rstrip('/')}/mcp"

    @property
    def llm_url(self) -> str:
        return f"{self.server_url.rstrip('/')}/llm"

    @property
    def inter_run_delay_ms(self) -> int:
        if self.run_delay_ms is None:
            return self.min_interval_ms
        return self.run_delay_ms


def load_settings(**overrides: Any) -> Settings:
    """Load settings from the environment and apply non-empty overrides."""

    settings = Settings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings
