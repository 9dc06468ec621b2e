"""Runtime configuration for the monday.com toolkit.

Settings come from explicit values (usually CLI flags) layered over
environment variables:

    MONDAY_API_TOKEN       API token (required)
    MONDAY_API_VERSION     API version header, default 2025-10
    MONDAY_API_URL         GraphQL endpoint
    MONDAY_READ_ONLY       1/true/yes disables write tools
    MONDAY_ENABLED_TOOLS   comma-separated allow list
    MONDAY_DISABLED_TOOLS  comma-separated deny list
    MONDAY_LOG_LEVEL       DEBUG, INFO, WARNING, ERROR
"""

import os
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_API_VERSION = "2025-10"
DEFAULT_API_URL = "https://api.monday.com/v2"

_TRUTHY = {"1", "true", "yes", "on"}


def parse_tool_list(value: str | None) -> list[str] | None:
    """Split a comma-separated tool list, dropping blanks. Empty input gives None."""
    if not value:
        return None
    names = [name.strip() for name in value.split(",") if name.strip()]
    return names or None


def env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


class ToolkitConfig(BaseModel):
    api_token: str = Field(..., min_length=1, description="monday.com API token")
    api_version: str = Field(DEFAULT_API_VERSION, description="API-Version header value")
    api_url: str = Field(DEFAULT_API_URL, description="GraphQL endpoint URL")
    read_only: bool = Field(False, description="Expose only read tools")
    include_tools: list[str] | None = Field(None, description="Tools to enable (wins over exclude)")
    exclude_tools: list[str] | None = Field(None, description="Tools to disable")
    log_level: str = Field("INFO", description="Log level")
    json_logs: bool = Field(True, description="Emit structured JSON logs")

    @field_validator("api_token")
    @classmethod
    def _strip_token(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("api_token must not be blank")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def from_env(cls, **overrides: Any) -> "ToolkitConfig":
        """Build a config from the environment; non-None overrides win."""
        values: dict[str, Any] = {
            "api_token": os.getenv("MONDAY_API_TOKEN", ""),
            "api_version": os.getenv("MONDAY_API_VERSION") or DEFAULT_API_VERSION,
            "api_url": os.getenv("MONDAY_API_URL") or DEFAULT_API_URL,
            "read_only": env_flag("MONDAY_READ_ONLY"),
            "include_tools": parse_tool_list(os.getenv("MONDAY_ENABLED_TOOLS")),
            "exclude_tools": parse_tool_list(os.getenv("MONDAY_DISABLED_TOOLS")),
            "log_level": os.getenv("MONDAY_LOG_LEVEL") or "INFO",
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
