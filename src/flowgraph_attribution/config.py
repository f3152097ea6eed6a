"""Application configuration management using Pydantic Settings.

This module defines the `Settings` class, which loads configuration parameters
from environment variables and a `.env` file. It centralizes the tunable
parameters of the attribution walk: the step function names that delimit
worker, stage and parallel blocks, the fallback worker label and output
formatting.

The `get_settings` function provides a cached, singleton instance of the
configuration, ensuring consistent settings throughout the application.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict as _SettingsConfigDict

BUILT_IN_WORKER_LABEL = "(built-in)"


class Settings(BaseSettings):
    """Defines all application configuration parameters.

    Values come from environment variables or a `.env` file. Blank step
    function names fall back to the engine defaults so a half-filled `.env`
    never disables a scope tracker silently.
    """

    model_config = _SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Logging & output
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    OUTPUT_INDENT: int = Field(
        default=2,
        description="JSON indentation for CLI output (0 = compact single line)",
    )

    # ---------------- Attribution behavior -----------------
    DEFAULT_WORKER_LABEL: str = Field(
        default=BUILT_IN_WORKER_LABEL,
        description=(
            "Worker label recorded for nodes inside a worker block that does not "
            "name its worker (the controller's built-in executor)."
        ),
    )
    WORKER_FUNCTION_NAME: str = Field(
        default="node", description="Step function name of worker allocation blocks"
    )
    STAGE_FUNCTION_NAME: str = Field(
        default="stage", description="Step function name of stage blocks"
    )
    PARALLEL_FUNCTION_NAME: str = Field(
        default="parallel", description="Step function name of parallel fork/branch blocks"
    )
    STAGE_NAME_ARGUMENT: str = Field(
        default="name", description="Argument key holding a stage's declared name"
    )

    @field_validator("DEFAULT_WORKER_LABEL", mode="before")
    @classmethod
    def normalize_worker_label(cls, v: Any) -> str:
        """Trim whitespace and normalize blank -> built-in worker label."""
        if isinstance(v, str) and v.strip():
            return v.strip()
        return BUILT_IN_WORKER_LABEL

    @field_validator(
        "WORKER_FUNCTION_NAME",
        "STAGE_FUNCTION_NAME",
        "PARALLEL_FUNCTION_NAME",
        "STAGE_NAME_ARGUMENT",
        mode="before",
    )
    @classmethod
    def normalize_function_name(cls, v: Any, info: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return cls.model_fields[info.field_name].default
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("OUTPUT_INDENT")
    @classmethod
    def non_negative_indent(cls, v: int) -> int:
        return max(v, 0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:  # pragma: no cover - trivial
    """Return a cached, singleton instance of the application settings."""
    return Settings()


__all__ = ["BUILT_IN_WORKER_LABEL", "Settings", "get_settings"]
