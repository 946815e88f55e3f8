"""
Type-safe configuration for the workflow compiler using Pydantic Settings.

This module provides a centralized, type-safe configuration system
that loads from environment variables and .env files.

Usage:
    from shared.config import config

    definition = fetch_definition(workflow_id, config.api_url, timeout=config.api_timeout)
"""
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CompilerSettings(BaseSettings):
    """
    Central configuration for the compiler CLI.

    All configuration is loaded from `WORKFLOW_*` environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ============================================================================
    # Workflows API
    # ============================================================================

    api_url: str = Field(default="http://localhost:3000", description="Base URL of the workflows API used by --from-api")
    api_timeout: float = Field(default=10.0, description="Timeout in seconds for workflow fetches")

    # ============================================================================
    # Code generation defaults
    # ============================================================================

    strategy_mode: Literal["network", "direct", "none"] = Field(default="network", description="Advisory execution strategy tag")
    include_comments: bool = Field(default=True, description="Emit `# API: <src>` annotations")

    # ============================================================================
    # Logging
    # ============================================================================

    log_level: str = Field(default="INFO", description="Console log level")


# ============================================================================
# Global Config Instance
# ============================================================================

config = CompilerSettings()
