"""Configuration module for toolrpc-server using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolRpcServerSettings(BaseSettings):
    """Main configuration settings for toolrpc-server.

    All settings can be overridden via environment variables with the TOOLRPC_
    prefix. For example, TOOLRPC_DEFAULT_TIMEOUT_MS will override the
    default_timeout_ms setting. List and mapping settings are read as JSON.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    server_name: str = "toolrpc-server"

    # Data directory (cache database lives here)
    data_dir: str = "."

    # Discovery
    action_modules: list[str] = Field(
        default_factory=list,
        description='Action sources to register, as "package.module:attribute"',
    )
    discovery_enabled: bool = True
    max_initialization_time_ms: int = Field(default=5000, gt=0)

    # Execution
    default_timeout_ms: int = Field(default=30_000, gt=0)
    max_concurrent_executions: int = Field(default=10, ge=1)

    # Description cache
    cache_backend: Literal["none", "memory", "sqlite"] = "sqlite"
    cache_db_file: str = "tool_descriptions.db"
    provider_model: str = "qwen3:14b"
    static_descriptions: dict[str, str] = Field(default_factory=dict)

    # Ollama (external description generator)
    ollama_host: str = "http://localhost:11434"
    description_backfill_enabled: bool = True
    description_generation_enabled: bool = False

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="TOOLRPC_")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    # --- Resolved paths (computed from data_dir) ---

    @property
    def resolved_cache_db_path(self) -> Path:
        """Get the full path to the description cache database."""
        return Path(self.data_dir) / self.cache_db_file
