"""Configuration management for Devforge.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Programmatic overrides (passed to DevforgeConfig constructor)
2. Environment variables (DEVFORGE_* prefix)
3. TOML configuration file
4. Default values defined in this module

Example TOML configuration:
    [store]
    backend = "sql"
    url = "postgresql+asyncpg://localhost/devforge"

    [ai]
    provider = "anthropic"

Example environment variable override:
    DEVFORGE_STORE__BACKEND="memory"
    DEVFORGE_GITHUB__TOKEN="ghp_..."
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseSettings):
    """Key-value store configuration.

    Attributes:
        backend: Store backend ("sql", "memory" or "none" for client-held state only)
        url: SQLAlchemy database URL used by the sql backend
        name: Store namespace holding project aggregates
        pool_size: Number of connections to maintain in the pool
        max_overflow: Maximum number of connections beyond pool_size
        echo: Enable SQL query logging
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVFORGE_STORE__",
        extra="forbid",
    )

    backend: str = Field(default="sql")
    url: str = Field(
        default="sqlite+aiosqlite:///./devforge.db",
        description="SQLAlchemy async connection URL",
    )
    name: str = Field(default="devforge-state", min_length=1)
    pool_size: int = Field(default=5, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    echo: bool = Field(default=False)

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate store backend is recognized."""
        valid_backends = {"sql", "memory", "none"}
        v_lower = v.lower()
        if v_lower not in valid_backends:
            raise ValueError(f"Invalid store backend: {v}. Must be one of {valid_backends}")
        return v_lower


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stdout only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVFORGE_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=50, ge=1, le=1000)
    retention_count: int = Field(default=10, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class AIConfig(BaseSettings):
    """AI generation backend configuration.

    Attributes:
        provider: Default provider for new projects (openai or anthropic)
        openai_model: Model used when the project does not name one (OpenAI)
        anthropic_model: Model used when the project does not name one (Anthropic)
        temperature: Sampling temperature for all generation calls
        timeout_seconds: Request timeout in seconds
        max_retries: Retries performed by the provider client on transient failures
        openai_api_key: OpenAI API key (falls back to OPENAI_API_KEY)
        anthropic_api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY)
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVFORGE_AI__",
        extra="forbid",
    )

    provider: str = Field(default="openai")
    openai_model: str = Field(default="gpt-4o")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout_seconds: int = Field(default=120, ge=1, le=600)
    max_retries: int = Field(default=2, ge=0, le=10)
    openai_api_key: SecretStr | None = Field(default=None)
    anthropic_api_key: SecretStr | None = Field(default=None)

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Validate AI provider is supported."""
        valid_providers = {"openai", "anthropic"}
        v_lower = v.lower()
        if v_lower not in valid_providers:
            raise ValueError(f"Invalid AI provider: {v}. Must be one of {valid_providers}")
        return v_lower

    def default_model(self, provider: str | None = None) -> str:
        """Return the default model name for a provider."""
        if (provider or self.provider) == "anthropic":
            return self.anthropic_model
        return self.openai_model


class GitHubConfig(BaseSettings):
    """GitHub API configuration.

    Attributes:
        token: Personal access token used for repository operations
        api_url: Base URL of the GitHub REST API
        default_branch: Branch that batched commits are written to
        timeout_seconds: Request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVFORGE_GITHUB__",
        extra="forbid",
    )

    token: SecretStr | None = Field(default=None)
    api_url: str = Field(default="https://api.github.com")
    default_branch: str = Field(default="main")
    timeout_seconds: int = Field(default=30, ge=1, le=300)


class NetlifyConfig(BaseSettings):
    """Netlify API configuration.

    Attributes:
        token: Personal access token for the Netlify API
        api_url: Base URL of the Netlify REST API
        timeout_seconds: Request timeout in seconds
        default_build_command: Build command used when the scaffold names none
        default_publish_dir: Publish directory used when the scaffold names none
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVFORGE_NETLIFY__",
        extra="forbid",
    )

    token: SecretStr | None = Field(default=None)
    api_url: str = Field(default="https://api.netlify.com/api/v1")
    timeout_seconds: int = Field(default=60, ge=1, le=600)
    default_build_command: str = Field(default="npm run build")
    default_publish_dir: str = Field(default=".next")


class WebConfig(BaseSettings):
    """Web API configuration.

    Attributes:
        host: Bind host address
        port: Bind port number
        cors_origins: Allowed CORS origins
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVFORGE_WEB__",
        extra="forbid",
    )

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class DevforgeConfig(BaseSettings):
    """Root configuration for Devforge.

    Aggregates all subsystem configurations. Configuration can be loaded from:
    1. TOML files (using load_config function)
    2. Environment variables (DEVFORGE_* prefix)
    3. Direct instantiation with keyword arguments

    Environment variable format for nested config:
        DEVFORGE_<SECTION>__<KEY>=value
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVFORGE_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    netlify: NetlifyConfig = Field(default_factory=NetlifyConfig)
    web: WebConfig = Field(default_factory=WebConfig)


def load_config(config_path: Path | None = None) -> DevforgeConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./devforge.toml (current directory)
    3. ~/.config/devforge/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        DevforgeConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path = config_path
    else:
        search_paths = [
            Path.cwd() / "devforge.toml",
            Path.home() / ".config" / "devforge" / "config.toml",
        ]
        selected_path = None
        for path in search_paths:
            if path.exists():
                selected_path = path
                break

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            toml_data = tomli.load(f)

    # Pydantic overlays environment variables on top of the TOML values
    try:
        return DevforgeConfig(**toml_data)
    except Exception as e:
        if selected_path:
            raise ValueError(
                f"Invalid configuration in {selected_path}: {e}"
            ) from e
        else:
            raise ValueError(f"Invalid configuration: {e}") from e
