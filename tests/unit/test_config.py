"""Unit tests for configuration management.

Tests cover:
- Default configuration values
- TOML file loading
- Environment variable overrides
- Validation errors for invalid configurations
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from devforge.config import (
    AIConfig,
    DevforgeConfig,
    GitHubConfig,
    LoggingConfig,
    NetlifyConfig,
    StoreConfig,
    load_config,
)


class TestStoreConfig:
    def test_default_values(self) -> None:
        config = StoreConfig()
        assert config.backend == "sql"
        assert config.url == "sqlite+aiosqlite:///./devforge.db"
        assert config.name == "devforge-state"

    def test_backend_validation(self) -> None:
        assert StoreConfig(backend="MEMORY").backend == "memory"
        with pytest.raises(ValidationError, match="Invalid store backend"):
            StoreConfig(backend="redis")

    def test_pool_size_validation(self) -> None:
        with pytest.raises(ValidationError):
            StoreConfig(pool_size=0)


class TestLoggingConfig:
    def test_default_values(self) -> None:
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.format == "json"
        assert config.file is None

    def test_level_validation(self) -> None:
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError, match="Invalid log level"):
            LoggingConfig(level="INVALID")

    def test_format_validation(self) -> None:
        with pytest.raises(ValidationError, match="Invalid log format"):
            LoggingConfig(format="xml")


class TestAIConfig:
    def test_default_values(self) -> None:
        config = AIConfig()
        assert config.provider == "openai"
        assert config.openai_model == "gpt-4o"
        assert config.temperature == 0.3
        assert config.openai_api_key is None

    def test_default_model_per_provider(self) -> None:
        config = AIConfig()
        assert config.default_model() == "gpt-4o"
        assert config.default_model("anthropic") == config.anthropic_model

    def test_provider_validation(self) -> None:
        with pytest.raises(ValidationError, match="Invalid AI provider"):
            AIConfig(provider="llama")

    def test_api_key_is_secret(self) -> None:
        config = AIConfig(openai_api_key="sk-test")
        assert "sk-test" not in repr(config)
        assert config.openai_api_key.get_secret_value() == "sk-test"


class TestCollaboratorConfigs:
    def test_github_defaults(self) -> None:
        config = GitHubConfig()
        assert config.token is None
        assert config.api_url == "https://api.github.com"
        assert config.default_branch == "main"

    def test_netlify_defaults(self) -> None:
        config = NetlifyConfig()
        assert config.api_url == "https://api.netlify.com/api/v1"
        assert config.default_build_command == "npm run build"
        assert config.default_publish_dir == ".next"


class TestDevforgeConfig:
    def test_nested_defaults(self) -> None:
        config = DevforgeConfig()
        assert config.store.backend == "sql"
        assert config.web.port == 8000

    def test_unknown_section_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DevforgeConfig(database={"url": "x"})

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEVFORGE_STORE__BACKEND", "memory")
        monkeypatch.setenv("DEVFORGE_GITHUB__TOKEN", "ghp_env")

        config = DevforgeConfig()

        assert config.store.backend == "memory"
        assert config.github.token.get_secret_value() == "ghp_env"


class TestLoadConfig:
    def test_load_from_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "devforge.toml"
        path.write_text(
            '[store]\nbackend = "none"\n\n[ai]\nprovider = "anthropic"\ntemperature = 0.5\n'
        )

        config = load_config(path)

        assert config.store.backend == "none"
        assert config.ai.provider == "anthropic"
        assert config.ai.temperature == 0.5

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_invalid_toml_values(self, tmp_path: Path) -> None:
        path = tmp_path / "devforge.toml"
        path.write_text('[store]\nbackend = "redis"\n')

        with pytest.raises(ValueError):
            load_config(path)

    def test_defaults_without_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))

        config = load_config()

        assert config.store.name == "devforge-state"
