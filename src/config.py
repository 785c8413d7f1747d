"""
Configuration for Kolam.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """Persistence backend configuration."""

    backend: str = "sqlite"
    db_path: str = "data/kolam.db"


class BridgeConfig(BaseModel):
    """Bridge protocol configuration."""

    key_length: int = Field(default=8, ge=4, le=32)
    max_key_attempts: int = Field(default=5, ge=1)
    default_directive: str = "DUMP"
    default_model: str = "default"


class TokenizerConfig(BaseModel):
    """Token counting configuration."""

    provider: str = "tiktoken"  # tiktoken, approximate
    model: str = "cl100k_base"
    chars_per_token: float = 4.0


class ModelLimit(BaseModel):
    """Context window of a target chat model."""

    name: str
    token_limit: int = Field(..., gt=0)
    warning_threshold: int = Field(..., gt=0)


def _default_model_limits() -> dict[str, ModelLimit]:
    return {
        "gpt4-turbo": ModelLimit(name="GPT-4 Turbo", token_limit=128000, warning_threshold=100000),
        "claude-sonnet": ModelLimit(
            name="Claude Sonnet", token_limit=200000, warning_threshold=180000
        ),
        "gemini-pro": ModelLimit(name="Gemini Pro", token_limit=128000, warning_threshold=100000),
        "default": ModelLimit(name="Default", token_limit=4000, warning_threshold=3200),
    }


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    tokenizer: TokenizerConfig = Field(default_factory=TokenizerConfig)
    models: dict[str, ModelLimit] = Field(default_factory=_default_model_limits)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def model_limit(self, model: str | None) -> ModelLimit:
        """
        Look up the limits of a target model.

        Unknown or missing names fall back to the "default" entry.
        """
        if model and model in self.models:
            return self.models[model]
        return self.models.get("default") or _default_model_limits()["default"]

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            KOLAM_STORE_BACKEND: Persistence backend (sqlite)
            KOLAM_DB_PATH: SQLite database path
            KOLAM_BRIDGE_KEY_LENGTH: Bridge key length
            KOLAM_BRIDGE_MAX_KEY_ATTEMPTS: Collision retries before giving up
            KOLAM_DEFAULT_DIRECTIVE: Directive used when none is given
            KOLAM_DEFAULT_MODEL: Target model for token budgets
            KOLAM_TOKENIZER_PROVIDER: tiktoken or approximate
            KOLAM_TOKENIZER_MODEL: tiktoken encoding name
            KOLAM_LOG_LEVEL: Log level
        """
        # Load .env file if provided or exists
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            # If value is empty string, return default
            if value == "":
                return default
            # Convert boolean strings
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            # Convert numeric strings
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        return cls(
            store=StoreConfig(
                backend=get_env("KOLAM_STORE_BACKEND", "sqlite"),
                db_path=get_env("KOLAM_DB_PATH", "data/kolam.db"),
            ),
            bridge=BridgeConfig(
                key_length=get_env("KOLAM_BRIDGE_KEY_LENGTH", 8),
                max_key_attempts=get_env("KOLAM_BRIDGE_MAX_KEY_ATTEMPTS", 5),
                default_directive=get_env("KOLAM_DEFAULT_DIRECTIVE", "DUMP"),
                default_model=get_env("KOLAM_DEFAULT_MODEL", "default"),
            ),
            tokenizer=TokenizerConfig(
                provider=get_env("KOLAM_TOKENIZER_PROVIDER", "tiktoken"),
                model=get_env("KOLAM_TOKENIZER_MODEL", "cl100k_base"),
                chars_per_token=get_env("KOLAM_TOKENIZER_CHARS_PER_TOKEN", 4.0),
            ),
            logging=LoggingConfig(
                level=get_env("KOLAM_LOG_LEVEL", "INFO"),
                log_to_file=get_env("KOLAM_LOG_TO_FILE", True),
                log_dir=get_env("KOLAM_LOG_DIR", "logs"),
                file_rotation=get_env("KOLAM_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("KOLAM_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("KOLAM_LOG_COMPRESSION", "zip"),
                serialize=get_env("KOLAM_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        # Start with YAML if provided
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        # Override with env vars if present
        env_config = cls.from_env(env_file=env_file)

        # Merge: env vars override YAML
        final_dict = {**config_dict}

        # Apply env overrides (non-default values)
        default = cls()
        if env_config.store != default.store:
            final_dict["store"] = env_config.store.model_dump()
        if env_config.bridge != default.bridge:
            final_dict["bridge"] = env_config.bridge.model_dump()
        if env_config.tokenizer != default.tokenizer:
            final_dict["tokenizer"] = env_config.tokenizer.model_dump()
        if env_config.logging != default.logging:
            final_dict["logging"] = env_config.logging.model_dump()

        return cls(**final_dict) if final_dict else env_config
