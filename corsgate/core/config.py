"""
Configuration management using Pydantic settings.
Supports environment variables, .env files, and YAML configuration.
"""

import os
import yaml
from typing import Optional
from enum import Enum
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import logging

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Application environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CORSSettings(BaseSettings):
    """
    CORS policy configuration.

    All three lists are kept as the raw comma-delimited strings: methods and
    headers are emitted verbatim, origins are tokenized per request.
    """
    allowed_methods: str = "GET,PUT,POST"
    allowed_origins: str = "localhost"
    allowed_headers: str = "*"
    immediate_preflight: bool = True

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")


class ProxySettings(BaseSettings):
    """Reverse proxy configuration."""
    backend_url: str = "http://localhost:8000"
    timeout: float = 30.0  # seconds
    host: str = "0.0.0.0"
    port: int = 8080

    model_config = SettingsConfigDict(env_prefix="PROXY_", extra="ignore")

    @field_validator("backend_url")
    @classmethod
    def validate_backend_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("Backend URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("Timeout must be positive")
        return v


class LoggingConfig(BaseSettings):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    json_format: bool = False
    file_path: Optional[str] = None
    max_file_size: int = 10485760  # 10MB
    backup_count: int = 5

    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v


class Config(BaseSettings):
    """Main application configuration."""

    # Core
    app_name: str = "corsgate"
    environment: Environment = Environment.DEVELOPMENT

    # Components
    cors: CORSSettings = Field(default_factory=CORSSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v


def _read_yaml(config_file: str) -> dict:
    try:
        with open(config_file, "r") as f:
            yaml_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Failed to load YAML config from {config_file}: {e}",
            config_key="config_file",
        ) from e

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        raise ConfigurationError(
            f"YAML config {config_file} must contain a mapping",
            config_key="config_file",
        )
    return yaml_data


@lru_cache()
def get_config(config_file: Optional[str] = None) -> Config:
    """
    Get cached configuration instance.

    Args:
        config_file: Optional path to YAML configuration file

    Returns:
        Config instance
    """
    config_data = {}

    if config_file:
        if not os.path.exists(config_file):
            raise ConfigurationError(
                f"Config file {config_file} does not exist",
                config_key="config_file",
            )
        config_data = _read_yaml(config_file)
        logger.info(f"Loaded configuration from {config_file}")

    config = Config(**config_data)

    logger.info(f"Configuration loaded for {config.app_name} in {config.environment.value} environment")
    return config


def load_config(config_file: Optional[str] = None) -> Config:
    """
    Load configuration (clears cache first).

    Args:
        config_file: Optional path to YAML configuration file

    Returns:
        Config instance
    """
    get_config.cache_clear()
    return get_config(config_file)
