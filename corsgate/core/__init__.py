"""
Core module containing configuration, logging and exceptions.
"""

from .config import (
    Config,
    CORSSettings,
    ProxySettings,
    LoggingConfig,
    Environment,
    get_config,
    load_config,
)
from .logging_config import setup_logging, get_logger
from .exceptions import (
    AppException,
    ConfigurationError,
    UpstreamError,
)

__all__ = [
    # Config
    "Config",
    "CORSSettings",
    "ProxySettings",
    "LoggingConfig",
    "Environment",
    "get_config",
    "load_config",
    
    # Logging
    "setup_logging",
    "get_logger",
    
    # Exceptions
    "AppException",
    "ConfigurationError",
    "UpstreamError",
]
