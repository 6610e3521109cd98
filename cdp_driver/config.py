"""Configuration management for the CDP driver.

Supports multiple configuration sources with precedence:
CLI flags > Environment variables > Config file > Defaults

Usage:
    >>> config = Configuration()
    >>> config.load_from_file("~/.cdprc")
    >>> config.load_from_env()
    >>> config.merge(chrome_port=9333)  # CLI overrides
    >>> print(config.chrome_port)
    9333
"""

import os
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class Configuration:
    """Configuration manager with layered precedence.

    Precedence order (highest to lowest):
    1. CLI arguments (via merge method)
    2. Environment variables (CDP_* prefix)
    3. Config file (~/.cdprc JSON)
    4. Default values

    Attributes:
        chrome_host: Chrome remote debugging host (default: "localhost")
        chrome_port: Chrome remote debugging port (default: 9222)
        timeout: Synchronous command timeout in milliseconds (default: 5000)
        navigation_timeout: Navigation and reload wait in milliseconds (default: 30000)
        max_size: Maximum WebSocket message size in bytes (default: 2MB)
        log_level: Logging level (default: "INFO")
        log_format: Log output format "text" or "json" (default: "text")
    """

    # Default configuration values
    DEFAULTS = {
        "chrome_host": "localhost",
        "chrome_port": 9222,
        "timeout": 5000,
        "navigation_timeout": 30000,
        "max_size": 2_097_152,  # 2MB
        "log_level": "INFO",
        "log_format": "text",
    }

    ENV_MAPPINGS = {
        "CDP_CHROME_HOST": ("chrome_host", str),
        "CDP_CHROME_PORT": ("chrome_port", int),
        "CDP_TIMEOUT": ("timeout", int),
        "CDP_NAVIGATION_TIMEOUT": ("navigation_timeout", int),
        "CDP_MAX_SIZE": ("max_size", int),
        "CDP_LOG_LEVEL": ("log_level", str),
        "CDP_LOG_FORMAT": ("log_format", str),
    }

    def __init__(self):
        """Initialize configuration with default values."""
        self.chrome_host: str = self.DEFAULTS["chrome_host"]
        self.chrome_port: int = self.DEFAULTS["chrome_port"]
        self.timeout: int = self.DEFAULTS["timeout"]
        self.navigation_timeout: int = self.DEFAULTS["navigation_timeout"]
        self.max_size: int = self.DEFAULTS["max_size"]
        self.log_level: str = self.DEFAULTS["log_level"]
        self.log_format: str = self.DEFAULTS["log_format"]

    def load_from_file(self, file_path: str) -> None:
        """Load configuration from JSON file.

        Args:
            file_path: Path to config file (typically ~/.cdprc)

        Note:
            Invalid JSON or missing file is ignored with a log message.
            Partial configs are merged with existing values.
        """
        path = Path(file_path).expanduser()

        if not path.exists():
            logger.debug(f"Config file not found: {path}")
            return

        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in config file {path}: {e}")
            return
        except OSError as e:
            logger.warning(f"Error loading config file {path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Config file {path} must contain a JSON object")
            return

        self._merge_dict(data)
        logger.info(f"Loaded configuration from {path}")

    def load_from_env(self) -> None:
        """Load configuration from environment variables.

        Environment variables use CDP_ prefix:
        - CDP_CHROME_HOST
        - CDP_CHROME_PORT
        - CDP_TIMEOUT
        - CDP_NAVIGATION_TIMEOUT
        - CDP_MAX_SIZE
        - CDP_LOG_LEVEL
        - CDP_LOG_FORMAT

        Invalid values are ignored with a warning log.
        """
        for env_var, (attr_name, type_converter) in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    converted_value = type_converter(value)
                    setattr(self, attr_name, converted_value)
                    logger.debug(f"Loaded {attr_name}={converted_value} from {env_var}")
                except (ValueError, TypeError) as e:
                    logger.warning(f"Invalid value for {env_var}: {value} ({e})")

    def merge(self, **kwargs) -> None:
        """Merge CLI arguments into configuration (highest precedence).

        Example:
            >>> config.merge(chrome_port=9333, timeout=15000)
        """
        self._merge_dict(kwargs)

    def _merge_dict(self, data: dict) -> None:
        for key, value in data.items():
            if key in self.DEFAULTS and value is not None:
                setattr(self, key, value)
                logger.debug(f"Set {key}={value}")

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {key: getattr(self, key) for key in self.DEFAULTS}

    def __repr__(self) -> str:
        return f"Configuration({self.to_dict()})"
