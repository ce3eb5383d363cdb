"""
Configuration management for the 1inch gateway

Loads settings from environment variables and .env file.
Includes logging configuration with file output and correlation ID support.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv


def _load_env_file():
    """Load .env file from project root"""
    current = Path(__file__).parent.parent  # oneinch_gateway package parent
    env_file = current / ".env"

    if env_file.exists():
        load_dotenv(env_file)


# Load .env on module import
_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    """Get environment variable with default"""
    value = os.getenv(key)
    if value is None:
        return default
    return value


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid float value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as int"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid int value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as bool"""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


DEFAULT_BASE_URL = "https://api.1inch.dev/swap/v6.0/{chain_id}"


@dataclass
class GatewayConfig:
    """1inch aggregator client configuration"""
    # API settings
    api_key: Optional[str] = field(default_factory=lambda: _get_env("ONEINCH_API_KEY", None))
    chain_id: int = field(default_factory=lambda: _get_env_int("ONEINCH_CHAIN_ID", 1))
    # Template; {chain_id} is substituted at client construction
    base_url: str = field(default_factory=lambda: _get_env("ONEINCH_BASE_URL", DEFAULT_BASE_URL))
    timeout: float = field(default_factory=lambda: _get_env_float("ONEINCH_TIMEOUT", 30.0))
    # EVM JSON-RPC node, used only for portfolio balance reads
    rpc_url: str = field(default_factory=lambda: _get_env("ONEINCH_RPC_URL", ""))

    # Pacing: minimum gap between two outbound requests from one client
    min_request_interval_ms: int = field(
        default_factory=lambda: _get_env_int("ONEINCH_MIN_REQUEST_INTERVAL_MS", 1000)
    )

    # Cache TTL for token and liquidity-source lists (5 minutes)
    cache_ttl_ms: int = field(default_factory=lambda: _get_env_int("ONEINCH_CACHE_TTL_MS", 300_000))
    serve_stale_on_error: bool = field(
        default_factory=lambda: _get_env_bool("ONEINCH_SERVE_STALE_ON_ERROR", False)
    )

    # Retry settings: 429 backs off exponentially, 5xx/transport linearly
    max_retries: int = field(default_factory=lambda: _get_env_int("ONEINCH_MAX_RETRIES", 3))
    retry_base_delay: float = field(default_factory=lambda: _get_env_float("ONEINCH_RETRY_BASE_DELAY", 1.0))

    def resolve_base_url(self, chain_id: Optional[int] = None, template: Optional[str] = None) -> str:
        """
        Substitute the chain ID into the base URL template

        Raises:
            ConfigurationError: Template has placeholders other than {chain_id}
        """
        from .errors import ConfigurationError

        chain = self.chain_id if chain_id is None else chain_id
        template = self.base_url if template is None else template
        try:
            return template.format(chain_id=chain).rstrip("/")
        except (KeyError, IndexError) as e:
            raise ConfigurationError.invalid("base_url", f"bad template {template!r}: {e}")


@dataclass
class ProxyConfig:
    """Local REST proxy configuration"""
    host: str = field(default_factory=lambda: _get_env("PROXY_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: _get_env_int("PROXY_PORT", 3001))
    # Single origin allowed by CORS (the local swap UI)
    cors_origin: str = field(default_factory=lambda: _get_env("PROXY_CORS_ORIGIN", "http://localhost:3000"))


@dataclass
class MonitorConfig:
    """Price monitor defaults"""
    alert_threshold: float = field(default_factory=lambda: _get_env_float("MONITOR_ALERT_THRESHOLD", 0.05))
    check_interval: float = field(default_factory=lambda: _get_env_float("MONITOR_CHECK_INTERVAL", 30.0))
    max_checks: int = field(default_factory=lambda: _get_env_int("MONITOR_MAX_CHECKS", 100))


def _get_default_log_path() -> str:
    """Get default log file path under oneinch_gateway/log/ with UTC timestamp"""
    from datetime import datetime, timezone
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_dir = Path(__file__).parent / "log"
    return str(log_dir / f"oneinch_gateway_{timestamp}.log")


@dataclass
class LoggingConfig:
    """
    Logging configuration with file output and correlation ID support.

    Environment variables:
        LOG_FILE: Path to log file (empty disables file logging)
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        LOG_FORMAT: Custom log format string
        LOG_CONSOLE: Enable console output (default: true)
        LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
        LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
    """
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", _get_default_log_path()))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _get_env(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))
    max_bytes: int = field(default_factory=lambda: _get_env_int("LOG_MAX_BYTES", 10 * 1024 * 1024))  # 10MB
    backup_count: int = field(default_factory=lambda: _get_env_int("LOG_BACKUP_COUNT", 5))

    @property
    def level(self) -> int:
        """Get numeric log level"""
        return getattr(logging, self.log_level.upper(), logging.INFO)


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from oneinch_gateway.config import config

        print(config.gateway.chain_id)
        print(config.proxy.port)
    """
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Reload configuration from environment"""
        _load_env_file()
        return cls()


# Global config instance
config = Config()


def get_config() -> Config:
    """Get global configuration instance"""
    return config


def reload_config() -> Config:
    """Reload and return new configuration"""
    global config
    config = Config.reload()
    return config


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "oneinch_gateway",
) -> logging.Logger:
    """
    Set up logging based on configuration.

    Creates handlers for file and/or console output with rotation.
    The log file directory is created automatically if it doesn't exist.

    Args:
        log_config: Logging configuration (uses global config if None)
        logger_name: Name of the logger to configure

    Returns:
        Configured logger instance
    """
    if log_config is None:
        log_config = config.logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    # Close handlers before removing to release file handles
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(log_config.log_format)
    handlers: List[logging.Handler] = []

    if log_config.log_file:
        from logging.handlers import RotatingFileHandler

        log_path = Path(log_config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding='utf-8',
        )
        file_handler.setLevel(log_config.level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if log_config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_config.level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    for handler in handlers:
        logger.addHandler(handler)

    if log_config.log_file:
        logger.info(f"Logging initialized: file={log_config.log_file}, level={log_config.log_level}")

    return logger
