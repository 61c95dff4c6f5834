"""Environment configuration management."""

import os
import sys
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv
from loguru import logger

load_dotenv()

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
VALID_LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_PREFERRED_CONTEXT = "upbound"
DEFAULT_DOMAIN = "https://upbound.io"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ["true", "1", "yes"]


class EnvironmentConfig(BaseModel):
    """Settings read from the process environment (and a .env file, if present)."""

    UPCTX_DEBUG: bool = Field(False, description="Enable debug logging")
    UPCTX_LOG_LEVEL: str = Field(
        "WARNING", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    UP_CONTEXT: str = Field(
        DEFAULT_PREFERRED_CONTEXT, description="Kubeconfig context name used for the canonical context"
    )
    UP_PROFILE: Optional[str] = Field(None, description="up profile to use")
    UP_DOMAIN: str = Field(DEFAULT_DOMAIN, description="Root Upbound domain")
    UP_INSECURE_SKIP_TLS_VERIFY: bool = Field(
        False, description="Skip TLS verification when talking to the Upbound API"
    )
    UP_SHORT: bool = Field(False, description="Print only the resolved path on success")

    @property
    def log_level(self) -> str:
        if self.UPCTX_DEBUG:
            return "DEBUG"
        return self.UPCTX_LOG_LEVEL

    @classmethod
    def load(cls) -> "EnvironmentConfig":
        """Load environment configuration from environment variables."""
        log_level = os.getenv("UPCTX_LOG_LEVEL", "WARNING").upper()
        if log_level not in VALID_LOG_LEVELS:
            log_level = "WARNING"

        env_vars = {
            "UPCTX_DEBUG": _env_flag("UPCTX_DEBUG"),
            "UPCTX_LOG_LEVEL": log_level,
            "UP_CONTEXT": os.getenv("UP_CONTEXT") or DEFAULT_PREFERRED_CONTEXT,
            "UP_PROFILE": os.getenv("UP_PROFILE") or None,
            "UP_DOMAIN": os.getenv("UP_DOMAIN") or DEFAULT_DOMAIN,
            "UP_INSECURE_SKIP_TLS_VERIFY": _env_flag("UP_INSECURE_SKIP_TLS_VERIFY"),
            "UP_SHORT": _env_flag("UP_SHORT"),
        }
        config = cls(**env_vars)
        configure_logging(config.log_level)
        return config


def configure_logging(level: str) -> None:
    """Replace loguru's default handler with a single stderr sink at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)


_env_config: Optional[EnvironmentConfig] = None


def get_env_config() -> EnvironmentConfig:
    """Get the singleton environment configuration."""
    global _env_config
    if _env_config is None:
        _env_config = EnvironmentConfig.load()
    return _env_config


def reset_env_config() -> None:
    """Forget the cached configuration so the next call re-reads the environment."""
    global _env_config
    _env_config = None
